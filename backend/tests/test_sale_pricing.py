"""
Sale pricing engine tests.

Verifies:
- Totals, discount amount and discount percentage for both input modes
- Per-line discounted unit prices rounded half-up
- Rounding slack is reported, not redistributed
- Zero suggested totals, empty carts and bad quantities
"""

from decimal import Decimal

import pytest

from margarita.services.sale_pricing_service import (
    CartLine,
    PricingError,
    discount_percentage,
    discounted_price,
    price_sale,
)


def ring(qty=2, price="42.50", product_id=1):
    return CartLine(product_id=product_id, quantity=qty, suggested_unit_price=Decimal(price), description="Ring")


class TestFinalPriceMode:

    def test_operator_price_sets_discount(self):
        """
        SCENARIO: 2 x 42.50 plus 1.00 packaging, charged 80.00
        EXPECTED: subtotal 85.00, suggested 86.00, 6.00 off = 6.98%,
                  unit price 42.50 x 0.9302 = 39.5335 -> 39.53
        """
        pricing = price_sale([ring()], packaging_cost="1.00", user_final_price="80.00")

        assert pricing.subtotal == Decimal("85.00")
        assert pricing.suggested_total == Decimal("86.00")
        assert pricing.final_total == Decimal("80.00")
        assert pricing.discount_amount == Decimal("6.00")
        assert pricing.discount_percentage == Decimal("6.98")
        assert pricing.lines[0].actual_unit_price == Decimal("39.53")
        assert pricing.lines[0].suggested_total == Decimal("85.00")

    def test_rounding_slack_is_reported(self):
        pricing = price_sale([ring()], packaging_cost="1.00", user_final_price="80.00")

        # 2 x 39.53 + 0.93 packaging = 79.99
        assert pricing.allocated_packaging == Decimal("0.93")
        assert pricing.allocated_total == Decimal("79.99")
        assert pricing.rounding_difference == Decimal("0.01")
        assert pricing.to_dict()["rounding_difference"] == "0.01"

    def test_full_price_has_no_discount(self):
        pricing = price_sale([ring()], packaging_cost="1.00", user_final_price="86.00")
        assert pricing.discount_percentage == Decimal("0.00")
        assert pricing.lines[0].actual_unit_price == Decimal("42.50")

    def test_charging_above_suggested_is_a_negative_discount(self):
        pricing = price_sale([ring(qty=1, price="100.00")], user_final_price="110.00")
        assert pricing.discount_percentage == Decimal("-10.00")
        assert pricing.lines[0].actual_unit_price == Decimal("110.00")

    def test_negative_final_price_rejected(self):
        with pytest.raises(PricingError):
            price_sale([ring()], user_final_price="-1.00")


class TestDiscountPercentageMode:

    def test_percentage_sets_final_total(self):
        pricing = price_sale([ring(qty=1, price="100.00")], user_discount_percentage="15")
        assert pricing.discount_amount == Decimal("15.00")
        assert pricing.final_total == Decimal("85.00")
        assert pricing.lines[0].actual_unit_price == Decimal("85.00")

    def test_round_trip_through_final_price(self):
        """
        SCENARIO: price with a percentage, then price again with the resulting final total
        EXPECTED: the same percentage comes back within a cent
        """
        by_pct = price_sale([ring(qty=3, price="19.99")], packaging_cost="2.50", user_discount_percentage="12.5")
        by_final = price_sale([ring(qty=3, price="19.99")], packaging_cost="2.50", user_final_price=by_pct.final_total)

        assert abs(by_final.discount_percentage - by_pct.discount_percentage) <= Decimal("0.01")

    def test_both_modes_rejected(self):
        with pytest.raises(PricingError):
            price_sale([ring()], user_final_price="80.00", user_discount_percentage="5")

    def test_discount_above_maximum_rejected(self):
        with pytest.raises(PricingError):
            price_sale([ring()], user_discount_percentage="30", max_discount_percentage="25")

    def test_upsell_above_maximum_rejected(self):
        # 110.00 on a 100.00 suggested total is a -10% discount
        with pytest.raises(PricingError):
            price_sale([ring(qty=1, price="100.00")], user_final_price="110.00", max_discount_percentage="5")

    def test_discount_over_100_rejected_even_when_allowed(self):
        """
        SCENARIO: 150% off a 10.00 item with the maximum raised to 200
        EXPECTED: rejected, a sale never goes below zero
        """
        with pytest.raises(PricingError):
            price_sale(
                [ring(qty=1, price="10.00")],
                user_discount_percentage="150",
                max_discount_percentage="200",
            )

    def test_full_discount_is_free(self):
        pricing = price_sale([ring(qty=1, price="10.00")], user_discount_percentage="100")
        assert pricing.final_total == Decimal("0.00")
        assert pricing.lines[0].actual_unit_price == Decimal("0.00")

    def test_no_adjustment_charges_suggested_total(self):
        pricing = price_sale([ring()], packaging_cost="1.00")
        assert pricing.final_total == Decimal("86.00")
        assert pricing.discount_percentage == Decimal("0.00")


class TestGuards:

    def test_empty_cart_rejected(self):
        with pytest.raises(PricingError, match="Cart is empty"):
            price_sale([], user_final_price="10.00")

    @pytest.mark.parametrize("qty", [0, -1, True])
    def test_bad_quantity_rejected(self, qty):
        with pytest.raises(PricingError):
            price_sale([ring(qty=qty)])

    def test_negative_packaging_rejected(self):
        with pytest.raises(PricingError):
            price_sale([ring()], packaging_cost="-0.50")

    def test_non_numeric_final_price_rejected(self):
        with pytest.raises(PricingError):
            price_sale([ring()], user_final_price="eighty")

    def test_zero_suggested_total_has_zero_discount(self):
        pricing = price_sale([ring(qty=1, price="0.00")], user_final_price="0.00")
        assert pricing.discount_percentage == Decimal("0.00")

    def test_helpers(self):
        assert discount_percentage("0.00", "10.00") == Decimal("0.00")
        assert discounted_price("42.50", "6.98") == Decimal("39.53")

    def test_suggested_total_equals_lines_plus_packaging(self):
        lines = [ring(qty=2, price="12.34", product_id=1), ring(qty=5, price="0.99", product_id=2)]
        pricing = price_sale(lines, packaging_cost="0.75")
        assert pricing.suggested_total == sum(l.suggested_total for l in pricing.lines) + Decimal("0.75")
