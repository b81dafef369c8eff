"""
Sales service tests.

Verifies:
- Recording a sale snapshots prices, reduces stock and stamps first_sale_date
- A failing sale leaves stock untouched
- Repricing an existing sale works from the stored snapshots
- Deleting a sale puts the units back
- Filtered search with summary
"""

from datetime import date
from decimal import Decimal

import pytest

from margarita.extensions import db
from margarita.models import Customer, Product, Sale, SaleProduct
from margarita.services import products_service, sales_service
from margarita.services.filters import SaleFilters
from margarita.services.sale_pricing_service import PricingError
from margarita.validation import NotFoundError, ValidationError


def sale_payload(product, location, **extra):
    payload = {
        "location_id": location.id,
        "items": [{"product_id": product.id, "quantity": 2}],
        "sale_date": "2026-03-14",
    }
    payload.update(extra)
    return payload


class TestRecordSale:

    def test_records_snapshots_and_reduces_stock(self, product, location, customer, admin_user):
        """
        SCENARIO: 2 rings at 60.00 plus 1.00 packaging, charged 110.00
        EXPECTED: 9.09% discount, unit price 54.55, stock 10 -> 8
        """
        sale = sales_service.record_sale(
            sale_payload(product, location, customer_id=customer.id, packaging_price="1.00", final_price="110.00"),
            user_id=admin_user.id,
        )

        assert sale.suggested_total_price == Decimal("121.00")
        assert sale.final_total_price == Decimal("110.00")
        assert sale.discount_percentage == Decimal("9.09")
        line = sale.lines[0]
        assert line.suggested_price_at_the_time == Decimal("60.00")
        assert line.price_at_the_time == Decimal("54.55")
        assert line.product_description_snapshot == "Silver ring (RING-001)"
        assert sale.created_by_user_id == admin_user.id

        assert db.session.get(Product, product.id).stock == 8
        assert db.session.get(Customer, customer.id).first_sale_date == date(2026, 3, 14)

    def test_wholesale_uses_wholesale_price(self, product, location):
        sale = sales_service.record_sale(sale_payload(product, location, is_wholesale=True))
        assert sale.suggested_total_price == Decimal("74.40")
        assert sale.lines[0].suggested_price_at_the_time == Decimal("37.20")

    def test_first_sale_date_is_kept(self, product, location, customer):
        sales_service.record_sale(sale_payload(product, location, customer_id=customer.id, sale_date="2026-01-05"))
        sales_service.record_sale(sale_payload(product, location, customer_id=customer.id, sale_date="2026-02-05"))
        assert db.session.get(Customer, customer.id).first_sale_date == date(2026, 1, 5)

    def test_description_snapshot_fits_longest_name_and_code(self, product, location):
        product.name = "N" * Product.name.type.length
        product.code = "C" * Product.code.type.length
        db.session.commit()

        sale = sales_service.record_sale(sale_payload(product, location))

        snapshot = sale.lines[0].product_description_snapshot
        assert snapshot == f"{product.name} ({product.code})"
        assert len(snapshot) <= SaleProduct.product_description_snapshot.type.length

    def test_sale_can_oversell(self, product, location):
        sales_service.record_sale({**sale_payload(product, location), "items": [{"product_id": product.id, "quantity": 12}]})
        assert db.session.get(Product, product.id).stock == -2

    def test_failed_sale_changes_nothing(self, product, location):
        with pytest.raises(PricingError):
            sales_service.record_sale(sale_payload(product, location, discount_percentage="150"))

        assert db.session.query(Sale).count() == 0
        assert db.session.get(Product, product.id).stock == 10

    def test_unknown_product_rejected(self, product, location):
        with pytest.raises(NotFoundError):
            sales_service.record_sale({**sale_payload(product, location), "items": [{"product_id": 999, "quantity": 1}]})

    def test_empty_cart_rejected(self, location):
        with pytest.raises(PricingError):
            sales_service.record_sale({"location_id": location.id, "items": []})

    def test_location_required(self, product):
        with pytest.raises(ValidationError):
            sales_service.record_sale({"items": [{"product_id": product.id, "quantity": 1}]})

    def test_preview_writes_nothing(self, product, location):
        pricing = sales_service.cart_pricing_preview(sale_payload(product, location, final_price="100.00"))
        assert pricing.final_total == Decimal("100.00")
        assert db.session.query(Sale).count() == 0
        assert db.session.get(Product, product.id).stock == 10


class TestUpdateAndDelete:

    def test_update_reprices_from_snapshots(self, product, location):
        sale = sales_service.record_sale(sale_payload(product, location))

        # a catalog price change must not leak into the stored sale
        products_service.update_product(product_id=product.id, patch={"final_retail_price": Decimal("99.00")})

        updated = sales_service.update_sale(sale.id, {"discount_percentage": "10"})
        assert updated.suggested_total_price == Decimal("120.00")
        assert updated.final_total_price == Decimal("108.00")
        assert updated.lines[0].price_at_the_time == Decimal("54.00")

    def test_update_keeps_final_price_when_not_repriced(self, product, location):
        sale = sales_service.record_sale(sale_payload(product, location, final_price="100.00"))
        updated = sales_service.update_sale(sale.id, {"payment_method": "CARD"})
        assert updated.payment_method == "CARD"
        assert updated.final_total_price == Decimal("100.00")

    def test_assigning_customer_and_date_stamps_new_date(self, product, location, customer):
        """
        SCENARIO: walk-in sale on 2026-01-10 moved to 2026-03-01 and given a customer
        EXPECTED: the customer's first_sale_date is the sale's new date
        """
        sale = sales_service.record_sale(sale_payload(product, location, sale_date="2026-01-10"))

        updated = sales_service.update_sale(sale.id, {"customer_id": customer.id, "sale_date": "2026-03-01"})

        assert updated.sale_date == date(2026, 3, 1)
        assert db.session.get(Customer, customer.id).first_sale_date == date(2026, 3, 1)

    def test_lines_cannot_change(self, product, location):
        sale = sales_service.record_sale(sale_payload(product, location))
        with pytest.raises(sales_service.SaleError):
            sales_service.update_sale(sale.id, {"is_wholesale": True})

    def test_delete_restores_stock(self, product, location):
        sale = sales_service.record_sale(sale_payload(product, location))
        assert db.session.get(Product, product.id).stock == 8

        sales_service.delete_sale(sale.id)
        assert db.session.get(Product, product.id).stock == 10
        assert db.session.get(Sale, sale.id) is None

    def test_delete_unknown(self, db_session):
        with pytest.raises(NotFoundError):
            sales_service.delete_sale(12345)


class TestSearch:

    def test_filters_and_summary(self, product, location, customer):
        sales_service.record_sale(sale_payload(product, location, customer_id=customer.id, sale_date="2026-03-01"))
        sales_service.record_sale(sale_payload(product, location, sale_date="2026-04-01", payment_method="CARD"))

        result = sales_service.search_sales(SaleFilters(date_from=date(2026, 3, 1), date_to=date(2026, 3, 31)))
        assert result["pagination"]["total"] == 1
        assert result["summary"]["count"] == 1
        assert result["summary"]["total_revenue"] == "120.00"

        by_customer = sales_service.search_sales(SaleFilters(customer_id=customer.id))
        assert [s["customer_id"] for s in by_customer["items"]] == [customer.id]

        by_product = sales_service.search_sales(SaleFilters(product_id=product.id, payment_method="CARD"))
        assert by_product["pagination"]["total"] == 1

    def test_from_args_parses_query_strings(self):
        filters = SaleFilters.from_args({"date_from": "2026-01-01", "is_wholesale": "false", "location_id": "3"})
        assert filters.date_from == date(2026, 1, 1)
        assert filters.is_wholesale is False
        assert filters.location_id == 3

    def test_from_args_rejects_unknown_payment_method(self):
        with pytest.raises(ValidationError):
            SaleFilters.from_args({"payment_method": "BARTER"})
