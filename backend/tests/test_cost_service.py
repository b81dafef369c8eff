"""
Product costing tests.

Verifies:
- Cost roll-up from materials, labor minutes and procedures
- Suggested prices from markup factors
- Underpricing detection against the mispricing threshold
- Broken recipe lines raise instead of costing as zero
"""

from decimal import Decimal

import pytest

from margarita.services.cost_service import (
    BOTH_UNDERPRICED,
    NO_ISSUES,
    RETAIL_UNDERPRICED,
    WHOLESALE_UNDERPRICED,
    CostIntegrityError,
    MaterialLine,
    PricingSettings,
    ProcedureLine,
    cost_breakdown,
    labor_cost,
    markup_percentage,
    price_difference_percentage,
    pricing_issue,
    profit_margin,
    suggested_prices,
)


class TestCostBreakdown:

    def test_materials_labor_and_procedures(self):
        """
        SCENARIO: 2 x 5.00 material, 30 minutes at 10.00/h, 2.00 procedure, 2.5 retail markup
        EXPECTED: cost 17.00, suggested retail 42.50
        """
        settings = PricingSettings(hourly_labor_rate=Decimal("10.00"), retail_markup_factor=Decimal("2.5"))
        breakdown = cost_breakdown(
            materials=[MaterialLine(material_id=1, quantity=Decimal("2"), unit_cost=Decimal("5.00"))],
            procedures=[ProcedureLine(procedure_id=1, cost=Decimal("2.00"))],
            minutes_to_make=30,
            settings=settings,
        )

        assert breakdown.material_cost == Decimal("10.00")
        assert breakdown.labor_cost == Decimal("5.00")
        assert breakdown.procedure_cost == Decimal("2.00")
        assert breakdown.total_cost == Decimal("17.00")

        retail, _ = suggested_prices(breakdown.total_cost, settings)
        assert retail == Decimal("42.50")

    def test_empty_recipe_costs_nothing(self):
        breakdown = cost_breakdown(materials=[], procedures=[], minutes_to_make=None, settings=PricingSettings())
        assert breakdown.total_cost == Decimal("0.00")

    def test_labor_uses_four_place_hour_fraction(self):
        # 20 minutes -> 0.3333 h
        assert labor_cost(20, Decimal("7.00")) == Decimal("2.33")

    def test_default_markups(self):
        retail, wholesale = suggested_prices(Decimal("20.00"), PricingSettings())
        assert retail == Decimal("60.00")
        assert wholesale == Decimal("37.20")

    def test_missing_material_raises(self):
        with pytest.raises(CostIntegrityError):
            cost_breakdown(
                materials=[MaterialLine(material_id=None, quantity=Decimal("1"), unit_cost=None)],
                procedures=[],
                minutes_to_make=0,
                settings=PricingSettings(),
            )

    def test_missing_procedure_raises(self):
        with pytest.raises(CostIntegrityError):
            cost_breakdown(
                materials=[],
                procedures=[ProcedureLine(procedure_id=None, cost=Decimal("1.00"))],
                minutes_to_make=0,
                settings=PricingSettings(),
            )

    def test_settings_from_config(self):
        settings = PricingSettings.from_config({"PRICING_HOURLY_LABOR_RATE": "9.50"})
        assert settings.hourly_labor_rate == Decimal("9.50")
        assert settings.retail_markup_factor == Decimal("3.00")


class TestPricingIssue:

    def _issue(self, retail, wholesale):
        return pricing_issue(
            final_retail=retail,
            suggested_retail="100.00",
            final_wholesale=wholesale,
            suggested_wholesale="100.00",
            threshold="20",
        )

    def test_within_threshold(self):
        assert self._issue("85.00", "95.00") == NO_ISSUES

    def test_exactly_at_threshold_is_not_flagged(self):
        assert self._issue("80.00", "80.00") == NO_ISSUES

    def test_retail_only(self):
        assert self._issue("79.00", "100.00") == RETAIL_UNDERPRICED

    def test_wholesale_only(self):
        assert self._issue("100.00", "50.00") == WHOLESALE_UNDERPRICED

    def test_both(self):
        assert self._issue("10.00", "10.00") == BOTH_UNDERPRICED

    def test_overpricing_is_not_an_issue(self):
        assert self._issue("200.00", "200.00") == NO_ISSUES

    def test_no_suggested_price(self):
        assert price_difference_percentage("10.00", "0.00") == Decimal("0.00")


class TestMargins:

    def test_profit_margin(self):
        assert profit_margin("60.00", "20.00") == Decimal("66.67")

    def test_markup(self):
        assert markup_percentage("60.00", "20.00") == Decimal("200.00")

    def test_free_product(self):
        assert profit_margin("0.00", "20.00") == Decimal("0.00")
        assert markup_percentage("60.00", "0.00") == Decimal("0.00")
