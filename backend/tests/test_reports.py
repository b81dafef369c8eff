"""
Reporting tests: sales summaries, period series, dimension analytics and profit/loss.
"""

from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest

from margarita.services import analytics_service, expense_service, profit_loss_service, sales_service
from margarita.services.analytics_service import bucket_label, summarize_sales
from margarita.services.profit_loss_service import expense_breakdown
from margarita.validation import NotFoundError, ValidationError


def record(product, location, sale_date, qty=1, customer=None, **extra):
    payload = {
        "location_id": location.id,
        "sale_date": sale_date,
        "items": [{"product_id": product.id, "quantity": qty}],
        **extra,
    }
    if customer is not None:
        payload["customer_id"] = customer.id
    return sales_service.record_sale(payload)


class TestSummaries:

    def test_summarize_rows(self):
        rows = [
            SimpleNamespace(final_total_price=Decimal("80.00"), suggested_total_price=Decimal("86.00"), discount_percentage=Decimal("6.98")),
            SimpleNamespace(final_total_price=Decimal("20.00"), suggested_total_price=Decimal("20.00"), discount_percentage=Decimal("0.00")),
        ]
        summary = summarize_sales(rows)

        assert summary.count == 2
        assert summary.total_revenue == Decimal("100.00")
        assert summary.average_order_value == Decimal("50.00")
        assert summary.total_discount_amount == Decimal("6.00")
        assert summary.average_discount_percentage == Decimal("3.49")

    def test_empty_summary_is_zero(self):
        summary = summarize_sales([])
        assert summary.count == 0
        assert summary.average_order_value == Decimal("0.00")

    def test_bucket_labels(self):
        assert bucket_label(date(2026, 3, 2), "week") == "2026-W10"
        assert bucket_label(date(2026, 3, 1), "month") == "2026-03"
        assert bucket_label(date(2026, 1, 1), "year") == "2026"

    def test_weekly_and_monthly(self, product, location):
        record(product, location, "2026-03-04")
        record(product, location, "2026-03-20")

        weekly = analytics_service.weekly_summary(date(2026, 3, 5))
        assert weekly["start"] == "2026-03-02"
        assert weekly["count"] == 1

        monthly = analytics_service.monthly_summary(date(2026, 3, 5))
        assert monthly["count"] == 2
        assert monthly["total_revenue"] == "120.00"


class TestSeries:

    def test_empty_months_are_filled(self, product, location):
        record(product, location, "2026-01-15")
        record(product, location, "2026-03-15", qty=2)

        series = analytics_service.sales_by_period("month", date(2026, 1, 1), date(2026, 3, 31))

        assert [b["period"] for b in series] == ["2026-01", "2026-02", "2026-03"]
        assert [b["total_revenue"] for b in series] == ["60.00", "0.00", "120.00"]

    def test_bad_group_by(self, db_session):
        with pytest.raises(ValidationError):
            analytics_service.sales_by_period("day")

    def test_reversed_range(self, db_session):
        with pytest.raises(ValidationError):
            analytics_service.sales_by_period("month", date(2026, 3, 1), date(2026, 1, 1))


class TestDimensions:

    def test_product_analytics(self, product, location, customer):
        record(product, location, "2026-03-01", qty=2, customer=customer)
        record(product, location, "2026-03-10", qty=1, final_price="50.00")

        result = analytics_service.product_analytics(product.id)

        assert result["units_sold"] == 3
        assert result["total_revenue"] == "170.00"
        assert result["number_of_sales"] == 2
        assert result["average_quantity_per_sale"] == "1.50"
        assert result["last_sale_date"] == "2026-03-10"
        assert result["top_customers"][0]["name"] == "Maria Lopez"
        assert result["top_locations"][0]["units"] == 3

    def test_material_consumption(self, product, location, material):
        record(product, location, "2026-03-01", qty=3)
        result = analytics_service.dimension_analytics("material", material.id)

        # recipe uses 2 units per ring
        assert result["quantity_consumed"] == "6.0000"
        assert result["units_sold"] == 3

    def test_procedure_cost_total(self, product, location, procedure):
        record(product, location, "2026-03-01", qty=2)
        result = analytics_service.dimension_analytics("procedure", procedure.id)
        assert result["times_performed"] == 2
        assert result["procedure_cost_total"] == "6.00"

    def test_customer_analytics(self, product, location, customer):
        record(product, location, "2026-02-01", customer=customer)
        record(product, location, "2026-02-20", qty=2, customer=customer)

        result = analytics_service.dimension_analytics("customer", customer.id)
        assert result["first_sale_date"] == "2026-02-01"
        assert result["last_sale_date"] == "2026-02-20"
        assert result["units_bought"] == 3
        assert result["count"] == 2

    def test_top_products(self, product, location):
        record(product, location, "2026-03-01", qty=2)
        top = analytics_service.top_products()
        assert top == [{"id": product.id, "name": "Silver ring (RING-001)", "units": 2, "revenue": "120.00"}]

    def test_unknown_dimension(self, db_session):
        with pytest.raises(ValidationError):
            analytics_service.dimension_analytics("planet", 1)

    def test_unknown_entity(self, db_session):
        with pytest.raises(NotFoundError):
            analytics_service.dimension_analytics("category", 404)


class TestProfitLoss:

    def test_net_profit_and_margin(self, product, location):
        record(product, location, "2026-03-01", qty=2)
        expense_service.create_expense({"description": "Rent", "amount": "30.00", "expense_date": "2026-03-02", "expense_type": "RENT"})
        expense_service.create_expense({"description": "Ads", "amount": "10.00", "expense_date": "2026-03-03", "expense_type": "MARKETING"})
        expense_service.create_expense({"description": "Old rent", "amount": "99.00", "expense_date": "2026-02-01", "expense_type": "RENT"})

        report = profit_loss_service.profit_loss(date(2026, 3, 1), date(2026, 3, 31))

        assert report["total_revenue"] == "120.00"
        assert report["total_expenses"] == "40.00"
        assert report["net_profit"] == "80.00"
        assert report["profit_margin"] == "66.67"
        assert report["expense_breakdown"][0] == {
            "expense_type": "RENT",
            "label": "Rent",
            "amount": "30.00",
            "count": 1,
            "percentage": "75.00",
        }

    def test_no_revenue_has_zero_margin(self, db_session):
        expense_service.create_expense({"description": "Rent", "amount": "30.00", "expense_date": "2026-03-02"})
        report = profit_loss_service.profit_loss()
        assert report["net_profit"] == "-30.00"
        assert report["profit_margin"] == "0.00"

    def test_breakdown_of_nothing(self):
        assert expense_breakdown([]) == []
