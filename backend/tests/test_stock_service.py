"""
Stock ledger tests.

Verifies:
- Status boundaries (LOW at the alert level, NEGATIVE below zero)
- ADD / REMOVE / SET movements and their validation
- Stock may go negative without error
- Low and negative stock listings
"""

import pytest

from margarita.extensions import db
from margarita.models import Product
from margarita.services import stock_service
from margarita.services.stock_service import LOW, NEGATIVE, NORMAL, StockError, classify_stock
from margarita.validation import NotFoundError, ValidationError


class TestClassification:

    @pytest.mark.parametrize(
        "stock,alert,expected",
        [
            (5, 5, LOW),
            (6, 5, NORMAL),
            (0, 0, LOW),
            (-1, 0, NEGATIVE),
            (-1, -5, NEGATIVE),
            (None, 3, LOW),
        ],
    )
    def test_boundaries(self, stock, alert, expected):
        assert classify_stock(stock, alert) == expected


class TestMovements:

    def test_remove_then_add_restores_stock(self, product):
        stock_service.update_stock(product.id, "REMOVE", 4)
        result = stock_service.update_stock(product.id, "ADD", 4)

        assert result.new_stock == 10
        assert result.previous_stock == 6
        assert result.change == 4

    def test_set(self, product):
        result = stock_service.update_stock(product.id, "set", 2)
        assert result.new_stock == 2
        assert result.status == LOW
        assert result.update_type == "SET"

    def test_remove_below_zero_is_allowed(self, product):
        """
        SCENARIO: remove more units than are in stock
        EXPECTED: stock goes negative and is reported, no error
        """
        result = stock_service.update_stock(product.id, "REMOVE", 12)

        assert result.new_stock == -2
        assert result.status == NEGATIVE
        assert db.session.get(Product, product.id).stock == -2

    @pytest.mark.parametrize(
        "update_type,quantity",
        [("ADD", 0), ("REMOVE", -3), ("SET", -1), ("MOVE", 1), ("ADD", "1.5")],
    )
    def test_invalid_input(self, product, update_type, quantity):
        with pytest.raises(ValidationError):
            stock_service.update_stock(product.id, update_type, quantity)

    def test_unknown_product(self, db_session):
        with pytest.raises(NotFoundError):
            stock_service.update_stock(9999, "ADD", 1)

    def test_sale_helpers_are_inverse(self, product):
        stock_service.reduce_stock_for_sale([(product.id, 3)], sale_id=1)
        db.session.commit()
        assert db.session.get(Product, product.id).stock == 7

        stock_service.restore_stock_for_sale([(product.id, 3)], sale_id=1)
        db.session.commit()
        assert db.session.get(Product, product.id).stock == 10

    def test_update_limit(self, product):
        updated = stock_service.update_stock_limit(product.id, 10)
        assert updated.low_stock_alert == 10
        assert updated.stock_status == LOW

    def test_negative_limit_rejected(self, product):
        with pytest.raises(StockError):
            stock_service.update_stock_limit(product.id, -1)


class TestAlerts:

    def test_low_and_negative_listings(self, product):
        stock_service.update_stock(product.id, "SET", 1)
        assert [p.id for p in stock_service.low_stock_products()] == [product.id]
        assert stock_service.negative_stock_products() == []

        stock_service.update_stock(product.id, "REMOVE", 3)
        assert [p.id for p in stock_service.negative_stock_products()] == [product.id]
        # negatives are also at or below the alert level
        assert [p.id for p in stock_service.low_stock_products()] == [product.id]

    def test_overview(self, product):
        overview = stock_service.stock_overview()
        assert overview["total_products"] == 1
        assert overview["normal_count"] == 1
        assert overview["total_units"] == 10

    def test_missing_stock_counts_as_zero_everywhere(self, product):
        """
        SCENARIO: a product whose stock was never set (NULL)
        EXPECTED: LOW in its status, in the overview and in the low-stock list
        """
        product.stock = None
        db.session.commit()

        assert db.session.get(Product, product.id).stock_status == LOW
        assert stock_service.stock_overview()["low_count"] == 1
        assert [p.id for p in stock_service.low_stock_products()] == [product.id]
