"""
Money arithmetic tests.

Verifies:
- Half-up rounding at two places
- Ratios carried at four places before scaling
- Zero denominators yield zero instead of raising
- Non-numeric input is rejected
"""

from decimal import Decimal

import pytest

from margarita.money import (
    MoneyFormatError,
    add,
    apply_percentage,
    money,
    money_str,
    percentage,
    ratio,
    subtract,
    to_decimal,
    total,
)


class TestRounding:

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("2.345", "2.35"),
            ("2.344", "2.34"),
            ("-2.345", "-2.35"),
            ("0.005", "0.01"),
            (10, "10.00"),
        ],
    )
    def test_money_rounds_half_up(self, raw, expected):
        assert money(raw) == Decimal(expected)

    def test_float_goes_through_str(self):
        assert to_decimal(0.1) == Decimal("0.1")

    def test_add_and_subtract(self):
        assert add("0.10", "0.20", "0.005") == Decimal("0.31")
        assert subtract("86.00", "80.00") == Decimal("6.00")

    def test_total_skips_none(self):
        assert total(["1.00", None, "2.50"]) == Decimal("3.50")

    def test_money_str_has_two_places(self):
        assert money_str(Decimal("5")) == "5.00"
        assert money_str(None) is None


class TestRatios:

    def test_ratio_is_four_places(self):
        assert ratio(6, 86) == Decimal("0.0698")

    def test_percentage_uses_rounded_ratio(self):
        """
        SCENARIO: 6.00 off an 86.00 sale
        EXPECTED: ratio 0.0698 scaled to 6.98, not 6.976... rounded to 6.98 directly
        """
        assert percentage(6, 86) == Decimal("6.98")

    def test_zero_denominator_is_zero(self):
        assert ratio(5, 0) == Decimal("0.0000")
        assert percentage(5, "0.00") == Decimal("0.00")

    def test_apply_percentage(self):
        assert apply_percentage("86.00", "6.98") == Decimal("6.00")


class TestRejectedInput:

    @pytest.mark.parametrize("bad", [None, True, "abc", "", "NaN", "Infinity"])
    def test_not_a_decimal(self, bad):
        with pytest.raises(MoneyFormatError):
            to_decimal(bad)
