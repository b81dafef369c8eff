# Overview: Fixed-point money and percentage arithmetic shared by costing, pricing and reports.

"""
Every amount in the system is a ``Decimal`` with two places.

Intermediate ratios (discount fractions, hour fractions) are carried at four
places and always rounded half-up. Division by zero is never raised to the
caller: ratios and percentages over a zero denominator are zero.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterable

ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENTS = Decimal("0.01")
RATIO_PLACES = 4


class MoneyFormatError(ValueError):
    """Raised when a value cannot be read as a decimal amount."""


def to_decimal(value: Any) -> Decimal:
    """
    Read a JSON/DB value as an exact Decimal.

    Floats go through ``str`` so 0.1 stays 0.1. Booleans are rejected.
    """
    if isinstance(value, Decimal):
        return value
    if value is None or isinstance(value, bool):
        raise MoneyFormatError(f"Not a decimal amount: {value!r}")
    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise MoneyFormatError(f"Not a decimal amount: {value!r}")
    if not result.is_finite():
        raise MoneyFormatError(f"Not a decimal amount: {value!r}")
    return result


def quantize(value: Any, places: int = 2) -> Decimal:
    exp = Decimal(1).scaleb(-places)
    return to_decimal(value).quantize(exp, rounding=ROUND_HALF_UP)


def money(value: Any) -> Decimal:
    """Round to currency scale (2 places, half-up)."""
    return quantize(value, 2)


def add(*values: Any) -> Decimal:
    return money(sum((to_decimal(v) for v in values), ZERO))


def subtract(a: Any, b: Any) -> Decimal:
    return money(to_decimal(a) - to_decimal(b))


def total(values: Iterable[Any]) -> Decimal:
    """Sum an iterable, ignoring None entries."""
    return money(sum((to_decimal(v) for v in values if v is not None), ZERO))


def ratio(numerator: Any, denominator: Any, places: int = RATIO_PLACES) -> Decimal:
    den = to_decimal(denominator)
    if den == 0:
        return quantize(ZERO, places)
    return quantize(to_decimal(numerator) / den, places)


def percentage(numerator: Any, denominator: Any) -> Decimal:
    """(numerator / denominator) x 100, ratio at 4 places, result at 2."""
    return money(ratio(numerator, denominator) * HUNDRED)


def apply_percentage(amount: Any, pct: Any) -> Decimal:
    """amount x pct / 100 rounded to money."""
    return money(to_decimal(amount) * to_decimal(pct) / HUNDRED)


def money_str(value: Any) -> str | None:
    """Serialize with exactly two decimal places."""
    if value is None:
        return None
    return format(money(value), "f")
