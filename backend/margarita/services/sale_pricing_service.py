# Overview: Service-layer operations for sale pricing; computes totals, discount and per-line prices.

"""
Sale pricing engine.

Given cart lines carrying their suggested unit price snapshot, a packaging
cost and either the price the operator actually charged or a discount
percentage, works out:

- suggested total  = sum(unit x qty) + packaging
- discount amount and discount percentage (zero when the suggested total is zero)
- every line's actual unit price = unit x (1 - pct / 100), rounded half-up
  per line

Lines are rounded independently, so the line totals can miss the charged
total by a few cents. That slack is reported as ``rounding_difference`` and is
left where it is; no line absorbs the remainder.

The engine is pure: no database access and no side effects.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Sequence

from margarita.money import (
    HUNDRED,
    ZERO,
    apply_percentage,
    money,
    money_str,
    percentage,
    ratio,
    to_decimal,
    MoneyFormatError,
)
from margarita.validation import ValidationError

DEFAULT_MAX_DISCOUNT = Decimal("100.00")


class PricingError(ValidationError):
    """Cart or price input that cannot be priced."""


@dataclass(frozen=True)
class CartLine:
    product_id: int
    quantity: int
    suggested_unit_price: Decimal
    description: str = ""


@dataclass(frozen=True)
class PricedLine:
    product_id: int
    quantity: int
    description: str
    suggested_unit_price: Decimal
    actual_unit_price: Decimal

    @property
    def suggested_total(self) -> Decimal:
        return money(self.suggested_unit_price * self.quantity)

    @property
    def actual_total(self) -> Decimal:
        return money(self.actual_unit_price * self.quantity)

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "description": self.description,
            "quantity": self.quantity,
            "suggested_unit_price": money_str(self.suggested_unit_price),
            "actual_unit_price": money_str(self.actual_unit_price),
            "suggested_total": money_str(self.suggested_total),
            "actual_total": money_str(self.actual_total),
        }


@dataclass(frozen=True)
class SalePricing:
    lines: list[PricedLine] = field(default_factory=list)
    subtotal: Decimal = ZERO
    packaging_cost: Decimal = ZERO
    suggested_total: Decimal = ZERO
    final_total: Decimal = ZERO
    discount_amount: Decimal = ZERO
    discount_percentage: Decimal = ZERO

    @property
    def allocated_packaging(self) -> Decimal:
        return discounted_price(self.packaging_cost, self.discount_percentage)

    @property
    def allocated_total(self) -> Decimal:
        return money(sum((line.actual_total for line in self.lines), ZERO) + self.allocated_packaging)

    @property
    def rounding_difference(self) -> Decimal:
        """final_total minus what the rounded lines (and packaging) add up to."""
        return money(self.final_total - self.allocated_total)

    def to_dict(self) -> dict:
        return {
            "lines": [line.to_dict() for line in self.lines],
            "subtotal": money_str(self.subtotal),
            "packaging_cost": money_str(self.packaging_cost),
            "suggested_total": money_str(self.suggested_total),
            "final_total": money_str(self.final_total),
            "discount_amount": money_str(self.discount_amount),
            "discount_percentage": money_str(self.discount_percentage),
            "rounding_difference": money_str(self.rounding_difference),
        }


def discount_percentage(suggested_total: Any, final_total: Any) -> Decimal:
    """(suggested - final) / suggested x 100; zero when suggested is zero."""
    suggested = to_decimal(suggested_total)
    return percentage(suggested - to_decimal(final_total), suggested)


def discounted_price(unit_price: Any, discount_pct: Any) -> Decimal:
    """unit x (1 - pct / 100), the fraction carried at 4 places, result half-up to cents."""
    factor = Decimal(1) - ratio(discount_pct, HUNDRED)
    return money(to_decimal(unit_price) * factor)


def _amount(name: str, value: Any) -> Decimal:
    try:
        return to_decimal(value)
    except MoneyFormatError:
        raise PricingError(f"{name} must be a decimal number")


def _validate_lines(lines: Sequence[CartLine]) -> None:
    if not lines:
        raise PricingError("Cart is empty")
    for line in lines:
        qty = line.quantity
        if not isinstance(qty, int) or isinstance(qty, bool) or qty <= 0:
            raise PricingError(f"Quantity for product {line.product_id} must be a positive integer")
        if line.suggested_unit_price is None:
            raise PricingError(f"Product {line.product_id} has no price")
        if to_decimal(line.suggested_unit_price) < 0:
            raise PricingError(f"Product {line.product_id} has a negative price")


def price_sale(
    lines: Sequence[CartLine],
    *,
    packaging_cost: Any = None,
    user_final_price: Any = None,
    user_discount_percentage: Any = None,
    max_discount_percentage: Any = DEFAULT_MAX_DISCOUNT,
) -> SalePricing:
    """
    Price a cart.

    Exactly one of ``user_final_price`` / ``user_discount_percentage`` may be
    given; with neither, the sale is charged at the suggested total. A negative
    discount (charging above the suggested total) is accepted up to the same
    magnitude as a positive one.

    Raises PricingError before doing any arithmetic when the cart is empty or a
    quantity is not a positive integer.
    """
    _validate_lines(lines)

    if user_final_price is not None and user_discount_percentage is not None:
        raise PricingError("Provide either a final price or a discount percentage, not both")

    packaging = money(_amount("packaging_cost", packaging_cost)) if packaging_cost is not None else money(ZERO)
    if packaging < 0:
        raise PricingError("packaging_cost must be >= 0")

    subtotal = money(sum(
        (money(to_decimal(line.suggested_unit_price) * line.quantity) for line in lines),
        ZERO,
    ))
    suggested_total = money(subtotal + packaging)

    if user_final_price is not None:
        final_total = money(_amount("final_price", user_final_price))
        if final_total < 0:
            raise PricingError("final_price must be >= 0")
        discount_amount = money(suggested_total - final_total)
        pct = discount_percentage(suggested_total, final_total)
    elif user_discount_percentage is not None:
        pct = money(_amount("discount_percentage", user_discount_percentage))
        discount_amount = apply_percentage(suggested_total, pct)
        final_total = money(suggested_total - discount_amount)
    else:
        pct = money(ZERO)
        discount_amount = money(ZERO)
        final_total = suggested_total

    max_pct = abs(to_decimal(max_discount_percentage))
    if abs(pct) > max_pct:
        raise PricingError(f"Discount percentage {pct} exceeds the allowed maximum of {max_pct}")
    # A sale is never charged below zero, whatever the configured maximum.
    if pct > HUNDRED or final_total < 0:
        raise PricingError("Discount cannot exceed 100% of the suggested total")

    priced = [
        PricedLine(
            product_id=line.product_id,
            quantity=line.quantity,
            description=line.description,
            suggested_unit_price=money(line.suggested_unit_price),
            actual_unit_price=discounted_price(line.suggested_unit_price, pct),
        )
        for line in lines
    ]

    return SalePricing(
        lines=priced,
        subtotal=subtotal,
        packaging_cost=packaging,
        suggested_total=suggested_total,
        final_total=final_total,
        discount_amount=discount_amount,
        discount_percentage=pct,
    )
