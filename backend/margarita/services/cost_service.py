# Overview: Service-layer operations for product costing; pure arithmetic over recipe snapshots.

"""
Product cost roll-up and suggested pricing.

cost = material cost + labor cost + procedure cost, where

- material cost   = sum(quantity x material unit cost)
- labor cost      = minutes_to_make / 60 x hourly labor rate
- procedure cost  = sum(procedure cost recorded on the product)

Suggested prices are cost x markup factor. Nothing here touches the database;
callers pass plain values (see products_service for the ORM side).
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable, Mapping

from margarita.money import ZERO, money, percentage, ratio, to_decimal
from margarita.validation import ConflictError

MINUTES_PER_HOUR = Decimal("60")

NO_ISSUES = "NO_ISSUES"
RETAIL_UNDERPRICED = "RETAIL_UNDERPRICED"
WHOLESALE_UNDERPRICED = "WHOLESALE_UNDERPRICED"
BOTH_UNDERPRICED = "BOTH_UNDERPRICED"
PRICING_ISSUES = (NO_ISSUES, RETAIL_UNDERPRICED, WHOLESALE_UNDERPRICED, BOTH_UNDERPRICED)


class CostIntegrityError(ConflictError):
    """A recipe line points at a material or procedure that no longer exists."""


@dataclass(frozen=True)
class PricingSettings:
    hourly_labor_rate: Decimal = Decimal("7.00")
    retail_markup_factor: Decimal = Decimal("3.00")
    wholesale_markup_factor: Decimal = Decimal("1.86")
    mispricing_threshold: Decimal = Decimal("20.00")
    max_discount_percentage: Decimal = Decimal("100.00")

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "PricingSettings":
        defaults = cls()
        return cls(
            hourly_labor_rate=to_decimal(config.get("PRICING_HOURLY_LABOR_RATE", defaults.hourly_labor_rate)),
            retail_markup_factor=to_decimal(config.get("PRICING_RETAIL_MARKUP", defaults.retail_markup_factor)),
            wholesale_markup_factor=to_decimal(config.get("PRICING_WHOLESALE_MARKUP", defaults.wholesale_markup_factor)),
            mispricing_threshold=to_decimal(config.get("PRICING_MISPRICING_THRESHOLD", defaults.mispricing_threshold)),
            max_discount_percentage=to_decimal(config.get("PRICING_MAX_DISCOUNT", defaults.max_discount_percentage)),
        )


@dataclass(frozen=True)
class MaterialLine:
    material_id: int | None
    quantity: Decimal
    unit_cost: Decimal | None


@dataclass(frozen=True)
class ProcedureLine:
    procedure_id: int | None
    cost: Decimal | None


@dataclass(frozen=True)
class CostBreakdown:
    material_cost: Decimal
    labor_cost: Decimal
    procedure_cost: Decimal
    total_cost: Decimal

    def to_dict(self) -> dict:
        return {
            "material_cost": format(self.material_cost, "f"),
            "labor_cost": format(self.labor_cost, "f"),
            "procedure_cost": format(self.procedure_cost, "f"),
            "total_cost": format(self.total_cost, "f"),
        }


def material_cost(lines: Iterable[MaterialLine]) -> Decimal:
    result = ZERO
    for line in lines:
        if line.material_id is None or line.unit_cost is None:
            raise CostIntegrityError("Recipe references a material that no longer exists")
        result += to_decimal(line.quantity) * to_decimal(line.unit_cost)
    return money(result)


def labor_cost(minutes_to_make: int | None, hourly_rate: Decimal) -> Decimal:
    if not minutes_to_make:
        return money(ZERO)
    hours = ratio(minutes_to_make, MINUTES_PER_HOUR)
    return money(hours * to_decimal(hourly_rate))


def procedure_cost(lines: Iterable[ProcedureLine]) -> Decimal:
    result = ZERO
    for line in lines:
        if line.procedure_id is None or line.cost is None:
            raise CostIntegrityError("Recipe references a procedure that no longer exists")
        result += to_decimal(line.cost)
    return money(result)


def cost_breakdown(
    *,
    materials: Iterable[MaterialLine],
    procedures: Iterable[ProcedureLine],
    minutes_to_make: int | None,
    settings: PricingSettings,
) -> CostBreakdown:
    mat = material_cost(materials)
    lab = labor_cost(minutes_to_make, settings.hourly_labor_rate)
    proc = procedure_cost(procedures)
    return CostBreakdown(
        material_cost=mat,
        labor_cost=lab,
        procedure_cost=proc,
        total_cost=money(mat + lab + proc),
    )


def suggested_prices(total_cost: Decimal, settings: PricingSettings) -> tuple[Decimal, Decimal]:
    """(retail, wholesale) suggested prices for a total cost."""
    cost = to_decimal(total_cost)
    return (
        money(cost * settings.retail_markup_factor),
        money(cost * settings.wholesale_markup_factor),
    )


def price_difference_percentage(final_price: Any, suggested_price: Any) -> Decimal:
    """
    (final - suggested) / suggested x 100.

    Negative when the product sells below its suggested price. Zero when no
    suggested price exists.
    """
    suggested = to_decimal(suggested_price)
    return percentage(to_decimal(final_price) - suggested, suggested)


def pricing_issue(
    *,
    final_retail: Any,
    suggested_retail: Any,
    final_wholesale: Any,
    suggested_wholesale: Any,
    threshold: Any,
) -> str:
    limit = -abs(to_decimal(threshold))
    retail_low = price_difference_percentage(final_retail, suggested_retail) < limit
    wholesale_low = price_difference_percentage(final_wholesale, suggested_wholesale) < limit

    if retail_low and wholesale_low:
        return BOTH_UNDERPRICED
    if retail_low:
        return RETAIL_UNDERPRICED
    if wholesale_low:
        return WHOLESALE_UNDERPRICED
    return NO_ISSUES


def profit_margin(selling_price: Any, cost: Any) -> Decimal:
    """(selling - cost) / selling x 100; zero when nothing is charged."""
    selling = to_decimal(selling_price)
    return percentage(selling - to_decimal(cost), selling)


def markup_percentage(selling_price: Any, cost: Any) -> Decimal:
    """(selling - cost) / cost x 100; zero for free products."""
    c = to_decimal(cost)
    return percentage(to_decimal(selling_price) - c, c)
