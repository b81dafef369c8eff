# Overview: Service-layer read models for sales reports; summaries, period buckets and per-dimension analytics.

"""
Analytics Service

Every report here follows the same shape: pull the matching rows, sum the
amounts as Decimals, then divide with a zero guard. Amounts are rounded
half-up to 2 places once, at the end.

Sale totals come from the stored header fields (final_total_price,
suggested_total_price, discount_percentage). Per-product figures come from
line snapshots (price_at_the_time x quantity), so they reflect what was
actually charged per line, including rounding slack.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable

from ..extensions import db
from ..models import (
    Category,
    Customer,
    Location,
    Material,
    Procedure,
    Product,
    ProductMaterial,
    ProductProcedure,
    Purchase,
    PurchaseMaterial,
    Sale,
    SaleProduct,
    Supplier,
)
from ..money import ZERO, money, money_str, quantize, to_decimal, total
from ..validation import NotFoundError, ValidationError
from margarita.time_utils import month_bounds, to_iso_date, today, week_bounds
from .filters import SaleFilters, compose, date_between

logger = logging.getLogger(__name__)

GROUP_BY = ("week", "month", "year")


@dataclass(frozen=True)
class SalesSummary:
    count: int
    total_revenue: Decimal
    average_order_value: Decimal
    total_discount_amount: Decimal
    average_discount_percentage: Decimal

    def to_dict(self) -> dict:
        return {
            "count": self.count,
            "total_revenue": money_str(self.total_revenue),
            "average_order_value": money_str(self.average_order_value),
            "total_discount_amount": money_str(self.total_discount_amount),
            "average_discount_percentage": money_str(self.average_discount_percentage),
        }


def _mean(amount, count: int) -> Decimal:
    if not count:
        return money(ZERO)
    return money(to_decimal(amount) / count)


def summarize_sales(sales: Iterable) -> SalesSummary:
    """
    Roll sales up into one summary.

    Accepts anything with final_total_price, suggested_total_price and
    discount_percentage attributes (Sale rows or projected query rows).
    """
    count = 0
    revenue = ZERO
    discount = ZERO
    pct = ZERO
    for sale in sales:
        count += 1
        revenue += to_decimal(sale.final_total_price)
        discount += to_decimal(sale.suggested_total_price) - to_decimal(sale.final_total_price)
        pct += to_decimal(sale.discount_percentage)

    return SalesSummary(
        count=count,
        total_revenue=money(revenue),
        average_order_value=_mean(revenue, count),
        total_discount_amount=money(discount),
        average_discount_percentage=_mean(pct, count),
    )


def _sale_rows(criteria):
    return (
        db.session.query(
            Sale.id,
            Sale.sale_date,
            Sale.suggested_total_price,
            Sale.final_total_price,
            Sale.discount_percentage,
        )
        .filter(criteria)
        .all()
    )


def summarize_sales_query(criteria) -> SalesSummary:
    return summarize_sales(_sale_rows(criteria))


def sales_summary(filters: SaleFilters | None = None) -> SalesSummary:
    return summarize_sales_query((filters or SaleFilters()).criteria())


def weekly_summary(on: date | None = None) -> dict:
    start, end = week_bounds(on or today())
    summary = sales_summary(SaleFilters(date_from=start, date_to=end))
    return {"start": to_iso_date(start), "end": to_iso_date(end), **summary.to_dict()}


def monthly_summary(on: date | None = None) -> dict:
    start, end = month_bounds(on or today())
    summary = sales_summary(SaleFilters(date_from=start, date_to=end))
    return {"start": to_iso_date(start), "end": to_iso_date(end), **summary.to_dict()}


# ---------------------------------------------------------------------------
# Period buckets
# ---------------------------------------------------------------------------

def bucket_bounds(d: date, group_by: str) -> tuple[date, date]:
    if group_by == "week":
        return week_bounds(d)
    if group_by == "month":
        return month_bounds(d)
    if group_by == "year":
        return date(d.year, 1, 1), date(d.year, 12, 31)
    raise ValidationError(f"group_by must be one of: {', '.join(GROUP_BY)}")


def bucket_label(start: date, group_by: str) -> str:
    if group_by == "week":
        iso = start.isocalendar()
        return f"{iso[0]}-W{iso[1]:02d}"
    if group_by == "month":
        return start.strftime("%Y-%m")
    return str(start.year)


def _bucket_starts(start: date, end: date, group_by: str) -> list[date]:
    starts = []
    cursor = bucket_bounds(start, group_by)[0]
    while cursor <= end:
        starts.append(cursor)
        cursor = bucket_bounds(cursor, group_by)[1] + timedelta(days=1)
    return starts


def group_by_period(rows: Iterable, group_by: str, start: date | None = None, end: date | None = None) -> dict:
    """
    Group dated rows into buckets keyed by bucket start date.

    When both start and end are given, empty buckets in between are present too.
    """
    buckets: dict[date, list] = defaultdict(list)
    if start is not None and end is not None:
        for bucket_start in _bucket_starts(start, end, group_by):
            buckets[bucket_start] = []
    for row in rows:
        buckets[bucket_bounds(row.sale_date, group_by)[0]].append(row)
    return dict(sorted(buckets.items()))


def sales_by_period(
    group_by: str = "month",
    start: date | None = None,
    end: date | None = None,
    filters: SaleFilters | None = None,
) -> list[dict]:
    if group_by not in GROUP_BY:
        raise ValidationError(f"group_by must be one of: {', '.join(GROUP_BY)}")
    if start and end and start > end:
        raise ValidationError("start must be on or before end")

    criteria = compose(
        (filters or SaleFilters()).criteria(),
        date_between(Sale.sale_date, start, end),
    )
    rows = _sale_rows(criteria)

    result = []
    for bucket_start, bucket_rows in group_by_period(rows, group_by, start, end).items():
        bucket_end = bucket_bounds(bucket_start, group_by)[1]
        result.append({
            "period": bucket_label(bucket_start, group_by),
            "start": to_iso_date(bucket_start),
            "end": to_iso_date(bucket_end),
            **summarize_sales(bucket_rows).to_dict(),
        })
    return result


# ---------------------------------------------------------------------------
# Line-level aggregation (products, categories, materials, procedures)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class LineTotals:
    units: int
    revenue: Decimal
    sale_count: int
    last_sale_date: date | None

    @property
    def average_selling_price(self) -> Decimal:
        return _mean(self.revenue, self.units)

    @property
    def average_quantity_per_sale(self) -> Decimal:
        if not self.sale_count:
            return quantize(ZERO, 2)
        return quantize(Decimal(self.units) / self.sale_count, 2)

    @property
    def average_revenue_per_sale(self) -> Decimal:
        return _mean(self.revenue, self.sale_count)

    def to_dict(self) -> dict:
        return {
            "units_sold": self.units,
            "total_revenue": money_str(self.revenue),
            "number_of_sales": self.sale_count,
            "average_selling_price": money_str(self.average_selling_price),
            "average_quantity_per_sale": str(self.average_quantity_per_sale),
            "average_revenue_per_sale": money_str(self.average_revenue_per_sale),
            "last_sale_date": to_iso_date(self.last_sale_date),
        }


def _line_rows(*criteria, start: date | None = None, end: date | None = None):
    return (
        db.session.query(
            SaleProduct.product_id,
            SaleProduct.quantity,
            SaleProduct.price_at_the_time,
            Sale.id.label("sale_id"),
            Sale.sale_date,
            Sale.customer_id,
            Sale.location_id,
        )
        .join(Sale, Sale.id == SaleProduct.sale_id)
        .filter(compose(*criteria, date_between(Sale.sale_date, start, end)))
        .all()
    )


def line_totals(rows: Iterable) -> LineTotals:
    units = 0
    revenue = ZERO
    sales = set()
    last = None
    for row in rows:
        units += row.quantity
        revenue += money(to_decimal(row.price_at_the_time) * row.quantity)
        sales.add(row.sale_id)
        if last is None or row.sale_date > last:
            last = row.sale_date
    return LineTotals(units=units, revenue=money(revenue), sale_count=len(sales), last_sale_date=last)


def _ranked(rows: Iterable, key: str, names: dict, limit: int) -> list[dict]:
    grouped: dict = defaultdict(list)
    for row in rows:
        ident = getattr(row, key)
        if ident is not None:
            grouped[ident].append(row)
    ranked = []
    for ident, group in grouped.items():
        totals = line_totals(group)
        ranked.append({
            "id": ident,
            "name": names.get(ident),
            "units": totals.units,
            "revenue": totals.revenue,
        })
    ranked.sort(key=lambda r: (-r["revenue"], -r["units"], r["id"]))
    return [{**r, "revenue": money_str(r["revenue"])} for r in ranked[:limit]]


def _get_or_404(model, entity_id: int, label: str):
    entity = db.session.get(model, entity_id)
    if entity is None:
        raise NotFoundError(label, entity_id)
    return entity


def product_analytics(
    product_id: int,
    *,
    start: date | None = None,
    end: date | None = None,
    group_by: str = "month",
    top: int = 5,
) -> dict:
    """Units, revenue, averages and series for one product, plus its top customers and locations."""
    product = _get_or_404(Product, product_id, "Product")
    if group_by not in GROUP_BY:
        raise ValidationError(f"group_by must be one of: {', '.join(GROUP_BY)}")

    rows = _line_rows(SaleProduct.product_id == product.id, start=start, end=end)
    totals = line_totals(rows)

    series = []
    for bucket_start, bucket_rows in group_by_period(rows, group_by, start, end).items():
        bucket_totals = line_totals(bucket_rows)
        series.append({
            "period": bucket_label(bucket_start, group_by),
            "units": bucket_totals.units,
            "revenue": money_str(bucket_totals.revenue),
        })

    customer_ids = {r.customer_id for r in rows if r.customer_id is not None}
    location_ids = {r.location_id for r in rows}
    customers = {
        c.id: c.full_name
        for c in db.session.query(Customer).filter(Customer.id.in_(customer_ids)).all()
    } if customer_ids else {}
    locations = {
        loc.id: loc.name
        for loc in db.session.query(Location).filter(Location.id.in_(location_ids)).all()
    } if location_ids else {}

    return {
        "product_id": product.id,
        "product_code": product.code,
        "product_name": product.name,
        **totals.to_dict(),
        "series": series,
        "top_customers": _ranked(rows, "customer_id", customers, top),
        "top_locations": _ranked(rows, "location_id", locations, top),
    }


def top_products(*, start: date | None = None, end: date | None = None, limit: int = 10) -> list[dict]:
    rows = _line_rows(start=start, end=end)
    product_ids = {r.product_id for r in rows}
    names = {
        p.id: f"{p.name} ({p.code})"
        for p in db.session.query(Product).filter(Product.id.in_(product_ids)).all()
    } if product_ids else {}
    return _ranked(rows, "product_id", names, limit)


def category_analytics(category_id: int, *, start: date | None = None, end: date | None = None) -> dict:
    category = _get_or_404(Category, category_id, "Category")
    product_ids = select_ids(Product.id, Product.category_id == category.id)
    rows = _line_rows(SaleProduct.product_id.in_(product_ids), start=start, end=end) if product_ids else []
    return {
        "category_id": category.id,
        "category_name": category.name,
        "product_count": len(product_ids),
        **line_totals(rows).to_dict(),
    }


def material_analytics(material_id: int, *, start: date | None = None, end: date | None = None) -> dict:
    """Sales of products whose recipe uses the material, and how much of it those sales consumed."""
    material = _get_or_404(Material, material_id, "Material")
    usage = {
        pm.product_id: to_decimal(pm.quantity)
        for pm in db.session.query(ProductMaterial).filter(ProductMaterial.material_id == material.id).all()
    }
    rows = _line_rows(SaleProduct.product_id.in_(list(usage)), start=start, end=end) if usage else []

    consumed = sum((usage[r.product_id] * r.quantity for r in rows), ZERO)
    purchased = db.session.query(PurchaseMaterial.quantity, PurchaseMaterial.price_at_the_time).join(
        Purchase, Purchase.id == PurchaseMaterial.purchase_id
    ).filter(
        compose(PurchaseMaterial.material_id == material.id, date_between(Purchase.purchase_date, start, end))
    ).all()

    return {
        "material_id": material.id,
        "material_name": material.name,
        "product_count": len(usage),
        **line_totals(rows).to_dict(),
        "quantity_consumed": str(quantize(consumed, 4)),
        "quantity_purchased": str(quantize(sum((to_decimal(q) for q, _ in purchased), ZERO), 4)),
        "purchase_spend": money_str(total(money(to_decimal(q) * to_decimal(p)) for q, p in purchased)),
    }


def procedure_analytics(procedure_id: int, *, start: date | None = None, end: date | None = None) -> dict:
    """Sales of products using the procedure and the procedure cost embedded in them."""
    procedure = _get_or_404(Procedure, procedure_id, "Procedure")
    costs = {
        pp.product_id: to_decimal(pp.cost)
        for pp in db.session.query(ProductProcedure).filter(ProductProcedure.procedure_id == procedure.id).all()
    }
    rows = _line_rows(SaleProduct.product_id.in_(list(costs)), start=start, end=end) if costs else []
    totals = line_totals(rows)

    return {
        "procedure_id": procedure.id,
        "procedure_name": procedure.name,
        "product_count": len(costs),
        **totals.to_dict(),
        "times_performed": totals.units,
        "procedure_cost_total": money_str(total(costs[r.product_id] * r.quantity for r in rows)),
    }


def customer_analytics(customer_id: int, *, start: date | None = None, end: date | None = None) -> dict:
    customer = _get_or_404(Customer, customer_id, "Customer")
    sale_rows = _sale_rows(compose(Sale.customer_id == customer.id, date_between(Sale.sale_date, start, end)))
    line_rows = _line_rows(Sale.customer_id == customer.id, start=start, end=end)

    product_ids = {r.product_id for r in line_rows}
    names = {
        p.id: f"{p.name} ({p.code})"
        for p in db.session.query(Product).filter(Product.id.in_(product_ids)).all()
    } if product_ids else {}

    return {
        "customer_id": customer.id,
        "customer_name": customer.full_name,
        "first_sale_date": to_iso_date(customer.first_sale_date),
        "last_sale_date": to_iso_date(max((r.sale_date for r in sale_rows), default=None)),
        "units_bought": sum(r.quantity for r in line_rows),
        **summarize_sales(sale_rows).to_dict(),
        "top_products": _ranked(line_rows, "product_id", names, 5),
    }


def location_analytics(location_id: int, *, start: date | None = None, end: date | None = None) -> dict:
    location = _get_or_404(Location, location_id, "Location")
    sale_rows = _sale_rows(compose(Sale.location_id == location.id, date_between(Sale.sale_date, start, end)))
    line_rows = _line_rows(Sale.location_id == location.id, start=start, end=end)
    return {
        "location_id": location.id,
        "location_name": location.name,
        "units_sold": sum(r.quantity for r in line_rows),
        **summarize_sales(sale_rows).to_dict(),
    }


def supplier_analytics(supplier_id: int, *, start: date | None = None, end: date | None = None) -> dict:
    supplier = _get_or_404(Supplier, supplier_id, "Supplier")
    purchases = (
        db.session.query(Purchase.id, Purchase.purchase_date, Purchase.total_cost)
        .filter(compose(Purchase.supplier_id == supplier.id, date_between(Purchase.purchase_date, start, end)))
        .all()
    )
    spend = total(p.total_cost for p in purchases)

    material_ids = select_ids(
        PurchaseMaterial.material_id,
        PurchaseMaterial.purchase_id.in_([p.id for p in purchases]),
    ) if purchases else []

    return {
        "supplier_id": supplier.id,
        "supplier_name": supplier.name,
        "purchase_count": len(purchases),
        "total_cost": money_str(spend),
        "average_cost": money_str(_mean(spend, len(purchases))),
        "last_purchase_date": to_iso_date(max((p.purchase_date for p in purchases), default=None)),
        "material_count": len(material_ids),
    }


def select_ids(column, *criteria) -> list[int]:
    return [row[0] for row in db.session.query(column).filter(*criteria).distinct().all()]


DIMENSIONS = {
    "customer": customer_analytics,
    "product": product_analytics,
    "category": category_analytics,
    "location": location_analytics,
    "material": material_analytics,
    "procedure": procedure_analytics,
    "supplier": supplier_analytics,
}


def dimension_analytics(dimension: str, entity_id: int, *, start: date | None = None, end: date | None = None) -> dict:
    try:
        handler = DIMENSIONS[dimension]
    except KeyError:
        raise ValidationError(f"dimension must be one of: {', '.join(DIMENSIONS)}")
    return handler(entity_id, start=start, end=end)
