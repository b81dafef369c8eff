# Overview: Composable query criteria for sale, purchase, expense and product searches.

"""
Search filters are built from optional criteria. Each factory returns a
SQLAlchemy predicate, or None when its input is absent; ``compose`` folds
whatever is left into a single AND condition (``true()`` when nothing is set).
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import date
from typing import Any, Callable

from sqlalchemy import and_, or_, select, true

from ..models import (
    Expense,
    Product,
    ProductMaterial,
    ProductProcedure,
    Purchase,
    PurchaseMaterial,
    Sale,
    SaleProduct,
    PAYMENT_METHODS,
    EXPENSE_TYPES,
)
from ..validation import ValidationError, coerce_date, coerce_int, require_choice


def compose(*criteria) -> Any:
    present = [c for c in criteria if c is not None]
    if not present:
        return true()
    if len(present) == 1:
        return present[0]
    return and_(*present)


def equals(column, value):
    return None if value is None else column == value


def date_between(column, start: date | None, end: date | None):
    if start is None and end is None:
        return None
    return compose(
        column >= start if start is not None else None,
        column <= end if end is not None else None,
    )


def contains_text(column, text: str | None):
    if not text or not text.strip():
        return None
    return column.ilike(f"%{text.strip()}%")


# ---------------------------------------------------------------------------
# Filter objects
# ---------------------------------------------------------------------------

def _parse_bool(key: str, value: Any) -> bool | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return value
    lowered = str(value).strip().lower()
    if lowered in ("true", "1", "yes"):
        return True
    if lowered in ("false", "0", "no"):
        return False
    raise ValidationError(f"{key} must be true or false")


def _parse_fields(cls, args) -> dict:
    parsers: dict[str, Callable[[str, Any], Any]] = getattr(cls, "PARSERS", {})
    values = {}
    for f in fields(cls):
        raw = args.get(f.name)
        if raw is None or raw == "":
            continue
        values[f.name] = parsers.get(f.name, lambda k, v: v)(f.name, raw)
    return values


@dataclass
class SaleFilters:
    date_from: date | None = None
    date_to: date | None = None
    location_id: int | None = None
    category_id: int | None = None
    customer_id: int | None = None
    product_id: int | None = None
    payment_method: str | None = None
    is_wholesale: bool | None = None

    PARSERS = {
        "date_from": coerce_date,
        "date_to": coerce_date,
        "location_id": coerce_int,
        "category_id": coerce_int,
        "customer_id": coerce_int,
        "product_id": coerce_int,
        "payment_method": lambda k, v: require_choice(k, v, PAYMENT_METHODS),
        "is_wholesale": _parse_bool,
    }

    @classmethod
    def from_args(cls, args) -> "SaleFilters":
        return cls(**_parse_fields(cls, args))

    def criteria(self):
        return compose(
            date_between(Sale.sale_date, self.date_from, self.date_to),
            equals(Sale.location_id, self.location_id),
            equals(Sale.customer_id, self.customer_id),
            equals(Sale.payment_method, self.payment_method),
            equals(Sale.is_wholesale, self.is_wholesale),
            _sale_has_product(self.product_id),
            _sale_has_category(self.category_id),
        )


def _sale_has_product(product_id: int | None):
    if product_id is None:
        return None
    return (
        select(SaleProduct.id).where(
            SaleProduct.sale_id == Sale.id,
            SaleProduct.product_id == product_id,
        )
    ).correlate(Sale).exists()


def _sale_has_category(category_id: int | None):
    if category_id is None:
        return None
    return (
        select(SaleProduct.id)
        .join(Product, Product.id == SaleProduct.product_id)
        .where(
            SaleProduct.sale_id == Sale.id,
            Product.category_id == category_id,
        )
    ).correlate(Sale).exists()


@dataclass
class PurchaseFilters:
    date_from: date | None = None
    date_to: date | None = None
    supplier_id: int | None = None
    material_id: int | None = None

    PARSERS = {
        "date_from": coerce_date,
        "date_to": coerce_date,
        "supplier_id": coerce_int,
        "material_id": coerce_int,
    }

    @classmethod
    def from_args(cls, args) -> "PurchaseFilters":
        return cls(**_parse_fields(cls, args))

    def criteria(self):
        material_clause = None
        if self.material_id is not None:
            material_clause = (
                select(PurchaseMaterial.id).where(
                    PurchaseMaterial.purchase_id == Purchase.id,
                    PurchaseMaterial.material_id == self.material_id,
                )
            ).correlate(Purchase).exists()
        return compose(
            date_between(Purchase.purchase_date, self.date_from, self.date_to),
            equals(Purchase.supplier_id, self.supplier_id),
            material_clause,
        )


@dataclass
class ExpenseFilters:
    description: str | None = None
    date_from: date | None = None
    date_to: date | None = None
    expense_type: str | None = None
    is_purchase: bool | None = None

    PARSERS = {
        "date_from": coerce_date,
        "date_to": coerce_date,
        "expense_type": lambda k, v: require_choice(k, v, EXPENSE_TYPES),
        "is_purchase": _parse_bool,
    }

    @classmethod
    def from_args(cls, args) -> "ExpenseFilters":
        return cls(**_parse_fields(cls, args))

    def criteria(self):
        purchase_clause = None
        if self.is_purchase is True:
            purchase_clause = Expense.purchase_id.isnot(None)
        elif self.is_purchase is False:
            purchase_clause = Expense.purchase_id.is_(None)
        return compose(
            contains_text(Expense.description, self.description),
            date_between(Expense.expense_date, self.date_from, self.date_to),
            equals(Expense.expense_type, self.expense_type),
            purchase_clause,
        )


@dataclass
class ProductFilters:
    name_or_code: str | None = None
    category_id: int | None = None
    material_id: int | None = None
    procedure_id: int | None = None
    is_active: bool | None = True
    low_stock: bool | None = None

    PARSERS = {
        "category_id": coerce_int,
        "material_id": coerce_int,
        "procedure_id": coerce_int,
        "is_active": _parse_bool,
        "low_stock": _parse_bool,
    }

    @classmethod
    def from_args(cls, args) -> "ProductFilters":
        return cls(**_parse_fields(cls, args))

    def criteria(self):
        text_clause = None
        if self.name_or_code and self.name_or_code.strip():
            text_clause = or_(
                contains_text(Product.name, self.name_or_code),
                contains_text(Product.code, self.name_or_code),
            )
        material_clause = None
        if self.material_id is not None:
            material_clause = (
                select(ProductMaterial.id).where(
                    ProductMaterial.product_id == Product.id,
                    ProductMaterial.material_id == self.material_id,
                )
            ).correlate(Product).exists()
        procedure_clause = None
        if self.procedure_id is not None:
            procedure_clause = (
                select(ProductProcedure.id).where(
                    ProductProcedure.product_id == Product.id,
                    ProductProcedure.procedure_id == self.procedure_id,
                )
            ).correlate(Product).exists()
        low_stock_clause = None
        if self.low_stock:
            low_stock_clause = and_(Product.stock.isnot(None), Product.stock <= Product.low_stock_alert)
        return compose(
            text_clause,
            equals(Product.category_id, self.category_id),
            equals(Product.is_active, self.is_active),
            material_clause,
            procedure_clause,
            low_stock_clause,
        )


def paginate(query, page: int | None, per_page: int | None, *, default_per_page: int = 20) -> dict:
    """Offset pagination; returns items plus the same pagination block the product list uses."""
    per_page = min(per_page or default_per_page, 100)
    page = max(page or 1, 1)

    total = query.order_by(None).count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1
    items = query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": items,
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }

