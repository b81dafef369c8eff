# Overview: Service-layer operations for material purchases; lines, totals and the linked expense.

"""
Purchase Service

A purchase records materials bought from a supplier. Line prices default to
the material's current unit cost and, together with the material name, are
frozen on the line. Purchases never touch product stock.

Each purchase owns one PURCHASE_MATERIALS expense whose amount tracks the
purchase total; it is created, refreshed and removed with the purchase.
"""

from __future__ import annotations

import logging

from ..extensions import db
from ..models import Material, Purchase, PurchaseMaterial, Supplier
from ..money import money, total
from ..validation import NotFoundError, ValidationError, coerce_date, coerce_decimal, coerce_int
from margarita.time_utils import today
from . import expense_service
from .filters import PurchaseFilters, paginate

logger = logging.getLogger(__name__)

SUMMARY_RESULT_LIMIT = 100


class PurchaseError(ValidationError):
    """Invalid purchase input."""


def get_purchase(purchase_id: int) -> Purchase:
    purchase = db.session.get(Purchase, purchase_id)
    if not purchase:
        raise NotFoundError("Purchase", purchase_id)
    return purchase


def _supplier(supplier_id) -> Supplier:
    if supplier_id is None:
        raise PurchaseError("supplier_id is required")
    supplier_id = coerce_int("supplier_id", supplier_id)
    supplier = db.session.get(Supplier, supplier_id)
    if not supplier or not supplier.is_active:
        raise NotFoundError("Supplier", supplier_id)
    return supplier


def _build_lines(items) -> list[PurchaseMaterial]:
    if not items or not isinstance(items, list):
        raise PurchaseError("items must be a non-empty list")

    lines = []
    for item in items:
        if not isinstance(item, dict):
            raise PurchaseError("items must be a list of objects")
        material_id = coerce_int("material_id", item.get("material_id"))
        material = db.session.get(Material, material_id)
        if not material:
            raise NotFoundError("Material", material_id)

        quantity = coerce_decimal("quantity", item.get("quantity"), places=4)
        if quantity <= 0:
            raise PurchaseError("quantity must be > 0")

        if item.get("price") is None:
            price = material.current_unit_cost
        else:
            price = coerce_decimal("price", item["price"])
            if price < 0:
                raise PurchaseError("price must be >= 0")

        lines.append(PurchaseMaterial(
            material_id=material.id,
            quantity=quantity,
            price_at_the_time=money(price),
            material_description_snapshot=material.name,
        ))
    return lines


def _total_cost(lines) -> object:
    return total(money(line.price_at_the_time * line.quantity) for line in lines)


def record_purchase(payload: dict, user_id: int | None = None) -> Purchase:
    payload = payload or {}
    supplier = _supplier(payload.get("supplier_id"))
    purchase_date = coerce_date("purchase_date", payload["purchase_date"]) if payload.get("purchase_date") else today()

    try:
        lines = _build_lines(payload.get("items"))
        purchase = Purchase(
            supplier_id=supplier.id,
            purchase_date=purchase_date,
            total_cost=_total_cost(lines),
            created_by_user_id=user_id,
        )
        purchase.lines.extend(lines)
        db.session.add(purchase)
        db.session.flush()

        expense_service.sync_purchase_expense(purchase, user_id)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info("Purchase recorded with id: %s total=%s", purchase.id, purchase.total_cost)
    return purchase


def update_purchase(purchase_id: int, payload: dict) -> Purchase:
    """Change supplier, date or lines; the linked expense follows the new total."""
    payload = payload or {}
    purchase = get_purchase(purchase_id)

    try:
        if "supplier_id" in payload:
            purchase.supplier_id = _supplier(payload["supplier_id"]).id
        if "purchase_date" in payload:
            purchase.purchase_date = coerce_date("purchase_date", payload["purchase_date"])
        if "items" in payload:
            new_lines = _build_lines(payload["items"])
            purchase.lines.clear()
            purchase.lines.extend(new_lines)
        purchase.total_cost = _total_cost(purchase.lines)
        db.session.flush()

        expense_service.sync_purchase_expense(purchase)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info("Purchase %s updated total=%s", purchase.id, purchase.total_cost)
    return purchase


def delete_purchase(purchase_id: int) -> None:
    purchase = get_purchase(purchase_id)
    try:
        expense_service.remove_purchase_expense(purchase.id)
        db.session.delete(purchase)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    logger.info("Purchase %s deleted", purchase_id)


def recent_purchases(limit: int = 10) -> list[Purchase]:
    limit = max(1, min(limit, 100))
    return (
        db.session.query(Purchase)
        .order_by(Purchase.purchase_date.desc(), Purchase.id.desc())
        .limit(limit)
        .all()
    )


def search_purchases(filters: PurchaseFilters, page: int | None = None, per_page: int | None = None) -> dict:
    query = (
        db.session.query(Purchase)
        .filter(filters.criteria())
        .order_by(Purchase.purchase_date.desc(), Purchase.id.desc())
    )
    result = paginate(query, page, per_page)

    summary = None
    if result["pagination"]["total"] <= SUMMARY_RESULT_LIMIT:
        costs = db.session.query(Purchase.total_cost).filter(filters.criteria()).all()
        summary = expense_service.summarize_amounts(row.total_cost for row in costs)

    return {
        "items": [p.to_dict(include_lines=False) for p in result["items"]],
        "pagination": result["pagination"],
        "summary": summary,
    }
