# Overview: Service-layer operations for expenses; CRUD, search with summary and breakdown by type.

from __future__ import annotations

import logging

from ..extensions import db
from ..models import EXPENSE_TYPES, Expense, Purchase
from ..money import ZERO, money, money_str, to_decimal
from ..validation import (
    ConflictError,
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    require_choice,
    validate_payload,
)
from margarita.time_utils import today
from .filters import ExpenseFilters, paginate
from .profit_loss_service import expense_breakdown

logger = logging.getLogger(__name__)

PURCHASE_MATERIALS = "PURCHASE_MATERIALS"

# Search results larger than this come back without a summary block
SUMMARY_RESULT_LIMIT = 100

EXPENSE_POLICY = ModelValidationPolicy(
    writable_fields={"description", "amount", "expense_date", "expense_type", "purchase_id"},
    required_on_create={"description", "amount"},
    non_negative={"amount"},
)


def expense_types() -> list[dict]:
    return [{"value": key, "label": label} for key, label in EXPENSE_TYPES.items()]


def get_expense(expense_id: int) -> Expense:
    expense = db.session.get(Expense, expense_id)
    if not expense:
        raise NotFoundError("Expense", expense_id)
    return expense


def _check_purchase_link(purchase_id: int | None, exclude_id: int | None = None) -> None:
    if purchase_id is None:
        return
    if not db.session.get(Purchase, purchase_id):
        raise NotFoundError("Purchase", purchase_id)
    query = db.session.query(Expense.id).filter(Expense.purchase_id == purchase_id)
    if exclude_id is not None:
        query = query.filter(Expense.id != exclude_id)
    if query.first():
        raise ConflictError(f"Purchase {purchase_id} already has an expense")


def _clean(payload: dict, *, partial: bool) -> dict:
    patch = validate_payload(model=Expense, payload=payload, policy=EXPENSE_POLICY, partial=partial)
    if "expense_type" in patch:
        patch["expense_type"] = require_choice("expense_type", patch["expense_type"], EXPENSE_TYPES)
    if "amount" in patch and patch["amount"] == 0:
        raise ValidationError("amount must be > 0")
    return patch


def create_expense(payload: dict, user_id: int | None = None) -> Expense:
    patch = _clean(payload, partial=False)
    patch.setdefault("expense_date", today())
    patch.setdefault("expense_type", "OTHER")
    _check_purchase_link(patch.get("purchase_id"))

    expense = Expense(created_by_user_id=user_id, **patch)
    db.session.add(expense)
    db.session.commit()
    logger.info("Expense created with id: %s amount=%s type=%s", expense.id, expense.amount, expense.expense_type)
    return expense


def update_expense(expense_id: int, payload: dict) -> Expense:
    expense = get_expense(expense_id)
    if expense.purchase_id is not None:
        raise ConflictError("Expense is linked to a purchase; update the purchase instead")

    patch = _clean(payload, partial=True)
    _check_purchase_link(patch.get("purchase_id"), exclude_id=expense.id)
    for k, v in patch.items():
        setattr(expense, k, v)
    db.session.commit()
    logger.info("Expense %s updated", expense.id)
    return expense


def delete_expense(expense_id: int) -> None:
    expense = get_expense(expense_id)
    if expense.purchase_id is not None:
        raise ConflictError("Expense is linked to a purchase; delete the purchase instead")
    db.session.delete(expense)
    db.session.commit()
    logger.info("Expense %s deleted", expense_id)


def sync_purchase_expense(purchase: Purchase, user_id: int | None = None) -> Expense:
    """Create or refresh the PURCHASE_MATERIALS expense owned by a purchase; caller commits."""
    expense = db.session.query(Expense).filter(Expense.purchase_id == purchase.id).first()
    supplier_name = purchase.supplier.name if purchase.supplier else f"supplier {purchase.supplier_id}"
    description = f"Material purchase #{purchase.id} from {supplier_name}"

    if expense is None:
        expense = Expense(purchase_id=purchase.id, created_by_user_id=user_id)
        db.session.add(expense)

    expense.description = description
    expense.amount = purchase.total_cost
    expense.expense_date = purchase.purchase_date
    expense.expense_type = PURCHASE_MATERIALS
    return expense


def remove_purchase_expense(purchase_id: int) -> None:
    """Caller commits."""
    db.session.query(Expense).filter(Expense.purchase_id == purchase_id).delete(synchronize_session=False)


def recent_expenses(limit: int = 10) -> list[Expense]:
    limit = max(1, min(limit, 100))
    return (
        db.session.query(Expense)
        .order_by(Expense.expense_date.desc(), Expense.id.desc())
        .limit(limit)
        .all()
    )


def summarize_amounts(amounts) -> dict:
    values = [to_decimal(a) for a in amounts]
    total = money(sum(values, ZERO))
    return {
        "count": len(values),
        "total": money_str(total),
        "average": money_str(money(total / len(values)) if values else ZERO),
    }


def search_expenses(filters: ExpenseFilters, page: int | None = None, per_page: int | None = None) -> dict:
    query = (
        db.session.query(Expense)
        .filter(filters.criteria())
        .order_by(Expense.expense_date.desc(), Expense.id.desc())
    )
    result = paginate(query, page, per_page)

    summary = None
    if result["pagination"]["total"] <= SUMMARY_RESULT_LIMIT:
        amounts = db.session.query(Expense.amount).filter(filters.criteria()).all()
        summary = summarize_amounts(row.amount for row in amounts)

    return {
        "items": [e.to_dict() for e in result["items"]],
        "pagination": result["pagination"],
        "summary": summary,
    }


def breakdown_by_type(filters: ExpenseFilters | None = None) -> dict:
    filters = filters or ExpenseFilters()
    rows = db.session.query(Expense.expense_type, Expense.amount).filter(filters.criteria()).all()
    return {
        "total": money_str(money(sum((to_decimal(r.amount) for r in rows), ZERO))),
        "breakdown": expense_breakdown(rows),
    }
