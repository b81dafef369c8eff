# Overview: Service-layer profit/loss report; nets sales revenue against expenses for a period.

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date

from ..extensions import db
from ..models import EXPENSE_TYPES, Expense, Sale
from ..money import ZERO, money, money_str, percentage, to_decimal, total
from ..validation import ValidationError
from margarita.time_utils import to_iso_date
from .filters import date_between, compose

logger = logging.getLogger(__name__)


def expense_breakdown(expenses) -> list[dict]:
    """
    Group (expense_type, amount) rows by type.

    Each entry carries its share of the grand total (4-place ratio x 100);
    sorted by amount, largest first.
    """
    amounts: dict[str, object] = defaultdict(lambda: ZERO)
    counts: dict[str, int] = defaultdict(int)
    for row in expenses:
        amounts[row.expense_type] += to_decimal(row.amount)
        counts[row.expense_type] += 1

    grand_total = money(sum(amounts.values(), ZERO))
    rows = [
        {
            "expense_type": expense_type,
            "label": EXPENSE_TYPES.get(expense_type, expense_type),
            "amount": money(amount),
            "count": counts[expense_type],
            "percentage": percentage(amount, grand_total),
        }
        for expense_type, amount in amounts.items()
    ]
    rows.sort(key=lambda r: (-r["amount"], r["expense_type"]))
    return [{**r, "amount": money_str(r["amount"]), "percentage": money_str(r["percentage"])} for r in rows]


def profit_loss(start: date | None = None, end: date | None = None) -> dict:
    if start and end and start > end:
        raise ValidationError("start must be on or before end")

    revenues = [
        row.final_total_price
        for row in db.session.query(Sale.final_total_price)
        .filter(compose(date_between(Sale.sale_date, start, end)))
        .all()
    ]
    expenses = (
        db.session.query(Expense.expense_type, Expense.amount)
        .filter(compose(date_between(Expense.expense_date, start, end)))
        .all()
    )

    total_revenue = total(revenues)
    total_expenses = total(e.amount for e in expenses)
    net_profit = money(total_revenue - total_expenses)
    margin = percentage(net_profit, total_revenue) if total_revenue > 0 else money(ZERO)

    logger.debug(
        "Profit/loss %s..%s revenue=%s expenses=%s net=%s",
        start, end, total_revenue, total_expenses, net_profit,
    )

    return {
        "start": to_iso_date(start),
        "end": to_iso_date(end),
        "total_revenue": money_str(total_revenue),
        "sales_count": len(revenues),
        "total_expenses": money_str(total_expenses),
        "expense_count": len(expenses),
        "net_profit": money_str(net_profit),
        "profit_margin": money_str(margin),
        "expense_breakdown": expense_breakdown(expenses),
    }
