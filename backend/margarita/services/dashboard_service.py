# Overview: Service-layer dashboard read model; one call that gathers the home screen widgets.

from __future__ import annotations

from datetime import date

from margarita.time_utils import to_iso_date, today
from . import analytics_service, products_service, sales_service, stock_service, task_service


def dashboard(on: date | None = None, *, recent_limit: int = 5, alert_limit: int = 5) -> dict:
    current = on or today()
    mispriced = products_service.mispriced_products(page=1, per_page=alert_limit)

    return {
        "date": to_iso_date(current),
        "weekly_sales": analytics_service.weekly_summary(current),
        "monthly_sales": analytics_service.monthly_summary(current),
        "recent_sales": [s.to_dict(include_lines=False) for s in sales_service.recent_sales(recent_limit)],
        "low_stock": [stock_service.stock_alert_dict(p) for p in stock_service.low_stock_products(alert_limit)],
        "stock_overview": stock_service.stock_overview(),
        "mispriced_count": mispriced["pagination"]["total"],
        "mispriced_top": mispriced["items"],
        "tasks": task_service.task_buckets(current),
    }
