# Overview: Service-layer operations for product stock; add/remove/set movements and stock alerts.

"""
Stock ledger.

Each product carries an integer stock counter with no lower bound: negative
stock is a valid, reportable state (oversold / backorder), never an error.

Status is derived on every read and never stored:

    stock < 0                      -> NEGATIVE
    0 <= stock <= low_stock_alert  -> LOW
    stock > low_stock_alert        -> NORMAL

Sales call reduce_stock_for_sale / restore_stock_for_sale inside their own
transaction; those helpers never commit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable

from sqlalchemy import and_, case, func

from ..extensions import db
from ..models import Product
from ..validation import NotFoundError, ValidationError, coerce_int
from margarita.time_utils import utcnow, to_utc_z
from .concurrency import lock_for_update, run_with_retry

logger = logging.getLogger(__name__)

ADD = "ADD"
REMOVE = "REMOVE"
SET = "SET"
UPDATE_TYPES = (ADD, REMOVE, SET)

NORMAL = "NORMAL"
LOW = "LOW"
NEGATIVE = "NEGATIVE"


class StockError(ValidationError):
    """Invalid stock operation input."""


@dataclass(frozen=True)
class StockUpdateResult:
    product_id: int
    product_code: str
    previous_stock: int
    new_stock: int
    change: int
    status: str
    update_type: str
    timestamp: datetime

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_code": self.product_code,
            "previous_stock": self.previous_stock,
            "new_stock": self.new_stock,
            "change": self.change,
            "status": self.status,
            "update_type": self.update_type,
            "timestamp": to_utc_z(self.timestamp),
        }


def classify_stock(stock: int | None, low_stock_alert: int | None) -> str:
    current = stock or 0
    if current < 0:
        return NEGATIVE
    if current <= (low_stock_alert or 0):
        return LOW
    return NORMAL


def apply_operation(previous: int, update_type: str, quantity: int) -> int:
    """New stock value for an operation; pure."""
    if update_type == ADD:
        return previous + quantity
    if update_type == REMOVE:
        return previous - quantity
    if update_type == SET:
        return quantity
    raise StockError(f"update_type must be one of: {', '.join(UPDATE_TYPES)}")


def _validate_quantity(update_type: str, quantity) -> int:
    qty = coerce_int("quantity", quantity)
    if update_type in (ADD, REMOVE) and qty <= 0:
        raise StockError(f"quantity must be > 0 for {update_type}")
    if update_type == SET and qty < 0:
        raise StockError("quantity must be >= 0 for SET")
    return qty


def _log_movement(product: Product, operation: str, reason: str, previous: int, new: int) -> None:
    logger.info(
        "STOCK_MOVEMENT: product=%s operation=%s reason=%s previous=%d new=%d change=%d",
        product.code, operation, reason, previous, new, new - previous,
    )
    if new < 0:
        logger.warning("Product %s stock is negative: %d", product.code, new)


def _move(product: Product, update_type: str, quantity: int, reason: str) -> StockUpdateResult:
    previous = product.stock or 0
    new = apply_operation(previous, update_type, quantity)
    product.stock = new
    _log_movement(product, update_type, reason, previous, new)
    return StockUpdateResult(
        product_id=product.id,
        product_code=product.code,
        previous_stock=previous,
        new_stock=new,
        change=new - previous,
        status=classify_stock(new, product.low_stock_alert),
        update_type=update_type,
        timestamp=utcnow(),
    )


def update_stock(product_id: int, update_type: str, quantity, *, reason: str = "MANUAL") -> StockUpdateResult:
    """Manual stock movement; commits."""
    if not isinstance(update_type, str) or update_type.upper() not in UPDATE_TYPES:
        raise StockError(f"update_type must be one of: {', '.join(UPDATE_TYPES)}")
    update_type = update_type.upper()
    qty = _validate_quantity(update_type, quantity)

    def _op():
        product = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
        if not product or product.deleted_at is not None:
            raise NotFoundError("Product", product_id)
        result = _move(product, update_type, qty, reason)
        db.session.commit()
        return result

    return run_with_retry(_op)


def update_stock_limit(product_id: int, low_stock_alert) -> Product:
    limit = coerce_int("low_stock_alert", low_stock_alert)
    if limit < 0:
        raise StockError("low_stock_alert must be >= 0")

    product = db.session.get(Product, product_id)
    if not product or product.deleted_at is not None:
        raise NotFoundError("Product", product_id)

    product.low_stock_alert = limit
    db.session.commit()
    logger.info("Product %s low stock alert set to %d", product.code, limit)
    return product


def _locked_products(product_ids: Iterable[int]) -> dict[int, Product]:
    ids = sorted(set(product_ids))
    if not ids:
        return {}
    rows = lock_for_update(db.session.query(Product).filter(Product.id.in_(ids))).all()
    return {p.id: p for p in rows}


def reduce_stock_for_sale(lines: Iterable[tuple[int, int]], *, sale_id: int | None = None) -> list[StockUpdateResult]:
    """REMOVE(quantity) per (product_id, quantity) line; caller commits."""
    return _sale_movement(list(lines), REMOVE, f"SALE {sale_id}" if sale_id else "SALE")


def restore_stock_for_sale(lines: Iterable[tuple[int, int]], *, sale_id: int | None = None) -> list[StockUpdateResult]:
    """ADD(quantity) per line, the inverse of reduce_stock_for_sale; caller commits."""
    return _sale_movement(list(lines), ADD, f"SALE_DELETED {sale_id}" if sale_id else "SALE_DELETED")


def _sale_movement(lines: list[tuple[int, int]], update_type: str, reason: str) -> list[StockUpdateResult]:
    products = _locked_products(pid for pid, _ in lines)
    results = []
    for product_id, quantity in lines:
        product = products.get(product_id)
        if product is None:
            raise NotFoundError("Product", product_id)
        if product.stock is None:
            logger.warning("Product %s has no stock tracking; skipping %s", product.code, update_type)
            continue
        results.append(_move(product, update_type, quantity, reason))
    return results


def _stock_level():
    # NULL stock counts as 0, matching classify_stock
    return func.coalesce(Product.stock, 0)


def low_stock_products(limit: int | None = None) -> list[Product]:
    """Active products at or below their alert level, emptiest first (negatives included)."""
    query = (
        db.session.query(Product)
        .filter(Product.is_active.is_(True), _stock_level() <= Product.low_stock_alert)
        .order_by(_stock_level().asc(), Product.code.asc())
    )
    if limit:
        query = query.limit(limit)
    return query.all()


def negative_stock_products() -> list[Product]:
    return (
        db.session.query(Product)
        .filter(Product.is_active.is_(True), Product.stock < 0)
        .order_by(Product.stock.asc(), Product.code.asc())
        .all()
    )


def stock_overview() -> dict:
    stock = _stock_level()
    row = db.session.query(
        func.count(Product.id).label("total"),
        func.sum(case((stock < 0, 1), else_=0)).label("negative"),
        func.sum(case((and_(stock >= 0, stock <= Product.low_stock_alert), 1), else_=0)).label("low"),
        func.sum(case((stock > Product.low_stock_alert, 1), else_=0)).label("normal"),
        func.coalesce(func.sum(stock), 0).label("units"),
    ).filter(Product.is_active.is_(True)).one()

    return {
        "total_products": int(row.total or 0),
        "normal_count": int(row.normal or 0),
        "low_count": int(row.low or 0),
        "negative_count": int(row.negative or 0),
        "total_units": int(row.units or 0),
    }


def stock_alert_dict(product: Product) -> dict:
    return {
        "product_id": product.id,
        "product_code": product.code,
        "product_name": product.name,
        "current_stock": product.stock,
        "low_stock_alert": product.low_stock_alert,
        "status": classify_stock(product.stock, product.low_stock_alert),
    }
