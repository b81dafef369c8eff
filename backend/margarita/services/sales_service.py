# Overview: Service-layer operations for sales; records, reprices and deletes sales atomically.

"""
Sales Service

A sale is recorded as one unit of work: price the cart, write the sale and
its line snapshots, take the sold quantities out of stock and stamp the
customer's first sale date. Any failure rolls the whole unit back.

Line prices are snapshots. Repricing an existing sale (update) works from the
stored suggested unit prices and never looks at the current catalog.
"""

from __future__ import annotations

import logging
from typing import Any

from flask import current_app

from ..extensions import db
from ..models import Customer, Location, PAYMENT_METHODS, Product, Sale, SaleProduct
from ..validation import NotFoundError, ValidationError, coerce_date, coerce_int, require_choice
from margarita.time_utils import today
from . import stock_service
from .analytics_service import SalesSummary, summarize_sales_query
from .concurrency import lock_for_update, run_with_retry
from .cost_service import PricingSettings
from .filters import SaleFilters, paginate
from .sale_pricing_service import CartLine, PricingError, SalePricing, price_sale

logger = logging.getLogger(__name__)

# Search results larger than this come back without a summary block
SUMMARY_RESULT_LIMIT = 100


class SaleError(ValidationError):
    """Raised for sale operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def payment_methods() -> list[str]:
    return list(PAYMENT_METHODS)


def _max_discount() -> Any:
    return PricingSettings.from_config(current_app.config).max_discount_percentage


def get_sale(sale_id: int) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if not sale:
        raise NotFoundError("Sale", sale_id)
    return sale


def _location(location_id) -> Location:
    if location_id is None:
        raise SaleError("location_id is required")
    location_id = coerce_int("location_id", location_id)
    location = db.session.get(Location, location_id)
    if not location or not location.is_active:
        raise NotFoundError("Location", location_id)
    return location


def _customer(customer_id) -> Customer | None:
    if customer_id is None:
        return None
    customer_id = coerce_int("customer_id", customer_id)
    customer = db.session.get(Customer, customer_id)
    if not customer or not customer.is_active:
        raise NotFoundError("Customer", customer_id)
    return customer


def _wholesale_flag(value) -> bool:
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ValidationError("is_wholesale must be a boolean")
    return value


def unit_price_for(product: Product, is_wholesale: bool):
    return product.final_wholesale_price if is_wholesale else product.final_retail_price


def build_cart(items, is_wholesale: bool) -> list[CartLine]:
    """Resolve cart items to priced cart lines using the current catalog snapshot."""
    if not items:
        raise PricingError("Cart is empty")
    if not isinstance(items, list):
        raise ValidationError("items must be a list")

    lines = []
    missing = []
    for item in items:
        if not isinstance(item, dict):
            raise ValidationError("items must be a list of objects")
        product_id = coerce_int("product_id", item.get("product_id"))
        quantity = coerce_int("quantity", item.get("quantity"))
        product = db.session.get(Product, product_id)
        if not product or product.deleted_at is not None or not product.is_active:
            missing.append(product_id)
            continue
        lines.append(CartLine(
            product_id=product.id,
            quantity=quantity,
            suggested_unit_price=unit_price_for(product, is_wholesale),
            description=f"{product.name} ({product.code})",
        ))

    if missing:
        raise NotFoundError("Product", missing[0] if len(missing) == 1 else missing)
    return lines


def _price(lines: list[CartLine], payload: dict) -> SalePricing:
    return price_sale(
        lines,
        packaging_cost=payload.get("packaging_price"),
        user_final_price=payload.get("final_price"),
        user_discount_percentage=payload.get("discount_percentage"),
        max_discount_percentage=_max_discount(),
    )


def cart_pricing_preview(payload: dict) -> SalePricing:
    """Price a cart exactly as record_sale would, without writing anything."""
    is_wholesale = _wholesale_flag(payload.get("is_wholesale"))
    return _price(build_cart(payload.get("items"), is_wholesale), payload)


def product_for_cart(product_id: int, is_wholesale: bool = False, quantity: int = 1) -> dict:
    product = db.session.get(Product, product_id)
    if not product or product.deleted_at is not None or not product.is_active:
        raise NotFoundError("Product", product_id)
    if quantity <= 0:
        raise ValidationError("quantity must be > 0")
    unit_price = unit_price_for(product, is_wholesale)
    return {
        "product_id": product.id,
        "name": product.name,
        "code": product.code,
        "quantity": quantity,
        "unit_price": str(unit_price),
        "total_price": str(unit_price * quantity),
        "stock": product.stock,
        "stock_status": product.stock_status,
    }


def _apply_pricing(sale: Sale, pricing: SalePricing) -> None:
    sale.packaging_price = pricing.packaging_cost
    sale.suggested_total_price = pricing.suggested_total
    sale.final_total_price = pricing.final_total
    sale.discount_percentage = pricing.discount_percentage


def record_sale(payload: dict, user_id: int | None = None) -> Sale:
    """
    Record a sale.

    payload: location_id, items [{product_id, quantity}], and optionally
    customer_id, sale_date, payment_method, is_wholesale, packaging_price and
    either final_price or discount_percentage.
    """
    payload = payload or {}
    is_wholesale = _wholesale_flag(payload.get("is_wholesale"))
    payment_method = require_choice("payment_method", payload.get("payment_method", "CASH"), PAYMENT_METHODS)
    sale_date = coerce_date("sale_date", payload["sale_date"]) if payload.get("sale_date") else today()

    def _op():
        try:
            location = _location(payload.get("location_id"))
            customer = _customer(payload.get("customer_id"))
            lines = build_cart(payload.get("items"), is_wholesale)
            pricing = _price(lines, payload)

            sale = Sale(
                customer_id=customer.id if customer else None,
                location_id=location.id,
                sale_date=sale_date,
                payment_method=payment_method,
                is_wholesale=is_wholesale,
                created_by_user_id=user_id,
            )
            _apply_pricing(sale, pricing)
            for line in pricing.lines:
                sale.lines.append(SaleProduct(
                    product_id=line.product_id,
                    quantity=line.quantity,
                    product_description_snapshot=line.description,
                    suggested_price_at_the_time=line.suggested_unit_price,
                    price_at_the_time=line.actual_unit_price,
                ))

            db.session.add(sale)
            db.session.flush()

            stock_service.reduce_stock_for_sale(
                [(line.product_id, line.quantity) for line in pricing.lines],
                sale_id=sale.id,
            )

            if customer is not None and customer.first_sale_date is None:
                customer.first_sale_date = sale_date

            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        logger.info(
            "Sale recorded with id: %s suggested=%s final=%s discount=%s%%",
            sale.id, pricing.suggested_total, pricing.final_total, pricing.discount_percentage,
        )
        if pricing.rounding_difference:
            logger.info("Sale %s line rounding difference: %s", sale.id, pricing.rounding_difference)
        return sale

    return run_with_retry(_op)


def update_sale(sale_id: int, payload: dict) -> Sale:
    """
    Update sale header fields and reprice its lines.

    Lines keep their stored suggested unit prices; the wholesale flag and the
    line items themselves cannot change.
    """
    payload = payload or {}
    if "items" in payload or "is_wholesale" in payload:
        raise SaleError("Sale lines and wholesale flag cannot be changed; delete and record the sale again")

    def _op():
        try:
            sale = lock_for_update(db.session.query(Sale).filter_by(id=sale_id)).first()
            if not sale:
                raise NotFoundError("Sale", sale_id)

            if "location_id" in payload:
                sale.location_id = _location(payload["location_id"]).id
            # Date before customer: first_sale_date is stamped from the sale's new date.
            if "sale_date" in payload:
                sale.sale_date = coerce_date("sale_date", payload["sale_date"])
            if "customer_id" in payload:
                customer = _customer(payload["customer_id"])
                sale.customer_id = customer.id if customer else None
                if customer is not None and customer.first_sale_date is None:
                    customer.first_sale_date = sale.sale_date
            if "payment_method" in payload:
                sale.payment_method = require_choice("payment_method", payload["payment_method"], PAYMENT_METHODS)

            reprice = {
                "packaging_price": payload.get("packaging_price", sale.packaging_price),
                "final_price": payload.get("final_price"),
                "discount_percentage": payload.get("discount_percentage"),
            }
            if reprice["final_price"] is None and reprice["discount_percentage"] is None:
                reprice["final_price"] = sale.final_total_price

            lines = [
                CartLine(
                    product_id=line.product_id,
                    quantity=line.quantity,
                    suggested_unit_price=line.suggested_price_at_the_time,
                    description=line.product_description_snapshot,
                )
                for line in sale.lines
            ]
            pricing = _price(lines, reprice)
            _apply_pricing(sale, pricing)
            for line, priced in zip(sale.lines, pricing.lines):
                line.price_at_the_time = priced.actual_unit_price

            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        logger.info("Sale %s updated: final=%s discount=%s%%", sale.id, sale.final_total_price, sale.discount_percentage)
        return sale

    return run_with_retry(_op)


def delete_sale(sale_id: int) -> None:
    """Delete a sale and put its quantities back into stock."""
    def _op():
        try:
            sale = lock_for_update(db.session.query(Sale).filter_by(id=sale_id)).first()
            if not sale:
                raise NotFoundError("Sale", sale_id)
            stock_service.restore_stock_for_sale(
                [(line.product_id, line.quantity) for line in sale.lines],
                sale_id=sale.id,
            )
            db.session.delete(sale)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        logger.info("Sale %s deleted", sale_id)

    run_with_retry(_op)


def recent_sales(limit: int = 10) -> list[Sale]:
    limit = max(1, min(limit, 100))
    return (
        db.session.query(Sale)
        .order_by(Sale.sale_date.desc(), Sale.created_at.desc(), Sale.id.desc())
        .limit(limit)
        .all()
    )


def search_sales(filters: SaleFilters, page: int | None = None, per_page: int | None = None) -> dict:
    """
    Paginated sale search. The summary block is computed only when the whole
    filtered result has at most SUMMARY_RESULT_LIMIT sales.
    """
    query = (
        db.session.query(Sale)
        .filter(filters.criteria())
        .order_by(Sale.sale_date.desc(), Sale.id.desc())
    )
    result = paginate(query, page, per_page)

    summary: SalesSummary | None = None
    if result["pagination"]["total"] <= SUMMARY_RESULT_LIMIT:
        summary = summarize_sales_query(filters.criteria())

    return {
        "items": [s.to_dict(include_lines=False) for s in result["items"]],
        "pagination": result["pagination"],
        "summary": summary.to_dict() if summary else None,
    }
