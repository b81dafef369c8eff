# Overview: Service-layer operations for products; catalog CRUD, recipes, cost roll-up and mispricing.

from __future__ import annotations

import logging
from decimal import Decimal

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import (
    Category,
    Material,
    Procedure,
    Product,
    ProductMaterial,
    ProductProcedure,
    SaleProduct,
)
from ..money import money_str, to_decimal
from ..validation import ConflictError, NotFoundError, ValidationError, coerce_decimal, coerce_int
from margarita.time_utils import utcnow, to_utc_z
from . import cost_service
from .cost_service import CostBreakdown, MaterialLine, PricingSettings, ProcedureLine
from .filters import ProductFilters, paginate

logger = logging.getLogger(__name__)

PRODUCT_MUTABLE_FIELDS = {
    "name", "code", "description", "category_id", "minutes_to_make",
    "final_retail_price", "final_wholesale_price", "stock", "low_stock_alert", "is_active",
}


def pricing_settings() -> PricingSettings:
    return PricingSettings.from_config(current_app.config)


def get_product(product_id: int, *, include_deleted: bool = False) -> Product:
    product = db.session.get(Product, product_id)
    if not product or (product.deleted_at is not None and not include_deleted):
        raise NotFoundError("Product", product_id)
    return product


def list_products(filters: ProductFilters | None = None, page: int | None = None, per_page: int | None = None) -> dict:
    filters = filters or ProductFilters()
    query = (
        db.session.query(Product)
        .filter(Product.deleted_at.is_(None), filters.criteria())
        .order_by(Product.name.asc(), Product.id.asc())
    )
    if page is None:
        products = query.all()
        return {"items": [p.to_dict() for p in products], "count": len(products)}

    result = paginate(query, page, per_page)
    return {
        "items": [p.to_dict() for p in result["items"]],
        "count": len(result["items"]),
        "pagination": result["pagination"],
    }


# ---------------------------------------------------------------------------
# Cost roll-up
# ---------------------------------------------------------------------------

def cost_of(product: Product, settings: PricingSettings | None = None) -> CostBreakdown:
    settings = settings or pricing_settings()
    return cost_service.cost_breakdown(
        materials=[
            MaterialLine(
                material_id=pm.material_id if pm.material else None,
                quantity=pm.quantity,
                unit_cost=pm.material.current_unit_cost if pm.material else None,
            )
            for pm in product.materials
        ],
        procedures=[
            ProcedureLine(
                procedure_id=pp.procedure_id if pp.procedure else None,
                cost=pp.cost,
            )
            for pp in product.procedures
        ],
        minutes_to_make=product.minutes_to_make,
        settings=settings,
    )


def _apply_suggested_prices(product: Product, settings: PricingSettings | None = None) -> bool:
    """Recompute suggested prices in place; True when they changed."""
    settings = settings or pricing_settings()
    breakdown = cost_of(product, settings)
    retail, wholesale = cost_service.suggested_prices(breakdown.total_cost, settings)
    changed = (
        to_decimal(product.suggested_retail_price or 0) != retail
        or to_decimal(product.suggested_wholesale_price or 0) != wholesale
    )
    product.suggested_retail_price = retail
    product.suggested_wholesale_price = wholesale
    return changed


def product_cost(product_id: int) -> dict:
    """Cost breakdown, suggested prices, margins and pricing status for one product."""
    settings = pricing_settings()
    product = get_product(product_id)
    breakdown = cost_of(product, settings)
    retail, wholesale = cost_service.suggested_prices(breakdown.total_cost, settings)

    return {
        "product_id": product.id,
        "product_code": product.code,
        "cost": breakdown.to_dict(),
        "suggested_retail_price": money_str(retail),
        "suggested_wholesale_price": money_str(wholesale),
        "final_retail_price": money_str(product.final_retail_price),
        "final_wholesale_price": money_str(product.final_wholesale_price),
        "retail_profit_margin": money_str(cost_service.profit_margin(product.final_retail_price, breakdown.total_cost)),
        "wholesale_profit_margin": money_str(cost_service.profit_margin(product.final_wholesale_price, breakdown.total_cost)),
        "retail_price_difference": money_str(
            cost_service.price_difference_percentage(product.final_retail_price, retail)
        ),
        "wholesale_price_difference": money_str(
            cost_service.price_difference_percentage(product.final_wholesale_price, wholesale)
        ),
        "pricing_issue": cost_service.pricing_issue(
            final_retail=product.final_retail_price,
            suggested_retail=retail,
            final_wholesale=product.final_wholesale_price,
            suggested_wholesale=wholesale,
            threshold=settings.mispricing_threshold,
        ),
    }


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------

def _ensure_unique_code(code: str, exclude_id: int | None = None) -> None:
    query = db.session.query(Product.id).filter(Product.code == code)
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    if query.first():
        raise ConflictError(f"Product code '{code}' already exists")


def _ensure_category(category_id: int | None) -> None:
    if category_id is None:
        return
    category = db.session.get(Category, category_id)
    if not category or not category.is_active:
        raise NotFoundError("Category", category_id)


def _parse_recipe(materials: list | None, procedures: list | None) -> tuple[list[tuple[int, Decimal]], list[tuple[int, Decimal]]]:
    mat_lines: list[tuple[int, Decimal]] = []
    for item in materials or []:
        if not isinstance(item, dict):
            raise ValidationError("materials must be a list of objects")
        material_id = coerce_int("material_id", item.get("material_id"))
        quantity = coerce_decimal("quantity", item.get("quantity"), places=4)
        if quantity <= 0:
            raise ValidationError("quantity must be > 0")
        mat_lines.append((material_id, quantity))

    proc_lines: list[tuple[int, Decimal]] = []
    for item in procedures or []:
        if not isinstance(item, dict):
            raise ValidationError("procedures must be a list of objects")
        procedure_id = coerce_int("procedure_id", item.get("procedure_id"))
        cost = coerce_decimal("cost", item.get("cost"))
        if cost < 0:
            raise ValidationError("cost must be >= 0")
        proc_lines.append((procedure_id, cost))

    return mat_lines, proc_lines


def _put_material(product: Product, material_id: int, quantity: Decimal) -> None:
    material = db.session.get(Material, material_id)
    if not material or not material.is_active:
        raise NotFoundError("Material", material_id)
    for line in product.materials:
        if line.material_id == material_id:
            line.quantity = quantity
            return
    product.materials.append(ProductMaterial(material_id=material_id, material=material, quantity=quantity))


def _put_procedure(product: Product, procedure_id: int, cost: Decimal) -> None:
    procedure = db.session.get(Procedure, procedure_id)
    if not procedure or not procedure.is_active:
        raise NotFoundError("Procedure", procedure_id)
    for line in product.procedures:
        if line.procedure_id == procedure_id:
            line.cost = cost
            return
    product.procedures.append(ProductProcedure(procedure_id=procedure_id, procedure=procedure, cost=cost))


def create_product(*, patch: dict, materials: list | None = None, procedures: list | None = None) -> Product:
    """
    Create a product with its recipe and derived suggested prices.

    Final prices default to the suggested ones when not supplied.
    """
    _ensure_unique_code(patch["code"])
    _ensure_category(patch.get("category_id"))
    mat_lines, proc_lines = _parse_recipe(materials, procedures)

    product = Product(
        minutes_to_make=0,
        stock=0,
        low_stock_alert=0,
        is_active=True,
    )
    for k, v in patch.items():
        if k in PRODUCT_MUTABLE_FIELDS:
            setattr(product, k, v)

    try:
        for material_id, quantity in mat_lines:
            _put_material(product, material_id, quantity)
        for procedure_id, cost in proc_lines:
            _put_procedure(product, procedure_id, cost)

        _apply_suggested_prices(product)
        if patch.get("final_retail_price") is None:
            product.final_retail_price = product.suggested_retail_price
        if patch.get("final_wholesale_price") is None:
            product.final_wholesale_price = product.suggested_wholesale_price

        db.session.add(product)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(f"Product code '{patch['code']}' already exists")
    except Exception:
        db.session.rollback()
        raise

    logger.info("Product created with id: %s code: %s", product.id, product.code)
    return product


def update_product(*, product_id: int, patch: dict, materials: list | None = None, procedures: list | None = None) -> Product:
    """
    Patch a product. When ``materials`` / ``procedures`` are given they replace
    the whole recipe; suggested prices are recomputed either way.
    """
    product = get_product(product_id)
    if "code" in patch and patch["code"] != product.code:
        _ensure_unique_code(patch["code"], exclude_id=product.id)
    if "category_id" in patch:
        _ensure_category(patch["category_id"])

    mat_lines, proc_lines = _parse_recipe(materials, procedures)

    try:
        for k, v in patch.items():
            if k in PRODUCT_MUTABLE_FIELDS:
                setattr(product, k, v)

        if materials is not None:
            keep = {mid for mid, _ in mat_lines}
            product.materials = [line for line in product.materials if line.material_id in keep]
            for material_id, quantity in mat_lines:
                _put_material(product, material_id, quantity)
        if procedures is not None:
            keep = {pid for pid, _ in proc_lines}
            product.procedures = [line for line in product.procedures if line.procedure_id in keep]
            for procedure_id, cost in proc_lines:
                _put_procedure(product, procedure_id, cost)

        _apply_suggested_prices(product)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info("Product %s updated", product.code)
    return product


def delete_product(product_id: int) -> str:
    """
    Soft delete a product that appears in any sale (its history must stay
    readable); hard delete otherwise. Returns "soft" or "hard".
    """
    product = get_product(product_id)
    used = db.session.query(SaleProduct.id).filter(SaleProduct.product_id == product.id).first() is not None

    if used:
        product.is_active = False
        product.deleted_at = utcnow()
        db.session.commit()
        logger.info("Product %s soft deleted (used in sales)", product.code)
        return "soft"

    db.session.delete(product)
    db.session.commit()
    logger.info("Product %s deleted", product.code)
    return "hard"


# ---------------------------------------------------------------------------
# Recipe lines
# ---------------------------------------------------------------------------

def set_product_material(product_id: int, material_id, quantity) -> Product:
    product = get_product(product_id)
    mat_lines, _ = _parse_recipe([{"material_id": material_id, "quantity": quantity}], None)
    try:
        _put_material(product, *mat_lines[0])
        _apply_suggested_prices(product)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return product


def remove_product_material(product_id: int, material_id: int) -> Product:
    product = get_product(product_id)
    line = next((m for m in product.materials if m.material_id == material_id), None)
    if line is None:
        raise NotFoundError("Product material", material_id)
    product.materials.remove(line)
    _apply_suggested_prices(product)
    db.session.commit()
    return product


def set_product_procedure(product_id: int, procedure_id, cost) -> Product:
    product = get_product(product_id)
    _, proc_lines = _parse_recipe(None, [{"procedure_id": procedure_id, "cost": cost}])
    try:
        _put_procedure(product, *proc_lines[0])
        _apply_suggested_prices(product)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return product


def remove_product_procedure(product_id: int, procedure_id: int) -> Product:
    product = get_product(product_id)
    line = next((p for p in product.procedures if p.procedure_id == procedure_id), None)
    if line is None:
        raise NotFoundError("Product procedure", procedure_id)
    product.procedures.remove(line)
    _apply_suggested_prices(product)
    db.session.commit()
    return product


# ---------------------------------------------------------------------------
# Bulk pricing
# ---------------------------------------------------------------------------

def recalculate_products_using_material(material_id: int) -> int:
    """Refresh suggested prices of products whose recipe uses a material. Caller commits."""
    settings = pricing_settings()
    products = (
        db.session.query(Product)
        .join(ProductMaterial, ProductMaterial.product_id == Product.id)
        .filter(ProductMaterial.material_id == material_id, Product.deleted_at.is_(None))
        .all()
    )
    changed = 0
    for product in products:
        if _apply_suggested_prices(product, settings):
            changed += 1
    return changed


def recalculate_all_prices() -> dict:
    """
    Recompute suggested prices for every active product.

    A product whose recipe is broken is counted as failed and left untouched;
    the others are saved.
    """
    settings = pricing_settings()
    products = (
        db.session.query(Product)
        .filter(Product.is_active.is_(True), Product.deleted_at.is_(None))
        .order_by(Product.id.asc())
        .all()
    )

    updated = skipped = 0
    failed_codes: list[str] = []
    for product in products:
        try:
            if _apply_suggested_prices(product, settings):
                updated += 1
            else:
                skipped += 1
        except cost_service.CostIntegrityError as exc:
            logger.error("Price recalculation failed for product %s: %s", product.code, exc)
            failed_codes.append(product.code)

    db.session.commit()
    logger.info(
        "Price recalculation finished: total=%d updated=%d skipped=%d failed=%d",
        len(products), updated, skipped, len(failed_codes),
    )
    return {
        "total_products": len(products),
        "updated_products": updated,
        "skipped_products": skipped,
        "failed_products": len(failed_codes),
        "failed_product_codes": failed_codes,
        "processed_at": to_utc_z(utcnow()),
    }


def mispriced_products(
    *,
    threshold=None,
    name_or_code: str | None = None,
    category_id: int | None = None,
    issue_type: str | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """
    Active products selling below their suggested price by more than the
    threshold percentage, worst first.
    """
    settings = pricing_settings()
    limit = to_decimal(threshold) if threshold is not None else settings.mispricing_threshold
    if limit < 0:
        raise ValidationError("threshold must be >= 0")
    if issue_type is not None and issue_type not in cost_service.PRICING_ISSUES:
        raise ValidationError(f"issue_type must be one of: {', '.join(cost_service.PRICING_ISSUES)}")

    filters = ProductFilters(name_or_code=name_or_code, category_id=category_id, is_active=True)
    products = db.session.query(Product).filter(Product.deleted_at.is_(None), filters.criteria()).all()

    alerts = []
    for product in products:
        alert = mispricing_alert(product, limit)
        if alert["pricing_issue"] == cost_service.NO_ISSUES:
            continue
        if issue_type and alert["pricing_issue"] != issue_type:
            continue
        alerts.append(alert)

    alerts.sort(key=_severity, reverse=True)

    per_page = min(per_page or 20, 100)
    page = max(page or 1, 1)
    total = len(alerts)
    start = (page - 1) * per_page
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1
    return {
        "threshold": money_str(limit),
        "items": alerts[start:start + per_page],
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


def mispricing_alert(product: Product, threshold: Decimal) -> dict:
    retail_diff = cost_service.price_difference_percentage(product.final_retail_price, product.suggested_retail_price)
    wholesale_diff = cost_service.price_difference_percentage(
        product.final_wholesale_price, product.suggested_wholesale_price
    )
    return {
        "product_id": product.id,
        "product_code": product.code,
        "product_name": product.name,
        "category_name": product.category.name if product.category else None,
        "suggested_retail_price": money_str(product.suggested_retail_price),
        "final_retail_price": money_str(product.final_retail_price),
        "retail_price_difference": money_str(retail_diff),
        "suggested_wholesale_price": money_str(product.suggested_wholesale_price),
        "final_wholesale_price": money_str(product.final_wholesale_price),
        "wholesale_price_difference": money_str(wholesale_diff),
        "pricing_issue": cost_service.pricing_issue(
            final_retail=product.final_retail_price,
            suggested_retail=product.suggested_retail_price,
            final_wholesale=product.final_wholesale_price,
            suggested_wholesale=product.suggested_wholesale_price,
            threshold=threshold,
        ),
    }


def _severity(alert: dict) -> Decimal:
    return max(
        abs(Decimal(alert["retail_price_difference"])),
        abs(Decimal(alert["wholesale_price_difference"])),
    )
