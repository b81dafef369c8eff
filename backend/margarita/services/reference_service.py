# Overview: Service-layer operations for reference data (categories, locations, procedures, suppliers, materials, customers).

"""
Simple master-data entities share one set of CRUD rules:

- names / tax ids / emails that must be unique raise ConflictError (409)
- delete is soft (is_active = False) while anything still references the
  entity, hard otherwise
- listing defaults to active rows and supports a free-text search
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from sqlalchemy import or_

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
    Supplier,
)
from ..validation import ConflictError, NotFoundError
from .filters import paginate
from .products_service import recalculate_products_using_material

logger = logging.getLogger(__name__)


def _exists(query) -> bool:
    return db.session.query(query.exists()).scalar()


@dataclass(frozen=True)
class ReferenceKind:
    label: str
    model: type
    unique_fields: tuple[str, ...]
    search_fields: tuple[str, ...]
    order_by: tuple[str, ...]
    in_use: Callable[[int], bool]


KINDS: dict[str, ReferenceKind] = {
    "category": ReferenceKind(
        label="Category",
        model=Category,
        unique_fields=("name",),
        search_fields=("name",),
        order_by=("name",),
        in_use=lambda pk: _exists(db.session.query(Product.id).filter(Product.category_id == pk)),
    ),
    "location": ReferenceKind(
        label="Location",
        model=Location,
        unique_fields=("name",),
        search_fields=("name",),
        order_by=("name",),
        in_use=lambda pk: _exists(db.session.query(Sale.id).filter(Sale.location_id == pk)),
    ),
    "procedure": ReferenceKind(
        label="Procedure",
        model=Procedure,
        unique_fields=("name",),
        search_fields=("name",),
        order_by=("name",),
        in_use=lambda pk: _exists(
            db.session.query(ProductProcedure.id).filter(ProductProcedure.procedure_id == pk)
        ),
    ),
    "material": ReferenceKind(
        label="Material",
        model=Material,
        unique_fields=("name",),
        search_fields=("name",),
        order_by=("name",),
        in_use=lambda pk: (
            _exists(db.session.query(ProductMaterial.id).filter(ProductMaterial.material_id == pk))
            or _exists(db.session.query(PurchaseMaterial.id).filter(PurchaseMaterial.material_id == pk))
        ),
    ),
    "supplier": ReferenceKind(
        label="Supplier",
        model=Supplier,
        unique_fields=("tin",),
        search_fields=("name", "tin", "email", "phone"),
        order_by=("name",),
        in_use=lambda pk: _exists(db.session.query(Purchase.id).filter(Purchase.supplier_id == pk)),
    ),
    "customer": ReferenceKind(
        label="Customer",
        model=Customer,
        unique_fields=("tin", "email"),
        search_fields=("first_name", "last_name", "email", "phone", "tin"),
        order_by=("last_name", "first_name"),
        in_use=lambda pk: _exists(db.session.query(Sale.id).filter(Sale.customer_id == pk)),
    ),
}


def _kind(kind: str) -> ReferenceKind:
    try:
        return KINDS[kind]
    except KeyError:
        raise ValueError(f"Unknown reference kind: {kind}")


def _check_unique(ref_kind: ReferenceKind, values: dict, exclude_id: int | None = None) -> None:
    for field in ref_kind.unique_fields:
        value = values.get(field)
        if value is None or value == "":
            continue
        column = getattr(ref_kind.model, field)
        query = db.session.query(ref_kind.model.id).filter(column == value)
        if exclude_id is not None:
            query = query.filter(ref_kind.model.id != exclude_id)
        if query.first():
            raise ConflictError(f"{ref_kind.label} with {field} '{value}' already exists")


def get_entity(kind: str, entity_id: int):
    ref_kind = _kind(kind)
    entity = db.session.get(ref_kind.model, entity_id)
    if entity is None:
        raise NotFoundError(ref_kind.label, entity_id)
    return entity


def list_entities(
    kind: str,
    *,
    search: str | None = None,
    include_inactive: bool = False,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    ref_kind = _kind(kind)
    query = db.session.query(ref_kind.model)
    if not include_inactive:
        query = query.filter(ref_kind.model.is_active.is_(True))
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(*(getattr(ref_kind.model, f).ilike(pattern) for f in ref_kind.search_fields)))
    query = query.order_by(*(getattr(ref_kind.model, f).asc() for f in ref_kind.order_by), ref_kind.model.id.asc())

    if page is None:
        rows = query.all()
        return {"items": [r.to_dict() for r in rows], "count": len(rows)}

    result = paginate(query, page, per_page)
    return {
        "items": [r.to_dict() for r in result["items"]],
        "count": len(result["items"]),
        "pagination": result["pagination"],
    }


def create_entity(kind: str, patch: dict):
    ref_kind = _kind(kind)
    _check_unique(ref_kind, patch)

    entity = ref_kind.model(**patch)
    if getattr(entity, "is_active", None) is None:
        entity.is_active = True
    db.session.add(entity)
    db.session.commit()
    logger.info("%s created with id: %s", ref_kind.label, entity.id)
    return entity


def update_entity(kind: str, entity_id: int, patch: dict):
    ref_kind = _kind(kind)
    entity = get_entity(kind, entity_id)
    _check_unique(ref_kind, patch, exclude_id=entity.id)

    cost_changed = (
        kind == "material"
        and "current_unit_cost" in patch
        and patch["current_unit_cost"] != entity.current_unit_cost
    )

    try:
        for k, v in patch.items():
            setattr(entity, k, v)

        if cost_changed:
            db.session.flush()
            refreshed = recalculate_products_using_material(entity.id)
            logger.info("Material %s cost changed; %d product prices refreshed", entity.name, refreshed)

        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info("%s %s updated", ref_kind.label, entity.id)
    return entity


def delete_entity(kind: str, entity_id: int) -> str:
    """Soft delete while referenced, hard delete otherwise. Returns "soft" or "hard"."""
    ref_kind = _kind(kind)
    entity = get_entity(kind, entity_id)

    if ref_kind.in_use(entity.id):
        entity.is_active = False
        db.session.commit()
        logger.info("%s %s soft deleted (still referenced)", ref_kind.label, entity.id)
        return "soft"

    db.session.delete(entity)
    db.session.commit()
    logger.info("%s %s deleted", ref_kind.label, entity.id)
    return "hard"
