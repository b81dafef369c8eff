# Overview: Flask API routes for reference data (categories, locations, procedures, suppliers, materials, customers).

"""
Each reference entity gets the same five endpoints:

    GET    /api/<plural>            list (search, include_inactive, page, per_page)
    GET    /api/<plural>/<id>
    POST   /api/<plural>
    PUT    /api/<plural>/<id>
    DELETE /api/<plural>/<id>       ADMIN; soft delete while referenced

Blueprints are built from one factory so the rules stay identical.
"""

from flask import Blueprint, request, jsonify, current_app

from ..models import Category, Customer, GENDERS, Location, Material, Procedure, Supplier
from ..services import reference_service
from ..validation import ModelValidationPolicy, require_choice, validate_payload
from ..decorators import require_auth, require_role
from .errors import DOMAIN_ERRORS, error_response


POLICIES = {
    "category": ModelValidationPolicy(
        writable_fields={"name", "is_active"},
        required_on_create={"name"},
    ),
    "location": ModelValidationPolicy(
        writable_fields={"name", "is_active"},
        required_on_create={"name"},
    ),
    "procedure": ModelValidationPolicy(
        writable_fields={"name", "is_active"},
        required_on_create={"name"},
    ),
    "material": ModelValidationPolicy(
        writable_fields={"name", "current_unit_cost", "unit_of_measure", "is_active"},
        required_on_create={"name", "current_unit_cost"},
        non_negative={"current_unit_cost"},
    ),
    "supplier": ModelValidationPolicy(
        writable_fields={"name", "address", "tin", "phone", "email", "is_active"},
        required_on_create={"name"},
    ),
    "customer": ModelValidationPolicy(
        writable_fields={"first_name", "last_name", "gender", "phone", "address", "email", "tin", "is_active"},
        required_on_create={"first_name", "last_name"},
    ),
}

MODELS = {
    "category": Category,
    "location": Location,
    "procedure": Procedure,
    "material": Material,
    "supplier": Supplier,
    "customer": Customer,
}


def _clean(kind: str, payload: dict, *, partial: bool) -> dict:
    patch = validate_payload(model=MODELS[kind], payload=payload, policy=POLICIES[kind], partial=partial)
    if kind == "customer" and patch.get("gender"):
        patch["gender"] = require_choice("gender", patch["gender"], GENDERS)
    # Empty unique fields are stored as NULL so several rows may omit them
    for field in ("tin", "email"):
        if field in patch and patch[field] == "":
            patch[field] = None
    return patch


def make_blueprint(kind: str, plural: str) -> Blueprint:
    bp = Blueprint(plural, __name__, url_prefix=f"/api/{plural}")

    @bp.get("")
    @require_auth
    def list_route():
        include_inactive = request.args.get("include_inactive", "false").lower() == "true"
        result = reference_service.list_entities(
            kind,
            search=request.args.get("search"),
            include_inactive=include_inactive,
            page=request.args.get("page", type=int),
            per_page=request.args.get("per_page", type=int),
        )
        return jsonify(result), 200

    @bp.get("/<int:entity_id>")
    @require_auth
    def get_route(entity_id: int):
        try:
            entity = reference_service.get_entity(kind, entity_id)
        except DOMAIN_ERRORS as e:
            return error_response(e)
        return jsonify(entity.to_dict()), 200

    @bp.post("")
    @require_auth
    def create_route():
        payload = request.get_json(silent=True) or {}
        try:
            patch = _clean(kind, payload, partial=False)
            entity = reference_service.create_entity(kind, patch)
        except DOMAIN_ERRORS as e:
            return error_response(e)
        except Exception:
            current_app.logger.exception("Failed to create %s", kind)
            return jsonify({"error": "Internal server error"}), 500
        return jsonify(entity.to_dict()), 201

    @bp.put("/<int:entity_id>")
    @require_auth
    def update_route(entity_id: int):
        payload = request.get_json(silent=True) or {}
        try:
            patch = _clean(kind, payload, partial=True)
            entity = reference_service.update_entity(kind, entity_id, patch)
        except DOMAIN_ERRORS as e:
            return error_response(e)
        except Exception:
            current_app.logger.exception("Failed to update %s %s", kind, entity_id)
            return jsonify({"error": "Internal server error"}), 500
        return jsonify(entity.to_dict()), 200

    @bp.delete("/<int:entity_id>")
    @require_auth
    @require_role("ADMIN")
    def delete_route(entity_id: int):
        try:
            mode = reference_service.delete_entity(kind, entity_id)
        except DOMAIN_ERRORS as e:
            return error_response(e)
        return jsonify({"ok": True, "mode": mode}), 200

    return bp


categories_bp = make_blueprint("category", "categories")
locations_bp = make_blueprint("location", "locations")
procedures_bp = make_blueprint("procedure", "procedures")
materials_bp = make_blueprint("material", "materials")
suppliers_bp = make_blueprint("supplier", "suppliers")
customers_bp = make_blueprint("customer", "customers")

REFERENCE_BLUEPRINTS = (
    categories_bp,
    locations_bp,
    procedures_bp,
    materials_bp,
    suppliers_bp,
    customers_bp,
)
