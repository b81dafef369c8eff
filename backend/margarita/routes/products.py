# Overview: Flask API routes for products operations; parses input and returns JSON responses.

"""
Product catalog routes.

Recipe lines (materials with quantities, procedures with costs) may be sent
with create/update or edited one at a time. Every recipe change recomputes
the product's suggested prices.
"""
from flask import Blueprint, request, jsonify, current_app

from ..models import Product
from ..services import products_service
from ..services.filters import ProductFilters
from ..validation import ModelValidationPolicy, validate_payload
from ..decorators import require_auth, require_role
from .errors import DOMAIN_ERRORS, error_response

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields=set(products_service.PRODUCT_MUTABLE_FIELDS),
    required_on_create={"name", "code"},
    non_negative={"minutes_to_make", "final_retail_price", "final_wholesale_price", "low_stock_alert"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _split_recipe(payload: dict):
    payload = dict(payload)
    materials = payload.pop("materials", None)
    procedures = payload.pop("procedures", None)
    return payload, materials, procedures


@products_bp.get("")
@require_auth
def list_products_route():
    """
    Query params: name_or_code, category_id, material_id, procedure_id,
    is_active (default true), low_stock, page, per_page.
    """
    try:
        filters = ProductFilters.from_args(request.args)
        result = products_service.list_products(
            filters,
            page=request.args.get("page", type=int),
            per_page=request.args.get("per_page", type=int),
        )
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return jsonify(result), 200


@products_bp.get("/<int:product_id>")
@require_auth
def get_product_route(product_id: int):
    try:
        product = products_service.get_product(product_id)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return jsonify(product.to_dict(include_recipe=True)), 200


@products_bp.get("/<int:product_id>/cost")
@require_auth
def product_cost_route(product_id: int):
    try:
        return jsonify(products_service.product_cost(product_id)), 200
    except DOMAIN_ERRORS as e:
        return error_response(e)


@products_bp.post("")
@require_auth
def create_product_route():
    payload, materials, procedures = _split_recipe(request.get_json(silent=True) or {})

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        created = products_service.create_product(patch=patch, materials=materials, procedures=procedures)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(created.to_dict(include_recipe=True)), 201


@products_bp.put("/<int:product_id>")
@require_auth
def update_product_route(product_id: int):
    payload, materials, procedures = _split_recipe(request.get_json(silent=True) or {})

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        updated = products_service.update_product(
            product_id=product_id, patch=patch, materials=materials, procedures=procedures
        )
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update product %s", product_id)
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(updated.to_dict(include_recipe=True)), 200


@products_bp.delete("/<int:product_id>")
@require_auth
@require_role("ADMIN")
def delete_product_route(product_id: int):
    try:
        mode = products_service.delete_product(product_id)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return jsonify({"ok": True, "mode": mode}), 200


@products_bp.put("/<int:product_id>/materials/<int:material_id>")
@require_auth
def set_material_route(product_id: int, material_id: int):
    data = request.get_json(silent=True) or {}
    try:
        product = products_service.set_product_material(product_id, material_id, data.get("quantity"))
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return jsonify(product.to_dict(include_recipe=True)), 200


@products_bp.delete("/<int:product_id>/materials/<int:material_id>")
@require_auth
def remove_material_route(product_id: int, material_id: int):
    try:
        product = products_service.remove_product_material(product_id, material_id)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return jsonify(product.to_dict(include_recipe=True)), 200


@products_bp.put("/<int:product_id>/procedures/<int:procedure_id>")
@require_auth
def set_procedure_route(product_id: int, procedure_id: int):
    data = request.get_json(silent=True) or {}
    try:
        product = products_service.set_product_procedure(product_id, procedure_id, data.get("cost"))
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return jsonify(product.to_dict(include_recipe=True)), 200


@products_bp.delete("/<int:product_id>/procedures/<int:procedure_id>")
@require_auth
def remove_procedure_route(product_id: int, procedure_id: int):
    try:
        product = products_service.remove_product_procedure(product_id, procedure_id)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return jsonify(product.to_dict(include_recipe=True)), 200


@products_bp.post("/recalculate-prices")
@require_auth
@require_role("ADMIN")
def recalculate_prices_route():
    try:
        result = products_service.recalculate_all_prices()
    except Exception:
        current_app.logger.exception("Failed to recalculate prices")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify(result), 200
