# Overview: Flask API routes for material purchases; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app, g

from ..services import purchase_service
from ..services.filters import PurchaseFilters
from ..decorators import require_auth, require_role
from .errors import DOMAIN_ERRORS, error_response


purchases_bp = Blueprint("purchases", __name__, url_prefix="/api/purchases")


@purchases_bp.get("")
@require_auth
def search_purchases_route():
    """Query params: date_from, date_to, supplier_id, material_id, page, per_page."""
    try:
        filters = PurchaseFilters.from_args(request.args)
        result = purchase_service.search_purchases(
            filters,
            page=request.args.get("page", type=int),
            per_page=request.args.get("per_page", type=int),
        )
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return jsonify(result), 200


@purchases_bp.get("/recent")
@require_auth
def recent_purchases_route():
    limit = request.args.get("limit", default=10, type=int)
    purchases = purchase_service.recent_purchases(limit)
    return jsonify({"items": [p.to_dict(include_lines=False) for p in purchases]}), 200


@purchases_bp.post("")
@require_auth
def record_purchase_route():
    """Body: {"supplier_id": 1, "purchase_date": "...", "items": [{"material_id": 2, "quantity": "10", "price": "1.50"}]}"""
    payload = request.get_json(silent=True) or {}
    try:
        purchase = purchase_service.record_purchase(payload, user_id=g.current_user.id)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to record purchase")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify(purchase.to_dict()), 201


@purchases_bp.get("/<int:purchase_id>")
@require_auth
def get_purchase_route(purchase_id: int):
    try:
        purchase = purchase_service.get_purchase(purchase_id)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return jsonify(purchase.to_dict()), 200


@purchases_bp.put("/<int:purchase_id>")
@require_auth
def update_purchase_route(purchase_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        purchase = purchase_service.update_purchase(purchase_id, payload)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update purchase %s", purchase_id)
        return jsonify({"error": "Internal server error"}), 500
    return jsonify(purchase.to_dict()), 200


@purchases_bp.delete("/<int:purchase_id>")
@require_auth
@require_role("ADMIN")
def delete_purchase_route(purchase_id: int):
    try:
        purchase_service.delete_purchase(purchase_id)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return jsonify({"ok": True}), 200
