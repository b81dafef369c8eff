# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

"""
Sales routes.

POST /api/sales body:
{
    "location_id": 1,
    "customer_id": 7,               # optional, walk-in when absent
    "sale_date": "2026-03-14",      # optional, defaults to today
    "payment_method": "CARD",
    "is_wholesale": false,
    "packaging_price": "1.00",
    "final_price": "80.00",         # or "discount_percentage": "6.98", not both
    "items": [{"product_id": 3, "quantity": 2}]
}
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import sales_service
from ..services.filters import SaleFilters
from ..decorators import require_auth, require_role
from .errors import DOMAIN_ERRORS, error_response


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.get("")
@require_auth
def search_sales_route():
    """
    Query params: date_from, date_to, location_id, category_id, customer_id,
    product_id, payment_method, is_wholesale, page, per_page.
    """
    try:
        filters = SaleFilters.from_args(request.args)
        result = sales_service.search_sales(
            filters,
            page=request.args.get("page", type=int),
            per_page=request.args.get("per_page", type=int),
        )
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return jsonify(result), 200


@sales_bp.get("/recent")
@require_auth
def recent_sales_route():
    limit = request.args.get("limit", default=10, type=int)
    sales = sales_service.recent_sales(limit)
    return jsonify({"items": [s.to_dict(include_lines=False) for s in sales]}), 200


@sales_bp.get("/payment-methods")
@require_auth
def payment_methods_route():
    return jsonify({"payment_methods": sales_service.payment_methods()}), 200


@sales_bp.get("/cart-product/<int:product_id>")
@require_auth
def cart_product_route(product_id: int):
    is_wholesale = request.args.get("is_wholesale", "false").lower() == "true"
    quantity = request.args.get("quantity", default=1, type=int)
    try:
        return jsonify(sales_service.product_for_cart(product_id, is_wholesale, quantity)), 200
    except DOMAIN_ERRORS as e:
        return error_response(e)


@sales_bp.post("/preview")
@require_auth
def preview_route():
    """Price a cart without recording it."""
    payload = request.get_json(silent=True) or {}
    try:
        pricing = sales_service.cart_pricing_preview(payload)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return jsonify(pricing.to_dict()), 200


@sales_bp.post("")
@require_auth
def record_sale_route():
    payload = request.get_json(silent=True) or {}
    try:
        sale = sales_service.record_sale(payload, user_id=g.current_user.id)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to record sale")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(sale.to_dict()), 201


@sales_bp.get("/<int:sale_id>")
@require_auth
def get_sale_route(sale_id: int):
    try:
        sale = sales_service.get_sale(sale_id)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return jsonify(sale.to_dict()), 200


@sales_bp.put("/<int:sale_id>")
@require_auth
def update_sale_route(sale_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        sale = sales_service.update_sale(sale_id, payload)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update sale %s", sale_id)
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(sale.to_dict()), 200


@sales_bp.delete("/<int:sale_id>")
@require_auth
@require_role("ADMIN")
def delete_sale_route(sale_id: int):
    try:
        sales_service.delete_sale(sale_id)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete sale %s", sale_id)
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"ok": True}), 200
