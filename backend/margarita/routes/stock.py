# Overview: Flask API routes for product stock; movements, alert levels and stock lists.

from flask import Blueprint, request, jsonify

from ..services import stock_service
from ..decorators import require_auth
from .errors import DOMAIN_ERRORS, error_response


stock_bp = Blueprint("stock", __name__, url_prefix="/api/stock")


@stock_bp.post("/<int:product_id>")
@require_auth
def update_stock_route(product_id: int):
    """Body: {"update_type": "ADD" | "REMOVE" | "SET", "quantity": 5, "reason": "..."}"""
    data = request.get_json(silent=True) or {}
    try:
        result = stock_service.update_stock(
            product_id,
            data.get("update_type"),
            data.get("quantity"),
            reason=data.get("reason") or "MANUAL",
        )
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return jsonify(result.to_dict()), 200


@stock_bp.put("/<int:product_id>/limit")
@require_auth
def update_stock_limit_route(product_id: int):
    data = request.get_json(silent=True) or {}
    try:
        product = stock_service.update_stock_limit(product_id, data.get("low_stock_alert"))
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return jsonify(stock_service.stock_alert_dict(product)), 200


@stock_bp.get("/low")
@require_auth
def low_stock_route():
    limit = request.args.get("limit", type=int)
    products = stock_service.low_stock_products(limit)
    return jsonify({"items": [stock_service.stock_alert_dict(p) for p in products]}), 200


@stock_bp.get("/negative")
@require_auth
def negative_stock_route():
    products = stock_service.negative_stock_products()
    return jsonify({"items": [stock_service.stock_alert_dict(p) for p in products]}), 200


@stock_bp.get("/overview")
@require_auth
def stock_overview_route():
    return jsonify(stock_service.stock_overview()), 200
