# Overview: Flask API routes for expenses; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app, g

from ..services import expense_service
from ..services.filters import ExpenseFilters
from ..decorators import require_auth
from .errors import DOMAIN_ERRORS, error_response


expenses_bp = Blueprint("expenses", __name__, url_prefix="/api/expenses")


@expenses_bp.get("")
@require_auth
def search_expenses_route():
    """Query params: description, date_from, date_to, expense_type, is_purchase, page, per_page."""
    try:
        filters = ExpenseFilters.from_args(request.args)
        result = expense_service.search_expenses(
            filters,
            page=request.args.get("page", type=int),
            per_page=request.args.get("per_page", type=int),
        )
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return jsonify(result), 200


@expenses_bp.get("/types")
@require_auth
def expense_types_route():
    return jsonify({"expense_types": expense_service.expense_types()}), 200


@expenses_bp.get("/recent")
@require_auth
def recent_expenses_route():
    limit = request.args.get("limit", default=10, type=int)
    return jsonify({"items": [e.to_dict() for e in expense_service.recent_expenses(limit)]}), 200


@expenses_bp.get("/breakdown")
@require_auth
def breakdown_route():
    try:
        result = expense_service.breakdown_by_type(ExpenseFilters.from_args(request.args))
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return jsonify(result), 200


@expenses_bp.post("")
@require_auth
def create_expense_route():
    payload = request.get_json(silent=True) or {}
    try:
        expense = expense_service.create_expense(payload, user_id=g.current_user.id)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create expense")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify(expense.to_dict()), 201


@expenses_bp.get("/<int:expense_id>")
@require_auth
def get_expense_route(expense_id: int):
    try:
        expense = expense_service.get_expense(expense_id)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return jsonify(expense.to_dict()), 200


@expenses_bp.put("/<int:expense_id>")
@require_auth
def update_expense_route(expense_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        expense = expense_service.update_expense(expense_id, payload)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return jsonify(expense.to_dict()), 200


@expenses_bp.delete("/<int:expense_id>")
@require_auth
def delete_expense_route(expense_id: int):
    try:
        expense_service.delete_expense(expense_id)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return jsonify({"ok": True}), 200
