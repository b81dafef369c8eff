# Overview: Flask API routes for reports; sales summaries, period series, analytics, profit/loss and mispricing.

from flask import Blueprint, jsonify, request

from ..decorators import require_auth
from ..services import analytics_service, products_service, profit_loss_service
from ..services.filters import SaleFilters
from .errors import DOMAIN_ERRORS, error_response, query_date


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/sales-summary")
@require_auth
def sales_summary_report():
    try:
        summary = analytics_service.sales_summary(SaleFilters.from_args(request.args))
    except DOMAIN_ERRORS as exc:
        return error_response(exc)
    return jsonify(summary.to_dict()), 200


@reports_bp.get("/sales-by-period")
@require_auth
def sales_by_period_report():
    """group_by: week | month | year; start/end bound the series and fill empty buckets."""
    try:
        series = analytics_service.sales_by_period(
            group_by=request.args.get("group_by", "month"),
            start=query_date("start"),
            end=query_date("end"),
            filters=SaleFilters.from_args(request.args),
        )
    except DOMAIN_ERRORS as exc:
        return error_response(exc)
    return jsonify({"items": series}), 200


@reports_bp.get("/weekly")
@require_auth
def weekly_report():
    return jsonify(analytics_service.weekly_summary()), 200


@reports_bp.get("/monthly")
@require_auth
def monthly_report():
    return jsonify(analytics_service.monthly_summary()), 200


@reports_bp.get("/analytics/<dimension>/<int:entity_id>")
@require_auth
def dimension_report(dimension: str, entity_id: int):
    try:
        result = analytics_service.dimension_analytics(
            dimension, entity_id, start=query_date("start"), end=query_date("end")
        )
    except DOMAIN_ERRORS as exc:
        return error_response(exc)
    return jsonify(result), 200


@reports_bp.get("/products/<int:product_id>")
@require_auth
def product_report(product_id: int):
    try:
        result = analytics_service.product_analytics(
            product_id,
            start=query_date("start"),
            end=query_date("end"),
            group_by=request.args.get("group_by", "month"),
            top=request.args.get("top", default=5, type=int),
        )
    except DOMAIN_ERRORS as exc:
        return error_response(exc)
    return jsonify(result), 200


@reports_bp.get("/top-products")
@require_auth
def top_products_report():
    try:
        items = analytics_service.top_products(
            start=query_date("start"),
            end=query_date("end"),
            limit=request.args.get("limit", default=10, type=int),
        )
    except DOMAIN_ERRORS as exc:
        return error_response(exc)
    return jsonify({"items": items}), 200


@reports_bp.get("/profit-loss")
@require_auth
def profit_loss_report():
    try:
        report = profit_loss_service.profit_loss(query_date("start"), query_date("end"))
    except DOMAIN_ERRORS as exc:
        return error_response(exc)
    return jsonify(report), 200


@reports_bp.get("/mispricing")
@require_auth
def mispricing_report():
    """threshold overrides PRICING_MISPRICING_THRESHOLD for this request."""
    try:
        result = products_service.mispriced_products(
            threshold=request.args.get("threshold"),
            name_or_code=request.args.get("name_or_code"),
            category_id=request.args.get("category_id", type=int),
            issue_type=request.args.get("issue_type"),
            page=request.args.get("page", type=int),
            per_page=request.args.get("per_page", type=int),
        )
    except DOMAIN_ERRORS as exc:
        return error_response(exc)
    return jsonify(result), 200
