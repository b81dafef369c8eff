# Overview: Flask API routes for to-do tasks.

from flask import Blueprint, request, jsonify

from ..services import task_service
from ..decorators import require_auth
from .errors import DOMAIN_ERRORS, error_response, query_date


tasks_bp = Blueprint("tasks", __name__, url_prefix="/api/tasks")


@tasks_bp.get("")
@require_auth
def list_tasks_route():
    try:
        tasks = task_service.list_tasks(
            status=request.args.get("status"),
            start=query_date("start"),
            end=query_date("end"),
        )
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return jsonify({"items": [t.to_dict() for t in tasks]}), 200


@tasks_bp.get("/buckets")
@require_auth
def task_buckets_route():
    return jsonify(task_service.task_buckets()), 200


@tasks_bp.post("")
@require_auth
def create_task_route():
    try:
        task = task_service.create_task(request.get_json(silent=True) or {})
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return jsonify(task.to_dict()), 201


@tasks_bp.put("/<int:task_id>")
@require_auth
def update_task_route(task_id: int):
    try:
        task = task_service.update_task(task_id, request.get_json(silent=True) or {})
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return jsonify(task.to_dict()), 200


@tasks_bp.post("/<int:task_id>/complete")
@require_auth
def complete_task_route(task_id: int):
    try:
        task = task_service.complete_task(task_id)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return jsonify(task.to_dict()), 200


@tasks_bp.post("/<int:task_id>/reopen")
@require_auth
def reopen_task_route(task_id: int):
    try:
        task = task_service.reopen_task(task_id)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return jsonify(task.to_dict()), 200


@tasks_bp.delete("/<int:task_id>")
@require_auth
def delete_task_route(task_id: int):
    try:
        task_service.delete_task(task_id)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return jsonify({"ok": True}), 200
