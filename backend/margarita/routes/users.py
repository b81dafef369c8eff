# Overview: Flask API routes for user administration; ADMIN only.

from flask import Blueprint, request, jsonify, current_app

from ..services import auth_service, session_service
from ..decorators import require_auth, require_role
from .errors import DOMAIN_ERRORS, error_response


users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_auth
@require_role("ADMIN")
def list_users_route():
    include_inactive = request.args.get("include_inactive", "false").lower() == "true"
    users = auth_service.list_users(include_inactive=include_inactive)
    return jsonify({"items": [u.to_dict() for u in users], "count": len(users)}), 200


@users_bp.post("")
@require_auth
@require_role("ADMIN")
def create_user_route():
    data = request.get_json(silent=True) or {}
    try:
        user = auth_service.create_user(
            username=data.get("username"),
            password=data.get("password"),
            role=data.get("role", "USER"),
        )
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create user")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"user": user.to_dict()}), 201


@users_bp.patch("/<int:user_id>")
@require_auth
@require_role("ADMIN")
def update_user_route(user_id: int):
    data = request.get_json(silent=True) or {}
    try:
        user = auth_service.update_user(
            user_id,
            role=data.get("role"),
            is_active=data.get("is_active"),
            password=data.get("password"),
        )
        if user.is_active is False or "password" in data:
            session_service.revoke_all_user_sessions(user.id)
    except DOMAIN_ERRORS as e:
        return error_response(e)

    return jsonify({"user": user.to_dict()}), 200
