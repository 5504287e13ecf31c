# Overview: Flask API routes for user administration (admin only).

from flask import Blueprint, current_app, request

from ..decorators import require_auth, require_role
from ..errors import ShopError
from ..models.auth import ROLE_ADMIN, ROLE_USER
from ..services import auth_service, session_service
from . import error_response

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_auth
@require_role(ROLE_ADMIN)
def list_users_route():
    """Query params: role (admin | sub-admin | user), default user."""
    role = request.args.get("role", ROLE_USER)
    try:
        users = auth_service.get_users_by_role(role)
    except ShopError as e:
        return error_response(e)
    return {"users": [u.to_dict() for u in users]}, 200


@users_bp.post("")
@require_auth
@require_role(ROLE_ADMIN)
def create_user_route():
    data = request.get_json(silent=True) or {}
    try:
        user = auth_service.register_user(
            data.get("email"),
            data.get("password"),
            data.get("first_name"),
            data.get("last_name"),
            role=data.get("role", ROLE_USER),
        )
    except ShopError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create user")
        return {"error": "Internal server error"}, 500
    return {"user": user.to_dict()}, 201


@users_bp.post("/sub-admins")
@require_auth
@require_role(ROLE_ADMIN)
def create_sub_admin_route():
    data = request.get_json(silent=True) or {}
    try:
        user = auth_service.create_sub_admin(
            data.get("email"), data.get("password"), data.get("first_name"), data.get("last_name"),
        )
    except ShopError as e:
        return error_response(e)
    return {"user": user.to_dict()}, 201


@users_bp.patch("/<user_id>/status")
@require_auth
@require_role(ROLE_ADMIN)
def update_status_route(user_id: str):
    data = request.get_json(silent=True) or {}
    try:
        user = auth_service.update_user_status(user_id, data.get("status"))
    except ShopError as e:
        return error_response(e)
    return {"user": user.to_dict()}, 200


@users_bp.patch("/<user_id>/email")
@require_auth
@require_role(ROLE_ADMIN)
def update_email_route(user_id: str):
    data = request.get_json(silent=True) or {}
    try:
        user = auth_service.update_user_email(user_id, data.get("email"))
    except ShopError as e:
        return error_response(e)
    return {"user": user.to_dict()}, 200


@users_bp.post("/<user_id>/password")
@require_auth
@require_role(ROLE_ADMIN)
def reset_password_route(user_id: str):
    data = request.get_json(silent=True) or {}
    try:
        auth_service.reset_user_password(user_id, data.get("password"))
    except ShopError as e:
        return error_response(e)
    return {"status": "password_reset"}, 200


@users_bp.get("/<user_id>/devices")
@require_auth
@require_role(ROLE_ADMIN)
def user_devices_route(user_id: str):
    try:
        auth_service.get_user(user_id)
    except ShopError as e:
        return error_response(e)
    return {"devices": [d.to_dict() for d in session_service.get_user_devices(user_id)]}, 200


@users_bp.delete("/<user_id>")
@require_auth
@require_role(ROLE_ADMIN)
def delete_user_route(user_id: str):
    try:
        auth_service.delete_user(user_id)
    except ShopError as e:
        return error_response(e)
    return {"status": "deleted"}, 200
