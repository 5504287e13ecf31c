# Overview: Flask API routes for sign-in, sign-out and device management.

from flask import Blueprint, current_app, g, request

from ..decorators import require_auth
from ..errors import ShopError
from ..services import session_service
from . import error_response

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate and issue a bearer token bound to a device.

    Body: {"email", "password", "device": {"name", "browser", "os", "location"},
           "device_id": optional id returned by an earlier login}

    409 with code MAX_DEVICES_REACHED and the device list when a new device
    would exceed the per-user limit.
    """
    data = request.get_json(silent=True) or {}
    email = data.get("email")
    password = data.get("password")
    if not email or not password:
        return {"error": "email and password required"}, 400

    device_info = data.get("device") or {}
    if not device_info.get("browser"):
        device_info = {**device_info, "browser": request.headers.get("User-Agent")}

    try:
        result = session_service.login(email, password, device_info, data.get("device_id"))
    except ShopError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to sign in")
        return {"error": "Internal server error"}, 500

    return {
        "token": result.token,
        "user": result.user.to_dict(),
        "device": result.device.to_dict(),
    }, 200


@auth_bp.post("/logout")
@require_auth
def logout_route():
    session_service.logout(g.token)
    return {"status": "logged_out"}, 200


@auth_bp.get("/me")
@require_auth
def me_route():
    return {"user": g.current_user.to_dict(), "device": g.device.to_dict()}, 200


@auth_bp.get("/devices")
@require_auth
def list_devices_route():
    devices = session_service.get_user_devices(g.current_user.id)
    return {
        "devices": [d.to_dict() for d in devices],
        "current_device_id": g.device.id,
    }, 200


@auth_bp.delete("/devices/<device_id>")
@require_auth
def remove_device_route(device_id: str):
    try:
        session_service.remove_user_device(g.current_user.id, device_id)
    except ShopError as e:
        return error_response(e)
    return {"status": "removed"}, 200
