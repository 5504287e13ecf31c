# Overview: Flask API routes for customers operations; parses input and returns JSON responses.

from flask import Blueprint, current_app, request

from ..decorators import require_auth, require_role
from ..errors import ShopError
from ..models.auth import ROLE_ADMIN, ROLE_SUB_ADMIN
from ..services import catalog_service
from . import error_response, get_store

customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
@require_auth
def list_customers_route():
    customers = get_store().list("customers")
    return {"items": [c.to_dict() for c in customers], "count": len(customers)}, 200


@customers_bp.get("/<customer_id>")
@require_auth
def get_customer_route(customer_id: str):
    try:
        customer = get_store().get("customers", customer_id)
    except ShopError as e:
        return error_response(e)
    return customer.to_dict(), 200


@customers_bp.post("")
@require_auth
def create_customer_route():
    payload = request.get_json(silent=True) or {}
    try:
        customer = catalog_service.add_customer(get_store(), payload)
    except ShopError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create customer")
        return {"error": "Internal server error"}, 500
    return customer.to_dict(), 201


@customers_bp.patch("/<customer_id>")
@require_auth
def update_customer_route(customer_id: str):
    """orders / total_spent / wallet_balance are rejected with 400."""
    payload = request.get_json(silent=True) or {}
    try:
        customer = catalog_service.update_customer(get_store(), customer_id, payload)
    except ShopError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update customer")
        return {"error": "Internal server error"}, 500
    return customer.to_dict(), 200


@customers_bp.delete("/<customer_id>")
@require_auth
@require_role(ROLE_ADMIN, ROLE_SUB_ADMIN)
def delete_customer_route(customer_id: str):
    try:
        catalog_service.delete_customer(get_store(), customer_id)
    except ShopError as e:
        return error_response(e)
    return {"status": "deleted"}, 200


@customers_bp.post("/<customer_id>/wallet")
@require_auth
def adjust_wallet_route(customer_id: str):
    """Body: {"delta": "50.00", "note": optional}. Negative deltas are allowed."""
    data = request.get_json(silent=True) or {}
    if "delta" not in data:
        return {"error": "delta is required"}, 400
    try:
        customer = catalog_service.update_wallet_balance(
            get_store(), customer_id, data.get("delta"), note=data.get("note"),
        )
    except ShopError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to adjust wallet")
        return {"error": "Internal server error"}, 500
    return customer.to_dict(), 200


@customers_bp.get("/<customer_id>/invoices")
@require_auth
def customer_invoices_route(customer_id: str):
    try:
        invoices = catalog_service.get_customer_invoices(get_store(), customer_id)
    except ShopError as e:
        return error_response(e)
    return {"items": [i.to_dict() for i in invoices]}, 200
