# Overview: Flask API routes for products operations; parses input and returns JSON responses.

"""
Product routes.

All routes require authentication. Deleting a product requires the admin or
sub-admin role and is refused while any invoice line references it.
"""
from flask import Blueprint, current_app, request

from ..decorators import require_auth, require_role
from ..errors import ShopError
from ..models.auth import ROLE_ADMIN, ROLE_SUB_ADMIN
from ..services import catalog_service
from . import error_response, get_store

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _product_json(product) -> dict:
    return product.to_dict(low_stock_threshold=current_app.config["LOW_STOCK_THRESHOLD"])


@products_bp.get("")
@require_auth
def list_products_route():
    products = get_store().list("products")
    return {"items": [_product_json(p) for p in products], "count": len(products)}, 200


@products_bp.get("/low-stock")
@require_auth
def low_stock_route():
    """Query params: threshold (int, default LOW_STOCK_THRESHOLD)."""
    threshold = request.args.get("threshold", type=int)
    if threshold is None:
        threshold = current_app.config["LOW_STOCK_THRESHOLD"]
    products = catalog_service.get_low_stock_products(get_store(), threshold)
    return {"items": [_product_json(p) for p in products], "threshold": threshold}, 200


@products_bp.get("/<product_id>")
@require_auth
def get_product_route(product_id: str):
    try:
        product = get_store().get("products", product_id)
    except ShopError as e:
        return error_response(e)
    return _product_json(product), 200


@products_bp.post("")
@require_auth
def create_product_route():
    payload = request.get_json(silent=True) or {}
    try:
        product = catalog_service.add_product(get_store(), payload)
    except ShopError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create product")
        return {"error": "Internal server error"}, 500
    return _product_json(product), 201


@products_bp.patch("/<product_id>")
@require_auth
def update_product_route(product_id: str):
    payload = request.get_json(silent=True) or {}
    try:
        product = catalog_service.update_product(get_store(), product_id, payload)
    except ShopError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update product")
        return {"error": "Internal server error"}, 500
    return _product_json(product), 200


@products_bp.delete("/<product_id>")
@require_auth
@require_role(ROLE_ADMIN, ROLE_SUB_ADMIN)
def delete_product_route(product_id: str):
    try:
        catalog_service.delete_product(get_store(), product_id)
    except ShopError as e:
        return error_response(e)
    return {"status": "deleted"}, 200
