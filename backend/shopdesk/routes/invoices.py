# Overview: Flask API routes for invoices; create, delete, mark paid, merge and line items.

from flask import Blueprint, current_app, request

from ..decorators import require_auth
from ..errors import ShopError
from ..models.invoices import INVOICE_STATUSES
from ..services import catalog_service
from ..services.catalog_service import DEFAULT_RECENT_LIMIT
from ..services.invoice_ledger import InvoiceLedger
from . import error_response, get_store, parse_limit

invoices_bp = Blueprint("invoices", __name__, url_prefix="/api/invoices")


def _invoice_json(store, invoice, include_items: bool = False) -> dict:
    data = invoice.to_dict()
    if include_items:
        data["items"] = [i.to_dict() for i in store.find("invoiceItems", invoice_id=invoice.id)]
    return data


@invoices_bp.get("")
@require_auth
def list_invoices_route():
    """
    Newest first.

    Query params:
    - status: unpaid | paid (optional)
    - customer_id: filter by customer (optional)
    """
    status = request.args.get("status")
    customer_id = request.args.get("customer_id")
    if status and status not in INVOICE_STATUSES:
        return {"error": f"Invalid status: {status}"}, 400

    filters = {}
    if status:
        filters["status"] = status
    if customer_id:
        filters["customer_id"] = customer_id
    invoices = get_store().find("invoices", **filters)
    return {"items": [i.to_dict() for i in invoices], "count": len(invoices)}, 200


@invoices_bp.get("/recent")
@require_auth
def recent_invoices_route():
    try:
        limit = parse_limit(request.args.get("limit"), DEFAULT_RECENT_LIMIT)
    except ShopError as e:
        return error_response(e)
    invoices = catalog_service.get_recent_invoices(get_store(), limit)
    return {"items": [i.to_dict() for i in invoices]}, 200


@invoices_bp.get("/unpaid")
@require_auth
def unpaid_invoices_route():
    try:
        limit = parse_limit(request.args.get("limit"), DEFAULT_RECENT_LIMIT)
    except ShopError as e:
        return error_response(e)
    invoices = catalog_service.get_unpaid_invoices(get_store(), limit)
    return {"items": [i.to_dict() for i in invoices]}, 200


@invoices_bp.get("/<invoice_id>")
@require_auth
def get_invoice_route(invoice_id: str):
    store = get_store()
    try:
        invoice = store.get("invoices", invoice_id)
    except ShopError as e:
        return error_response(e)
    return _invoice_json(store, invoice, include_items=True), 200


@invoices_bp.get("/<invoice_id>/items")
@require_auth
def invoice_items_route(invoice_id: str):
    try:
        items = catalog_service.get_invoice_items(get_store(), invoice_id)
    except ShopError as e:
        return error_response(e)
    return {"items": [i.to_dict() for i in items]}, 200


@invoices_bp.post("")
@require_auth
def create_invoice_route():
    """
    Body: {"customer_id": "...", "lines": [{"product_id": "...", "quantity": 2}], "date": "YYYY-MM-DD"}
    """
    data = request.get_json(silent=True) or {}
    store = get_store()
    try:
        invoice = InvoiceLedger(store).create_invoice(
            data.get("customer_id"), data.get("lines"), date=data.get("date"),
        )
    except ShopError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create invoice")
        return {"error": "Internal server error"}, 500
    return _invoice_json(store, invoice, include_items=True), 201


@invoices_bp.delete("/<invoice_id>")
@require_auth
def delete_invoice_route(invoice_id: str):
    try:
        InvoiceLedger(get_store()).delete_invoice(invoice_id)
    except ShopError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete invoice")
        return {"error": "Internal server error"}, 500
    return {"status": "deleted"}, 200


@invoices_bp.post("/<invoice_id>/mark-paid")
@require_auth
def mark_paid_route(invoice_id: str):
    """Body: {"paid_date": "YYYY-MM-DD"} (optional, defaults to today)."""
    data = request.get_json(silent=True) or {}
    try:
        invoice = InvoiceLedger(get_store()).mark_invoice_as_paid(invoice_id, data.get("paid_date"))
    except ShopError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to mark invoice paid")
        return {"error": "Internal server error"}, 500
    return invoice.to_dict(), 200


@invoices_bp.post("/merge")
@require_auth
def merge_invoices_route():
    """Body: {"customer_id": "...", "invoice_ids": ["...", "..."]}"""
    data = request.get_json(silent=True) or {}
    store = get_store()
    try:
        merged = InvoiceLedger(store).merge_invoices(data.get("customer_id"), data.get("invoice_ids"))
    except ShopError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to merge invoices")
        return {"error": "Internal server error"}, 500
    return _invoice_json(store, merged, include_items=True), 201
