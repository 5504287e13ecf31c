# Overview: Flask API routes for payments operations; parses input and returns JSON responses.

from flask import Blueprint, current_app, request

from ..decorators import require_auth
from ..errors import ShopError
from ..services.payment_service import PaymentRecorder
from . import error_response, get_store

payments_bp = Blueprint("payments", __name__, url_prefix="/api/invoices")


@payments_bp.post("/<invoice_id>/payments")
@require_auth
def add_payment_route(invoice_id: str):
    """
    Record a payment against an invoice.

    Body: {"amount": "50.00", "method": "cash", "reference": optional,
           "notes": optional, "date": "YYYY-MM-DD" optional}

    Returns the payment and the invoice after the payment was applied.
    """
    data = request.get_json(silent=True) or {}
    if "amount" not in data or "method" not in data:
        return {"error": "amount and method are required"}, 400

    store = get_store()
    try:
        payment = PaymentRecorder(store).add_payment(
            invoice_id,
            data.get("amount"),
            data.get("method"),
            reference=data.get("reference"),
            notes=data.get("notes"),
            date=data.get("date"),
        )
        invoice = store.get("invoices", invoice_id)
    except ShopError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to record payment")
        return {"error": "Internal server error"}, 500
    return {"payment": payment.to_dict(), "invoice": invoice.to_dict()}, 201


@payments_bp.get("/<invoice_id>/payments")
@require_auth
def list_payments_route(invoice_id: str):
    try:
        payments = PaymentRecorder(get_store()).get_invoice_payments(invoice_id)
    except ShopError as e:
        return error_response(e)
    return {"items": [p.to_dict() for p in payments]}, 200


@payments_bp.get("/<invoice_id>/payments/summary")
@require_auth
def payment_summary_route(invoice_id: str):
    try:
        summary = PaymentRecorder(get_store()).get_payment_summary(invoice_id)
    except ShopError as e:
        return error_response(e)
    return summary.to_dict(), 200
