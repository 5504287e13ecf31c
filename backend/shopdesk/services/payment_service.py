# Overview: Service-layer operations for payments; records payments (including wallet debits) against invoices.

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal

from ..errors import ValidationError
from ..models.payments import METHOD_WALLET, PAYMENT_METHODS
from ..time_utils import parse_iso_date, today
from ..validation import to_money
from . import ledger_service
from .entity_store import EntityStore
from .reconciler import apply_payment_recorded, apply_wallet_debit

logger = logging.getLogger(__name__)

"""
Payment invariants

- Payments are append-only. They are never edited or deleted.
- A wallet payment debits the customer's wallet in the same transaction as
  the payment insert; a shortfall leaves both untouched.
- Once the payments on an invoice cover its amount the invoice is paid and
  paid_date is the date of the covering payment.
- Payments on an already paid invoice are accepted and recorded.
"""


@dataclass(frozen=True)
class PaymentSummary:
    invoice_id: str
    invoice_amount: Decimal
    total_paid: Decimal
    remaining: Decimal
    payment_count: int

    def to_dict(self) -> dict:
        return {
            "invoice_id": self.invoice_id,
            "invoice_amount": str(self.invoice_amount),
            "total_paid": str(self.total_paid),
            "remaining": str(self.remaining),
            "payment_count": self.payment_count,
        }


class PaymentRecorder:
    def __init__(self, store: EntityStore):
        self.store = store

    def add_payment(self, invoice_id: str, amount, method: str, reference: str | None = None,
                    notes: str | None = None, date=None):
        """
        Record a payment against invoice_id.

        Raises:
            ValidationError: amount <= 0 or method not one of PAYMENT_METHODS
            NotFoundError: invoice does not exist
            InsufficientBalanceError: wallet payment larger than the wallet balance
        """
        amount = to_money(amount)
        if amount <= 0:
            raise ValidationError("Payment amount must be greater than zero")
        if method not in PAYMENT_METHODS:
            raise ValidationError(
                f"Invalid payment method: {method}. Must be one of {', '.join(PAYMENT_METHODS)}"
            )
        try:
            paid_on = parse_iso_date(date) or today()
        except ValueError:
            raise ValidationError("date must be an ISO-8601 date")
        reference = (reference or "").strip() or None
        notes = (notes or "").strip() or None

        def _op(steps: list[str]):
            invoice = self.store.get("invoices", invoice_id, lock=True)

            if method == METHOD_WALLET:
                balance = apply_wallet_debit(self.store, invoice.customer_id, amount)
                steps.append("wallet")
                ledger_service.append_ledger_event(
                    event_type=ledger_service.WALLET_DEBITED,
                    entity_type="customer",
                    entity_id=invoice.customer_id,
                    amount=amount,
                    note=invoice.invoice_number,
                    payload={"balance_after": balance},
                    session=self.store.session,
                )

            payment = self.store.create(
                "payments",
                invoice_id=invoice.id,
                amount=amount,
                method=method,
                reference=reference,
                notes=notes,
                date=paid_on,
            )
            steps.append("payment")

            total_paid = apply_payment_recorded(self.store, invoice, payment)
            steps.append("status")

            ledger_service.append_ledger_event(
                event_type=ledger_service.PAYMENT_RECORDED,
                entity_type="payment",
                entity_id=payment.id,
                amount=amount,
                note=invoice.invoice_number,
                payload={"invoice_id": invoice.id, "method": method, "total_paid": total_paid},
                session=self.store.session,
            )
            steps.append("journal")
            return payment

        payment = self.store.run_steps("add_payment", _op)
        logger.info("Recorded %s payment of %s on invoice %s", method, amount, invoice_id)
        return payment

    def get_invoice_payments(self, invoice_id: str) -> list:
        """Payments for an invoice, newest first."""
        self.store.get("invoices", invoice_id)
        return self.store.find("payments", invoice_id=invoice_id)

    def get_payment_summary(self, invoice_id: str) -> PaymentSummary:
        invoice = self.store.get("invoices", invoice_id)
        payments = self.store.find("payments", invoice_id=invoice_id)
        total_paid = sum((p.amount for p in payments), Decimal("0.00"))
        remaining = max(invoice.amount - total_paid, Decimal("0.00"))
        return PaymentSummary(
            invoice_id=invoice.id,
            invoice_amount=invoice.amount,
            total_paid=total_paid,
            remaining=remaining,
            payment_count=len(payments),
        )
