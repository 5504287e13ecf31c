from __future__ import annotations

from ..extensions import db
from ..time_utils import to_iso_date, to_utc_z
from .base import DocumentMixin

METHOD_CASH = "cash"
METHOD_BANK_TRANSFER = "bank_transfer"
METHOD_CREDIT_CARD = "credit_card"
METHOD_UPI = "upi"
METHOD_CHEQUE = "cheque"
METHOD_WALLET = "wallet"

PAYMENT_METHODS = (
    METHOD_CASH,
    METHOD_BANK_TRANSFER,
    METHOD_CREDIT_CARD,
    METHOD_UPI,
    METHOD_CHEQUE,
    METHOD_WALLET,
)


class Payment(DocumentMixin, db.Model):
    """
    Payment received against an invoice.

    IMMUTABLE: payments are append-only; they are never updated or deleted.
    """
    __tablename__ = "payments"
    __table_args__ = (
        db.CheckConstraint("amount > 0", name="ck_payments_amount_positive"),
    )

    invoice_id = db.Column(db.String(32), db.ForeignKey("invoices.id"), nullable=False, index=True)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    method = db.Column(db.String(32), nullable=False)
    reference = db.Column(db.String(128), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    date = db.Column(db.Date, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "invoice_id": self.invoice_id,
            "amount": str(self.amount),
            "method": self.method,
            "reference": self.reference,
            "notes": self.notes,
            "date": to_iso_date(self.date),
            "created_at": to_utc_z(self.created_at),
        }
