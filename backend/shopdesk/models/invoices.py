from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from ..time_utils import to_iso_date, to_utc_z
from .base import DocumentMixin

INVOICE_STATUS_UNPAID = "unpaid"
INVOICE_STATUS_PAID = "paid"

INVOICE_STATUSES = (INVOICE_STATUS_UNPAID, INVOICE_STATUS_PAID)


class Invoice(DocumentMixin, db.Model):
    """
    Invoice header.

    amount is the sum of the line subtotals at creation and is only written by
    the ledger. customer_name is a display snapshot taken at creation time and
    is not kept in sync with later customer renames.
    """
    __tablename__ = "invoices"
    __table_args__ = (
        db.UniqueConstraint("invoice_number", name="uq_invoices_invoice_number"),
        db.Index("ix_invoices_customer_status", "customer_id", "status"),
    )

    # Human-readable document number (e.g., "INV-0001", "INV-M0001")
    invoice_number = db.Column(db.String(32), nullable=False)

    customer_id = db.Column(db.String(32), db.ForeignKey("customers.id"), nullable=False, index=True)
    customer_name = db.Column(db.String(255), nullable=False)

    amount = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    status = db.Column(db.String(16), nullable=False, default=INVOICE_STATUS_UNPAID, index=True)
    date = db.Column(db.Date, nullable=False)
    paid_date = db.Column(db.Date, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_paid(self) -> bool:
        return self.status == INVOICE_STATUS_PAID

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "invoice_number": self.invoice_number,
            "customer_id": self.customer_id,
            "customer_name": self.customer_name,
            "amount": str(self.amount),
            "status": self.status,
            "date": to_iso_date(self.date),
            "paid_date": to_iso_date(self.paid_date),
            "created_at": to_utc_z(self.created_at),
        }


class InvoiceItem(DocumentMixin, db.Model):
    """Individual line items on an invoice. price is a snapshot and never changes."""
    __tablename__ = "invoice_items"
    __table_args__ = (
        db.CheckConstraint("quantity >= 1", name="ck_invoice_items_quantity_positive"),
    )

    invoice_id = db.Column(db.String(32), db.ForeignKey("invoices.id"), nullable=False, index=True)
    product_id = db.Column(db.String(32), db.ForeignKey("products.id"), nullable=False, index=True)
    product_name = db.Column(db.String(255), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    price = db.Column(db.Numeric(12, 2), nullable=False)
    subtotal = db.Column(db.Numeric(12, 2), nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "invoice_id": self.invoice_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "price": str(self.price),
            "subtotal": str(self.subtotal),
            "created_at": to_utc_z(self.created_at),
        }
