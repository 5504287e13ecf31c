from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from ..time_utils import to_utc_z
from .base import DocumentMixin


class Customer(DocumentMixin, db.Model):
    """
    Customer master data.

    Denormalized aggregates: orders and total_spent are maintained by the
    invoice ledger only. wallet_balance may go negative to represent debt.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.Index("ix_customers_email", "email"),
    )

    first_name = db.Column(db.String(128), nullable=False)
    last_name = db.Column(db.String(128), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=True)
    address = db.Column(db.Text, nullable=True)

    orders = db.Column(db.Integer, nullable=False, default=0)
    total_spent = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    wallet_balance = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal("0.00"))

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "orders": self.orders,
            "total_spent": str(self.total_spent),
            "wallet_balance": str(self.wallet_balance),
            "created_at": to_utc_z(self.created_at),
        }
