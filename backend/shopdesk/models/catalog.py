from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from ..time_utils import to_utc_z
from .base import DocumentMixin

STATUS_IN_STOCK = "In Stock"
STATUS_LOW_STOCK = "Low Stock"
STATUS_OUT_OF_STOCK = "Out of Stock"

LOW_STOCK_THRESHOLD = 10


def stock_status(stock: int, threshold: int = LOW_STOCK_THRESHOLD) -> str:
    if stock <= 0:
        return STATUS_OUT_OF_STOCK
    if stock <= threshold:
        return STATUS_LOW_STOCK
    return STATUS_IN_STOCK


class Product(DocumentMixin, db.Model):
    """
    Product master data.

    stock is written by inventory edits and by the invoice ledger only.
    status is never stored; it is derived from stock on read.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
        db.CheckConstraint("price >= 0", name="ck_products_price_non_negative"),
        db.Index("ix_products_name", "name"),
    )

    name = db.Column(db.String(255), nullable=False)
    price = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    stock = db.Column(db.Integer, nullable=False, default=0)
    description = db.Column(db.Text, nullable=True)
    image = db.Column(db.String(512), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def status(self) -> str:
        return stock_status(self.stock or 0)

    def to_dict(self, low_stock_threshold: int = LOW_STOCK_THRESHOLD) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "price": str(self.price),
            "stock": self.stock,
            "status": stock_status(self.stock or 0, low_stock_threshold),
            "description": self.description,
            "image": self.image,
            "created_at": to_utc_z(self.created_at),
        }
