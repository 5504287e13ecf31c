# Overview: Service-layer operations for products and customers; master-data edits and read helpers.

from __future__ import annotations

import logging
from decimal import Decimal

from ..errors import ValidationError
from ..models import Customer, Product
from ..models.catalog import LOW_STOCK_THRESHOLD
from ..models.invoices import INVOICE_STATUS_UNPAID
from ..validation import (
    ModelValidationPolicy,
    enforce_rules_customer,
    enforce_rules_product,
    to_money,
    validate_payload,
)
from . import ledger_service
from .entity_store import EntityStore
from .reconciler import apply_wallet_adjustment

logger = logging.getLogger(__name__)

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "price", "stock", "description", "image"},
    required_on_create={"name", "price", "stock"},
)

CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={"first_name", "last_name", "email", "phone", "address", "wallet_balance"},
    required_on_create={"first_name", "last_name", "email"},
)

# Maintained by the invoice ledger / reconciler only
CUSTOMER_AGGREGATE_FIELDS = {"orders", "total_spent"}

DEFAULT_RECENT_LIMIT = 5


# =============================================================================
# Products
# =============================================================================

def add_product(store: EntityStore, payload: dict) -> Product:
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
    enforce_rules_product(patch)
    product = store.run(lambda: store.create("products", **patch))
    logger.info("Added product %s (%s)", product.id, product.name)
    return product


def update_product(store: EntityStore, product_id: str, payload: dict) -> Product:
    """
    Edit product master data.

    Price changes never reach existing invoice items; their price is a
    snapshot taken when the invoice was created.
    """
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
    enforce_rules_product(patch)
    if not patch:
        return store.get("products", product_id)
    return store.run(lambda: store.update("products", product_id, **patch))


def delete_product(store: EntityStore, product_id: str) -> None:
    store.run(lambda: store.delete("products", product_id))
    logger.info("Deleted product %s", product_id)


def get_low_stock_products(store: EntityStore, threshold: int | None = None) -> list[Product]:
    """Products with 0 < stock <= threshold, lowest stock first."""
    if threshold is None:
        threshold = LOW_STOCK_THRESHOLD
    products = [p for p in store.list("products") if 0 < p.stock <= threshold]
    return sorted(products, key=lambda p: (p.stock, p.name))


# =============================================================================
# Customers
# =============================================================================

def _reject_aggregates(payload: dict | None) -> None:
    if not isinstance(payload, dict):
        return
    blocked = sorted(CUSTOMER_AGGREGATE_FIELDS & set(payload))
    if blocked:
        raise ValidationError(
            f"{', '.join(blocked)} cannot be edited; it is maintained from the customer's invoices"
        )


def add_customer(store: EntityStore, payload: dict) -> Customer:
    """New customers start with no orders and nothing spent."""
    _reject_aggregates(payload)
    patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=False)
    enforce_rules_customer(patch)
    patch.setdefault("wallet_balance", Decimal("0.00"))
    customer = store.run(
        lambda: store.create("customers", orders=0, total_spent=Decimal("0.00"), **patch)
    )
    logger.info("Added customer %s (%s)", customer.id, customer.email)
    return customer


def update_customer(store: EntityStore, customer_id: str, payload: dict) -> Customer:
    """
    Edit customer master data.

    orders / total_spent are refused. wallet_balance is not an edit field
    either; balance changes go through update_wallet_balance so they are
    journaled.
    """
    _reject_aggregates(payload)
    if isinstance(payload, dict) and "wallet_balance" in payload:
        raise ValidationError("wallet_balance cannot be edited directly; use a wallet adjustment")
    patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=True)
    enforce_rules_customer(patch)
    if not patch:
        return store.get("customers", customer_id)
    return store.run(lambda: store.update("customers", customer_id, **patch))


def delete_customer(store: EntityStore, customer_id: str) -> None:
    store.run(lambda: store.delete("customers", customer_id))
    logger.info("Deleted customer %s", customer_id)


def update_wallet_balance(store: EntityStore, customer_id: str, delta, note: str | None = None) -> Customer:
    """Top up (positive delta) or correct (negative delta) a customer's wallet."""
    def _op():
        balance = apply_wallet_adjustment(store, customer_id, delta)
        ledger_service.append_ledger_event(
            event_type=ledger_service.WALLET_ADJUSTED,
            entity_type="customer",
            entity_id=customer_id,
            amount=to_money(delta, "delta"),
            note=note,
            payload={"balance_after": balance},
            session=store.session,
        )
        return store.get("customers", customer_id)

    customer = store.run(_op)
    logger.info("Adjusted wallet for customer %s by %s", customer_id, delta)
    return customer


# =============================================================================
# Invoice read helpers
# =============================================================================

def get_invoice_items(store: EntityStore, invoice_id: str) -> list:
    store.get("invoices", invoice_id)
    return store.find("invoiceItems", invoice_id=invoice_id)


def get_customer_invoices(store: EntityStore, customer_id: str) -> list:
    """Newest first."""
    store.get("customers", customer_id)
    return store.find("invoices", customer_id=customer_id)


def get_recent_invoices(store: EntityStore, limit: int = DEFAULT_RECENT_LIMIT) -> list:
    return store.list("invoices")[:max(limit, 0)]


def get_unpaid_invoices(store: EntityStore, limit: int = DEFAULT_RECENT_LIMIT) -> list:
    return store.find("invoices", status=INVOICE_STATUS_UNPAID)[:max(limit, 0)]
