# Overview: Aggregate rules for stock, customer totals, wallet balance and invoice status.

from __future__ import annotations

import logging
from decimal import Decimal

from ..errors import InsufficientBalanceError, ValidationError
from ..models.invoices import INVOICE_STATUS_PAID
from ..validation import to_money

logger = logging.getLogger(__name__)

"""
Reconciler invariants (authoritative)

These functions are the only code that changes product stock, customer
orders / total_spent / wallet_balance, or derives invoice status from
payments. Each runs inside the caller's store transaction.

- Creating an invoice takes each line's quantity out of stock and adds one
  order and the invoice amount to the customer.
- Deleting an invoice is the exact inverse.
- A merge passes adjust_stock=False / restore_stock=False so the items moving
  from the source invoices to the merged one never touch stock.
"""


def apply_invoice_created(store, invoice, items, adjust_stock: bool = True) -> None:
    if adjust_stock:
        for item in items:
            product = store.get("products", item.product_id, lock=True)
            if product.stock < item.quantity:
                raise ValidationError(
                    f"Insufficient stock for {product.name}: available {product.stock}, requested {item.quantity}"
                )
            store.increment("products", item.product_id, stock=-item.quantity)

    store.increment("customers", invoice.customer_id, orders=1, total_spent=invoice.amount)


def apply_invoice_deleted(store, invoice, items, restore_stock: bool = True) -> None:
    if restore_stock:
        restore_invoice_stock(store, items)
    reverse_invoice_totals(store, invoice)


def restore_invoice_stock(store, items) -> None:
    for item in items:
        store.increment("products", item.product_id, stock=item.quantity)


def reverse_invoice_totals(store, invoice) -> None:
    store.increment("customers", invoice.customer_id, orders=-1, total_spent=-invoice.amount)


def apply_payment_recorded(store, invoice, payment) -> Decimal:
    """
    Flip the invoice to paid once its payments cover the amount.

    Returns the total paid including this payment. An invoice that is already
    paid keeps its original paid_date.
    """
    total_paid = sum(
        (p.amount for p in store.find("payments", invoice_id=invoice.id)),
        Decimal("0.00"),
    )
    if not invoice.is_paid and total_paid >= invoice.amount:
        store.update("invoices", invoice.id, status=INVOICE_STATUS_PAID, paid_date=payment.date)
        logger.info("Invoice %s fully paid (%s of %s)", invoice.invoice_number, total_paid, invoice.amount)
    return total_paid


def apply_wallet_debit(store, customer_id: str, amount) -> Decimal:
    """
    Take amount out of the customer's wallet.

    The balance is read under row lock; a shortfall raises
    InsufficientBalanceError before anything is written.
    """
    amount = to_money(amount)
    customer = store.get("customers", customer_id, lock=True)
    available = customer.wallet_balance or Decimal("0.00")
    if available < amount:
        raise InsufficientBalanceError(available, amount)
    customer = store.increment("customers", customer_id, wallet_balance=-amount)
    return customer.wallet_balance


def apply_wallet_adjustment(store, customer_id: str, delta) -> Decimal:
    """Manual top-up (positive) or correction (negative); the balance may go below zero."""
    delta = to_money(delta, "delta")
    customer = store.increment("customers", customer_id, wallet_balance=delta)
    return customer.wallet_balance
