# Overview: Service-layer operations for invoices; creation, deletion, mark-paid and merge with their side effects.

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal

from ..errors import ReferentialIntegrityError, ValidationError
from ..models.invoices import INVOICE_STATUS_PAID, INVOICE_STATUS_UNPAID
from ..time_utils import parse_iso_date, today
from ..validation import MONEY_QUANTIZER, to_quantity
from . import ledger_service
from .document_service import DOC_INVOICE, DOC_MERGED_INVOICE, next_document_number
from .entity_store import EntityStore
from .reconciler import apply_invoice_created, restore_invoice_stock, reverse_invoice_totals

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InvoiceLine:
    product_id: str
    quantity: int


def _coerce_line(line, index: int) -> InvoiceLine:
    if isinstance(line, InvoiceLine):
        product_id, quantity = line.product_id, line.quantity
    elif isinstance(line, Mapping):
        product_id, quantity = line.get("product_id"), line.get("quantity")
    else:
        raise ValidationError(f"Line {index}: expected an object with product_id and quantity")

    if not product_id:
        raise ValidationError(f"Line {index}: product_id is required")
    return InvoiceLine(product_id=str(product_id), quantity=to_quantity(quantity, f"Line {index} quantity"))


def _coerce_date(value, field: str):
    if value is None:
        return today()
    try:
        parsed = parse_iso_date(value)
    except ValueError:
        raise ValidationError(f"{field} must be an ISO-8601 date")
    return parsed or today()


class InvoiceLedger:
    """
    Owner of invoice creation, deletion and merge.

    Every public operation is one store transaction: either all of its
    writes (invoice, items, stock, customer aggregates, journal) land, or
    none do.
    """

    def __init__(self, store: EntityStore):
        self.store = store

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create_invoice(self, customer_id: str, lines, date=None):
        """
        Create an unpaid invoice for customer_id.

        lines: iterable of {"product_id": ..., "quantity": ...} (or InvoiceLine).
        Quantities for the same product are summed before the stock check.
        Prices are snapshotted from the products at call time.
        """
        if not customer_id:
            raise ValidationError("customer_id is required")
        invoice_date = _coerce_date(date, "date")
        if lines is None:
            lines = []
        if not isinstance(lines, (list, tuple)):
            raise ValidationError("lines must be a list of line items")
        requested = [_coerce_line(line, i) for i, line in enumerate(lines, start=1)]
        if not requested:
            raise ValidationError("An invoice needs at least one line item")

        def _op(steps: list[str]):
            customer = self.store.get("customers", customer_id)
            products = self._check_stock(requested)

            amount = sum(
                (products[line.product_id].price * line.quantity for line in requested),
                Decimal("0.00"),
            ).quantize(MONEY_QUANTIZER)

            invoice_number = next_document_number(document_type=DOC_INVOICE, session=self.store.session)
            invoice = self.store.create(
                "invoices",
                invoice_number=invoice_number,
                customer_id=customer.id,
                customer_name=customer.full_name,
                amount=amount,
                status=INVOICE_STATUS_UNPAID,
                date=invoice_date,
                paid_date=None,
            )
            steps.append("invoice")

            items = []
            for line in requested:
                product = products[line.product_id]
                items.append(self.store.create(
                    "invoiceItems",
                    invoice_id=invoice.id,
                    product_id=product.id,
                    product_name=product.name,
                    quantity=line.quantity,
                    price=product.price,
                    subtotal=(product.price * line.quantity).quantize(MONEY_QUANTIZER),
                ))
            steps.append("items")

            apply_invoice_created(self.store, invoice, items, adjust_stock=True)
            steps.append("aggregates")

            ledger_service.append_ledger_event(
                event_type=ledger_service.INVOICE_CREATED,
                entity_type="invoice",
                entity_id=invoice.id,
                amount=amount,
                note=invoice_number,
                payload={"customer_id": customer.id, "items": len(items)},
                session=self.store.session,
            )
            steps.append("journal")
            return invoice

        invoice = self.store.run_steps("create_invoice", _op)
        logger.info("Created invoice %s for customer %s (%s)", invoice.invoice_number, customer_id, invoice.amount)
        return invoice

    def _check_stock(self, requested: list[InvoiceLine]) -> dict:
        """Lock each product once and compare its stock against the summed request."""
        totals: dict[str, int] = {}
        for line in requested:
            totals[line.product_id] = totals.get(line.product_id, 0) + line.quantity

        products = {}
        for product_id, quantity in totals.items():
            product = self.store.get("products", product_id, lock=True)
            if quantity > product.stock:
                raise ValidationError(
                    f"Insufficient stock for {product.name}: available {product.stock}, requested {quantity}"
                )
            products[product_id] = product
        return products

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    def delete_invoice(self, invoice_id: str) -> None:
        """
        Delete an invoice, returning its quantities to stock and reversing
        the customer's orders / total_spent.

        Invoices with recorded payments are refused (ReferentialIntegrityError).
        """
        def _op(steps: list[str]):
            invoice = self.store.get("invoices", invoice_id, lock=True)
            self._remove_invoice(invoice, steps, restore_stock=True)
            ledger_service.append_ledger_event(
                event_type=ledger_service.INVOICE_DELETED,
                entity_type="invoice",
                entity_id=invoice_id,
                amount=invoice.amount,
                note=invoice.invoice_number,
                session=self.store.session,
            )
            steps.append("journal")

        self.store.run_steps("delete_invoice", _op)
        logger.info("Deleted invoice %s", invoice_id)

    def _remove_invoice(self, invoice, steps: list[str], *, restore_stock: bool) -> None:
        if self.store.find("payments", invoice_id=invoice.id):
            raise ReferentialIntegrityError(
                f"Invoice {invoice.invoice_number} has recorded payments and cannot be deleted"
            )
        items = self.store.find("invoiceItems", invoice_id=invoice.id)

        if restore_stock:
            restore_invoice_stock(self.store, items)
            steps.append(f"stock:{invoice.invoice_number}")

        for item in items:
            self.store.delete("invoiceItems", item.id)
        steps.append(f"items:{invoice.invoice_number}")

        reverse_invoice_totals(self.store, invoice)
        steps.append(f"aggregates:{invoice.invoice_number}")

        self.store.delete("invoices", invoice.id)
        steps.append(f"invoice:{invoice.invoice_number}")

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def mark_invoice_as_paid(self, invoice_id: str, paid_date=None):
        """
        Administrative override: set status=paid and paid_date.

        No payment is recorded and no aggregate changes.
        """
        paid_on = _coerce_date(paid_date, "paid_date")

        def _op():
            self.store.get("invoices", invoice_id, lock=True)
            invoice = self.store.update(
                "invoices", invoice_id, status=INVOICE_STATUS_PAID, paid_date=paid_on,
            )
            ledger_service.append_ledger_event(
                event_type=ledger_service.INVOICE_MARKED_PAID,
                entity_type="invoice",
                entity_id=invoice.id,
                amount=invoice.amount,
                note=invoice.invoice_number,
                session=self.store.session,
            )
            return invoice

        return self.store.run(_op)

    # ------------------------------------------------------------------
    # Merge
    # ------------------------------------------------------------------

    def merge_invoices(self, customer_id: str, invoice_ids):
        """
        Replace several unpaid invoices of one customer with a single new one.

        The merged invoice carries every source line unchanged (no grouping by
        product) and the sum of the source amounts. Stock is not touched; the
        customer ends up with orders reduced by N-1 and total_spent unchanged.
        """
        if not customer_id:
            raise ValidationError("customer_id is required")
        if invoice_ids is None:
            invoice_ids = []
        if not isinstance(invoice_ids, (list, tuple)) or not all(isinstance(i, str) for i in invoice_ids):
            raise ValidationError("invoice_ids must be a list of invoice ids")
        ids = list(dict.fromkeys(i for i in invoice_ids if i))
        if len(ids) < 2:
            raise ValidationError("Select at least two invoices to merge")

        def _op(steps: list[str]):
            customer = self.store.get("customers", customer_id)

            sources = []
            for invoice_id in ids:
                invoice = self.store.get("invoices", invoice_id, lock=True)
                if invoice.customer_id != customer.id:
                    raise ValidationError(
                        f"Invoice {invoice.invoice_number} does not belong to this customer"
                    )
                if invoice.status != INVOICE_STATUS_UNPAID:
                    raise ValidationError(f"Invoice {invoice.invoice_number} is not unpaid")
                if self.store.find("payments", invoice_id=invoice.id):
                    raise ValidationError(
                        f"Invoice {invoice.invoice_number} has recorded payments and cannot be merged"
                    )
                sources.append(invoice)

            source_items = {inv.id: self.store.find("invoiceItems", invoice_id=inv.id) for inv in sources}
            amount = sum((inv.amount for inv in sources), Decimal("0.00"))

            invoice_number = next_document_number(document_type=DOC_MERGED_INVOICE, session=self.store.session)
            merged = self.store.create(
                "invoices",
                invoice_number=invoice_number,
                customer_id=customer.id,
                customer_name=customer.full_name,
                amount=amount,
                status=INVOICE_STATUS_UNPAID,
                date=today(),
                paid_date=None,
            )
            steps.append("invoice")

            # Oldest source first so the merged lines read in billing order
            merged_items = []
            for inv in sorted(sources, key=lambda i: (i.date, i.invoice_number)):
                for item in source_items[inv.id]:
                    merged_items.append(self.store.create(
                        "invoiceItems",
                        invoice_id=merged.id,
                        product_id=item.product_id,
                        product_name=item.product_name,
                        quantity=item.quantity,
                        price=item.price,
                        subtotal=item.subtotal,
                    ))
            steps.append("items")

            apply_invoice_created(self.store, merged, merged_items, adjust_stock=False)
            steps.append("aggregates")

            for inv in sources:
                self._remove_invoice(inv, steps, restore_stock=False)

            ledger_service.append_ledger_event(
                event_type=ledger_service.INVOICES_MERGED,
                entity_type="invoice",
                entity_id=merged.id,
                amount=amount,
                note=invoice_number,
                payload={
                    "customer_id": customer.id,
                    "source_ids": [inv.id for inv in sources],
                    "source_numbers": [inv.invoice_number for inv in sources],
                },
                session=self.store.session,
            )
            steps.append("journal")
            return merged

        merged = self.store.run_steps("merge_invoices", _op)
        logger.info("Merged %d invoices into %s for customer %s", len(ids), merged.invoice_number, customer_id)
        return merged

