# Overview: Demo-data bootstrap; fills empty collections with a small working data set.

from __future__ import annotations

import logging
from decimal import Decimal

from .entity_store import EntityStore
from .invoice_ledger import InvoiceLedger

logger = logging.getLogger(__name__)

DEMO_PRODUCTS = [
    {"name": "Wireless Headphones", "price": Decimal("129.99"), "stock": 45,
     "description": "Noise-cancelling over-ear headphones"},
    {"name": "Smart Watch", "price": Decimal("199.99"), "stock": 12,
     "description": "Fitness tracking smart watch"},
    {"name": "Bluetooth Speaker", "price": Decimal("79.99"), "stock": 0,
     "description": "Portable waterproof speaker"},
    {"name": "Laptop Stand", "price": Decimal("49.99"), "stock": 35,
     "description": "Adjustable aluminium laptop stand"},
    {"name": "Wireless Charger", "price": Decimal("29.99"), "stock": 8,
     "description": "Fast charging pad"},
]

# orders / total_spent carry the history these customers had before the
# ledger started tracking them
DEMO_CUSTOMERS = [
    {"first_name": "John", "last_name": "Doe", "email": "john.doe@example.com",
     "phone": "+1 555-123-4567", "address": "123 Main St, Anytown",
     "orders": 12, "total_spent": Decimal("1245.89"), "wallet_balance": Decimal("100.00")},
    {"first_name": "Jane", "last_name": "Smith", "email": "jane.smith@example.com",
     "phone": "+1 555-987-6543", "address": "456 Oak Ave, Somewhere",
     "orders": 8, "total_spent": Decimal("879.50"), "wallet_balance": Decimal("50.00")},
    {"first_name": "Robert", "last_name": "Johnson", "email": "robert.johnson@example.com",
     "phone": "+1 555-456-7890", "address": "789 Pine Rd, Elsewhere",
     "orders": 5, "total_spent": Decimal("432.25"), "wallet_balance": Decimal("25.00")},
]

# (customer index, [(product name, quantity)], mark paid)
DEMO_INVOICES = [
    (0, [("Wireless Headphones", 1), ("Wireless Charger", 2)], True),
    (1, [("Laptop Stand", 2), ("Smart Watch", 1)], False),
    (2, [("Laptop Stand", 1), ("Wireless Charger", 1)], True),
]


def seed_demo_data(store: EntityStore) -> dict:
    """
    Idempotent demo bootstrap.

    Each collection is seeded only while it is empty. Demo invoices go through
    the invoice ledger so stock and customer totals stay consistent.
    Returns the number of records created per collection.
    """
    created = {"products": 0, "customers": 0, "invoices": 0}

    if not store.list("products"):
        def _products():
            for fields in DEMO_PRODUCTS:
                store.create("products", **fields)
        store.run(_products)
        created["products"] = len(DEMO_PRODUCTS)

    if not store.list("customers"):
        def _customers():
            for fields in DEMO_CUSTOMERS:
                store.create("customers", **fields)
        store.run(_customers)
        created["customers"] = len(DEMO_CUSTOMERS)

    if not store.list("invoices"):
        customers = {c.email: c for c in store.list("customers")}
        products = {p.name: p for p in store.list("products")}
        ledger = InvoiceLedger(store)

        for customer_index, lines, paid in DEMO_INVOICES:
            customer = customers.get(DEMO_CUSTOMERS[customer_index]["email"])
            resolved = [
                {"product_id": products[name].id, "quantity": qty}
                for name, qty in lines
                if name in products and products[name].stock >= qty
            ]
            if customer is None or not resolved:
                logger.info("Skipping demo invoice for customer #%d: data not available", customer_index)
                continue
            invoice = ledger.create_invoice(customer.id, resolved)
            if paid:
                ledger.mark_invoice_as_paid(invoice.id)
            created["invoices"] += 1

    logger.info("Demo seed complete: %s", created)
    return created
