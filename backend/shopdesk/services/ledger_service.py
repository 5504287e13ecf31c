# Overview: Service-layer operations for the ledger journal; append-only record of ledger operations.

from __future__ import annotations

import json
from decimal import Decimal
from typing import Any, Optional

from ..extensions import db
from ..models import LedgerEvent
from ..time_utils import utcnow

"""
Ledger journal invariants (authoritative)

- Append-only: no updates or deletes of existing events.
- No domain/business logic in the journal itself.
- Events are written inside the same DB transaction as the change they
  record, so rolled back work never shows up here.
"""

INVOICE_CREATED = "INVOICE_CREATED"
INVOICE_DELETED = "INVOICE_DELETED"
INVOICE_MARKED_PAID = "INVOICE_MARKED_PAID"
INVOICES_MERGED = "INVOICES_MERGED"
PAYMENT_RECORDED = "PAYMENT_RECORDED"
WALLET_DEBITED = "WALLET_DEBITED"
WALLET_ADJUSTED = "WALLET_ADJUSTED"


def append_ledger_event(
    *,
    event_type: str,
    entity_type: str,
    entity_id: str,
    amount: Optional[Decimal] = None,
    actor_user_id: str | None = None,
    note: Optional[str] = None,
    payload: Optional[dict[str, Any]] = None,
    session=None,
) -> LedgerEvent:
    session = session if session is not None else db.session
    ev = LedgerEvent(
        event_type=event_type,
        entity_type=entity_type,
        entity_id=entity_id,
        amount=amount,
        actor_user_id=actor_user_id,
        occurred_at=utcnow(),
        note=note,
        payload=json.dumps(payload, default=str, sort_keys=True) if payload is not None else None,
    )
    session.add(ev)
    session.flush()
    return ev


def list_ledger_events(
    *,
    entity_type: str | None = None,
    entity_id: str | None = None,
    event_type: str | None = None,
    limit: int = 100,
    session=None,
) -> list[LedgerEvent]:
    """Newest first."""
    session = session if session is not None else db.session
    q = session.query(LedgerEvent)
    if entity_type:
        q = q.filter(LedgerEvent.entity_type == entity_type)
    if entity_id:
        q = q.filter(LedgerEvent.entity_id == entity_id)
    if event_type:
        q = q.filter(LedgerEvent.event_type == event_type)
    return q.order_by(LedgerEvent.id.desc()).limit(limit).all()
