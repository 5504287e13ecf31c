# Overview: Typed record access over the five ledger collections; owns the unit of work and change events.

from __future__ import annotations

import logging
from contextlib import contextmanager
from decimal import Decimal
from typing import Any, Callable

from sqlalchemy.exc import SQLAlchemyError

from ..errors import NotFoundError, PartialWriteError, ReferentialIntegrityError, ValidationError
from ..extensions import db
from ..models import Customer, Invoice, InvoiceItem, Payment, Product
from ..models.base import new_id
from ..time_utils import utcnow
from .concurrency import lock_for_update, run_with_retry
from .events import CHANGE_ADDED, CHANGE_MODIFIED, CHANGE_REMOVED, ChangeEvent, EventBus, Subscription

logger = logging.getLogger(__name__)

"""
Entity store invariants

- Every record gets an opaque id and a server created_at on create; callers
  never supply either.
- The store does no business validation. Aggregate arithmetic lives in the
  reconciler, invoice rules in the invoice ledger.
- Writes join the enclosing transaction(); the outermost block commits.
- Change events are queued per transaction and published only after commit.
  A rollback discards them, so subscribers never see work that did not land.
"""

COLLECTIONS = {
    "products": Product,
    "customers": Customer,
    "invoices": Invoice,
    "invoiceItems": InvoiceItem,
    "payments": Payment,
}

# Collections whose records are never modified or removed once written
APPEND_ONLY = {"payments"}

_IMMUTABLE_FIELDS = {"id", "created_at", "version_id"}


class EntityStore:
    def __init__(self, session=None, bus: EventBus | None = None, *, retry_attempts: int = 3,
                 backoff_base: float = 0.1):
        self.session = session if session is not None else db.session
        self.bus = bus if bus is not None else EventBus()
        self.retry_attempts = retry_attempts
        self.backoff_base = backoff_base
        self._depth = 0
        self._pending: list[ChangeEvent] = []

    # ------------------------------------------------------------------
    # Unit of work
    # ------------------------------------------------------------------

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    @contextmanager
    def transaction(self):
        """
        Re-entrant unit of work.

        Nested blocks join the outermost one. The outermost block commits and
        then publishes the queued change events; any exception rolls the
        session back and drops the queue.
        """
        outermost = self._depth == 0
        self._depth += 1
        try:
            yield self
            if outermost:
                self.session.commit()
        except Exception:
            if outermost:
                self.session.rollback()
                self._pending.clear()
            raise
        finally:
            self._depth -= 1

        if outermost and self._pending:
            events, self._pending = self._pending, []
            self.bus.publish(events)

    def run(self, op: Callable[[], Any]):
        """
        Run op inside transaction(), retrying on lock / stale-data conflicts.

        When called inside an open transaction, op simply joins it: a retry
        would have to roll back work the caller has not finished.
        """
        if self.in_transaction:
            return op()

        def _attempt():
            with self.transaction():
                return op()

        return run_with_retry(
            _attempt,
            session=self.session,
            attempts=self.retry_attempts,
            backoff_base=self.backoff_base,
        )

    def run_steps(self, operation: str, op: Callable[[list[str]], Any]):
        """
        run() for multi-step ledger operations.

        op receives a list it appends step names to as writes are issued. A
        storage failure after the first step surfaces as PartialWriteError
        naming those steps; the transaction has already undone them.
        """
        steps: list[str] = []

        def _op():
            steps.clear()
            return op(steps)

        try:
            return self.run(_op)
        except SQLAlchemyError as exc:
            if not steps:
                raise
            logger.error("%s failed after steps %s: %s", operation, steps, exc)
            raise PartialWriteError(operation, steps, rolled_back=True, cause=exc) from exc

    def _queue(self, collection: str, record, change: str, data: dict | None = None) -> None:
        if data is None:
            data = record.to_dict()
        event = ChangeEvent(collection=collection, entity_id=record.id, change=change, data=data)
        if self.in_transaction:
            self._pending.append(event)
        else:
            self.bus.publish([event])

    # ------------------------------------------------------------------
    # Record access
    # ------------------------------------------------------------------

    @staticmethod
    def model_for(collection: str):
        try:
            return COLLECTIONS[collection]
        except KeyError:
            raise ValidationError(f"Unknown collection: {collection}")

    def _ordered(self, collection: str, query):
        model = self.model_for(collection)
        if collection == "invoices":
            return query.order_by(model.created_at.desc(), model.invoice_number.desc())
        if collection == "payments":
            return query.order_by(model.created_at.desc(), model.id.desc())
        return query.order_by(model.created_at.asc(), model.id.asc())

    def create(self, collection: str, **fields):
        model = self.model_for(collection)
        for key in _IMMUTABLE_FIELDS & set(fields):
            raise ValidationError(f"Field not allowed: {key}")

        with self.transaction():
            record = model(**fields)
            record.id = new_id()
            record.created_at = utcnow()
            self.session.add(record)
            self.session.flush()
            self._queue(collection, record, CHANGE_ADDED)
        return record

    def get(self, collection: str, entity_id, lock: bool = False):
        model = self.model_for(collection)
        if not entity_id:
            raise NotFoundError(collection, entity_id)
        query = self.session.query(model).filter(model.id == entity_id)
        if lock:
            query = lock_for_update(query)
        record = query.one_or_none()
        if record is None:
            raise NotFoundError(collection, entity_id)
        return record

    def find(self, collection: str, **equals) -> list:
        model = self.model_for(collection)
        query = self.session.query(model)
        if equals:
            query = query.filter_by(**equals)
        return self._ordered(collection, query).all()

    def list(self, collection: str) -> list:
        return self.find(collection)

    def update(self, collection: str, entity_id, **fields):
        model = self.model_for(collection)
        if collection in APPEND_ONLY:
            raise ValidationError(f"{collection} records are append-only")
        columns = {c.key for c in model.__mapper__.columns}
        for key in fields:
            if key in _IMMUTABLE_FIELDS:
                raise ValidationError(f"Field not allowed: {key}")
            if key not in columns:
                raise ValidationError(f"Unknown field: {key}")

        with self.transaction():
            record = self.get(collection, entity_id)
            for key, value in fields.items():
                setattr(record, key, value)
            self.session.flush()
            self._queue(collection, record, CHANGE_MODIFIED)
        return record

    def increment(self, collection: str, entity_id, **deltas):
        """
        Add deltas to numeric fields of one record.

        The UPDATE carries the record's version counter, so a concurrent
        writer turns this into a StaleDataError instead of a lost update.
        """
        model = self.model_for(collection)
        columns = {c.key for c in model.__mapper__.columns}

        with self.transaction():
            record = self.get(collection, entity_id)
            for key, delta in deltas.items():
                if key not in columns or key in _IMMUTABLE_FIELDS:
                    raise ValidationError(f"Cannot increment field: {key}")
                current = getattr(record, key) or 0
                if isinstance(current, Decimal) or isinstance(delta, Decimal):
                    setattr(record, key, Decimal(str(current)) + Decimal(str(delta)))
                else:
                    setattr(record, key, current + delta)
            self.session.flush()
            self._queue(collection, record, CHANGE_MODIFIED)
        return record

    def delete(self, collection: str, entity_id) -> None:
        if collection in APPEND_ONLY:
            raise ValidationError(f"{collection} records are append-only")

        with self.transaction():
            record = self.get(collection, entity_id)
            self._check_references(collection, record)
            snapshot = record.to_dict()
            self.session.delete(record)
            self.session.flush()
            self._queue(collection, record, CHANGE_REMOVED, data=snapshot)

    def _check_references(self, collection: str, record) -> None:
        if collection == "products":
            if self._exists(InvoiceItem, product_id=record.id):
                raise ReferentialIntegrityError(
                    f"Product {record.name} is used in existing invoices and cannot be deleted"
                )
        elif collection == "customers":
            if self._exists(Invoice, customer_id=record.id):
                raise ReferentialIntegrityError(
                    f"Customer {record.full_name} has invoices and cannot be deleted"
                )
        elif collection == "invoices":
            if self._exists(Payment, invoice_id=record.id):
                raise ReferentialIntegrityError(
                    f"Invoice {record.invoice_number} has recorded payments and cannot be deleted"
                )
            if self._exists(InvoiceItem, invoice_id=record.id):
                raise ReferentialIntegrityError(
                    f"Invoice {record.invoice_number} still has line items"
                )

    def _exists(self, model, **equals) -> bool:
        return self.session.query(model.id).filter_by(**equals).first() is not None

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, collection: str, callback: Callable[[ChangeEvent], Any],
                  replay: bool = True) -> Subscription:
        """
        Register callback for committed changes to collection.

        With replay, the current contents are delivered first as "added"
        events (in list() order), so a consumer can rebuild its view after a
        restart and then follow live changes.
        """
        self.model_for(collection)
        subscription = self.bus.subscribe(collection, callback)
        if replay:
            for record in self.list(collection):
                subscription.deliver(
                    ChangeEvent(collection=collection, entity_id=record.id,
                                change=CHANGE_ADDED, data=record.to_dict())
                )
        return subscription
