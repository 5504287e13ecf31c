# Overview: Row locking and retry helpers for write operations that may race.

from __future__ import annotations

import logging
import time

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db

logger = logging.getLogger(__name__)

RETRYABLE_ERRORS = (OperationalError, StaleDataError)


def lock_for_update(query):
    """
    Apply row-level locking for a read that feeds a write (stock checks,
    wallet checks).

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    The version counters on Product/Customer/Invoice still catch lost updates.
    """
    return query.with_for_update().populate_existing()


def run_with_retry(func, *, session=None, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). Any other exception propagates at once.
    """
    session = session if session is not None else db.session
    for attempt in range(attempts):
        try:
            return func()
        except RETRYABLE_ERRORS as exc:
            session.rollback()
            if attempt >= attempts - 1:
                raise
            delay = backoff_base * (2 ** attempt)
            logger.warning(
                "Retrying after %s (attempt %d of %d, sleeping %.2fs)",
                type(exc).__name__, attempt + 1, attempts, delay,
            )
            time.sleep(delay)
