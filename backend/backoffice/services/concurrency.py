# Overview: Service-layer helpers for transactions, row locks and retries.

from __future__ import annotations

import time
from contextlib import contextmanager

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


class ConcurrentUpdateError(Exception):
    """Another request won a race on the same rows; the unit of work may be retried."""


RETRYABLE_ERRORS = (OperationalError, StaleDataError, ConcurrentUpdateError)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    Version columns (version_id_col) still catch lost updates on SQLite.
    """
    return query.with_for_update()


@contextmanager
def unit_of_work():
    """
    Scope a multi-step write: commit when the block finishes, roll back
    everything if any step raises.

    Usage:
        with unit_of_work():
            db.session.add(header)
            increment_stock(...)
    """
    try:
        yield db.session
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks), StaleDataError
    (optimistic locking conflicts) and ConcurrentUpdateError. func must be
    a complete unit of work so that a retry starts from a clean session.
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except RETRYABLE_ERRORS as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc
