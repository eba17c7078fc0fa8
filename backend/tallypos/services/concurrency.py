# Overview: Transaction scoping and retry helpers shared by every mutating service.

from __future__ import annotations

import time

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    Version columns on Receipt and InventoryItem cover SQLite.
    """
    return query.with_for_update()


def safe_rollback() -> None:
    """Discard pending writes; a no-op when no transaction is open."""
    session = db.session()
    if session.in_transaction():
        session.rollback()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts).
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            safe_rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc


def run_in_transaction(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Run func as one unit of work: commit if it returns, roll back if it raises.

    No partial commits: every write func makes lands together or none does.
    Concurrency failures are replayed by run_with_retry; everything else
    propagates to the caller after the rollback.
    """
    def _op():
        try:
            result = func()
            db.session.commit()
            return result
        except Exception:
            safe_rollback()
            raise

    return run_with_retry(_op, attempts=attempts, backoff_base=backoff_base)
