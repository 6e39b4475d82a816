# Overview: Service-layer helpers for row locking and retrying concurrent writes.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import TransactionConflictError
from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for ledger writes.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; there the Product version
    column (optimistic lock) is what serializes writers.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). Each retry starts from a rolled-back
    session, so func must re-read everything it depends on. Domain errors
    raised by func propagate immediately after a rollback.
    """
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            current_app.logger.warning(
                "concurrent write conflict (attempt %d/%d): %s", attempt + 1, attempts, exc
            )
            if attempt >= attempts - 1:
                raise TransactionConflictError(
                    "Concurrent update conflict, please retry",
                    details={"attempts": attempts},
                ) from exc
            time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            db.session.rollback()
            raise
