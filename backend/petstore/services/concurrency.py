# Overview: Transaction scope, row locking and retry helpers shared by every writer.

from __future__ import annotations

import time
from contextlib import contextmanager

from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from petstore.errors import InternalFailure


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


@contextmanager
def transaction_scope():
    """
    One unit of work on the request session.

    Yields the session; commits when the block completes and rolls back on
    every exception path (domain errors included), so a partially applied
    receipt or sale is never visible. Lock and stale-row errors propagate
    unchanged for run_with_retry; any other database error surfaces as
    InternalFailure.
    """
    session = db.session
    try:
        yield session
        session.commit()
    except (OperationalError, StaleDataError):
        session.rollback()
        raise
    except SQLAlchemyError as exc:
        session.rollback()
        raise InternalFailure("Database error while saving changes") from exc
    except BaseException:
        session.rollback()
        raise


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). func must own its whole transaction.
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc
