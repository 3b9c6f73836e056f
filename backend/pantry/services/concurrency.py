# Overview: Service-layer helpers for concurrency; write transactions, row locks and retry.

"""
Budget writes for one employee are serialized by locking the employee row
for the whole read-check-write sequence:

    begin_write()
    employee = lock_employee(id=...)
    ... check, mutate ...
    db.session.commit()

Wrap the sequence in run_with_retry so lock timeouts and optimistic
version conflicts restart it from a fresh read.
"""

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..models import Employee


def begin_write() -> None:
    """
    Open the current transaction as a write transaction.

    SQLite ignores SELECT ... FOR UPDATE, so take the database write lock
    up front instead; concurrent writers then queue on the busy timeout.
    Must be the first statement of the transaction.
    """
    if db.engine.dialect.name == "sqlite":
        db.session.execute(text("BEGIN IMMEDIATE"))


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def lock_employee(**filters) -> Employee | None:
    """Re-read one employee row under lock, replacing any state cached in the session."""
    return lock_for_update(
        db.session.query(Employee).filter_by(**filters)
    ).populate_existing().first()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Run func, restarting it on lock timeouts (OperationalError) and
    version_id conflicts (StaleDataError).

    func must own its whole transaction; the session is rolled back
    before every retry. The last failure is re-raised.
    """
    for attempt in range(1, attempts + 1):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            if attempt >= attempts:
                raise
            current_app.logger.warning(
                "Write conflict (attempt %s/%s), retrying: %s", attempt, attempts, exc
            )
            time.sleep(backoff_base * (2 ** (attempt - 1)))
