# Overview: Retry wrapper for snapshot writes that hit transient database contention.

from __future__ import annotations

import time

from sqlalchemy.exc import IntegrityError, OperationalError

from ..extensions import db


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on contention failures.

    Retries on OperationalError (locked SQLite file, deadlocks) and on
    IntegrityError, which is what two terminals creating the same
    (hall_id, collection) row at once run into; the retry then finds the
    row and overwrites it, which is the last-writer-wins outcome anyway.
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, IntegrityError) as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc
