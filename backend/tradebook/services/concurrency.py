# Overview: Row locking and retry helpers shared by every write path.

"""
Two clerks can post a payment against the same invoice at the same moment,
or edit the same container statement. Sales, purchases, freight/transport/
Dubai invoices, container statements and the daily ledger all write through
these helpers: the row is re-read with lock_for_update inside a unit passed
to run_with_retry, and its version_id column makes the losing commit fail
with StaleDataError instead of overwriting the winner.
"""

from __future__ import annotations

import time

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


def lock_for_update(query):
    """
    SELECT ... FOR UPDATE on the invoice, statement or ledger row about to change.

    On SQLite this is a no-op and the version_id check alone decides the race.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Run `func` (read, apply the rule, commit) up to `attempts` times.

    A stale version or a database lock rolls back and runs `func` again, so
    a payment that lost the race is re-checked against the new balance and
    may now be refused as an overpayment. Any other error, such as that
    refusal, rolls back and propagates on the first try.
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
        except Exception:
            # Refusals can leave half-applied edits in the session
            db.session.rollback()
            raise
    if last_exc:
        raise last_exc
