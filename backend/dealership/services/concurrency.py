# Overview: Locking and retry helpers shared by every service that writes stock or shift state.

from __future__ import annotations

import logging
import secrets
import time

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..time_utils import utcnow

logger = logging.getLogger(__name__)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    On SQLite the version_id check on Part/ServiceJob/ShiftMarker is what
    rejects an interleaved write.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). Business errors raised by func are not
    retried; the session is rolled back and the error propagates.
    """
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            logger.warning("Retrying after concurrency conflict (attempt %s): %s", attempt + 1, exc)
            time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            db.session.rollback()
            raise


def generate_id(prefix: str) -> str:
    """
    Human-readable record id, e.g. "S-20240521093012-1a2b3c".

    Sortable by creation second; the random suffix keeps ids unique when two
    records are created within the same second.
    """
    return f"{prefix}-{utcnow():%Y%m%d%H%M%S}-{secrets.token_hex(3)}"
