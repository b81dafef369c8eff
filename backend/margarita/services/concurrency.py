# Overview: Service-layer helpers for row locking and retrying write transactions.

from __future__ import annotations

import logging
import time

from sqlalchemy.exc import OperationalError

from ..extensions import db

logger = logging.getLogger(__name__)


def lock_for_update(query):
    """
    Apply row-level locking for stock and sale writes.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a write unit with retry on lock/deadlock failures.

    The session is rolled back before each retry so the unit starts from a
    clean state; the last failure is re-raised.
    """
    for attempt in range(attempts):
        try:
            return func()
        except OperationalError:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            logger.warning("Retrying write after database lock conflict (attempt %d)", attempt + 1)
            time.sleep(backoff_base * (2 ** attempt))
