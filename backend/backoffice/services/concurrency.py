# Overview: Transactional executor; atomic scope with bounded retry on transient failures.

from __future__ import annotations

import logging
import time

from flask import current_app, has_app_context
from sqlalchemy.exc import DBAPIError, DisconnectionError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db

logger = logging.getLogger(__name__)

DEFAULT_ATTEMPTS = 3
DEFAULT_BACKOFF_BASE = 0.1

_TRANSIENT_MARKERS = ("connection", "timeout", "timed out", "database is locked")


class ConcurrencyConflict(Exception):
    """Another writer changed the record first (optimistic version mismatch)."""


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def is_transient_error(exc: BaseException) -> bool:
    """True for connection drops and timeouts worth re-running the whole operation for."""
    if isinstance(exc, StaleDataError):
        return False
    if isinstance(exc, (DisconnectionError, PoolTimeoutError, ConnectionError, TimeoutError)):
        return True
    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return True
    if isinstance(exc, OperationalError):
        message = str(exc).lower()
        return any(marker in message for marker in _TRANSIENT_MARKERS)
    return False


def _begin_atomic_scope() -> None:
    """
    Take the write lock up front on SQLite.

    pysqlite defers BEGIN until the first DML statement; issuing it explicitly
    keeps SAVEPOINTs nested inside one transaction and serializes writers.
    """
    conn = db.session.connection()
    if conn.dialect.name != "sqlite":
        return
    dbapi_conn = conn.connection.dbapi_connection
    if not getattr(dbapi_conn, "in_transaction", False):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def _setting(key: str, default):
    if has_app_context():
        return current_app.config.get(key, default)
    return default


def run_in_transaction(func, *, attempts: int | None = None, backoff_base: float | None = None):
    """
    Execute `func` inside one atomic scope and commit.

    - Any exception rolls the whole scope back.
    - Transient failures re-run `func` from scratch (including its reads of
      "old" state) up to `attempts` times with backoff base * 2**attempt.
    - Optimistic version conflicts are never retried; they raise ConcurrencyConflict.
    """
    if attempts is None:
        attempts = int(_setting("RECONCILE_MAX_ATTEMPTS", DEFAULT_ATTEMPTS))
    if backoff_base is None:
        backoff_base = float(_setting("RECONCILE_BACKOFF_SECONDS", DEFAULT_BACKOFF_BASE))
    attempts = max(1, attempts)

    for attempt in range(attempts):
        try:
            _begin_atomic_scope()
            result = func()
            db.session.commit()
            return result
        except StaleDataError as exc:
            db.session.rollback()
            raise ConcurrencyConflict("Record was modified by another user; reload and try again") from exc
        except Exception as exc:
            db.session.rollback()
            if not is_transient_error(exc) or attempt >= attempts - 1:
                raise
            delay = backoff_base * (2 ** attempt)
            logger.warning(
                "Transaction retry %d/%d after transient error: %s",
                attempt + 1, attempts, exc,
            )
            time.sleep(delay)
