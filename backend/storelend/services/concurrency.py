# Overview: Retry helpers for conditional writes; encapsulates lock-error handling around a unit of work.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from storelend.logging_config import get_logger

logger = get_logger(__name__)


def _retry_policy(attempts: int | None, backoff_base: float | None) -> tuple[int, float]:
    if attempts is None:
        attempts = current_app.config.get("DB_RETRY_ATTEMPTS", 3)
    if backoff_base is None:
        backoff_base = current_app.config.get("DB_RETRY_BACKOFF_SECONDS", 0.1)
    return attempts, backoff_base


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float | None = None):
    """
    Execute a DB unit of work with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, "database is locked") and
    StaleDataError. The session is rolled back before each retry, so
    `func` must contain the whole unit including its commit; a conditional
    write that did not commit is simply evaluated again.
    """
    attempts, backoff_base = _retry_policy(attempts, backoff_base)
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            last_exc = exc
            logger.warning(
                "Retrying unit of work after database conflict",
                attempt=attempt + 1,
                attempts=attempts,
                error=str(exc),
            )
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc

