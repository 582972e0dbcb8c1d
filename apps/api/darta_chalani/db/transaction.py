"""Commit-or-rollback runner shared by the allocator and the case orchestrator."""

from __future__ import annotations

import logging
import time
from typing import Callable, TypeVar
from uuid import UUID

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from darta_chalani.core.config import settings
from darta_chalani.core.exceptions import ConflictError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# serialization_failure, deadlock_detected, lock_not_available
_TRANSIENT_SQLSTATES = {"40001", "40P01", "55P03"}
_UNIQUE_VIOLATION = "23505"


def is_transient_error(error: OperationalError) -> bool:
    """True when the failure is lock contention that a fresh attempt can clear."""
    orig = error.orig
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate in _TRANSIENT_SQLSTATES:
        return True
    message = str(orig) if orig else str(error)
    return "database is locked" in message or "could not serialize access" in message


def is_unique_violation(error: IntegrityError) -> bool:
    """True for a duplicate key; NOT NULL, foreign key and check failures are not."""
    orig = error.orig
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate == _UNIQUE_VIOLATION:
        return True
    message = str(orig) if orig else str(error)
    return "UNIQUE constraint failed" in message


def run_atomic(
    db: Session,
    operation: Callable[[], T],
    *,
    entity_id: UUID | str | None = None,
    max_retries: int | None = None,
) -> T:
    """
    Run ``operation`` as one transaction and commit it.

    Any failure rolls back so no partial state survives. Transient storage
    contention is retried with a short backoff, as is a unique violation
    (a concurrent duplicate of an idempotent write, which the retry then
    replays). Other integrity errors propagate. A lost optimistic-lock race
    is never retried.

    Raises:
        ConflictError: lost race on a record version, or retries exhausted
    """
    retries = settings.MUTATION_MAX_RETRIES if max_retries is None else max_retries
    attempt = 0
    while True:
        try:
            result = operation()
            db.commit()
            return result
        except StaleDataError as exc:
            db.rollback()
            raise ConflictError(
                "Record was modified by a concurrent request; retry the operation",
                entity_id=entity_id,
            ) from exc
        except (OperationalError, IntegrityError) as exc:
            db.rollback()
            if isinstance(exc, OperationalError) and not is_transient_error(exc):
                raise
            if isinstance(exc, IntegrityError) and not is_unique_violation(exc):
                raise
            if attempt >= retries:
                logger.warning(
                    "Giving up after %s attempts: %s",
                    attempt + 1,
                    exc.__class__.__name__,
                    extra={"entity_id": str(entity_id) if entity_id else None},
                )
                raise ConflictError(
                    "Concurrent update could not be applied; retry the operation",
                    entity_id=entity_id,
                ) from exc
            attempt += 1
            time.sleep(settings.MUTATION_RETRY_BACKOFF_MS * attempt / 1000)
        except Exception:
            db.rollback()
            raise
