"""Idempotency index: remembers the first result of each keyed mutation."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from darta_chalani.core.exceptions import ValidationError
from darta_chalani.db.models import IdempotencyRecord


def mutation_kind(entity_type, action: str) -> str:
    return f"{getattr(entity_type, 'value', entity_type)}.{action}"


def lookup(db: Session, kind: str, key: str | None) -> IdempotencyRecord | None:
    """Return the stored result for (kind, key); None for unkeyed calls."""
    if not key:
        return None
    return db.execute(
        select(IdempotencyRecord).where(IdempotencyRecord.kind == kind, IdempotencyRecord.key == key)
    ).scalar_one_or_none()


def check_replay(
    db: Session,
    kind: str,
    key: str | None,
    entity_id: UUID | None = None,
) -> IdempotencyRecord | None:
    """
    Find a previous result for this key.

    A key first applied to one record may not be reused against another:
    that is a caller error, not a replay.
    """
    record = lookup(db, kind, key)
    if record and entity_id is not None and record.entity_id != entity_id:
        raise ValidationError(
            "idempotencyKey",
            f"already used for {record.entity_type.lower()} {record.entity_id}",
            entity_id=entity_id,
        )
    return record


def remember(
    db: Session,
    *,
    kind: str,
    key: str | None,
    entity_type,
    entity_id: UUID,
    actor: str,
    related_entity_id: UUID | None = None,
    result: dict | None = None,
) -> IdempotencyRecord | None:
    """
    Record the result in the caller's transaction.

    A concurrent request with the same key fails the commit on
    uq_idempotency_kind_key; the retry then replays this row.
    """
    if not key:
        return None
    record = IdempotencyRecord(
        kind=kind,
        key=key,
        entity_type=getattr(entity_type, "value", entity_type),
        entity_id=entity_id,
        related_entity_id=related_entity_id,
        result=result,
        created_by=actor,
    )
    db.add(record)
    return record
