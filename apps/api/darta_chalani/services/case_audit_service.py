"""Audit trail for case records."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from darta_chalani.db.models import CaseAuditEntry
from darta_chalani.db.types import utcnow


def _jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def _next_sequence(db: Session, entity_type: str, entity_id: UUID) -> int:
    current = db.execute(
        select(func.max(CaseAuditEntry.sequence)).where(
            CaseAuditEntry.entity_type == entity_type,
            CaseAuditEntry.entity_id == entity_id,
        )
    ).scalar()
    return (current or 0) + 1


def append_entry(
    db: Session,
    *,
    entity_type,
    entity_id: UUID,
    action: str,
    from_status: str | None,
    to_status: str,
    actor: str,
    reason: str | None = None,
    details: dict[str, Any] | None = None,
) -> CaseAuditEntry:
    """
    Append one transition to a record's trail.

    Entries are never updated or deleted. Flushes immediately so a second
    entry for the same record in this transaction sees the new sequence.
    """
    entity_type = getattr(entity_type, "value", entity_type)
    entry = CaseAuditEntry(
        entity_type=entity_type,
        entity_id=entity_id,
        sequence=_next_sequence(db, entity_type, entity_id),
        action=action,
        from_status=getattr(from_status, "value", from_status),
        to_status=getattr(to_status, "value", to_status),
        actor=actor,
        reason=reason,
        details={k: _jsonable(v) for k, v in (details or {}).items() if v is not None},
        timestamp=utcnow(),
    )
    db.add(entry)
    db.flush()
    return entry


def list_entries(db: Session, entity_type, entity_id: UUID) -> list[CaseAuditEntry]:
    """Entries for one record, oldest first."""
    return list(
        db.execute(
            select(CaseAuditEntry)
            .where(
                CaseAuditEntry.entity_type == getattr(entity_type, "value", entity_type),
                CaseAuditEntry.entity_id == entity_id,
            )
            .order_by(CaseAuditEntry.sequence)
        ).scalars().all()
    )


def latest_entry(db: Session, entity_type, entity_id: UUID) -> CaseAuditEntry | None:
    return db.execute(
        select(CaseAuditEntry)
        .where(
            CaseAuditEntry.entity_type == getattr(entity_type, "value", entity_type),
            CaseAuditEntry.entity_id == entity_id,
        )
        .order_by(CaseAuditEntry.sequence.desc())
        .limit(1)
    ).scalar_one_or_none()
