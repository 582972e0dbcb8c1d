"""Point-in-time copies of case records, stored with idempotency keys.

A replayed mutation must answer with what the first call produced, not with
whatever the record looks like now. The first call stores a snapshot of the
record's columns plus the sequence of its newest audit entry; a replay turns
that back into a read-only ``RecordSnapshot``.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import Uuid, inspect
from sqlalchemy.orm import Session

from darta_chalani.db.enums import CaseKind
from darta_chalani.db.models import CaseAuditEntry
from darta_chalani.db.types import UTCDateTime
from darta_chalani.services import case_audit_service


class RecordSnapshot:
    """Read-only stand-in for a Chalani or Darta as a mutation left it."""

    def __init__(self, kind: CaseKind, values: dict[str, Any], audit_trail: list[CaseAuditEntry]):
        self.__dict__.update(values)
        self.kind = kind
        self.audit_trail = audit_trail

    def __repr__(self) -> str:
        return f"<RecordSnapshot {self.kind.value} {self.id} {self.status}>"


def _dump(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, dict):
        return {k: _dump(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_dump(v) for v in value]
    return value


def _load(column_type, value: Any) -> Any:
    if value is None:
        return None
    if isinstance(column_type, Uuid):
        return uuid.UUID(value)
    if isinstance(column_type, UTCDateTime):
        return datetime.fromisoformat(value)
    return value


def capture(db: Session, record) -> dict[str, Any]:
    """
    Snapshot ``record`` as it stands in the current transaction.

    Flushes first so the version counter and audit sequence are final.
    """
    db.flush()
    latest = case_audit_service.latest_entry(db, record.kind, record.id)
    return {
        "kind": record.kind.value,
        "audit_sequence": latest.sequence if latest else 0,
        "values": {
            attr.key: _dump(getattr(record, attr.key)) for attr in inspect(type(record)).column_attrs
        },
    }


def restore(db: Session, model, data: dict[str, Any]) -> RecordSnapshot:
    """Rebuild a snapshot, with the audit trail as it was at capture time."""
    columns = {attr.key: attr.columns[0].type for attr in inspect(model).column_attrs}
    values = {key: _load(columns[key], value) for key, value in data["values"].items() if key in columns}
    kind = CaseKind(data["kind"])
    trail = [
        entry
        for entry in case_audit_service.list_entries(db, kind, values["id"])
        if entry.sequence <= data["audit_sequence"]
    ]
    return RecordSnapshot(kind, values, trail)
