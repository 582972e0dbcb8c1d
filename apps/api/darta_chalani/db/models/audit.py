"""Append-only status history for case records."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import (
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from darta_chalani.db.base import Base
from darta_chalani.db.types import JSONType, utcnow


class CaseAuditEntry(Base):
    """
    One status transition of a Chalani or Darta.

    Rows are only ever inserted. ``sequence`` is 1-based per entity and fixes
    insertion order independently of clock resolution.
    """

    __tablename__ = "case_audit_entries"
    __table_args__ = (
        UniqueConstraint("entity_type", "entity_id", "sequence", name="uq_case_audit_sequence"),
        Index("idx_case_audit_actor", "actor"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    entity_type: Mapped[str] = mapped_column(String(20), nullable=False)  # CHALANI | DARTA
    entity_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)

    action: Mapped[str] = mapped_column(String(50), nullable=False)
    from_status: Mapped[str | None] = mapped_column(String(40), nullable=True)  # null on create
    to_status: Mapped[str] = mapped_column(String(40), nullable=False)
    actor: Mapped[str] = mapped_column(String(255), nullable=False)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    details: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    timestamp: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )
