"""Idempotency index for case mutations."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import String, UniqueConstraint, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from darta_chalani.db.base import Base
from darta_chalani.db.types import JSONType, utcnow


class IdempotencyRecord(Base):
    """
    First result produced for a (mutation kind, caller key) pair.

    kind is "<ENTITY>.<action>", e.g. "CHALANI.submit". The stored snapshots
    are what a replay returns; related_entity_id carries the successor of a
    supersede.
    """

    __tablename__ = "idempotency_records"
    __table_args__ = (UniqueConstraint("kind", "key", name="uq_idempotency_kind_key"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    kind: Mapped[str] = mapped_column(String(80), nullable=False)
    key: Mapped[str] = mapped_column(String(255), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(20), nullable=False)
    entity_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    related_entity_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    # Snapshots of the record (and successor) as the first call left them
    result: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    created_by: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )
