"""Counter store and number allocations."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    false,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from darta_chalani.db.base import Base
from darta_chalani.db.enums import AllocationStatus
from darta_chalani.db.types import utcnow


class NumberCounter(Base):
    """
    Monotonic number source per (scope, document type, fiscal year, ward).

    current_value starts at 0 and only ever increases. A rollover stamps
    closed_at on the prior year's counter, which then stays as the closing
    record for that year.
    """

    __tablename__ = "number_counters"
    __table_args__ = (
        UniqueConstraint(
            "scope", "document_type", "fiscal_year", "ward_key", name="uq_number_counter_key"
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    scope: Mapped[str] = mapped_column(String(20), nullable=False)
    document_type: Mapped[str] = mapped_column(String(20), nullable=False)
    fiscal_year: Mapped[str] = mapped_column(String(20), nullable=False)
    ward_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    # ward_id or "" so the unique key also holds for municipality counters
    ward_key: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    current_value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_issued_at: Mapped[datetime | None] = mapped_column(nullable=True)

    # Administrative hold
    is_locked: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    locked_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    locked_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    locked_at: Mapped[datetime | None] = mapped_column(nullable=True)
    closed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )

    allocations: Mapped[list["NumberAllocation"]] = relationship(
        back_populates="counter", order_by="NumberAllocation.number"
    )


class NumberAllocation(Base):
    """
    A number issued from a counter.

    Status only moves PROVISIONAL -> COMMITTED | VOIDED | EXPIRED. A voided
    or expired number is burned: the counter is never decremented.
    """

    __tablename__ = "number_allocations"
    __table_args__ = (
        Index("idx_number_allocations_status_expiry", "status", "expires_at"),
        Index("idx_number_allocations_reserved_for", "reserved_for_type", "reserved_for_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    counter_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("number_counters.id", ondelete="RESTRICT"), nullable=False
    )
    scope: Mapped[str] = mapped_column(String(20), nullable=False)
    document_type: Mapped[str] = mapped_column(String(20), nullable=False)
    fiscal_year: Mapped[str] = mapped_column(String(20), nullable=False)
    ward_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    number: Mapped[int] = mapped_column(Integer, nullable=False)
    formatted_number: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=AllocationStatus.PROVISIONAL.value
    )
    idempotency_key: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    expires_at: Mapped[datetime | None] = mapped_column(nullable=True)

    allocated_by: Mapped[str] = mapped_column(String(255), nullable=False)
    allocated_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )

    # Record holding the number while it is reserved but not yet committed
    reserved_for_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    reserved_for_type: Mapped[str | None] = mapped_column(String(20), nullable=True)

    # Set once, at commit
    committed_entity_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    committed_entity_type: Mapped[str | None] = mapped_column(String(20), nullable=True)
    committed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    void_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    voided_at: Mapped[datetime | None] = mapped_column(nullable=True)
    expired_at: Mapped[datetime | None] = mapped_column(nullable=True)

    counter: Mapped["NumberCounter"] = relationship(back_populates="allocations")
