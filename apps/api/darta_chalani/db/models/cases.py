"""Case records: outgoing Chalani and incoming Darta correspondence."""

from __future__ import annotations

from typing import TYPE_CHECKING

import uuid
from datetime import datetime

from sqlalchemy import (
    Index,
    Integer,
    String,
    Text,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from darta_chalani.db.base import Base
from darta_chalani.db.enums import CaseKind
from darta_chalani.db.types import JSONType, utcnow

if TYPE_CHECKING:
    from darta_chalani.db.models import CaseAuditEntry


class CaseRecordColumns:
    """Columns shared by both record kinds."""

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    scope: Mapped[str] = mapped_column(String(20), nullable=False)
    ward_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    fiscal_year: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(String(40), nullable=False)
    subject: Mapped[str] = mapped_column(String(500), nullable=False)

    # Numbering (null until a number is reserved/committed)
    number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    formatted_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    allocation_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)

    # Supersede chain
    supersedes_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    superseded_by_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)

    created_by: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )


class Chalani(CaseRecordColumns, Base):
    """
    Outgoing correspondence.

    Drafted, reviewed, approved, numbered, signed/sealed and dispatched.
    The status column always equals the to_status of the newest audit entry.
    """

    __tablename__ = "chalanis"
    __table_args__ = (
        Index("idx_chalanis_status", "status"),
        Index("idx_chalanis_number", "fiscal_year", "scope", "ward_id", "number"),
    )

    body: Mapped[str] = mapped_column(Text, nullable=False)
    template_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    linked_darta_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    recipient: Mapped[dict] = mapped_column(JSONType, nullable=False)
    required_signatory_ids: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    attachment_ids: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)

    # Dispatch tracking
    dispatch_channel: Mapped[str | None] = mapped_column(String(30), nullable=True)
    tracking_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    courier_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    scheduled_dispatch_at: Mapped[datetime | None] = mapped_column(nullable=True)
    dispatched_at: Mapped[datetime | None] = mapped_column(nullable=True)
    acknowledged_at: Mapped[datetime | None] = mapped_column(nullable=True)
    acknowledged_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    delivered_at: Mapped[datetime | None] = mapped_column(nullable=True)
    signed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    sealed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    # Optimistic lock: bumped on every flush, stale writers get StaleDataError
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    __mapper_args__ = {"version_id_col": version}

    audit_trail: Mapped[list["CaseAuditEntry"]] = relationship(
        primaryjoin=(
            "and_(foreign(CaseAuditEntry.entity_id) == Chalani.id, "
            f"CaseAuditEntry.entity_type == '{CaseKind.CHALANI.value}')"
        ),
        order_by="CaseAuditEntry.sequence",
        viewonly=True,
        lazy="selectin",
    )

    kind = CaseKind.CHALANI


class Darta(CaseRecordColumns, Base):
    """
    Incoming correspondence.

    Received at intake, classified, numbered, optionally scanned and archived,
    routed to a section and worked until a response is issued and closed.
    """

    __tablename__ = "dartas"
    __table_args__ = (
        Index("idx_dartas_status", "status"),
        Index("idx_dartas_number", "fiscal_year", "scope", "ward_id", "number"),
        Index("idx_dartas_assignee", "assignee_id"),
    )

    applicant: Mapped[dict] = mapped_column(JSONType, nullable=False)
    intake_channel: Mapped[str] = mapped_column(String(30), nullable=False)
    primary_document_id: Mapped[str] = mapped_column(String(100), nullable=False)
    annex_ids: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    priority: Mapped[str] = mapped_column(String(20), nullable=False)
    received_date: Mapped[datetime] = mapped_column(nullable=False)

    # Routing
    organizational_unit_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    assignee_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    sla_deadline: Mapped[datetime | None] = mapped_column(nullable=True)
    classification_code: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Optimistic lock: bumped on every flush, stale writers get StaleDataError
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    __mapper_args__ = {"version_id_col": version}

    audit_trail: Mapped[list["CaseAuditEntry"]] = relationship(
        primaryjoin=(
            "and_(foreign(CaseAuditEntry.entity_id) == Darta.id, "
            f"CaseAuditEntry.entity_type == '{CaseKind.DARTA.value}')"
        ),
        order_by="CaseAuditEntry.sequence",
        viewonly=True,
        lazy="selectin",
    )

    kind = CaseKind.DARTA
