"""Pydantic schemas for Darta (incoming correspondence)."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import EmailStr, Field

from darta_chalani.db.enums import (
    ApplicantType,
    DartaReviewDecision,
    DartaStatus,
    IntakeChannel,
    Priority,
    Scope,
)
from darta_chalani.schemas.audit import AuditEntryRead
from darta_chalani.schemas.chalani import ChannelCount, StatusCount
from darta_chalani.schemas.common import CommandModel, ReadModel


class ApplicantInput(CommandModel):
    full_name: str = Field(..., min_length=1, max_length=255)
    type: ApplicantType
    address: str | None = None
    email: EmailStr | None = None
    phone: str | None = Field(None, max_length=30)
    organization: str | None = Field(None, max_length=255)
    identification_number: str | None = Field(None, max_length=100)


# =============================================================================
# Mutation inputs
# =============================================================================


class CreateDartaInput(CommandModel):
    scope: Scope
    ward_id: str | None = None
    subject: str = Field(..., min_length=1, max_length=500)
    applicant: ApplicantInput
    intake_channel: IntakeChannel
    primary_document_id: str = Field(..., min_length=1)
    annex_ids: list[str] | None = None
    priority: Priority | None = None  # MEDIUM when omitted
    received_date: datetime
    idempotency_key: str = Field(..., min_length=1, max_length=255)


class RouteDartaInput(CommandModel):
    darta_id: UUID
    organizational_unit_id: str = Field(..., min_length=1)
    assignee_id: str | None = None
    priority: Priority | None = None
    sla_hours: int | None = Field(None, gt=0, le=24 * 365)
    notes: str | None = None


class ReviewDartaInput(CommandModel):
    darta_id: UUID
    decision: DartaReviewDecision
    notes: str
    requested_info: str | None = None


class DartaActionInput(CommandModel):
    """Common shape of the single-step darta operations."""

    darta_id: UUID
    notes: str | None = None
    idempotency_key: str | None = Field(None, min_length=1, max_length=255)


class SubmitDartaInput(DartaActionInput):
    pass


class ReserveDartaNumberInput(DartaActionInput):
    allocation_id: UUID | None = None


class FinalizeDartaRegistrationInput(DartaActionInput):
    allocation_id: UUID | None = None


class DirectRegisterDartaInput(DartaActionInput):
    pass


class ScanDartaInput(DartaActionInput):
    scan_attachment_id: str | None = None


class EnrichDartaMetadataInput(DartaActionInput):
    classification_code: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class ArchiveDartaInput(DartaActionInput):
    pass


class StartSectionReviewInput(DartaActionInput):
    pass


class RequestDartaClarificationInput(DartaActionInput):
    note: str


class ProvideDartaClarificationInput(DartaActionInput):
    pass


class AcceptDartaInput(DartaActionInput):
    pass


class MarkDartaActionInput(DartaActionInput):
    pass


class IssueDartaResponseInput(DartaActionInput):
    response_chalani_id: UUID | None = None
    doc_attachment_id: str | None = None


class RequestDartaAckInput(DartaActionInput):
    pass


class ReceiveDartaAckInput(DartaActionInput):
    pass


class VoidDartaInput(DartaActionInput):
    reason: str


class SupersedeDartaInput(CommandModel):
    target_darta_id: UUID
    reason: str
    new_darta: CreateDartaInput
    idempotency_key: str = Field(..., min_length=1, max_length=255)


class CloseDartaInput(DartaActionInput):
    pass


# =============================================================================
# Responses
# =============================================================================


class ApplicantRead(ReadModel):
    full_name: str
    type: ApplicantType
    address: str | None = None
    email: str | None = None
    phone: str | None = None
    organization: str | None = None
    identification_number: str | None = None


class DartaRead(ReadModel):
    """Full darta with its audit trail."""

    id: UUID
    scope: Scope
    ward_id: str | None
    fiscal_year: str
    status: DartaStatus
    subject: str
    applicant: ApplicantRead
    intake_channel: IntakeChannel
    primary_document_id: str
    annex_ids: list[str]
    priority: Priority
    received_date: datetime

    number: int | None
    formatted_number: str | None
    allocation_id: UUID | None

    organizational_unit_id: str | None
    assignee_id: str | None
    sla_deadline: datetime | None
    classification_code: str | None

    supersedes_id: UUID | None
    superseded_by_id: UUID | None
    created_by: str
    created_at: datetime
    updated_at: datetime
    version: int

    audit_trail: list[AuditEntryRead] = Field(default_factory=list)


class DartaListItem(ReadModel):
    id: UUID
    scope: Scope
    ward_id: str | None
    fiscal_year: str
    status: DartaStatus
    subject: str
    formatted_number: str | None
    intake_channel: IntakeChannel
    priority: Priority
    assignee_id: str | None
    sla_deadline: datetime | None
    created_at: datetime
    updated_at: datetime


class SupersedeDartaResult(ReadModel):
    old: DartaRead
    new: DartaRead


class DartaStats(ReadModel):
    total: int
    by_status: list[StatusCount]
    by_channel: list[ChannelCount]
    overdue_count: int


class DartaListResponse(ReadModel):
    items: list[DartaListItem]
    total: int
    page: int
    per_page: int
    pages: int
