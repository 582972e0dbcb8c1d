"""Pydantic schemas for Chalani (outgoing correspondence)."""

from datetime import datetime
from uuid import UUID

from pydantic import EmailStr, Field

from darta_chalani.db.enums import (
    ChalaniApprovalDecision,
    ChalaniReviewDecision,
    ChalaniStatus,
    DispatchChannel,
    RecipientType,
    Scope,
)
from darta_chalani.schemas.audit import AuditEntryRead
from darta_chalani.schemas.common import CommandModel, ReadModel


class RecipientInput(CommandModel):
    name: str = Field(..., min_length=1, max_length=255)
    address: str = Field(..., min_length=1)
    email: EmailStr | None = None
    phone: str | None = Field(None, max_length=30)
    organization: str | None = Field(None, max_length=255)
    type: RecipientType


# =============================================================================
# Mutation inputs
# =============================================================================


class CreateChalaniInput(CommandModel):
    scope: Scope
    ward_id: str | None = None
    subject: str = Field(..., min_length=1, max_length=500)
    body: str
    template_id: str | None = None
    linked_darta_id: UUID | None = None
    recipient: RecipientInput
    required_signatory_ids: list[str] = Field(default_factory=list)
    attachment_ids: list[str] | None = None
    idempotency_key: str = Field(..., min_length=1, max_length=255)


class SubmitChalaniInput(CommandModel):
    chalani_id: UUID
    idempotency_key: str | None = Field(None, min_length=1, max_length=255)


class ReviewChalaniInput(CommandModel):
    chalani_id: UUID
    decision: ChalaniReviewDecision
    notes: str | None = None
    idempotency_key: str = Field(..., min_length=1, max_length=255)


class ApproveChalaniInput(CommandModel):
    chalani_id: UUID
    decision: ChalaniApprovalDecision
    notes: str | None = None
    reason: str | None = None  # Required when decision is REJECT
    delegate_to_id: str | None = None
    idempotency_key: str = Field(..., min_length=1, max_length=255)


class ReserveChalaniNumberInput(CommandModel):
    """Bind an allocation to the chalani; one is issued when allocation_id is omitted."""

    chalani_id: UUID
    allocation_id: UUID | None = None
    idempotency_key: str = Field(..., min_length=1, max_length=255)


class FinalizeChalaniRegistrationInput(CommandModel):
    chalani_id: UUID
    allocation_id: UUID | None = None  # Defaults to the reserved allocation
    idempotency_key: str = Field(..., min_length=1, max_length=255)


class DirectRegisterChalaniInput(CommandModel):
    chalani_id: UUID
    idempotency_key: str = Field(..., min_length=1, max_length=255)


class SignChalaniInput(CommandModel):
    chalani_id: UUID
    signature_attachment_id: str | None = None
    idempotency_key: str = Field(..., min_length=1, max_length=255)


class SealChalaniInput(CommandModel):
    chalani_id: UUID
    seal_attachment_id: str | None = None
    idempotency_key: str = Field(..., min_length=1, max_length=255)


class DispatchChalaniInput(CommandModel):
    chalani_id: UUID
    dispatch_channel: DispatchChannel
    tracking_id: str | None = None
    courier_name: str | None = None
    scheduled_dispatch_at: datetime | None = None
    idempotency_key: str = Field(..., min_length=1, max_length=255)


class MarkInTransitInput(CommandModel):
    chalani_id: UUID
    courier_name: str | None = None
    tracking_id: str | None = None
    idempotency_key: str = Field(..., min_length=1, max_length=255)


class AcknowledgeChalaniInput(CommandModel):
    chalani_id: UUID
    acknowledged_by: str | None = None
    acknowledgement_proof_id: str | None = None
    idempotency_key: str = Field(..., min_length=1, max_length=255)


class MarkDeliveredInput(CommandModel):
    chalani_id: UUID
    delivered_proof_id: str | None = None
    idempotency_key: str = Field(..., min_length=1, max_length=255)


class MarkReturnedUndeliveredInput(CommandModel):
    chalani_id: UUID
    reason: str
    idempotency_key: str = Field(..., min_length=1, max_length=255)


class ResendChalaniInput(CommandModel):
    chalani_id: UUID
    dispatch_channel: DispatchChannel
    courier_name: str | None = None
    tracking_id: str | None = None
    idempotency_key: str = Field(..., min_length=1, max_length=255)


class VoidChalaniInput(CommandModel):
    chalani_id: UUID
    reason: str
    idempotency_key: str = Field(..., min_length=1, max_length=255)


class SupersedeChalaniInput(CommandModel):
    target_chalani_id: UUID
    reason: str
    new_chalani: CreateChalaniInput
    idempotency_key: str = Field(..., min_length=1, max_length=255)


class CloseChalaniInput(CommandModel):
    chalani_id: UUID
    idempotency_key: str | None = Field(None, min_length=1, max_length=255)


# =============================================================================
# Responses
# =============================================================================


class RecipientRead(ReadModel):
    name: str
    address: str
    email: str | None = None
    phone: str | None = None
    organization: str | None = None
    type: RecipientType


class ChalaniRead(ReadModel):
    """Full chalani with its audit trail."""

    id: UUID
    scope: Scope
    ward_id: str | None
    fiscal_year: str
    status: ChalaniStatus
    subject: str
    body: str
    template_id: str | None
    linked_darta_id: UUID | None
    recipient: RecipientRead
    required_signatory_ids: list[str]
    attachment_ids: list[str]

    number: int | None
    formatted_number: str | None
    allocation_id: UUID | None

    dispatch_channel: DispatchChannel | None
    tracking_id: str | None
    courier_name: str | None
    scheduled_dispatch_at: datetime | None
    dispatched_at: datetime | None
    acknowledged_at: datetime | None
    acknowledged_by: str | None
    delivered_at: datetime | None
    signed_at: datetime | None
    sealed_at: datetime | None

    supersedes_id: UUID | None
    superseded_by_id: UUID | None
    created_by: str
    created_at: datetime
    updated_at: datetime
    version: int

    audit_trail: list[AuditEntryRead] = Field(default_factory=list)


class ChalaniListItem(ReadModel):
    """Chalani summary for list views (no audit trail)."""

    id: UUID
    scope: Scope
    ward_id: str | None
    fiscal_year: str
    status: ChalaniStatus
    subject: str
    formatted_number: str | None
    dispatch_channel: DispatchChannel | None
    created_by: str
    created_at: datetime
    updated_at: datetime


class SupersedeChalaniResult(ReadModel):
    old: ChalaniRead
    new: ChalaniRead


class StatusCount(ReadModel):
    status: str
    count: int


class ChannelCount(ReadModel):
    channel: str
    count: int


class ChalaniStats(ReadModel):
    total: int
    by_status: list[StatusCount]
    by_channel: list[ChannelCount]
    acknowledgement_rate: float


class ChalaniListResponse(ReadModel):
    items: list[ChalaniListItem]
    total: int
    page: int
    per_page: int
    pages: int
