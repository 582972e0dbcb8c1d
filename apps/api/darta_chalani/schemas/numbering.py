"""Pydantic schemas for the number allocator."""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from darta_chalani.db.enums import AllocationStatus, CaseKind, DocumentType, Scope
from darta_chalani.schemas.common import CommandModel, ReadModel


class AllocateNumberInput(CommandModel):
    type: DocumentType
    scope: Scope
    ward_id: str | None = None
    fiscal_year: str | None = None  # Current open fiscal year when omitted
    idempotency_key: str = Field(..., min_length=1, max_length=255)
    ttl_minutes: int | None = Field(None, gt=0, le=24 * 60)


class CommitNumberInput(CommandModel):
    entity_id: UUID
    entity_type: CaseKind


class VoidNumberInput(CommandModel):
    reason: str


class CounterKeyInput(CommandModel):
    type: DocumentType
    scope: Scope
    ward_id: str | None = None
    fiscal_year: str


class LockCounterInput(CounterKeyInput):
    reason: str | None = None


class RolloverInput(CommandModel):
    scope: Scope
    ward_id: str | None = None
    new_fiscal_year: str = Field(..., min_length=1, max_length=20)


class NumberAllocationRead(ReadModel):
    id: UUID
    type: DocumentType = Field(validation_alias="document_type")
    scope: Scope
    ward_id: str | None
    fiscal_year: str
    number: int
    formatted_number: str
    status: AllocationStatus
    idempotency_key: str
    expires_at: datetime | None
    allocated_by: str
    allocated_at: datetime
    reserved_for_id: UUID | None
    reserved_for_type: str | None
    committed_entity_id: UUID | None
    committed_entity_type: str | None
    committed_at: datetime | None
    void_reason: str | None
    voided_at: datetime | None


class NumberCounterRead(ReadModel):
    id: UUID
    type: DocumentType = Field(validation_alias="document_type")
    scope: Scope
    ward_id: str | None
    fiscal_year: str
    current_value: int
    last_issued_at: datetime | None
    is_locked: bool
    locked_by: str | None
    locked_reason: str | None
    locked_at: datetime | None
    closed_at: datetime | None
