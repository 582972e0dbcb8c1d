"""Status transitions shared by the Chalani and Darta handlers.

Every helper here runs inside the orchestrator's transaction. A status change
always goes through ``apply_transition``: guard, update, one audit entry.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Any, Union
from uuid import UUID

from sqlalchemy.orm import Session

from darta_chalani.core import transitions
from darta_chalani.core.exceptions import InvalidStateError, NotFoundError, ValidationError
from darta_chalani.db.enums import CaseKind, DocumentType
from darta_chalani.db.models import CaseAuditEntry, Chalani, Darta, NumberAllocation
from darta_chalani.db.types import utcnow
from darta_chalani.services import case_audit_service, numbering_service

CaseRecord = Union[Chalani, Darta]

MODELS: dict[CaseKind, type[CaseRecord]] = {
    CaseKind.CHALANI: Chalani,
    CaseKind.DARTA: Darta,
}


@dataclass
class CaseMutationResult:
    """Outcome of one orchestrated operation."""

    record: CaseRecord
    successor: CaseRecord | None = None  # New record created by supersede
    replayed: bool = False


def load_record(db: Session, kind: CaseKind, record_id: UUID) -> CaseRecord:
    record = db.get(MODELS[kind], record_id)
    if not record:
        raise NotFoundError(f"{kind.value.title()} {record_id} not found", entity_id=record_id)
    return record


def require_text(value: str | None, field: str, *, entity_id: UUID | None = None) -> str:
    """Reject a missing or blank required text field."""
    if value is None or not value.strip():
        raise ValidationError(field, "is required", entity_id=entity_id)
    return value.strip()


def check_transition(record: CaseRecord, to_status, *, escape: bool = False) -> None:
    """Run the guard without changing anything (for handlers with side effects)."""
    guard = transitions.assert_escape_transition if escape else transitions.assert_transition
    guard(record.kind, record.status, to_status, entity_id=record.id)


def apply_transition(
    db: Session,
    record: CaseRecord,
    *,
    action: str,
    to_status,
    actor: str,
    reason: str | None = None,
    details: dict[str, Any] | None = None,
    escape: bool = False,
) -> CaseAuditEntry:
    """Guard the edge, move the record and append its audit entry."""
    check_transition(record, to_status, escape=escape)
    from_status = record.status
    record.status = getattr(to_status, "value", to_status)
    record.updated_at = utcnow()
    return case_audit_service.append_entry(
        db,
        entity_type=record.kind,
        entity_id=record.id,
        action=action,
        from_status=from_status,
        to_status=record.status,
        actor=actor,
        reason=reason,
        details=details,
    )


def add_new_record(
    db: Session,
    record: CaseRecord,
    *,
    actor: str,
    action: str = "create",
    details: dict[str, Any] | None = None,
) -> CaseRecord:
    """Persist a freshly built record in DRAFT with its creation entry."""
    if record.id is None:
        record.id = uuid.uuid4()
    now = utcnow()
    record.status = transitions.INITIAL_STATUS
    record.created_by = actor
    record.created_at = now
    record.updated_at = now
    db.add(record)
    case_audit_service.append_entry(
        db,
        entity_type=record.kind,
        entity_id=record.id,
        action=action,
        from_status=None,
        to_status=record.status,
        actor=actor,
        details=details,
    )
    return record


def resolve_scope(db: Session, kind: CaseKind, scope, ward_id: str | None) -> tuple[str, str | None, str]:
    """Validated (scope, ward_id, fiscal_year) for a new record."""
    document_type = DocumentType(kind.value)
    scope, _, ward_id = numbering_service.normalize_counter_key(scope, document_type, ward_id)
    fiscal_year = numbering_service.resolve_fiscal_year(db, scope, document_type, ward_id)
    return scope.value, ward_id, fiscal_year


# =============================================================================
# Numbering
# =============================================================================


def _allocation_key(record: CaseRecord, action: str, idempotency_key: str | None) -> str:
    return f"{record.kind.value}:{record.id}:{action}:{idempotency_key or uuid.uuid4().hex}"


def _roll_forward_fiscal_year(db: Session, record: CaseRecord) -> dict[str, Any]:
    """
    Move an unnumbered record off a fiscal year that a rollover has closed.

    The record is numbered in the year that is open now. Returns audit details
    describing the move (empty when nothing changed).
    """
    document_type = DocumentType(record.kind.value)
    counter = numbering_service.find_counter(db, record.scope, document_type, record.fiscal_year, record.ward_id)
    if counter is not None and counter.closed_at is None:
        return {}
    current = numbering_service.resolve_fiscal_year(db, record.scope, document_type, record.ward_id)
    if current == record.fiscal_year:
        return {}
    previous, record.fiscal_year = record.fiscal_year, current
    return {"previous_fiscal_year": previous, "fiscal_year": current}


def _issue_for(db: Session, record: CaseRecord, action: str, idempotency_key: str | None, actor: str) -> NumberAllocation:
    return numbering_service.issue_allocation(
        db,
        scope=record.scope,
        document_type=DocumentType(record.kind.value),
        fiscal_year=record.fiscal_year,
        ward_id=record.ward_id,
        idempotency_key=_allocation_key(record, action, idempotency_key),
        actor=actor,
    )


def _reserve_for(db: Session, record: CaseRecord, allocation_id: UUID) -> NumberAllocation:
    return numbering_service.reserve_allocation(
        db,
        allocation_id,
        entity_id=record.id,
        entity_type=record.kind,
        scope=record.scope,
        document_type=DocumentType(record.kind.value),
        fiscal_year=record.fiscal_year,
        ward_id=record.ward_id,
    )


def _stamp_number(record: CaseRecord, allocation: NumberAllocation) -> None:
    record.allocation_id = allocation.id
    record.number = allocation.number
    record.formatted_number = allocation.formatted_number


def reserve_number(
    db: Session,
    record: CaseRecord,
    *,
    allocation_id: UUID | None,
    idempotency_key: str | None,
    actor: str,
    to_status: str = "NUMBER_RESERVED",
) -> CaseMutationResult:
    """
    Bind a PROVISIONAL allocation to the record and move it to NUMBER_RESERVED.

    Without an allocation_id one is issued from the record's counter. A
    record holds at most one live PROVISIONAL allocation.
    """
    check_transition(record, to_status)

    outstanding = numbering_service.find_outstanding_allocation(db, record.kind, record.id)
    if outstanding and outstanding.id != allocation_id:
        raise InvalidStateError(
            f"{record.kind.value.title()} already holds allocation {outstanding.formatted_number}",
            entity_id=record.id,
        )
    moved = _roll_forward_fiscal_year(db, record)
    if allocation_id is None:
        allocation_id = _issue_for(db, record, "reserve_number", idempotency_key, actor).id
    allocation = _reserve_for(db, record, allocation_id)
    _stamp_number(record, allocation)

    apply_transition(
        db,
        record,
        action="reserve_number",
        to_status=to_status,
        actor=actor,
        details={"allocation_id": allocation.id, "formatted_number": allocation.formatted_number, **moved},
    )
    return CaseMutationResult(record=record)


def finalize_registration(
    db: Session,
    record: CaseRecord,
    *,
    allocation_id: UUID | None,
    actor: str,
    to_status: str = "REGISTERED",
) -> CaseMutationResult:
    """
    Commit the reserved allocation and move the record to REGISTERED.

    A different allocation may be supplied only when the reserved one is no
    longer live (expired or voided).
    """
    check_transition(record, to_status)

    allocation_id = allocation_id or record.allocation_id
    if allocation_id is None:
        raise ValidationError("allocationId", "no allocation reserved for this record", entity_id=record.id)
    if allocation_id != record.allocation_id:
        outstanding = numbering_service.find_outstanding_allocation(db, record.kind, record.id)
        if outstanding:
            raise InvalidStateError(
                f"{record.kind.value.title()} still holds allocation {outstanding.formatted_number}",
                entity_id=record.id,
            )
        _roll_forward_fiscal_year(db, record)
        _reserve_for(db, record, allocation_id)

    allocation = numbering_service.commit_allocation(
        db, allocation_id, entity_id=record.id, entity_type=record.kind
    )
    _stamp_number(record, allocation)

    apply_transition(
        db,
        record,
        action="finalize_registration",
        to_status=to_status,
        actor=actor,
        details={"allocation_id": allocation.id, "formatted_number": allocation.formatted_number},
    )
    return CaseMutationResult(record=record)


def direct_register(
    db: Session,
    record: CaseRecord,
    *,
    idempotency_key: str | None,
    actor: str,
    to_status: str = "REGISTERED",
) -> CaseMutationResult:
    """Issue, reserve and commit a number in one step."""
    check_transition(record, to_status)
    moved = _roll_forward_fiscal_year(db, record)
    allocation = _issue_for(db, record, "direct_register", idempotency_key, actor)
    _reserve_for(db, record, allocation.id)
    allocation = numbering_service.commit_allocation(
        db, allocation.id, entity_id=record.id, entity_type=record.kind
    )
    _stamp_number(record, allocation)

    apply_transition(
        db,
        record,
        action="direct_register",
        to_status=to_status,
        actor=actor,
        details={"allocation_id": allocation.id, "formatted_number": allocation.formatted_number, **moved},
    )
    return CaseMutationResult(record=record)


def _release_outstanding(db: Session, record: CaseRecord, reason: str) -> None:
    outstanding = numbering_service.find_outstanding_allocation(db, record.kind, record.id)
    if outstanding:
        numbering_service.void_allocation(db, outstanding.id, reason=reason)


# =============================================================================
# Escape transitions
# =============================================================================


def void_record(db: Session, record: CaseRecord, *, reason: str | None, actor: str) -> CaseMutationResult:
    """Void from any non-terminal status, burning a reserved number."""
    reason = require_text(reason, "reason", entity_id=record.id)
    check_transition(record, "VOIDED", escape=True)
    _release_outstanding(db, record, f"{record.kind.value.title()} voided: {reason}")
    apply_transition(
        db,
        record,
        action="void",
        to_status="VOIDED",
        actor=actor,
        reason=reason,
        escape=True,
    )
    return CaseMutationResult(record=record)


def supersede_record(
    db: Session,
    target: CaseRecord,
    successor: CaseRecord,
    *,
    reason: str,
    actor: str,
) -> CaseMutationResult:
    """
    Replace ``target`` with ``successor`` (already built, not yet added).

    target -> SUPERSEDED, successor created in DRAFT, both links set.
    """
    check_transition(target, "SUPERSEDED", escape=True)
    successor.id = successor.id or uuid.uuid4()
    successor.supersedes_id = target.id
    add_new_record(
        db,
        successor,
        actor=actor,
        action="create_from_supersede",
        details={"supersedes_id": target.id},
    )

    _release_outstanding(db, target, f"{target.kind.value.title()} superseded: {reason}")
    target.superseded_by_id = successor.id
    apply_transition(
        db,
        target,
        action="supersede",
        to_status="SUPERSEDED",
        actor=actor,
        reason=reason,
        details={"superseded_by_id": successor.id},
        escape=True,
    )
    return CaseMutationResult(record=target, successor=successor)
