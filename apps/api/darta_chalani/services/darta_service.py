"""Darta operation handlers (incoming correspondence)."""

from __future__ import annotations

import uuid
from datetime import timedelta

from sqlalchemy.orm import Session

from darta_chalani.core.exceptions import ValidationError
from darta_chalani.db.enums import CaseKind, DartaReviewDecision, DartaStatus, Priority
from darta_chalani.db.models import Darta
from darta_chalani.db.types import utcnow
from darta_chalani.schemas.darta import (
    AcceptDartaInput,
    ArchiveDartaInput,
    CloseDartaInput,
    CreateDartaInput,
    DirectRegisterDartaInput,
    EnrichDartaMetadataInput,
    FinalizeDartaRegistrationInput,
    IssueDartaResponseInput,
    MarkDartaActionInput,
    ProvideDartaClarificationInput,
    ReceiveDartaAckInput,
    RequestDartaAckInput,
    RequestDartaClarificationInput,
    ReserveDartaNumberInput,
    ReviewDartaInput,
    RouteDartaInput,
    ScanDartaInput,
    StartSectionReviewInput,
    SubmitDartaInput,
    SupersedeDartaInput,
    VoidDartaInput,
)
from darta_chalani.services import case_transition_service as lifecycle
from darta_chalani.services import case_snapshots, idempotency_service
from darta_chalani.services.case_transition_service import CaseMutationResult


def build_darta(db: Session, data: CreateDartaInput) -> Darta:
    """Build (but do not add) a DRAFT darta from a create input."""
    scope, ward_id, fiscal_year = lifecycle.resolve_scope(db, CaseKind.DARTA, data.scope, data.ward_id)
    return Darta(
        id=uuid.uuid4(),
        scope=scope,
        ward_id=ward_id,
        fiscal_year=fiscal_year,
        subject=data.subject,
        applicant=data.applicant.model_dump(mode="json"),
        intake_channel=data.intake_channel.value,
        primary_document_id=data.primary_document_id,
        annex_ids=list(data.annex_ids or []),
        priority=(data.priority or Priority.MEDIUM).value,
        received_date=data.received_date,
    )


def _step(
    db: Session,
    darta: Darta,
    action: str,
    to_status: DartaStatus,
    actor: str,
    *,
    notes: str | None = None,
    details: dict | None = None,
) -> CaseMutationResult:
    lifecycle.apply_transition(
        db,
        darta,
        action=action,
        to_status=to_status,
        actor=actor,
        reason=notes,
        details=details,
    )
    return CaseMutationResult(record=darta)


# =============================================================================
# Intake and registration
# =============================================================================


def create(db: Session, record: None, data: CreateDartaInput, actor: str) -> CaseMutationResult:
    darta = build_darta(db, data)
    lifecycle.add_new_record(db, darta, actor=actor)
    return CaseMutationResult(record=darta)


def submit(db: Session, darta: Darta, data: SubmitDartaInput, actor: str) -> CaseMutationResult:
    return _step(db, darta, "submit", DartaStatus.PENDING_REVIEW, actor, notes=data.notes)


def review(db: Session, darta: Darta, data: ReviewDartaInput, actor: str) -> CaseMutationResult:
    notes = lifecycle.require_text(data.notes, "notes", entity_id=darta.id)
    if data.decision == DartaReviewDecision.APPROVE_REVIEW:
        to_status = DartaStatus.CLASSIFICATION
    else:
        to_status = DartaStatus.DRAFT
    return _step(
        db,
        darta,
        "review",
        to_status,
        actor,
        notes=notes,
        details={"decision": data.decision, "requested_info": data.requested_info},
    )


def reserve_number(db: Session, darta: Darta, data: ReserveDartaNumberInput, actor: str) -> CaseMutationResult:
    return lifecycle.reserve_number(
        db,
        darta,
        allocation_id=data.allocation_id,
        idempotency_key=data.idempotency_key,
        actor=actor,
    )


def finalize_registration(
    db: Session, darta: Darta, data: FinalizeDartaRegistrationInput, actor: str
) -> CaseMutationResult:
    return lifecycle.finalize_registration(db, darta, allocation_id=data.allocation_id, actor=actor)


def direct_register(db: Session, darta: Darta, data: DirectRegisterDartaInput, actor: str) -> CaseMutationResult:
    return lifecycle.direct_register(db, darta, idempotency_key=data.idempotency_key, actor=actor)


# =============================================================================
# Digitization
# =============================================================================


def scan(db: Session, darta: Darta, data: ScanDartaInput, actor: str) -> CaseMutationResult:
    return _step(
        db,
        darta,
        "scan",
        DartaStatus.SCANNED,
        actor,
        notes=data.notes,
        details={"scan_attachment_id": data.scan_attachment_id},
    )


def enrich_metadata(db: Session, darta: Darta, data: EnrichDartaMetadataInput, actor: str) -> CaseMutationResult:
    lifecycle.check_transition(darta, DartaStatus.METADATA_ENRICHED)
    if data.classification_code:
        darta.classification_code = data.classification_code
    return _step(
        db,
        darta,
        "enrich_metadata",
        DartaStatus.METADATA_ENRICHED,
        actor,
        notes=data.notes,
        details={"classification_code": data.classification_code, "metadata": data.metadata or None},
    )


def archive(db: Session, darta: Darta, data: ArchiveDartaInput, actor: str) -> CaseMutationResult:
    return _step(db, darta, "archive", DartaStatus.DIGITALLY_ARCHIVED, actor, notes=data.notes)


# =============================================================================
# Routing and section work
# =============================================================================


def route(db: Session, darta: Darta, data: RouteDartaInput, actor: str) -> CaseMutationResult:
    lifecycle.check_transition(darta, DartaStatus.ASSIGNED)
    darta.organizational_unit_id = data.organizational_unit_id
    darta.assignee_id = data.assignee_id
    if data.priority:
        darta.priority = data.priority.value
    if data.sla_hours:
        darta.sla_deadline = utcnow() + timedelta(hours=data.sla_hours)
    return _step(
        db,
        darta,
        "route",
        DartaStatus.ASSIGNED,
        actor,
        notes=data.notes,
        details={
            "organizational_unit_id": data.organizational_unit_id,
            "assignee_id": data.assignee_id,
            "sla_hours": data.sla_hours,
        },
    )


def start_section_review(
    db: Session, darta: Darta, data: StartSectionReviewInput, actor: str
) -> CaseMutationResult:
    return _step(db, darta, "start_section_review", DartaStatus.IN_REVIEW_BY_SECTION, actor, notes=data.notes)


def request_clarification(
    db: Session, darta: Darta, data: RequestDartaClarificationInput, actor: str
) -> CaseMutationResult:
    note = lifecycle.require_text(data.note, "note", entity_id=darta.id)
    return _step(db, darta, "request_clarification", DartaStatus.NEEDS_CLARIFICATION, actor, notes=note)


def provide_clarification(
    db: Session, darta: Darta, data: ProvideDartaClarificationInput, actor: str
) -> CaseMutationResult:
    return _step(db, darta, "provide_clarification", DartaStatus.IN_REVIEW_BY_SECTION, actor, notes=data.notes)


def accept(db: Session, darta: Darta, data: AcceptDartaInput, actor: str) -> CaseMutationResult:
    return _step(db, darta, "accept", DartaStatus.ACCEPTED, actor, notes=data.notes)


def mark_action_taken(db: Session, darta: Darta, data: MarkDartaActionInput, actor: str) -> CaseMutationResult:
    return _step(db, darta, "mark_action_taken", DartaStatus.ACTION_TAKEN, actor, notes=data.notes)


# =============================================================================
# Response and closure
# =============================================================================


def issue_response(db: Session, darta: Darta, data: IssueDartaResponseInput, actor: str) -> CaseMutationResult:
    return _step(
        db,
        darta,
        "issue_response",
        DartaStatus.RESPONSE_ISSUED,
        actor,
        notes=data.notes,
        details={
            "response_chalani_id": data.response_chalani_id,
            "doc_attachment_id": data.doc_attachment_id,
        },
    )


def request_ack(db: Session, darta: Darta, data: RequestDartaAckInput, actor: str) -> CaseMutationResult:
    return _step(db, darta, "request_ack", DartaStatus.ACK_REQUESTED, actor, notes=data.notes)


def receive_ack(db: Session, darta: Darta, data: ReceiveDartaAckInput, actor: str) -> CaseMutationResult:
    return _step(db, darta, "receive_ack", DartaStatus.ACK_RECEIVED, actor, notes=data.notes)


def void(db: Session, darta: Darta, data: VoidDartaInput, actor: str) -> CaseMutationResult:
    return lifecycle.void_record(db, darta, reason=data.reason, actor=actor)


def supersede(db: Session, target: Darta, data: SupersedeDartaInput, actor: str) -> CaseMutationResult:
    reason = lifecycle.require_text(data.reason, "reason", entity_id=target.id)
    lifecycle.check_transition(target, DartaStatus.SUPERSEDED, escape=True)

    create_kind = idempotency_service.mutation_kind(CaseKind.DARTA, "create")
    if idempotency_service.lookup(db, create_kind, data.new_darta.idempotency_key):
        raise ValidationError("newDarta.idempotencyKey", "already used by another darta", entity_id=target.id)

    # The successor is built from the new input alone; routing and numbering
    # state of the target stay behind.
    successor = build_darta(db, data.new_darta)
    result = lifecycle.supersede_record(db, target, successor, reason=reason, actor=actor)
    idempotency_service.remember(
        db,
        kind=create_kind,
        key=data.new_darta.idempotency_key,
        entity_type=CaseKind.DARTA,
        entity_id=successor.id,
        actor=actor,
        result={"record": case_snapshots.capture(db, successor)},
    )
    return result


def close(db: Session, darta: Darta, data: CloseDartaInput, actor: str) -> CaseMutationResult:
    return _step(db, darta, "close", DartaStatus.CLOSED, actor, notes=data.notes)
