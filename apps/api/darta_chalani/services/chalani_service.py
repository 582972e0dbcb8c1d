"""Chalani operation handlers.

Each handler takes the loaded record (None for create), the validated input
and the acting user, and returns a CaseMutationResult. Handlers never commit;
``case_mutation_service.execute`` owns the transaction and the idempotency
index.
"""

from __future__ import annotations

import uuid

from sqlalchemy.orm import Session

from darta_chalani.core.exceptions import ValidationError
from darta_chalani.db.enums import (
    CaseKind,
    ChalaniApprovalDecision,
    ChalaniReviewDecision,
    ChalaniStatus,
)
from darta_chalani.db.models import Chalani
from darta_chalani.db.types import utcnow
from darta_chalani.schemas.chalani import (
    AcknowledgeChalaniInput,
    ApproveChalaniInput,
    CloseChalaniInput,
    CreateChalaniInput,
    DirectRegisterChalaniInput,
    DispatchChalaniInput,
    FinalizeChalaniRegistrationInput,
    MarkDeliveredInput,
    MarkInTransitInput,
    MarkReturnedUndeliveredInput,
    ResendChalaniInput,
    ReserveChalaniNumberInput,
    ReviewChalaniInput,
    SealChalaniInput,
    SignChalaniInput,
    SubmitChalaniInput,
    SupersedeChalaniInput,
    VoidChalaniInput,
)
from darta_chalani.services import case_transition_service as lifecycle
from darta_chalani.services import case_snapshots, idempotency_service
from darta_chalani.services.case_transition_service import CaseMutationResult


def build_chalani(db: Session, data: CreateChalaniInput) -> Chalani:
    """Build (but do not add) a DRAFT chalani from a create input."""
    scope, ward_id, fiscal_year = lifecycle.resolve_scope(db, CaseKind.CHALANI, data.scope, data.ward_id)
    return Chalani(
        id=uuid.uuid4(),
        scope=scope,
        ward_id=ward_id,
        fiscal_year=fiscal_year,
        subject=data.subject,
        body=data.body,
        template_id=data.template_id,
        linked_darta_id=data.linked_darta_id,
        recipient=data.recipient.model_dump(mode="json"),
        required_signatory_ids=list(data.required_signatory_ids),
        attachment_ids=list(data.attachment_ids or []),
    )


def _successor_from(db: Session, target: Chalani, data: CreateChalaniInput) -> Chalani:
    """
    Build the replacement for a superseded chalani.

    Content comes from the new input. Only the darta link and template are
    inherited, and only when the input leaves them out.
    """
    successor = build_chalani(db, data)
    if successor.linked_darta_id is None:
        successor.linked_darta_id = target.linked_darta_id
    if successor.template_id is None:
        successor.template_id = target.template_id
    return successor


# =============================================================================
# Handlers
# =============================================================================


def create(db: Session, record: None, data: CreateChalaniInput, actor: str) -> CaseMutationResult:
    chalani = build_chalani(db, data)
    lifecycle.add_new_record(db, chalani, actor=actor)
    return CaseMutationResult(record=chalani)


def submit(db: Session, chalani: Chalani, data: SubmitChalaniInput, actor: str) -> CaseMutationResult:
    lifecycle.apply_transition(
        db, chalani, action="submit", to_status=ChalaniStatus.PENDING_REVIEW, actor=actor
    )
    return CaseMutationResult(record=chalani)


def review(db: Session, chalani: Chalani, data: ReviewChalaniInput, actor: str) -> CaseMutationResult:
    if data.decision == ChalaniReviewDecision.APPROVE_REVIEW:
        to_status = ChalaniStatus.PENDING_APPROVAL
    else:
        to_status = ChalaniStatus.DRAFT
    lifecycle.apply_transition(
        db,
        chalani,
        action="review",
        to_status=to_status,
        actor=actor,
        reason=data.notes,
        details={"decision": data.decision},
    )
    return CaseMutationResult(record=chalani)


def approve(db: Session, chalani: Chalani, data: ApproveChalaniInput, actor: str) -> CaseMutationResult:
    reason = None
    if data.decision == ChalaniApprovalDecision.REJECT:
        reason = lifecycle.require_text(data.reason, "reason", entity_id=chalani.id)
        to_status = ChalaniStatus.DRAFT
    else:
        to_status = ChalaniStatus.APPROVED
    lifecycle.apply_transition(
        db,
        chalani,
        action="approve",
        to_status=to_status,
        actor=actor,
        reason=reason,
        details={
            "decision": data.decision,
            "notes": data.notes,
            "delegate_to_id": data.delegate_to_id,
        },
    )
    return CaseMutationResult(record=chalani)


def reserve_number(
    db: Session, chalani: Chalani, data: ReserveChalaniNumberInput, actor: str
) -> CaseMutationResult:
    return lifecycle.reserve_number(
        db,
        chalani,
        allocation_id=data.allocation_id,
        idempotency_key=data.idempotency_key,
        actor=actor,
    )


def finalize_registration(
    db: Session, chalani: Chalani, data: FinalizeChalaniRegistrationInput, actor: str
) -> CaseMutationResult:
    return lifecycle.finalize_registration(db, chalani, allocation_id=data.allocation_id, actor=actor)


def direct_register(
    db: Session, chalani: Chalani, data: DirectRegisterChalaniInput, actor: str
) -> CaseMutationResult:
    return lifecycle.direct_register(db, chalani, idempotency_key=data.idempotency_key, actor=actor)


def sign(db: Session, chalani: Chalani, data: SignChalaniInput, actor: str) -> CaseMutationResult:
    lifecycle.check_transition(chalani, ChalaniStatus.SIGNED)
    chalani.signed_at = utcnow()
    lifecycle.apply_transition(
        db,
        chalani,
        action="sign",
        to_status=ChalaniStatus.SIGNED,
        actor=actor,
        details={"signature_attachment_id": data.signature_attachment_id},
    )
    return CaseMutationResult(record=chalani)


def seal(db: Session, chalani: Chalani, data: SealChalaniInput, actor: str) -> CaseMutationResult:
    lifecycle.check_transition(chalani, ChalaniStatus.SEALED)
    chalani.sealed_at = utcnow()
    lifecycle.apply_transition(
        db,
        chalani,
        action="seal",
        to_status=ChalaniStatus.SEALED,
        actor=actor,
        details={"seal_attachment_id": data.seal_attachment_id},
    )
    return CaseMutationResult(record=chalani)


def dispatch(db: Session, chalani: Chalani, data: DispatchChalaniInput, actor: str) -> CaseMutationResult:
    lifecycle.check_transition(chalani, ChalaniStatus.DISPATCHED)
    chalani.dispatch_channel = data.dispatch_channel.value
    chalani.tracking_id = data.tracking_id
    chalani.courier_name = data.courier_name
    chalani.scheduled_dispatch_at = data.scheduled_dispatch_at
    chalani.dispatched_at = utcnow()
    lifecycle.apply_transition(
        db,
        chalani,
        action="dispatch",
        to_status=ChalaniStatus.DISPATCHED,
        actor=actor,
        details={"dispatch_channel": data.dispatch_channel, "tracking_id": data.tracking_id},
    )
    return CaseMutationResult(record=chalani)


def mark_in_transit(db: Session, chalani: Chalani, data: MarkInTransitInput, actor: str) -> CaseMutationResult:
    lifecycle.check_transition(chalani, ChalaniStatus.IN_TRANSIT)
    if data.courier_name:
        chalani.courier_name = data.courier_name
    if data.tracking_id:
        chalani.tracking_id = data.tracking_id
    lifecycle.apply_transition(
        db,
        chalani,
        action="mark_in_transit",
        to_status=ChalaniStatus.IN_TRANSIT,
        actor=actor,
        details={"courier_name": data.courier_name, "tracking_id": data.tracking_id},
    )
    return CaseMutationResult(record=chalani)


def acknowledge(db: Session, chalani: Chalani, data: AcknowledgeChalaniInput, actor: str) -> CaseMutationResult:
    lifecycle.check_transition(chalani, ChalaniStatus.ACKNOWLEDGED)
    chalani.acknowledged_at = utcnow()
    chalani.acknowledged_by = data.acknowledged_by or actor
    lifecycle.apply_transition(
        db,
        chalani,
        action="acknowledge",
        to_status=ChalaniStatus.ACKNOWLEDGED,
        actor=actor,
        details={"acknowledgement_proof_id": data.acknowledgement_proof_id},
    )
    return CaseMutationResult(record=chalani)


def mark_delivered(db: Session, chalani: Chalani, data: MarkDeliveredInput, actor: str) -> CaseMutationResult:
    lifecycle.check_transition(chalani, ChalaniStatus.DELIVERED)
    chalani.delivered_at = utcnow()
    lifecycle.apply_transition(
        db,
        chalani,
        action="mark_delivered",
        to_status=ChalaniStatus.DELIVERED,
        actor=actor,
        details={"delivered_proof_id": data.delivered_proof_id},
    )
    return CaseMutationResult(record=chalani)


def mark_returned_undelivered(
    db: Session, chalani: Chalani, data: MarkReturnedUndeliveredInput, actor: str
) -> CaseMutationResult:
    reason = lifecycle.require_text(data.reason, "reason", entity_id=chalani.id)
    lifecycle.apply_transition(
        db,
        chalani,
        action="mark_returned_undelivered",
        to_status=ChalaniStatus.RETURNED_UNDELIVERED,
        actor=actor,
        reason=reason,
    )
    return CaseMutationResult(record=chalani)


def resend(db: Session, chalani: Chalani, data: ResendChalaniInput, actor: str) -> CaseMutationResult:
    lifecycle.check_transition(chalani, ChalaniStatus.DISPATCHED)
    chalani.dispatch_channel = data.dispatch_channel.value
    chalani.courier_name = data.courier_name
    chalani.tracking_id = data.tracking_id
    chalani.dispatched_at = utcnow()
    lifecycle.apply_transition(
        db,
        chalani,
        action="resend",
        to_status=ChalaniStatus.DISPATCHED,
        actor=actor,
        details={"dispatch_channel": data.dispatch_channel, "tracking_id": data.tracking_id},
    )
    return CaseMutationResult(record=chalani)


def void(db: Session, chalani: Chalani, data: VoidChalaniInput, actor: str) -> CaseMutationResult:
    return lifecycle.void_record(db, chalani, reason=data.reason, actor=actor)


def supersede(db: Session, target: Chalani, data: SupersedeChalaniInput, actor: str) -> CaseMutationResult:
    reason = lifecycle.require_text(data.reason, "reason", entity_id=target.id)
    lifecycle.check_transition(target, ChalaniStatus.SUPERSEDED, escape=True)

    create_kind = idempotency_service.mutation_kind(CaseKind.CHALANI, "create")
    if idempotency_service.lookup(db, create_kind, data.new_chalani.idempotency_key):
        raise ValidationError(
            "newChalani.idempotencyKey", "already used by another chalani", entity_id=target.id
        )

    successor = _successor_from(db, target, data.new_chalani)
    result = lifecycle.supersede_record(db, target, successor, reason=reason, actor=actor)
    idempotency_service.remember(
        db,
        kind=create_kind,
        key=data.new_chalani.idempotency_key,
        entity_type=CaseKind.CHALANI,
        entity_id=successor.id,
        actor=actor,
        result={"record": case_snapshots.capture(db, successor)},
    )
    return result


def close(db: Session, chalani: Chalani, data: CloseChalaniInput, actor: str) -> CaseMutationResult:
    lifecycle.apply_transition(db, chalani, action="close", to_status=ChalaniStatus.CLOSED, actor=actor)
    return CaseMutationResult(record=chalani)
