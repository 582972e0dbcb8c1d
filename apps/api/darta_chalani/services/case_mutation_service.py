"""Case mutation orchestrator.

``execute`` is the single entry point for every Chalani and Darta mutation:

1. load the target record (NotFoundError)
2. replay a previously processed idempotency key
3. run the operation's handler (reason checks, guard, state, one audit entry)
4. remember the key, then commit everything as one transaction

Handlers are looked up by command type in ``_HANDLERS``, which must cover
every variant of ``CaseCommand``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable
from uuid import UUID

from sqlalchemy.orm import Session

from darta_chalani.core.exceptions import ValidationError
from darta_chalani.core.structured_logging import build_log_context
from darta_chalani.db.enums import CaseKind
from darta_chalani.db.models import IdempotencyRecord
from darta_chalani.db.transaction import run_atomic
from darta_chalani.schemas import chalani as chalani_schemas
from darta_chalani.schemas import darta as darta_schemas
from darta_chalani.services import case_snapshots, chalani_service, darta_service, idempotency_service
from darta_chalani.services.case_commands import COMMAND_TYPES, CaseCommand
from darta_chalani.services.case_transition_service import (
    MODELS,
    CaseMutationResult,
    load_record,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandSpec:
    kind: CaseKind
    action: str
    handler: Callable[..., CaseMutationResult]
    target_field: str | None  # None for create


def _chalani(action: str, handler, target_field: str | None = "chalani_id") -> CommandSpec:
    return CommandSpec(CaseKind.CHALANI, action, handler, target_field)


def _darta(action: str, handler, target_field: str | None = "darta_id") -> CommandSpec:
    return CommandSpec(CaseKind.DARTA, action, handler, target_field)


_HANDLERS: dict[type, CommandSpec] = {
    # Chalani
    chalani_schemas.CreateChalaniInput: _chalani("create", chalani_service.create, None),
    chalani_schemas.SubmitChalaniInput: _chalani("submit", chalani_service.submit),
    chalani_schemas.ReviewChalaniInput: _chalani("review", chalani_service.review),
    chalani_schemas.ApproveChalaniInput: _chalani("approve", chalani_service.approve),
    chalani_schemas.ReserveChalaniNumberInput: _chalani("reserve_number", chalani_service.reserve_number),
    chalani_schemas.FinalizeChalaniRegistrationInput: _chalani(
        "finalize_registration", chalani_service.finalize_registration
    ),
    chalani_schemas.DirectRegisterChalaniInput: _chalani("direct_register", chalani_service.direct_register),
    chalani_schemas.SignChalaniInput: _chalani("sign", chalani_service.sign),
    chalani_schemas.SealChalaniInput: _chalani("seal", chalani_service.seal),
    chalani_schemas.DispatchChalaniInput: _chalani("dispatch", chalani_service.dispatch),
    chalani_schemas.MarkInTransitInput: _chalani("mark_in_transit", chalani_service.mark_in_transit),
    chalani_schemas.AcknowledgeChalaniInput: _chalani("acknowledge", chalani_service.acknowledge),
    chalani_schemas.MarkDeliveredInput: _chalani("mark_delivered", chalani_service.mark_delivered),
    chalani_schemas.MarkReturnedUndeliveredInput: _chalani(
        "mark_returned_undelivered", chalani_service.mark_returned_undelivered
    ),
    chalani_schemas.ResendChalaniInput: _chalani("resend", chalani_service.resend),
    chalani_schemas.VoidChalaniInput: _chalani("void", chalani_service.void),
    chalani_schemas.SupersedeChalaniInput: _chalani(
        "supersede", chalani_service.supersede, "target_chalani_id"
    ),
    chalani_schemas.CloseChalaniInput: _chalani("close", chalani_service.close),
    # Darta
    darta_schemas.CreateDartaInput: _darta("create", darta_service.create, None),
    darta_schemas.SubmitDartaInput: _darta("submit", darta_service.submit),
    darta_schemas.ReviewDartaInput: _darta("review", darta_service.review),
    darta_schemas.ReserveDartaNumberInput: _darta("reserve_number", darta_service.reserve_number),
    darta_schemas.FinalizeDartaRegistrationInput: _darta(
        "finalize_registration", darta_service.finalize_registration
    ),
    darta_schemas.DirectRegisterDartaInput: _darta("direct_register", darta_service.direct_register),
    darta_schemas.ScanDartaInput: _darta("scan", darta_service.scan),
    darta_schemas.EnrichDartaMetadataInput: _darta("enrich_metadata", darta_service.enrich_metadata),
    darta_schemas.ArchiveDartaInput: _darta("archive", darta_service.archive),
    darta_schemas.RouteDartaInput: _darta("route", darta_service.route),
    darta_schemas.StartSectionReviewInput: _darta("start_section_review", darta_service.start_section_review),
    darta_schemas.RequestDartaClarificationInput: _darta(
        "request_clarification", darta_service.request_clarification
    ),
    darta_schemas.ProvideDartaClarificationInput: _darta(
        "provide_clarification", darta_service.provide_clarification
    ),
    darta_schemas.AcceptDartaInput: _darta("accept", darta_service.accept),
    darta_schemas.MarkDartaActionInput: _darta("mark_action_taken", darta_service.mark_action_taken),
    darta_schemas.IssueDartaResponseInput: _darta("issue_response", darta_service.issue_response),
    darta_schemas.RequestDartaAckInput: _darta("request_ack", darta_service.request_ack),
    darta_schemas.ReceiveDartaAckInput: _darta("receive_ack", darta_service.receive_ack),
    darta_schemas.VoidDartaInput: _darta("void", darta_service.void),
    darta_schemas.SupersedeDartaInput: _darta("supersede", darta_service.supersede, "target_darta_id"),
    darta_schemas.CloseDartaInput: _darta("close", darta_service.close),
}


def _assert_exhaustive() -> None:
    missing = [t.__name__ for t in COMMAND_TYPES if t not in _HANDLERS]
    extra = [t.__name__ for t in _HANDLERS if t not in COMMAND_TYPES]
    if missing or extra:
        raise RuntimeError(f"Case command handlers out of sync: missing={missing} extra={extra}")


_assert_exhaustive()


def handler_for(command_type: type) -> CommandSpec:
    entry = _HANDLERS.get(command_type)
    if entry is None:
        raise TypeError(f"Not a case command: {command_type.__name__}")
    return entry


def _replay(db: Session, entry: CommandSpec, previous: IdempotencyRecord) -> CaseMutationResult:
    """Return the result the key first produced."""
    model = MODELS[entry.kind]
    if previous.result:
        successor = previous.result.get("successor")
        return CaseMutationResult(
            record=case_snapshots.restore(db, model, previous.result["record"]),
            successor=case_snapshots.restore(db, model, successor) if successor else None,
            replayed=True,
        )
    # Keys stored without a snapshot replay the current state
    record = db.get(model, previous.entity_id)
    successor = db.get(model, previous.related_entity_id) if previous.related_entity_id else None
    return CaseMutationResult(record=record, successor=successor, replayed=True)


def execute(db: Session, command: CaseCommand, actor: str) -> CaseMutationResult:
    """
    Run one case mutation atomically and commit it.

    Raises:
        NotFoundError: target record missing
        BadTransitionError: operation not allowed from the current status
        ValidationError: missing reason, bad input, or key reused on another record
        InvalidStateError: allocation not usable for this record
        CounterLockedError: counter locked or closed
        ConflictError: concurrent write on the same record
    """
    entry = handler_for(type(command))
    if not actor or not str(actor).strip():
        raise ValidationError("actor", "is required")

    target_id: UUID | None = getattr(command, entry.target_field) if entry.target_field else None
    idempotency_key = getattr(command, "idempotency_key", None)
    mutation_kind = idempotency_service.mutation_kind(entry.kind, entry.action)

    def _run() -> CaseMutationResult:
        record = load_record(db, entry.kind, target_id) if target_id is not None else None
        previous = idempotency_service.check_replay(db, mutation_kind, idempotency_key, target_id)
        if previous:
            return _replay(db, entry, previous)

        result = entry.handler(db, record, command, actor)
        snapshot = None
        if idempotency_key:
            snapshot = {"record": case_snapshots.capture(db, result.record)}
            if result.successor is not None:
                snapshot["successor"] = case_snapshots.capture(db, result.successor)
        idempotency_service.remember(
            db,
            kind=mutation_kind,
            key=idempotency_key,
            entity_type=entry.kind,
            entity_id=result.record.id,
            actor=actor,
            related_entity_id=result.successor.id if result.successor else None,
            result=snapshot,
        )
        return result

    result = run_atomic(db, _run, entity_id=target_id)
    logger.info(
        "%s %s %s%s",
        entry.kind.value.title(),
        entry.action,
        result.record.status,
        " (replayed)" if result.replayed else "",
        extra=build_log_context(
            actor_id=actor,
            entity_type=entry.kind.value,
            entity_id=result.record.id,
            action=entry.action,
        ),
    )
    return result
