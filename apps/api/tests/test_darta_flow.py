"""Tests for the Darta (incoming correspondence) lifecycle."""

import uuid
from datetime import timedelta

import pydantic
import pytest

from conftest import ACTOR, make_darta_input
from darta_chalani.core.exceptions import BadTransitionError, ValidationError
from darta_chalani.db.enums import CaseKind
from darta_chalani.db.types import utcnow
from darta_chalani.schemas.darta import (
    AcceptDartaInput,
    ArchiveDartaInput,
    CloseDartaInput,
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
from darta_chalani.services import case_audit_service, case_mutation_service, numbering_service


def run(db, command):
    return case_mutation_service.execute(db, command, ACTOR)


def actions(db, darta):
    return [e.action for e in case_audit_service.list_entries(db, CaseKind.DARTA, darta.id)]


def test_create_defaults_priority(db):
    darta = run(db, make_darta_input()).record

    assert darta.status == "DRAFT"
    assert darta.priority == "MEDIUM"
    assert darta.applicant["full_name"] == "Sita Sharma"
    assert darta.received_date.tzinfo is not None


def test_full_darta_lifecycle_with_archive(db, classified_darta):
    darta = classified_darta(scope="WARD", ward_id="3")
    steps = [
        DirectRegisterDartaInput(darta_id=darta.id, idempotency_key="reg"),
        ScanDartaInput(darta_id=darta.id, scan_attachment_id="scan-1"),
        EnrichDartaMetadataInput(darta_id=darta.id, classification_code="LAND-07", metadata={"parcel": "12"}),
        ArchiveDartaInput(darta_id=darta.id),
        RouteDartaInput(darta_id=darta.id, organizational_unit_id="land-section", assignee_id="officer-2", sla_hours=48),
        StartSectionReviewInput(darta_id=darta.id),
        RequestDartaClarificationInput(darta_id=darta.id, note="Attach the tax receipt"),
        ProvideDartaClarificationInput(darta_id=darta.id, notes="Receipt attached"),
        AcceptDartaInput(darta_id=darta.id),
        MarkDartaActionInput(darta_id=darta.id),
        IssueDartaResponseInput(darta_id=darta.id, doc_attachment_id="resp-1"),
        RequestDartaAckInput(darta_id=darta.id),
        ReceiveDartaAckInput(darta_id=darta.id),
        CloseDartaInput(darta_id=darta.id),
    ]
    for step in steps:
        run(db, step)
        latest = case_audit_service.latest_entry(db, CaseKind.DARTA, darta.id)
        assert latest.to_status == darta.status

    assert darta.status == "CLOSED"
    assert darta.formatted_number == "DARTA-WARD-3/2082/83/1"
    assert darta.classification_code == "LAND-07"
    assert darta.organizational_unit_id == "land-section"
    assert darta.assignee_id == "officer-2"
    assert darta.sla_deadline > utcnow() + timedelta(hours=47)
    assert actions(db, darta)[:3] == ["create", "submit", "review"]
    assert len(actions(db, darta)) == 3 + len(steps)


def test_short_path_without_archive(db, classified_darta):
    darta = classified_darta()
    run(db, ReserveDartaNumberInput(darta_id=darta.id))
    run(db, FinalizeDartaRegistrationInput(darta_id=darta.id))
    run(db, RouteDartaInput(darta_id=darta.id, organizational_unit_id="admin", priority="URGENT"))

    assert darta.status == "ASSIGNED"
    assert darta.priority == "URGENT"
    assert darta.sla_deadline is None
    assert numbering_service.get_allocation(db, darta.allocation_id).status == "COMMITTED"


def test_review_requires_notes(db):
    darta = run(db, make_darta_input()).record
    run(db, SubmitDartaInput(darta_id=darta.id))

    with pytest.raises(ValidationError) as exc_info:
        run(db, ReviewDartaInput(darta_id=darta.id, decision="APPROVE_REVIEW", notes="  "))

    assert exc_info.value.field == "notes"
    assert darta.status == "PENDING_REVIEW"


def test_review_can_return_to_draft(db):
    darta = run(db, make_darta_input()).record
    run(db, SubmitDartaInput(darta_id=darta.id))

    run(db, ReviewDartaInput(darta_id=darta.id, decision="EDIT_REQUIRED", notes="Signature missing"))

    assert darta.status == "DRAFT"


def test_clarification_requires_note(db, classified_darta):
    darta = classified_darta()
    run(db, DirectRegisterDartaInput(darta_id=darta.id))
    run(db, RouteDartaInput(darta_id=darta.id, organizational_unit_id="admin"))
    run(db, StartSectionReviewInput(darta_id=darta.id))

    with pytest.raises(ValidationError):
        run(db, RequestDartaClarificationInput(darta_id=darta.id, note=""))
    assert darta.status == "IN_REVIEW_BY_SECTION"


def test_route_before_registration_is_bad_transition(db):
    darta = run(db, make_darta_input()).record

    with pytest.raises(BadTransitionError):
        run(db, RouteDartaInput(darta_id=darta.id, organizational_unit_id="admin"))
    assert darta.organizational_unit_id is None


def test_void_from_assigned(db, classified_darta):
    darta = classified_darta()
    run(db, DirectRegisterDartaInput(darta_id=darta.id))
    run(db, RouteDartaInput(darta_id=darta.id, organizational_unit_id="admin"))

    run(db, VoidDartaInput(darta_id=darta.id, reason="Filed twice"))

    assert darta.status == "VOIDED"
    # A committed number stays committed
    assert numbering_service.get_allocation(db, darta.allocation_id).status == "COMMITTED"


def test_supersede_builds_successor_from_new_input(db, classified_darta):
    target = classified_darta()
    run(db, DirectRegisterDartaInput(darta_id=target.id))

    result = run(
        db,
        SupersedeDartaInput(
            target_darta_id=target.id,
            reason="Applicant name misspelled",
            new_darta=make_darta_input("replacement", applicant={"full_name": "Sita Sharma K.C.", "type": "CITIZEN"}),
            idempotency_key="sup-1",
        ),
    )

    successor = result.successor
    assert target.status == "SUPERSEDED"
    assert successor.status == "DRAFT"
    assert successor.supersedes_id == target.id
    assert successor.number is None
    assert successor.applicant["full_name"] == "Sita Sharma K.C."
    assert target.formatted_number == "DARTA-MUN/2082/83/1"


def test_classified_before_rollover_registers_in_new_year(db, classified_darta):
    earlier = classified_darta("earlier")
    run(db, DirectRegisterDartaInput(darta_id=earlier.id))
    darta = classified_darta()
    numbering_service.rollover_fiscal_year(db, scope="MUNICIPALITY", new_fiscal_year="2083/84")

    run(db, ReserveDartaNumberInput(darta_id=darta.id, idempotency_key="res"))
    run(db, FinalizeDartaRegistrationInput(darta_id=darta.id, idempotency_key="fin"))

    assert darta.status == "REGISTERED"
    assert darta.fiscal_year == "2083/84"
    assert darta.formatted_number == "DARTA-MUN/2083/84/1"


def test_blank_idempotency_key_fails_input_validation():
    with pytest.raises(pydantic.ValidationError):
        SubmitDartaInput(darta_id=uuid.uuid4(), idempotency_key="  ")
    with pytest.raises(pydantic.ValidationError):
        SupersedeDartaInput(
            target_darta_id=uuid.uuid4(), reason="Replace", new_darta=make_darta_input(), idempotency_key=""
        )
