"""Tests for the status transition tables and guards."""

import pytest

from darta_chalani.core import transitions
from darta_chalani.core.exceptions import BadTransitionError
from darta_chalani.db.enums import CaseKind, ChalaniStatus, DartaStatus


def test_every_chalani_status_has_a_table_entry():
    assert set(transitions.CHALANI_TRANSITIONS) == {s.value for s in ChalaniStatus}


def test_every_darta_status_has_a_table_entry():
    assert set(transitions.DARTA_TRANSITIONS) == {s.value for s in DartaStatus}


def test_terminal_statuses_have_no_outgoing_edges():
    for table in transitions.TRANSITION_TABLES.values():
        for status in transitions.TERMINAL_STATUSES:
            assert table[status] == frozenset()


def test_escape_statuses_are_not_table_edges():
    for table in transitions.TRANSITION_TABLES.values():
        for targets in table.values():
            assert not targets & transitions.ESCAPE_STATUSES


def test_chalani_happy_path_edges_are_allowed():
    path = [
        "DRAFT",
        "PENDING_REVIEW",
        "PENDING_APPROVAL",
        "APPROVED",
        "NUMBER_RESERVED",
        "REGISTERED",
        "SIGNED",
        "SEALED",
        "DISPATCHED",
        "IN_TRANSIT",
        "ACKNOWLEDGED",
        "DELIVERED",
        "CLOSED",
    ]
    for from_status, to_status in zip(path, path[1:]):
        transitions.assert_transition(CaseKind.CHALANI, from_status, to_status)


def test_darta_happy_path_edges_are_allowed():
    path = [
        "DRAFT",
        "PENDING_REVIEW",
        "CLASSIFICATION",
        "REGISTERED",
        "SCANNED",
        "METADATA_ENRICHED",
        "DIGITALLY_ARCHIVED",
        "ASSIGNED",
        "IN_REVIEW_BY_SECTION",
        "NEEDS_CLARIFICATION",
        "IN_REVIEW_BY_SECTION",
        "ACCEPTED",
        "ACTION_TAKEN",
        "RESPONSE_ISSUED",
        "ACK_REQUESTED",
        "ACK_RECEIVED",
        "CLOSED",
    ]
    for from_status, to_status in zip(path, path[1:]):
        transitions.assert_transition("darta", from_status, to_status)


def test_bad_transition_reports_both_statuses():
    with pytest.raises(BadTransitionError) as exc_info:
        transitions.assert_transition(CaseKind.CHALANI, ChalaniStatus.DRAFT, ChalaniStatus.REGISTERED, entity_id="c-1")

    err = exc_info.value
    assert err.from_status == "DRAFT"
    assert err.to_status == "REGISTERED"
    assert err.to_dict()["transition"] == {"from": "DRAFT", "to": "REGISTERED"}
    assert err.to_dict()["entity_id"] == "c-1"


def test_returned_letter_can_only_be_redispatched():
    assert transitions.allowed_transitions(CaseKind.CHALANI, "RETURNED_UNDELIVERED") == frozenset({"DISPATCHED"})


def test_escape_allowed_from_any_non_terminal_status():
    for status in DartaStatus:
        if status.value in transitions.TERMINAL_STATUSES:
            continue
        transitions.assert_escape_transition(CaseKind.DARTA, status, "VOIDED")
        transitions.assert_escape_transition(CaseKind.DARTA, status, "SUPERSEDED")


@pytest.mark.parametrize("terminal", ["CLOSED", "VOIDED", "SUPERSEDED"])
def test_escape_rejected_from_terminal_status(terminal):
    with pytest.raises(BadTransitionError):
        transitions.assert_escape_transition(CaseKind.CHALANI, terminal, "VOIDED")


def test_escape_guard_rejects_ordinary_target():
    with pytest.raises(BadTransitionError):
        transitions.assert_escape_transition(CaseKind.CHALANI, "DRAFT", "APPROVED")


def test_unknown_kind_is_rejected():
    with pytest.raises(ValueError):
        transitions.allowed_transitions("MEMO", "DRAFT")


def test_is_terminal():
    assert transitions.is_terminal(CaseKind.CHALANI, "CLOSED")
    assert not transitions.is_terminal(CaseKind.DARTA, "REGISTERED")
