"""Tests for case listing, lookup by number and statistics."""

from datetime import timedelta

import pytest

from conftest import ACTOR, make_chalani_input, make_darta_input
from darta_chalani.core.exceptions import NotFoundError
from darta_chalani.db.enums import CaseKind
from darta_chalani.db.types import utcnow
from darta_chalani.schemas.chalani import (
    AcknowledgeChalaniInput,
    DirectRegisterChalaniInput,
    DispatchChalaniInput,
    SubmitChalaniInput,
)
from darta_chalani.services import case_mutation_service, case_query_service
from darta_chalani.services.case_query_service import CaseFilters
from darta_chalani.utils.pagination import PaginationParams


def run(db, command):
    return case_mutation_service.execute(db, command, ACTOR)


@pytest.fixture
def three_chalanis(db):
    records = [
        run(db, make_chalani_input("c1", subject="Water supply schedule")).record,
        run(db, make_chalani_input("c2", subject="Road maintenance notice")).record,
        run(db, make_chalani_input("c3", scope="WARD", ward_id="4", subject="Ward meeting")).record,
    ]
    run(db, SubmitChalaniInput(chalani_id=records[0].id))
    return records


def test_list_filters_by_status(db, three_chalanis):
    items, total = case_query_service.list_records(
        db, CaseKind.CHALANI, CaseFilters(status=["PENDING_REVIEW"])
    )

    assert total == 1
    assert items[0].id == three_chalanis[0].id


def test_list_filters_by_scope_and_ward(db, three_chalanis):
    items, total = case_query_service.list_records(
        db, CaseKind.CHALANI, CaseFilters(scope="WARD", ward_id="4")
    )

    assert total == 1
    assert items[0].subject == "Ward meeting"


def test_list_search_matches_subject(db, three_chalanis):
    _, total = case_query_service.list_records(db, CaseKind.CHALANI, CaseFilters(search="notice"))

    assert total == 1


def test_list_paginates(db, three_chalanis):
    items, total = case_query_service.list_records(
        db, CaseKind.CHALANI, CaseFilters(), PaginationParams(page=2, per_page=2)
    )

    assert total == 3
    assert len(items) == 1


def test_find_by_number(db, approved_chalani):
    chalani = approved_chalani()
    run(db, DirectRegisterChalaniInput(chalani_id=chalani.id, idempotency_key="reg"))

    found = case_query_service.find_by_number(
        db, CaseKind.CHALANI, number=1, fiscal_year="2082/83", scope="MUNICIPALITY"
    )

    assert found.id == chalani.id
    with pytest.raises(NotFoundError):
        case_query_service.find_by_number(db, CaseKind.CHALANI, number=2, fiscal_year="2082/83", scope="MUNICIPALITY")


def test_chalani_stats(db, approved_chalani):
    chalani = approved_chalani()
    run(db, make_chalani_input("draft-only"))
    run(db, DirectRegisterChalaniInput(chalani_id=chalani.id, idempotency_key="reg"))
    run(db, DispatchChalaniInput(chalani_id=chalani.id, dispatch_channel="EMAIL", idempotency_key="d1"))
    run(db, AcknowledgeChalaniInput(chalani_id=chalani.id, idempotency_key="ack"))

    stats = case_query_service.record_stats(db, CaseKind.CHALANI)

    assert stats["total"] == 2
    assert {"status": "ACKNOWLEDGED", "count": 1} in stats["by_status"]
    assert {"status": "DRAFT", "count": 1} in stats["by_status"]
    assert stats["by_channel"] == [{"channel": "EMAIL", "count": 1}]
    assert stats["acknowledgement_rate"] == 1.0


def test_darta_overdue_count_and_filter(db):
    late = run(db, make_darta_input("late")).record
    run(db, make_darta_input("on-time"))
    late.sla_deadline = utcnow() - timedelta(hours=1)
    db.commit()

    stats = case_query_service.record_stats(db, CaseKind.DARTA)
    items, total = case_query_service.list_records(db, CaseKind.DARTA, CaseFilters(is_overdue=True))

    assert stats["overdue_count"] == 1
    assert stats["by_channel"] == [{"channel": "COUNTER", "count": 2}]
    assert total == 1
    assert items[0].id == late.id
