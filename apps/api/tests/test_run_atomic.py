"""Tests for the commit-or-rollback mutation runner."""

import sqlite3

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from darta_chalani.core.config import settings
from darta_chalani.core.exceptions import ConflictError, NotFoundError
from darta_chalani.db.models import NumberCounter
from darta_chalani.db.transaction import is_transient_error, is_unique_violation, run_atomic


@pytest.fixture(autouse=True)
def fast_backoff(monkeypatch):
    monkeypatch.setattr(settings, "MUTATION_RETRY_BACKOFF_MS", 0)


def _locked_error() -> OperationalError:
    return OperationalError("UPDATE number_counters", {}, sqlite3.OperationalError("database is locked"))


def _counter(fiscal_year: str = "2082/83") -> NumberCounter:
    return NumberCounter(
        scope="MUNICIPALITY",
        document_type="CHALANI",
        fiscal_year=fiscal_year,
        ward_key="",
        current_value=0,
    )


def test_commits_on_success(db, session_factory):
    run_atomic(db, lambda: db.add(_counter()))

    other = session_factory()
    try:
        assert other.execute(select(NumberCounter)).scalars().all()
    finally:
        other.close()


def test_rolls_back_on_domain_error(db):
    def _fail():
        db.add(_counter())
        db.flush()
        raise NotFoundError("missing")

    with pytest.raises(NotFoundError):
        run_atomic(db, _fail)

    assert db.execute(select(NumberCounter)).scalars().all() == []


def test_retries_transient_lock_then_succeeds(db):
    calls = []

    def _flaky():
        calls.append(1)
        if len(calls) < 3:
            raise _locked_error()
        return "done"

    assert run_atomic(db, _flaky, max_retries=3) == "done"
    assert len(calls) == 3


def test_retries_exhausted_becomes_conflict(db):
    def _always_locked():
        raise _locked_error()

    with pytest.raises(ConflictError):
        run_atomic(db, _always_locked, entity_id="c-1", max_retries=2)


def test_unique_violation_is_retried(db):
    calls = []

    def _duplicate_once():
        calls.append(1)
        if len(calls) == 1:
            raise IntegrityError("INSERT", {}, sqlite3.IntegrityError("UNIQUE constraint failed"))
        return len(calls)

    assert run_atomic(db, _duplicate_once) == 2


def test_other_integrity_error_propagates_without_retry(db):
    calls = []

    def _missing_column():
        calls.append(1)
        raise IntegrityError(
            "INSERT", {}, sqlite3.IntegrityError("NOT NULL constraint failed: number_counters.scope")
        )

    with pytest.raises(IntegrityError):
        run_atomic(db, _missing_column, max_retries=3)

    assert len(calls) == 1


def test_is_unique_violation_recognizes_postgres_sqlstate():
    class PgError(Exception):
        sqlstate = "23505"

    class PgForeignKeyError(Exception):
        sqlstate = "23503"

    assert is_unique_violation(IntegrityError("INSERT", {}, PgError("duplicate key value")))
    assert not is_unique_violation(IntegrityError("INSERT", {}, PgForeignKeyError("violates foreign key")))


def test_non_transient_operational_error_propagates(db):
    def _broken():
        raise OperationalError("SELECT", {}, sqlite3.OperationalError("no such table: nope"))

    with pytest.raises(OperationalError):
        run_atomic(db, _broken)


def test_stale_data_is_conflict_without_retry(db):
    calls = []

    def _stale():
        calls.append(1)
        raise StaleDataError("expected to update 1 row(s); 0 were matched")

    with pytest.raises(ConflictError) as exc_info:
        run_atomic(db, _stale, entity_id="c-9")

    assert len(calls) == 1
    assert exc_info.value.entity_id == "c-9"


def test_is_transient_error_recognizes_serialization_failure():
    class PgError(Exception):
        sqlstate = "40001"

    assert is_transient_error(OperationalError("UPDATE", {}, PgError("could not serialize")))
    assert not is_transient_error(OperationalError("SELECT", {}, sqlite3.OperationalError("disk I/O error")))
