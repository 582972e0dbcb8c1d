"""Tests for the registry admin CLI."""

from datetime import timedelta

import pytest
from click.testing import CliRunner

from darta_chalani import cli as cli_module
from darta_chalani.cli import cli
from darta_chalani.services import numbering_service


@pytest.fixture
def runner(session_factory, monkeypatch):
    monkeypatch.setattr(cli_module, "SessionLocal", session_factory)
    return CliRunner()


def test_sweep_allocations(runner, db):
    numbering_service.allocate_number(
        db,
        scope="MUNICIPALITY",
        document_type="DARTA",
        fiscal_year="2082/83",
        idempotency_key="stale",
        actor="clerk-1",
        ttl=timedelta(seconds=-1),
    )

    result = runner.invoke(cli, ["sweep-allocations"])

    assert result.exit_code == 0, result.output
    assert "Expired 1 allocation(s)" in result.output


def test_rollover_then_list(runner):
    result = runner.invoke(cli, ["rollover", "--scope", "ward", "--ward-id", "5", "--fiscal-year", "2083/84"])
    listing = runner.invoke(cli, ["list-counters", "--fiscal-year", "2083/84"])

    assert result.exit_code == 0, result.output
    assert "CHALANI 2083/84 at 0" in result.output
    assert "WARD ward 5 DARTA 2083/84: 0" in listing.output


def test_rollover_ward_scope_requires_ward_id(runner):
    result = runner.invoke(cli, ["rollover", "--scope", "WARD", "--fiscal-year", "2083/84"])

    assert result.exit_code == 1
    assert "wardId" in result.output


def test_lock_and_unlock_counter(runner, db):
    args = ["--scope", "MUNICIPALITY", "--type", "CHALANI", "--fiscal-year", "2082/83"]

    locked = runner.invoke(cli, ["lock-counter", *args, "--reason", "Audit"])
    listing = runner.invoke(cli, ["list-counters"])
    unlocked = runner.invoke(cli, ["unlock-counter", *args])

    assert locked.exit_code == 0, locked.output
    assert "(locked)" in listing.output
    assert unlocked.exit_code == 0, unlocked.output
    counter = numbering_service.get_counter(db, "MUNICIPALITY", "CHALANI", "2082/83")
    assert counter.is_locked is False


def test_unlock_missing_counter_fails(runner):
    result = runner.invoke(
        cli, ["unlock-counter", "--scope", "MUNICIPALITY", "--type", "DARTA", "--fiscal-year", "2090/91"]
    )

    assert result.exit_code == 1
    assert "Error" in result.output
