"""
Test configuration and fixtures.

Provides:
- A fresh SQLite database file per test (tables created from the models)
- Session factory and a default session
- Command builders for Chalani and Darta
- HTTPX AsyncClient with the actor header set
"""
import os
from datetime import datetime, timezone
from typing import AsyncGenerator, Generator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.orm import Session, sessionmaker

# Rate limits off for tests; must be set before the app is imported
os.environ["TESTING"] = "1"
os.environ.setdefault("ENV", "test")

from darta_chalani.core.deps import get_db
from darta_chalani.db.base import Base
from darta_chalani.db.session import build_engine
from darta_chalani.main import app
from darta_chalani.schemas.chalani import (
    ApproveChalaniInput,
    CreateChalaniInput,
    ReviewChalaniInput,
    SubmitChalaniInput,
)
from darta_chalani.schemas.darta import CreateDartaInput, ReviewDartaInput, SubmitDartaInput
from darta_chalani.services import case_mutation_service

ACTOR = "clerk-1"


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def engine(tmp_path):
    """File-backed SQLite so several sessions and threads share one database."""
    engine = build_engine(f"sqlite:///{tmp_path / 'registry.db'}")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db(session_factory) -> Generator[Session, None, None]:
    session = session_factory()
    yield session
    session.close()


# =============================================================================
# Command builders
# =============================================================================

def make_chalani_input(key: str = "chalani-create-1", **overrides) -> CreateChalaniInput:
    data = {
        "scope": "MUNICIPALITY",
        "subject": "Budget release notice",
        "body": "Please find the approved budget attached.",
        "recipient": {
            "name": "District Treasury Office",
            "address": "Kathmandu",
            "type": "GOVERNMENT_OFFICE",
        },
        "required_signatory_ids": ["officer-1"],
        "idempotency_key": key,
    }
    data.update(overrides)
    return CreateChalaniInput(**data)


def make_darta_input(key: str = "darta-create-1", **overrides) -> CreateDartaInput:
    data = {
        "scope": "MUNICIPALITY",
        "subject": "Request for land ownership certificate",
        "applicant": {"full_name": "Sita Sharma", "type": "CITIZEN"},
        "intake_channel": "COUNTER",
        "primary_document_id": "doc-1",
        "received_date": datetime(2025, 11, 3, 10, 30, tzinfo=timezone.utc),
        "idempotency_key": key,
    }
    data.update(overrides)
    return CreateDartaInput(**data)


@pytest.fixture
def chalani_input():
    return make_chalani_input


@pytest.fixture
def darta_input():
    return make_darta_input


@pytest.fixture
def approved_chalani(db):
    """A chalani walked through review and approval."""

    def _build(key: str = "approved-1", **overrides):
        chalani = case_mutation_service.execute(db, make_chalani_input(key, **overrides), ACTOR).record
        case_mutation_service.execute(db, SubmitChalaniInput(chalani_id=chalani.id), ACTOR)
        case_mutation_service.execute(
            db,
            ReviewChalaniInput(chalani_id=chalani.id, decision="APPROVE_REVIEW", idempotency_key=f"{key}-review"),
            ACTOR,
        )
        case_mutation_service.execute(
            db,
            ApproveChalaniInput(chalani_id=chalani.id, decision="APPROVE", idempotency_key=f"{key}-approve"),
            ACTOR,
        )
        return chalani

    return _build


@pytest.fixture
def classified_darta(db):
    """A darta walked through intake review into CLASSIFICATION."""

    def _build(key: str = "classified-1", **overrides):
        darta = case_mutation_service.execute(db, make_darta_input(key, **overrides), ACTOR).record
        case_mutation_service.execute(db, SubmitDartaInput(darta_id=darta.id), ACTOR)
        case_mutation_service.execute(
            db,
            ReviewDartaInput(darta_id=darta.id, decision="APPROVE_REVIEW", notes="Complete application"),
            ACTOR,
        )
        return darta

    return _build


# =============================================================================
# HTTP Client
# =============================================================================

@pytest.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client whose requests run against the per-test database."""

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"X-Actor-Id": ACTOR},
    ) as c:
        yield c
    app.dependency_overrides.clear()
