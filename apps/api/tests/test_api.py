"""HTTP tests: wire format, status codes and the error body shape."""

import pytest

from darta_chalani import main

CHALANI_BODY = {
    "scope": "MUNICIPALITY",
    "subject": "Budget release notice",
    "body": "Please find the approved budget attached.",
    "recipient": {"name": "District Treasury Office", "address": "Kathmandu", "type": "GOVERNMENT_OFFICE"},
    "requiredSignatoryIds": ["officer-1"],
    "idempotencyKey": "api-create-1",
}


async def _create_chalani(client, key="api-create-1"):
    response = await client.post("/chalanis", json={**CHALANI_BODY, "idempotencyKey": key})
    assert response.status_code == 201
    return response.json()


@pytest.mark.asyncio
async def test_create_chalani_returns_camel_case_record(client):
    data = await _create_chalani(client)

    assert data["status"] == "DRAFT"
    assert data["requiredSignatoryIds"] == ["officer-1"]
    assert data["formattedNumber"] is None
    assert data["createdBy"] == "clerk-1"
    assert len(data["auditTrail"]) == 1
    assert data["auditTrail"][0]["action"] == "create"


@pytest.mark.asyncio
async def test_create_replay_returns_200_with_same_record(client):
    first = await _create_chalani(client)

    replay = await client.post("/chalanis", json=CHALANI_BODY)

    assert replay.status_code == 200
    assert replay.json()["id"] == first["id"]


@pytest.mark.asyncio
async def test_replayed_submit_returns_first_response(client):
    chalani = await _create_chalani(client)
    submit = {"chalaniId": chalani["id"], "idempotencyKey": "s1"}
    first = await client.post("/chalanis/submit", json=submit)
    await client.post(
        "/chalanis/review",
        json={"chalaniId": chalani["id"], "decision": "APPROVE_REVIEW", "idempotencyKey": "r1"},
    )

    replay = await client.post("/chalanis/submit", json=submit)

    assert replay.status_code == 200
    assert replay.json()["status"] == "PENDING_REVIEW"
    assert replay.json()["version"] == first.json()["version"]
    assert len(replay.json()["auditTrail"]) == 2
    current = await client.get(f"/chalanis/{chalani['id']}")
    assert current.json()["status"] == "PENDING_APPROVAL"


@pytest.mark.asyncio
async def test_blank_idempotency_key_is_422(client):
    chalani = await _create_chalani(client)
    await client.post("/chalanis/submit", json={"chalaniId": chalani["id"]})

    response = await client.post(
        "/chalanis/review",
        json={"chalaniId": chalani["id"], "decision": "APPROVE_REVIEW", "idempotencyKey": "  "},
    )

    assert response.status_code == 422
    record = await client.get(f"/chalanis/{chalani['id']}")
    assert record.json()["status"] == "PENDING_REVIEW"


@pytest.mark.asyncio
async def test_blank_actor_header_is_401(client):
    response = await client.post("/chalanis", json=CHALANI_BODY, headers={"X-Actor-Id": "  "})

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_bad_transition_is_409_with_transition(client):
    chalani = await _create_chalani(client)

    response = await client.post(
        "/chalanis/dispatch",
        json={"chalaniId": chalani["id"], "dispatchChannel": "EMAIL", "idempotencyKey": "d1"},
    )

    assert response.status_code == 409
    body = response.json()
    assert body["error"] == "bad_transition"
    assert body["entity_id"] == chalani["id"]
    assert body["transition"] == {"from": "DRAFT", "to": "DISPATCHED"}


@pytest.mark.asyncio
async def test_unknown_chalani_is_404(client):
    response = await client.get("/chalanis/00000000-0000-0000-0000-000000000000")

    assert response.status_code == 404
    assert response.json()["error"] == "not_found"


@pytest.mark.asyncio
async def test_void_with_blank_reason_is_422(client):
    chalani = await _create_chalani(client)

    response = await client.post(
        "/chalanis/void",
        json={"chalaniId": chalani["id"], "reason": " ", "idempotencyKey": "v1"},
    )

    assert response.status_code == 422
    assert response.json()["error"] == "validation_error"
    record = await client.get(f"/chalanis/{chalani['id']}")
    assert record.json()["status"] == "DRAFT"


@pytest.mark.asyncio
async def test_submit_then_list_and_stats(client):
    chalani = await _create_chalani(client)
    await _create_chalani(client, key="api-create-2")

    submitted = await client.post("/chalanis/submit", json={"chalaniId": chalani["id"]})
    listing = await client.get("/chalanis", params={"status": "PENDING_REVIEW"})
    stats = await client.get("/chalanis/stats")

    assert submitted.status_code == 200
    assert submitted.json()["status"] == "PENDING_REVIEW"
    assert listing.json()["total"] == 1
    assert listing.json()["items"][0]["id"] == chalani["id"]
    assert stats.json()["total"] == 2
    assert stats.json()["acknowledgementRate"] == 0.0


@pytest.mark.asyncio
async def test_create_darta(client):
    response = await client.post(
        "/dartas",
        json={
            "scope": "WARD",
            "wardId": "7",
            "subject": "Complaint about street lighting",
            "applicant": {"fullName": "Ram Thapa", "type": "CITIZEN"},
            "intakeChannel": "EMAIL",
            "primaryDocumentId": "doc-9",
            "receivedDate": "2025-11-03T10:30:00Z",
            "idempotencyKey": "darta-api-1",
        },
    )

    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "DRAFT"
    assert data["wardId"] == "7"
    assert data["priority"] == "MEDIUM"


# =============================================================================
# Numbering
# =============================================================================


ALLOCATION_BODY = {
    "type": "CHALANI",
    "scope": "MUNICIPALITY",
    "fiscalYear": "2082/83",
    "idempotencyKey": "alloc-1",
}


@pytest.mark.asyncio
async def test_allocate_then_replay(client):
    first = await client.post("/numbering/allocations", json=ALLOCATION_BODY)
    replay = await client.post("/numbering/allocations", json=ALLOCATION_BODY)

    assert first.status_code == 201
    assert first.json()["formattedNumber"] == "CHALANI-MUN/2082/83/1"
    assert first.json()["status"] == "PROVISIONAL"
    assert replay.status_code == 200
    assert replay.json()["id"] == first.json()["id"]

    by_key = await client.get("/numbering/allocations/by-key", params={"idempotency_key": "alloc-1"})
    assert by_key.json()["number"] == 1


@pytest.mark.asyncio
async def test_locked_counter_is_423(client):
    lock = await client.post(
        "/numbering/counters/lock",
        json={"type": "CHALANI", "scope": "MUNICIPALITY", "fiscalYear": "2082/83", "reason": "Audit"},
    )

    response = await client.post("/numbering/allocations", json=ALLOCATION_BODY)

    assert lock.status_code == 200
    assert lock.json()["isLocked"] is True
    assert response.status_code == 423
    assert response.json()["error"] == "counter_locked"


@pytest.mark.asyncio
async def test_void_allocation_and_list_counters(client):
    allocation = (await client.post("/numbering/allocations", json=ALLOCATION_BODY)).json()

    voided = await client.post(f"/numbering/allocations/{allocation['id']}/void", json={"reason": "Misprint"})
    counters = await client.get("/numbering/counters", params={"fiscal_year": "2082/83"})

    assert voided.json()["status"] == "VOIDED"
    assert [c["currentValue"] for c in counters.json()] == [1]


@pytest.mark.asyncio
async def test_health(client, engine, monkeypatch):
    monkeypatch.setattr(main, "engine", engine)

    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
