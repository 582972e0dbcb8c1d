"""Number allocator API endpoints (allocations, counters, fiscal-year rollover)."""

from datetime import timedelta
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from darta_chalani.core.deps import get_actor, get_db
from darta_chalani.db.enums import DocumentType, Scope
from darta_chalani.schemas.numbering import (
    AllocateNumberInput,
    CommitNumberInput,
    CounterKeyInput,
    LockCounterInput,
    NumberAllocationRead,
    NumberCounterRead,
    RolloverInput,
    VoidNumberInput,
)
from darta_chalani.services import numbering_service

router = APIRouter()


# =============================================================================
# Allocations
# =============================================================================


@router.post("/allocations", response_model=NumberAllocationRead, status_code=status.HTTP_201_CREATED)
def allocate_number(
    data: AllocateNumberInput,
    response: Response,
    db: Session = Depends(get_db),
    actor: str = Depends(get_actor),
):
    """
    Issue the next number as a PROVISIONAL allocation.

    Replaying an idempotency key returns the original allocation with 200.
    """
    if numbering_service.find_allocation_by_key(db, data.idempotency_key):
        response.status_code = status.HTTP_200_OK
    fiscal_year = data.fiscal_year or numbering_service.resolve_fiscal_year(
        db, data.scope, data.type, data.ward_id
    )
    allocation = numbering_service.allocate_number(
        db,
        scope=data.scope,
        document_type=data.type,
        fiscal_year=fiscal_year,
        ward_id=data.ward_id,
        idempotency_key=data.idempotency_key,
        actor=actor,
        ttl=timedelta(minutes=data.ttl_minutes) if data.ttl_minutes else None,
    )
    return NumberAllocationRead.model_validate(allocation)


@router.get("/allocations/by-key", response_model=NumberAllocationRead)
def get_allocation_by_key(idempotency_key: str = Query(..., min_length=1), db: Session = Depends(get_db)):
    allocation = numbering_service.get_allocation_by_idempotency_key(db, idempotency_key)
    if not allocation:
        raise HTTPException(status_code=404, detail="No allocation for this idempotency key")
    return NumberAllocationRead.model_validate(allocation)


@router.get("/allocations/{allocation_id}", response_model=NumberAllocationRead)
def get_allocation(allocation_id: UUID, db: Session = Depends(get_db)):
    return NumberAllocationRead.model_validate(numbering_service.get_allocation(db, allocation_id))


@router.post("/allocations/{allocation_id}/commit", response_model=NumberAllocationRead)
def commit_number(
    allocation_id: UUID,
    data: CommitNumberInput,
    db: Session = Depends(get_db),
    actor: str = Depends(get_actor),
):
    allocation = numbering_service.commit_number(
        db, allocation_id, entity_id=data.entity_id, entity_type=data.entity_type
    )
    return NumberAllocationRead.model_validate(allocation)


@router.post("/allocations/{allocation_id}/void", response_model=NumberAllocationRead)
def void_number(
    allocation_id: UUID,
    data: VoidNumberInput,
    db: Session = Depends(get_db),
    actor: str = Depends(get_actor),
):
    allocation = numbering_service.void_number(db, allocation_id, reason=data.reason, actor=actor)
    return NumberAllocationRead.model_validate(allocation)


@router.post("/allocations/sweep")
def sweep_allocations(db: Session = Depends(get_db), actor: str = Depends(get_actor)):
    """Expire PROVISIONAL allocations whose TTL has passed."""
    return {"expired": numbering_service.expire_stale_allocations(db)}


# =============================================================================
# Counters
# =============================================================================


@router.get("/counters", response_model=list[NumberCounterRead])
def list_counters(
    scope: Scope | None = None,
    type: DocumentType | None = None,
    fiscal_year: str | None = None,
    ward_id: str | None = None,
    db: Session = Depends(get_db),
):
    counters = numbering_service.list_counters(
        db, scope=scope, document_type=type, fiscal_year=fiscal_year, ward_id=ward_id
    )
    return [NumberCounterRead.model_validate(c) for c in counters]


@router.post("/counters/lock", response_model=NumberCounterRead)
def lock_counter(data: LockCounterInput, db: Session = Depends(get_db), actor: str = Depends(get_actor)):
    counter = numbering_service.lock_counter(
        db,
        scope=data.scope,
        document_type=data.type,
        fiscal_year=data.fiscal_year,
        ward_id=data.ward_id,
        actor=actor,
        reason=data.reason,
    )
    return NumberCounterRead.model_validate(counter)


@router.post("/counters/unlock", response_model=NumberCounterRead)
def unlock_counter(data: CounterKeyInput, db: Session = Depends(get_db), actor: str = Depends(get_actor)):
    counter = numbering_service.unlock_counter(
        db,
        scope=data.scope,
        document_type=data.type,
        fiscal_year=data.fiscal_year,
        ward_id=data.ward_id,
        actor=actor,
    )
    return NumberCounterRead.model_validate(counter)


@router.post("/rollover", response_model=list[NumberCounterRead])
def rollover_fiscal_year(data: RolloverInput, db: Session = Depends(get_db), actor: str = Depends(get_actor)):
    """Open counters for a new fiscal year and close the previous ones."""
    counters = numbering_service.rollover_fiscal_year(
        db,
        scope=data.scope,
        ward_id=data.ward_id,
        new_fiscal_year=data.new_fiscal_year,
        actor=actor,
    )
    return [NumberCounterRead.model_validate(c) for c in counters]
