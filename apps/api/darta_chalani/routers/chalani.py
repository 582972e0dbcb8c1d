"""Chalani (outgoing correspondence) API endpoints."""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from darta_chalani.core.deps import get_actor, get_db
from darta_chalani.db.enums import CaseKind, ChalaniStatus, DispatchChannel, Scope
from darta_chalani.schemas.chalani import (
    AcknowledgeChalaniInput,
    ApproveChalaniInput,
    ChalaniListItem,
    ChalaniListResponse,
    ChalaniRead,
    ChalaniStats,
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
    SupersedeChalaniResult,
    VoidChalaniInput,
)
from darta_chalani.services import case_mutation_service, case_query_service
from darta_chalani.services.case_query_service import CaseFilters
from darta_chalani.utils.pagination import PaginationParams, get_pagination

router = APIRouter()


def _mutate(db: Session, command, actor: str) -> ChalaniRead:
    result = case_mutation_service.execute(db, command, actor)
    return ChalaniRead.model_validate(result.record)


# =============================================================================
# Queries
# =============================================================================


@router.get("", response_model=ChalaniListResponse)
def list_chalanis(
    status_filter: list[ChalaniStatus] | None = Query(None, alias="status"),
    scope: Scope | None = None,
    ward_id: str | None = None,
    fiscal_year: str | None = None,
    search: str | None = Query(None, max_length=200),
    from_date: datetime | None = None,
    to_date: datetime | None = None,
    created_by: str | None = None,
    dispatch_channel: list[DispatchChannel] | None = Query(None),
    pagination: PaginationParams = Depends(get_pagination),
    db: Session = Depends(get_db),
):
    """List chalanis, newest first."""
    filters = CaseFilters(
        status=[s.value for s in status_filter] if status_filter else None,
        scope=scope.value if scope else None,
        ward_id=ward_id,
        fiscal_year=fiscal_year,
        search=search,
        from_date=from_date,
        to_date=to_date,
        created_by=created_by,
        dispatch_channel=[c.value for c in dispatch_channel] if dispatch_channel else None,
    )
    items, total = case_query_service.list_records(db, CaseKind.CHALANI, filters, pagination)
    return ChalaniListResponse(
        items=[ChalaniListItem.model_validate(item) for item in items],
        total=total,
        page=pagination.page,
        per_page=pagination.per_page,
        pages=pagination.pages(total),
    )


@router.get("/stats", response_model=ChalaniStats)
def chalani_stats(db: Session = Depends(get_db)):
    return ChalaniStats.model_validate(case_query_service.record_stats(db, CaseKind.CHALANI))


@router.get("/by-number", response_model=ChalaniRead)
def get_chalani_by_number(
    number: int = Query(..., ge=1),
    fiscal_year: str = Query(...),
    scope: Scope = Query(...),
    ward_id: str | None = None,
    db: Session = Depends(get_db),
):
    record = case_query_service.find_by_number(
        db, CaseKind.CHALANI, number=number, fiscal_year=fiscal_year, scope=scope, ward_id=ward_id
    )
    return ChalaniRead.model_validate(record)


@router.get("/{chalani_id}", response_model=ChalaniRead)
def get_chalani(chalani_id: UUID, db: Session = Depends(get_db)):
    return ChalaniRead.model_validate(case_query_service.get_record(db, CaseKind.CHALANI, chalani_id))


# =============================================================================
# Mutations
# =============================================================================


@router.post("", response_model=ChalaniRead, status_code=status.HTTP_201_CREATED)
def create_chalani(
    data: CreateChalaniInput,
    response: Response,
    db: Session = Depends(get_db),
    actor: str = Depends(get_actor),
):
    """Create a chalani in DRAFT. Replaying the idempotency key returns 200."""
    result = case_mutation_service.execute(db, data, actor)
    if result.replayed:
        response.status_code = status.HTTP_200_OK
    return ChalaniRead.model_validate(result.record)


@router.post("/submit", response_model=ChalaniRead)
def submit_chalani(data: SubmitChalaniInput, db: Session = Depends(get_db), actor: str = Depends(get_actor)):
    return _mutate(db, data, actor)


@router.post("/review", response_model=ChalaniRead)
def review_chalani(data: ReviewChalaniInput, db: Session = Depends(get_db), actor: str = Depends(get_actor)):
    return _mutate(db, data, actor)


@router.post("/approve", response_model=ChalaniRead)
def approve_chalani(data: ApproveChalaniInput, db: Session = Depends(get_db), actor: str = Depends(get_actor)):
    return _mutate(db, data, actor)


@router.post("/reserve-number", response_model=ChalaniRead)
def reserve_chalani_number(
    data: ReserveChalaniNumberInput, db: Session = Depends(get_db), actor: str = Depends(get_actor)
):
    return _mutate(db, data, actor)


@router.post("/finalize", response_model=ChalaniRead)
def finalize_chalani_registration(
    data: FinalizeChalaniRegistrationInput, db: Session = Depends(get_db), actor: str = Depends(get_actor)
):
    return _mutate(db, data, actor)


@router.post("/direct-register", response_model=ChalaniRead)
def direct_register_chalani(
    data: DirectRegisterChalaniInput, db: Session = Depends(get_db), actor: str = Depends(get_actor)
):
    return _mutate(db, data, actor)


@router.post("/sign", response_model=ChalaniRead)
def sign_chalani(data: SignChalaniInput, db: Session = Depends(get_db), actor: str = Depends(get_actor)):
    return _mutate(db, data, actor)


@router.post("/seal", response_model=ChalaniRead)
def seal_chalani(data: SealChalaniInput, db: Session = Depends(get_db), actor: str = Depends(get_actor)):
    return _mutate(db, data, actor)


@router.post("/dispatch", response_model=ChalaniRead)
def dispatch_chalani(data: DispatchChalaniInput, db: Session = Depends(get_db), actor: str = Depends(get_actor)):
    return _mutate(db, data, actor)


@router.post("/in-transit", response_model=ChalaniRead)
def mark_chalani_in_transit(
    data: MarkInTransitInput, db: Session = Depends(get_db), actor: str = Depends(get_actor)
):
    return _mutate(db, data, actor)


@router.post("/acknowledge", response_model=ChalaniRead)
def acknowledge_chalani(
    data: AcknowledgeChalaniInput, db: Session = Depends(get_db), actor: str = Depends(get_actor)
):
    return _mutate(db, data, actor)


@router.post("/deliver", response_model=ChalaniRead)
def mark_chalani_delivered(
    data: MarkDeliveredInput, db: Session = Depends(get_db), actor: str = Depends(get_actor)
):
    return _mutate(db, data, actor)


@router.post("/return-undelivered", response_model=ChalaniRead)
def mark_chalani_returned_undelivered(
    data: MarkReturnedUndeliveredInput, db: Session = Depends(get_db), actor: str = Depends(get_actor)
):
    return _mutate(db, data, actor)


@router.post("/resend", response_model=ChalaniRead)
def resend_chalani(data: ResendChalaniInput, db: Session = Depends(get_db), actor: str = Depends(get_actor)):
    return _mutate(db, data, actor)


@router.post("/void", response_model=ChalaniRead)
def void_chalani(data: VoidChalaniInput, db: Session = Depends(get_db), actor: str = Depends(get_actor)):
    return _mutate(db, data, actor)


@router.post("/supersede", response_model=SupersedeChalaniResult)
def supersede_chalani(
    data: SupersedeChalaniInput, db: Session = Depends(get_db), actor: str = Depends(get_actor)
):
    """Replace a chalani: the target becomes SUPERSEDED and a linked DRAFT is created."""
    result = case_mutation_service.execute(db, data, actor)
    return SupersedeChalaniResult(
        old=ChalaniRead.model_validate(result.record),
        new=ChalaniRead.model_validate(result.successor),
    )


@router.post("/close", response_model=ChalaniRead)
def close_chalani(data: CloseChalaniInput, db: Session = Depends(get_db), actor: str = Depends(get_actor)):
    return _mutate(db, data, actor)
