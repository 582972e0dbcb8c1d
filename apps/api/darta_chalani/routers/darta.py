"""Darta (incoming correspondence) API endpoints."""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from darta_chalani.core.deps import get_actor, get_db
from darta_chalani.db.enums import CaseKind, DartaStatus, IntakeChannel, Priority, Scope
from darta_chalani.schemas.darta import (
    AcceptDartaInput,
    ArchiveDartaInput,
    CloseDartaInput,
    CreateDartaInput,
    DartaListItem,
    DartaListResponse,
    DartaRead,
    DartaStats,
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
    SupersedeDartaResult,
    VoidDartaInput,
)
from darta_chalani.services import case_mutation_service, case_query_service
from darta_chalani.services.case_query_service import CaseFilters
from darta_chalani.utils.pagination import PaginationParams, get_pagination

router = APIRouter()


def _mutate(db: Session, command, actor: str) -> DartaRead:
    result = case_mutation_service.execute(db, command, actor)
    return DartaRead.model_validate(result.record)


# =============================================================================
# Queries
# =============================================================================


@router.get("", response_model=DartaListResponse)
def list_dartas(
    status_filter: list[DartaStatus] | None = Query(None, alias="status"),
    scope: Scope | None = None,
    ward_id: str | None = None,
    fiscal_year: str | None = None,
    search: str | None = Query(None, max_length=200),
    from_date: datetime | None = None,
    to_date: datetime | None = None,
    intake_channel: IntakeChannel | None = None,
    priority: Priority | None = None,
    assignee_id: str | None = None,
    organizational_unit_id: str | None = None,
    is_overdue: bool | None = None,
    pagination: PaginationParams = Depends(get_pagination),
    db: Session = Depends(get_db),
):
    """List dartas, newest first."""
    filters = CaseFilters(
        status=[s.value for s in status_filter] if status_filter else None,
        scope=scope.value if scope else None,
        ward_id=ward_id,
        fiscal_year=fiscal_year,
        search=search,
        from_date=from_date,
        to_date=to_date,
        intake_channel=intake_channel.value if intake_channel else None,
        priority=priority.value if priority else None,
        assignee_id=assignee_id,
        organizational_unit_id=organizational_unit_id,
        is_overdue=is_overdue,
    )
    items, total = case_query_service.list_records(db, CaseKind.DARTA, filters, pagination)
    return DartaListResponse(
        items=[DartaListItem.model_validate(item) for item in items],
        total=total,
        page=pagination.page,
        per_page=pagination.per_page,
        pages=pagination.pages(total),
    )


@router.get("/stats", response_model=DartaStats)
def darta_stats(db: Session = Depends(get_db)):
    return DartaStats.model_validate(case_query_service.record_stats(db, CaseKind.DARTA))


@router.get("/by-number", response_model=DartaRead)
def get_darta_by_number(
    number: int = Query(..., ge=1),
    fiscal_year: str = Query(...),
    scope: Scope = Query(...),
    ward_id: str | None = None,
    db: Session = Depends(get_db),
):
    record = case_query_service.find_by_number(
        db, CaseKind.DARTA, number=number, fiscal_year=fiscal_year, scope=scope, ward_id=ward_id
    )
    return DartaRead.model_validate(record)


@router.get("/{darta_id}", response_model=DartaRead)
def get_darta(darta_id: UUID, db: Session = Depends(get_db)):
    return DartaRead.model_validate(case_query_service.get_record(db, CaseKind.DARTA, darta_id))


# =============================================================================
# Intake and registration
# =============================================================================


@router.post("", response_model=DartaRead, status_code=status.HTTP_201_CREATED)
def create_darta(
    data: CreateDartaInput,
    response: Response,
    db: Session = Depends(get_db),
    actor: str = Depends(get_actor),
):
    """Register an incoming letter in DRAFT. Replaying the idempotency key returns 200."""
    result = case_mutation_service.execute(db, data, actor)
    if result.replayed:
        response.status_code = status.HTTP_200_OK
    return DartaRead.model_validate(result.record)


@router.post("/submit", response_model=DartaRead)
def submit_darta(data: SubmitDartaInput, db: Session = Depends(get_db), actor: str = Depends(get_actor)):
    return _mutate(db, data, actor)


@router.post("/review", response_model=DartaRead)
def review_darta(data: ReviewDartaInput, db: Session = Depends(get_db), actor: str = Depends(get_actor)):
    return _mutate(db, data, actor)


@router.post("/reserve-number", response_model=DartaRead)
def reserve_darta_number(
    data: ReserveDartaNumberInput, db: Session = Depends(get_db), actor: str = Depends(get_actor)
):
    return _mutate(db, data, actor)


@router.post("/finalize", response_model=DartaRead)
def finalize_darta_registration(
    data: FinalizeDartaRegistrationInput, db: Session = Depends(get_db), actor: str = Depends(get_actor)
):
    return _mutate(db, data, actor)


@router.post("/direct-register", response_model=DartaRead)
def direct_register_darta(
    data: DirectRegisterDartaInput, db: Session = Depends(get_db), actor: str = Depends(get_actor)
):
    return _mutate(db, data, actor)


# =============================================================================
# Digitization
# =============================================================================


@router.post("/scan", response_model=DartaRead)
def scan_darta(data: ScanDartaInput, db: Session = Depends(get_db), actor: str = Depends(get_actor)):
    return _mutate(db, data, actor)


@router.post("/enrich-metadata", response_model=DartaRead)
def enrich_darta_metadata(
    data: EnrichDartaMetadataInput, db: Session = Depends(get_db), actor: str = Depends(get_actor)
):
    return _mutate(db, data, actor)


@router.post("/archive", response_model=DartaRead)
def archive_darta(data: ArchiveDartaInput, db: Session = Depends(get_db), actor: str = Depends(get_actor)):
    return _mutate(db, data, actor)


# =============================================================================
# Routing and section work
# =============================================================================


@router.post("/route", response_model=DartaRead)
def route_darta(data: RouteDartaInput, db: Session = Depends(get_db), actor: str = Depends(get_actor)):
    return _mutate(db, data, actor)


@router.post("/start-section-review", response_model=DartaRead)
def start_darta_section_review(
    data: StartSectionReviewInput, db: Session = Depends(get_db), actor: str = Depends(get_actor)
):
    return _mutate(db, data, actor)


@router.post("/request-clarification", response_model=DartaRead)
def request_darta_clarification(
    data: RequestDartaClarificationInput, db: Session = Depends(get_db), actor: str = Depends(get_actor)
):
    return _mutate(db, data, actor)


@router.post("/provide-clarification", response_model=DartaRead)
def provide_darta_clarification(
    data: ProvideDartaClarificationInput, db: Session = Depends(get_db), actor: str = Depends(get_actor)
):
    return _mutate(db, data, actor)


@router.post("/accept", response_model=DartaRead)
def accept_darta(data: AcceptDartaInput, db: Session = Depends(get_db), actor: str = Depends(get_actor)):
    return _mutate(db, data, actor)


@router.post("/mark-action-taken", response_model=DartaRead)
def mark_darta_action_taken(
    data: MarkDartaActionInput, db: Session = Depends(get_db), actor: str = Depends(get_actor)
):
    return _mutate(db, data, actor)


# =============================================================================
# Response and closure
# =============================================================================


@router.post("/issue-response", response_model=DartaRead)
def issue_darta_response(
    data: IssueDartaResponseInput, db: Session = Depends(get_db), actor: str = Depends(get_actor)
):
    return _mutate(db, data, actor)


@router.post("/request-ack", response_model=DartaRead)
def request_darta_ack(data: RequestDartaAckInput, db: Session = Depends(get_db), actor: str = Depends(get_actor)):
    return _mutate(db, data, actor)


@router.post("/receive-ack", response_model=DartaRead)
def receive_darta_ack(data: ReceiveDartaAckInput, db: Session = Depends(get_db), actor: str = Depends(get_actor)):
    return _mutate(db, data, actor)


@router.post("/void", response_model=DartaRead)
def void_darta(data: VoidDartaInput, db: Session = Depends(get_db), actor: str = Depends(get_actor)):
    return _mutate(db, data, actor)


@router.post("/supersede", response_model=SupersedeDartaResult)
def supersede_darta(data: SupersedeDartaInput, db: Session = Depends(get_db), actor: str = Depends(get_actor)):
    result = case_mutation_service.execute(db, data, actor)
    return SupersedeDartaResult(
        old=DartaRead.model_validate(result.record),
        new=DartaRead.model_validate(result.successor),
    )


@router.post("/close", response_model=DartaRead)
def close_darta(data: CloseDartaInput, db: Session = Depends(get_db), actor: str = Depends(get_actor)):
    return _mutate(db, data, actor)
