"""Read-only queries over case records: fetch, lookup by number, list, stats."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from sqlalchemy import Select, func, or_, select
from sqlalchemy.orm import Session

from darta_chalani.core.exceptions import NotFoundError
from darta_chalani.core.transitions import TERMINAL_STATUSES
from darta_chalani.db.enums import CaseKind, Scope
from darta_chalani.db.models import Chalani, Darta
from darta_chalani.db.types import utcnow
from darta_chalani.services.case_transition_service import MODELS, CaseRecord, load_record
from darta_chalani.utils.pagination import PaginationParams, paginate_select


@dataclass
class CaseFilters:
    """List filters; fields that do not apply to a kind are ignored."""

    status: list[str] | None = None
    scope: str | None = None
    ward_id: str | None = None
    fiscal_year: str | None = None
    search: str | None = None
    from_date: datetime | None = None
    to_date: datetime | None = None
    created_by: str | None = None
    # Chalani
    dispatch_channel: list[str] | None = None
    # Darta
    intake_channel: str | None = None
    priority: str | None = None
    assignee_id: str | None = None
    organizational_unit_id: str | None = None
    is_overdue: bool | None = None


def get_record(db: Session, kind: CaseKind, record_id: UUID) -> CaseRecord:
    return load_record(db, kind, record_id)


def find_by_number(
    db: Session,
    kind: CaseKind,
    *,
    number: int,
    fiscal_year: str,
    scope,
    ward_id: str | None = None,
) -> CaseRecord:
    """Fetch the record carrying a registered number."""
    model = MODELS[kind]
    scope_value = getattr(scope, "value", scope)
    query = select(model).where(
        model.number == number,
        model.fiscal_year == fiscal_year,
        model.scope == scope_value,
    )
    if scope_value == Scope.WARD.value:
        query = query.where(model.ward_id == ward_id)
    else:
        query = query.where(model.ward_id.is_(None))
    record = db.execute(query.order_by(model.created_at.desc()).limit(1)).scalar_one_or_none()
    if not record:
        raise NotFoundError(f"{kind.value.title()} number {number} not found for {fiscal_year}")
    return record


def _overdue_clause(now: datetime):
    return (
        Darta.sla_deadline.is_not(None),
        Darta.sla_deadline < now,
        Darta.status.not_in(TERMINAL_STATUSES),
    )


def _filtered(kind: CaseKind, filters: CaseFilters) -> Select:
    model = MODELS[kind]
    query = select(model)
    if filters.status:
        query = query.where(model.status.in_(filters.status))
    if filters.scope:
        query = query.where(model.scope == filters.scope)
    if filters.ward_id:
        query = query.where(model.ward_id == filters.ward_id)
    if filters.fiscal_year:
        query = query.where(model.fiscal_year == filters.fiscal_year)
    if filters.from_date:
        query = query.where(model.created_at >= filters.from_date)
    if filters.to_date:
        query = query.where(model.created_at <= filters.to_date)
    if filters.created_by:
        query = query.where(model.created_by == filters.created_by)
    if filters.search:
        pattern = f"%{filters.search.strip()}%"
        query = query.where(or_(model.subject.ilike(pattern), model.formatted_number.ilike(pattern)))

    if model is Chalani:
        if filters.dispatch_channel:
            query = query.where(Chalani.dispatch_channel.in_(filters.dispatch_channel))
    else:
        if filters.intake_channel:
            query = query.where(Darta.intake_channel == filters.intake_channel)
        if filters.priority:
            query = query.where(Darta.priority == filters.priority)
        if filters.assignee_id:
            query = query.where(Darta.assignee_id == filters.assignee_id)
        if filters.organizational_unit_id:
            query = query.where(Darta.organizational_unit_id == filters.organizational_unit_id)
        if filters.is_overdue:
            query = query.where(*_overdue_clause(utcnow()))
    return query


def list_records(
    db: Session,
    kind: CaseKind,
    filters: CaseFilters | None = None,
    pagination: PaginationParams | None = None,
) -> tuple[list[CaseRecord], int]:
    """Filtered records, newest first. Returns (items, total)."""
    model = MODELS[kind]
    query = _filtered(kind, filters or CaseFilters()).order_by(model.created_at.desc(), model.id)
    return paginate_select(db, query, pagination or PaginationParams())


def _counts(db: Session, column, *where) -> dict[str, int]:
    rows = db.execute(select(column, func.count()).where(*where).group_by(column)).all()
    return {value: count for value, count in rows if value is not None}


def record_stats(db: Session, kind: CaseKind) -> dict:
    """Totals by status and channel, plus a kind-specific figure."""
    model = MODELS[kind]
    total = db.execute(select(func.count()).select_from(model)).scalar_one()
    by_status = _counts(db, model.status)
    stats = {
        "total": total,
        "by_status": [{"status": s, "count": c} for s, c in sorted(by_status.items())],
    }

    if model is Chalani:
        by_channel = _counts(db, Chalani.dispatch_channel)
        dispatched = db.execute(
            select(func.count()).select_from(Chalani).where(Chalani.dispatched_at.is_not(None))
        ).scalar_one()
        acknowledged = db.execute(
            select(func.count()).select_from(Chalani).where(Chalani.acknowledged_at.is_not(None))
        ).scalar_one()
        stats["acknowledgement_rate"] = round(acknowledged / dispatched, 4) if dispatched else 0.0
    else:
        by_channel = _counts(db, Darta.intake_channel)
        stats["overdue_count"] = db.execute(
            select(func.count()).select_from(Darta).where(*_overdue_clause(utcnow()))
        ).scalar_one()

    stats["by_channel"] = [{"channel": ch, "count": c} for ch, c in sorted(by_channel.items())]
    return stats
