"""Number allocator - issues, commits and voids sequence numbers from counters.

Numbers are scoped by (scope, document type, fiscal year, ward). Issuing a
number increments the counter and records a PROVISIONAL allocation in the same
transaction, keyed by the caller's idempotency key, so a retried request gets
its original allocation back and the counter moves exactly once.

The ``*_allocation`` functions run inside the caller's transaction and never
commit, so the orchestrator can compose them with record updates. The
``*_number`` and counter functions each commit through ``run_atomic``.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from enum import Enum
from typing import TypeVar
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from darta_chalani.core.config import settings
from darta_chalani.core.exceptions import (
    CounterLockedError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from darta_chalani.core.structured_logging import build_log_context
from darta_chalani.db.enums import AllocationStatus, DocumentType, Scope
from darta_chalani.db.enums.numbering import TERMINAL_ALLOCATION_STATUSES
from darta_chalani.db.models import NumberAllocation, NumberCounter
from darta_chalani.db.transaction import run_atomic
from darta_chalani.db.types import utcnow

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Enum)


# =============================================================================
# Helpers
# =============================================================================


def _coerce(enum_cls: type[E], value, field: str) -> E:
    try:
        return enum_cls(getattr(value, "value", value))
    except ValueError:
        raise ValidationError(field, f"unknown value {value!r}") from None


def normalize_counter_key(scope, document_type, ward_id: str | None) -> tuple[Scope, DocumentType, str | None]:
    scope = _coerce(Scope, scope, "scope")
    document_type = _coerce(DocumentType, document_type, "documentType")
    if scope == Scope.WARD:
        if not ward_id or not str(ward_id).strip():
            raise ValidationError("wardId", "required when scope is WARD")
        return scope, document_type, str(ward_id).strip()
    return scope, document_type, None


def format_number(document_type, scope, ward_id: str | None, fiscal_year: str, number: int) -> str:
    """
    Render the legal number, e.g. ``CHALANI-MUN/2082/83/12``.

    Ward-scoped numbers carry the ward: ``DARTA-WARD-5/2082/83/3``.
    """
    scope_value = getattr(scope, "value", scope)
    document_value = getattr(document_type, "value", document_type)
    scope_part = f"WARD-{ward_id}" if scope_value == Scope.WARD.value else "MUN"
    return f"{document_value}-{scope_part}/{fiscal_year}/{number}"


def _expire_if_stale(allocation: NumberAllocation, now: datetime | None = None) -> bool:
    """Mark a PROVISIONAL allocation past its TTL as EXPIRED."""
    now = now or utcnow()
    if (
        allocation.status == AllocationStatus.PROVISIONAL.value
        and allocation.expires_at is not None
        and allocation.expires_at <= now
    ):
        allocation.status = AllocationStatus.EXPIRED.value
        allocation.expired_at = now
        allocation.expires_at = None
        return True
    return False


# =============================================================================
# Counters
# =============================================================================


def find_counter(
    db: Session,
    scope,
    document_type,
    fiscal_year: str,
    ward_id: str | None = None,
    *,
    lock: bool = False,
) -> NumberCounter | None:
    """Get the counter for a key, optionally locking the row (PostgreSQL)."""
    scope, document_type, ward_id = normalize_counter_key(scope, document_type, ward_id)
    query = select(NumberCounter).where(
        NumberCounter.scope == scope.value,
        NumberCounter.document_type == document_type.value,
        NumberCounter.fiscal_year == fiscal_year,
        NumberCounter.ward_key == (ward_id or ""),
    )
    if lock:
        query = query.with_for_update()
    return db.execute(query).scalar_one_or_none()


def _get_or_create_counter(
    db: Session, scope, document_type, fiscal_year: str, ward_id: str | None
) -> NumberCounter:
    counter = find_counter(db, scope, document_type, fiscal_year, ward_id, lock=True)
    if counter:
        return counter
    scope, document_type, ward_id = normalize_counter_key(scope, document_type, ward_id)
    counter = NumberCounter(
        scope=scope.value,
        document_type=document_type.value,
        fiscal_year=fiscal_year,
        ward_id=ward_id,
        ward_key=ward_id or "",
        current_value=0,
    )
    db.add(counter)
    # A concurrent first allocation loses on uq_number_counter_key and is retried
    db.flush()
    return counter


def _assert_issuable(counter: NumberCounter) -> None:
    if counter.is_locked:
        raise CounterLockedError(
            f"Counter {counter.document_type} {counter.fiscal_year} is locked"
            + (f": {counter.locked_reason}" if counter.locked_reason else ""),
            entity_id=counter.id,
        )
    if counter.closed_at is not None:
        raise CounterLockedError(
            f"Counter {counter.document_type} {counter.fiscal_year} was closed by a fiscal-year rollover",
            entity_id=counter.id,
        )


def _increment(db: Session, counter: NumberCounter, now: datetime) -> int:
    """Atomically bump the counter and return the issued value."""
    stmt = (
        update(NumberCounter)
        .where(NumberCounter.id == counter.id)
        .values(
            current_value=NumberCounter.current_value + 1,
            last_issued_at=now,
            updated_at=now,
        )
        .returning(NumberCounter.current_value)
        .execution_options(synchronize_session=False)
    )
    value = db.execute(stmt).scalar_one()
    db.expire(counter, ["current_value", "last_issued_at", "updated_at"])
    return value


def resolve_fiscal_year(db: Session, scope, document_type, ward_id: str | None = None) -> str:
    """
    Fiscal year new records are filed under.

    The latest still-open counter for the key wins; before any counter exists
    the configured CURRENT_FISCAL_YEAR is used.
    """
    scope, document_type, ward_id = normalize_counter_key(scope, document_type, ward_id)
    latest = db.execute(
        select(func.max(NumberCounter.fiscal_year)).where(
            NumberCounter.scope == scope.value,
            NumberCounter.document_type == document_type.value,
            NumberCounter.ward_key == (ward_id or ""),
            NumberCounter.closed_at.is_(None),
        )
    ).scalar()
    return latest or settings.CURRENT_FISCAL_YEAR


def get_counter(db: Session, scope, document_type, fiscal_year: str, ward_id: str | None = None) -> NumberCounter:
    counter = find_counter(db, scope, document_type, fiscal_year, ward_id)
    if not counter:
        raise NotFoundError(f"No {getattr(document_type, 'value', document_type)} counter for {fiscal_year}")
    return counter


def list_counters(
    db: Session,
    *,
    scope=None,
    document_type=None,
    fiscal_year: str | None = None,
    ward_id: str | None = None,
) -> list[NumberCounter]:
    """List counters, newest fiscal year first."""
    query = select(NumberCounter)
    if scope is not None:
        query = query.where(NumberCounter.scope == _coerce(Scope, scope, "scope").value)
    if document_type is not None:
        query = query.where(
            NumberCounter.document_type == _coerce(DocumentType, document_type, "documentType").value
        )
    if fiscal_year:
        query = query.where(NumberCounter.fiscal_year == fiscal_year)
    if ward_id:
        query = query.where(NumberCounter.ward_key == ward_id)
    query = query.order_by(
        NumberCounter.fiscal_year.desc(),
        NumberCounter.scope,
        NumberCounter.ward_key,
        NumberCounter.document_type,
    )
    return list(db.execute(query).scalars().all())


def lock_counter(
    db: Session,
    *,
    scope,
    document_type,
    fiscal_year: str,
    ward_id: str | None = None,
    actor: str,
    reason: str | None = None,
) -> NumberCounter:
    """Place an administrative hold on a counter (created at 0 if missing)."""

    def _lock() -> NumberCounter:
        counter = _get_or_create_counter(db, scope, document_type, fiscal_year, ward_id)
        counter.is_locked = True
        counter.locked_by = actor
        counter.locked_reason = reason.strip() if reason and reason.strip() else None
        counter.locked_at = utcnow()
        return counter

    counter = run_atomic(db, _lock)
    logger.info(
        "Counter %s %s locked",
        counter.document_type,
        counter.fiscal_year,
        extra=build_log_context(actor_id=actor, entity_type="COUNTER", entity_id=counter.id, action="lock"),
    )
    return counter


def unlock_counter(
    db: Session,
    *,
    scope,
    document_type,
    fiscal_year: str,
    ward_id: str | None = None,
    actor: str,
) -> NumberCounter:
    """Release an administrative hold. A closed counter stays closed."""

    def _unlock() -> NumberCounter:
        counter = find_counter(db, scope, document_type, fiscal_year, ward_id, lock=True)
        if not counter:
            raise NotFoundError(f"No {getattr(document_type, 'value', document_type)} counter for {fiscal_year}")
        counter.is_locked = False
        counter.locked_by = None
        counter.locked_reason = None
        counter.locked_at = None
        return counter

    counter = run_atomic(db, _unlock)
    logger.info(
        "Counter %s %s unlocked",
        counter.document_type,
        counter.fiscal_year,
        extra=build_log_context(actor_id=actor, entity_type="COUNTER", entity_id=counter.id, action="unlock"),
    )
    return counter


def rollover_fiscal_year(
    db: Session,
    *,
    scope,
    new_fiscal_year: str,
    ward_id: str | None = None,
    actor: str | None = None,
) -> list[NumberCounter]:
    """
    Open the new fiscal year's counters for every document type.

    New counters start at 0. Every other open counter of the same scope and
    ward is stamped closed and keeps its final value. Rolling over to a year
    that already has a counter returns it unchanged.
    """
    new_fiscal_year = (new_fiscal_year or "").strip()
    if not new_fiscal_year:
        raise ValidationError("newFiscalYear", "must not be empty")

    def _rollover() -> list[NumberCounter]:
        now = utcnow()
        counters = []
        for document_type in DocumentType:
            scope_value, _, ward = normalize_counter_key(scope, document_type, ward_id)
            previous = db.execute(
                select(NumberCounter)
                .where(
                    NumberCounter.scope == scope_value.value,
                    NumberCounter.document_type == document_type.value,
                    NumberCounter.ward_key == (ward or ""),
                    NumberCounter.fiscal_year != new_fiscal_year,
                    NumberCounter.closed_at.is_(None),
                )
                .with_for_update()
            ).scalars().all()
            for counter in previous:
                counter.closed_at = now
            counters.append(_get_or_create_counter(db, scope, document_type, new_fiscal_year, ward_id))
        return counters

    counters = run_atomic(db, _rollover)
    logger.info(
        "Rolled over to fiscal year %s",
        new_fiscal_year,
        extra=build_log_context(actor_id=actor, action="rollover"),
    )
    return counters


# =============================================================================
# Allocations (caller's transaction)
# =============================================================================


def find_allocation_by_key(db: Session, idempotency_key: str) -> NumberAllocation | None:
    return db.execute(
        select(NumberAllocation).where(NumberAllocation.idempotency_key == idempotency_key)
    ).scalar_one_or_none()


def _load_allocation(db: Session, allocation_id: UUID, *, lock: bool = False) -> NumberAllocation:
    query = select(NumberAllocation).where(NumberAllocation.id == allocation_id)
    if lock:
        query = query.with_for_update()
    allocation = db.execute(query).scalar_one_or_none()
    if not allocation:
        raise NotFoundError(f"Allocation {allocation_id} not found", entity_id=allocation_id)
    return allocation


def issue_allocation(
    db: Session,
    *,
    scope,
    document_type,
    fiscal_year: str,
    ward_id: str | None = None,
    idempotency_key: str,
    actor: str,
    ttl: timedelta | None = None,
) -> NumberAllocation:
    """
    Issue the next number as a PROVISIONAL allocation.

    An existing allocation for ``idempotency_key`` is returned untouched and
    the counter is not incremented.
    """
    if not idempotency_key or not idempotency_key.strip():
        raise ValidationError("idempotencyKey", "must not be empty")
    fiscal_year = (fiscal_year or "").strip()
    if not fiscal_year:
        raise ValidationError("fiscalYear", "must not be empty")

    existing = find_allocation_by_key(db, idempotency_key)
    if existing:
        return existing

    scope, document_type, ward_id = normalize_counter_key(scope, document_type, ward_id)
    counter = _get_or_create_counter(db, scope, document_type, fiscal_year, ward_id)
    _assert_issuable(counter)

    now = utcnow()
    number = _increment(db, counter, now)
    ttl = ttl if ttl is not None else timedelta(minutes=settings.ALLOCATION_TTL_MINUTES)
    allocation = NumberAllocation(
        counter_id=counter.id,
        scope=scope.value,
        document_type=document_type.value,
        fiscal_year=fiscal_year,
        ward_id=ward_id,
        number=number,
        formatted_number=format_number(document_type, scope, ward_id, fiscal_year, number),
        status=AllocationStatus.PROVISIONAL.value,
        idempotency_key=idempotency_key,
        expires_at=now + ttl,
        allocated_by=actor,
        allocated_at=now,
    )
    db.add(allocation)
    # Same key racing in another transaction fails here on the unique index
    db.flush()
    logger.info(
        "Issued %s",
        allocation.formatted_number,
        extra=build_log_context(
            actor_id=actor, entity_type="ALLOCATION", entity_id=allocation.id, action="allocate"
        ),
    )
    return allocation


def reserve_allocation(
    db: Session,
    allocation_id: UUID,
    *,
    entity_id: UUID,
    entity_type: str,
    scope,
    document_type,
    fiscal_year: str,
    ward_id: str | None = None,
) -> NumberAllocation:
    """
    Bind a PROVISIONAL allocation to the record that will carry its number.

    The allocation must have been issued for the record's own counter key and
    must not already be held by another record.
    """
    allocation = _load_allocation(db, allocation_id, lock=True)
    _expire_if_stale(allocation)
    if allocation.status != AllocationStatus.PROVISIONAL.value:
        raise InvalidStateError(
            f"Allocation {allocation.formatted_number} is {allocation.status}, expected PROVISIONAL",
            entity_id=allocation.id,
        )

    scope, document_type, ward_id = normalize_counter_key(scope, document_type, ward_id)
    if (
        allocation.scope != scope.value
        or allocation.document_type != document_type.value
        or allocation.fiscal_year != fiscal_year
        or allocation.ward_id != ward_id
    ):
        raise ValidationError(
            "allocationId",
            f"{allocation.formatted_number} was not issued for this record's scope and fiscal year",
            entity_id=entity_id,
        )

    if allocation.reserved_for_id is not None and allocation.reserved_for_id != entity_id:
        raise InvalidStateError(
            f"Allocation {allocation.formatted_number} is already reserved by another record",
            entity_id=allocation.id,
        )
    allocation.reserved_for_id = entity_id
    allocation.reserved_for_type = getattr(entity_type, "value", entity_type)
    return allocation


def commit_allocation(
    db: Session,
    allocation_id: UUID,
    *,
    entity_id: UUID,
    entity_type: str,
) -> NumberAllocation:
    """PROVISIONAL -> COMMITTED, binding the entity reference for good."""
    allocation = _load_allocation(db, allocation_id, lock=True)
    _expire_if_stale(allocation)
    if allocation.status != AllocationStatus.PROVISIONAL.value:
        raise InvalidStateError(
            f"Allocation {allocation.formatted_number} is {allocation.status}, cannot commit",
            entity_id=allocation.id,
        )
    if allocation.reserved_for_id is not None and allocation.reserved_for_id != entity_id:
        raise InvalidStateError(
            f"Allocation {allocation.formatted_number} is reserved by another record",
            entity_id=allocation.id,
        )

    allocation.status = AllocationStatus.COMMITTED.value
    allocation.committed_entity_id = entity_id
    allocation.committed_entity_type = getattr(entity_type, "value", entity_type)
    allocation.committed_at = utcnow()
    allocation.expires_at = None
    return allocation


def void_allocation(db: Session, allocation_id: UUID, *, reason: str | None) -> NumberAllocation:
    """PROVISIONAL -> VOIDED. The number is burned; the counter is untouched."""
    allocation = _load_allocation(db, allocation_id, lock=True)
    if not reason or not reason.strip():
        raise ValidationError("reason", "required to void an allocation", entity_id=allocation.id)
    _expire_if_stale(allocation)
    if allocation.status in TERMINAL_ALLOCATION_STATUSES:
        raise InvalidStateError(
            f"Allocation {allocation.formatted_number} is already {allocation.status}",
            entity_id=allocation.id,
        )
    allocation.status = AllocationStatus.VOIDED.value
    allocation.void_reason = reason.strip()
    allocation.voided_at = utcnow()
    allocation.expires_at = None
    return allocation


def find_outstanding_allocation(db: Session, entity_type: str, entity_id: UUID) -> NumberAllocation | None:
    """The live PROVISIONAL allocation reserved for a record, if any."""
    entity_type = getattr(entity_type, "value", entity_type)
    allocations = db.execute(
        select(NumberAllocation).where(
            NumberAllocation.reserved_for_type == entity_type,
            NumberAllocation.reserved_for_id == entity_id,
            NumberAllocation.status == AllocationStatus.PROVISIONAL.value,
        )
    ).scalars().all()
    for allocation in allocations:
        if not _expire_if_stale(allocation):
            return allocation
    return None


# =============================================================================
# Allocations (own transaction)
# =============================================================================


def allocate_number(
    db: Session,
    *,
    scope,
    document_type,
    fiscal_year: str,
    ward_id: str | None = None,
    idempotency_key: str,
    actor: str,
    ttl: timedelta | None = None,
) -> NumberAllocation:
    """Issue a number and commit. Replays return the stored allocation."""
    return run_atomic(
        db,
        lambda: issue_allocation(
            db,
            scope=scope,
            document_type=document_type,
            fiscal_year=fiscal_year,
            ward_id=ward_id,
            idempotency_key=idempotency_key,
            actor=actor,
            ttl=ttl,
        ),
    )


def commit_number(db: Session, allocation_id: UUID, *, entity_id: UUID, entity_type: str) -> NumberAllocation:
    return run_atomic(
        db,
        lambda: commit_allocation(db, allocation_id, entity_id=entity_id, entity_type=entity_type),
        entity_id=allocation_id,
    )


def void_number(db: Session, allocation_id: UUID, *, reason: str | None, actor: str | None = None) -> NumberAllocation:
    allocation = run_atomic(
        db,
        lambda: void_allocation(db, allocation_id, reason=reason),
        entity_id=allocation_id,
    )
    logger.info(
        "Voided %s",
        allocation.formatted_number,
        extra=build_log_context(
            actor_id=actor, entity_type="ALLOCATION", entity_id=allocation.id, action="void"
        ),
    )
    return allocation


def get_allocation(db: Session, allocation_id: UUID) -> NumberAllocation:
    """Fetch an allocation, persisting a lazy expiry if its TTL has passed."""

    def _get() -> NumberAllocation:
        allocation = _load_allocation(db, allocation_id)
        _expire_if_stale(allocation)
        return allocation

    return run_atomic(db, _get, entity_id=allocation_id)


def get_allocation_by_idempotency_key(db: Session, idempotency_key: str) -> NumberAllocation | None:
    def _get() -> NumberAllocation | None:
        allocation = find_allocation_by_key(db, idempotency_key)
        if allocation:
            _expire_if_stale(allocation)
        return allocation

    return run_atomic(db, _get)


def expire_stale_allocations(db: Session, now: datetime | None = None) -> int:
    """Sweep PROVISIONAL allocations whose TTL has passed. Returns the count."""
    now = now or utcnow()

    def _sweep() -> int:
        result = db.execute(
            update(NumberAllocation)
            .where(
                NumberAllocation.status == AllocationStatus.PROVISIONAL.value,
                NumberAllocation.expires_at <= now,
            )
            .values(status=AllocationStatus.EXPIRED.value, expired_at=now, expires_at=None)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    expired = run_atomic(db, _sweep)
    if expired:
        logger.info("Expired %s stale allocations", expired)
    return expired
