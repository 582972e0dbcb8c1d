"""Domain errors raised by the numbering allocator and case orchestrator.

Every error carries the affected entity id, the attempted transition (when
there is one) and a human-readable reason. The HTTP layer maps them to status
codes in ``darta_chalani.main``; nothing in the services retries them except
``ConflictError`` produced from transient storage contention.
"""

from typing import Any
from uuid import UUID


class CaseRegistryError(Exception):
    """Base exception for registry errors."""

    code = "registry_error"

    def __init__(
        self,
        reason: str,
        *,
        entity_id: UUID | str | None = None,
        transition: tuple[str | None, str] | None = None,
    ):
        super().__init__(reason)
        self.reason = reason
        self.entity_id = str(entity_id) if entity_id is not None else None
        self.transition = transition

    def to_dict(self) -> dict[str, Any]:
        transition = None
        if self.transition is not None:
            transition = {"from": self.transition[0], "to": self.transition[1]}
        return {
            "error": self.code,
            "detail": self.reason,
            "entity_id": self.entity_id,
            "transition": transition,
        }


class NotFoundError(CaseRegistryError):
    """Record or allocation does not exist."""

    code = "not_found"


class BadTransitionError(CaseRegistryError):
    """Status edge is not in the entity's transition table."""

    code = "bad_transition"

    def __init__(self, entity_kind: str, from_status: str | None, to_status: str, *, entity_id=None):
        super().__init__(
            f"{entity_kind} cannot move from {from_status} to {to_status}",
            entity_id=entity_id,
            transition=(from_status, to_status),
        )
        self.entity_kind = entity_kind
        self.from_status = from_status
        self.to_status = to_status


class ValidationError(CaseRegistryError):
    """Required field missing or inconsistent; raised before any mutation."""

    code = "validation_error"

    def __init__(self, field: str, message: str, **kwargs):
        super().__init__(f"{field}: {message}", **kwargs)
        self.field = field


class ConflictError(CaseRegistryError):
    """Concurrent write on the same record; the caller should retry."""

    code = "conflict"


class InvalidStateError(CaseRegistryError):
    """Allocation is not in the status the operation requires."""

    code = "invalid_state"


class CounterLockedError(CaseRegistryError):
    """Counter is administratively locked or closed by a fiscal-year rollover."""

    code = "counter_locked"
