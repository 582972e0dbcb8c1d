"""Legal status edges per record kind (the transition guard)."""

from __future__ import annotations

from darta_chalani.core.exceptions import BadTransitionError
from darta_chalani.db.enums import CaseKind, ChalaniStatus as C, DartaStatus as D


_CHALANI_EDGES = {
    C.DRAFT: frozenset({C.PENDING_REVIEW}),
    C.PENDING_REVIEW: frozenset({C.PENDING_APPROVAL, C.DRAFT}),
    C.PENDING_APPROVAL: frozenset({C.APPROVED, C.DRAFT}),
    C.APPROVED: frozenset({C.NUMBER_RESERVED, C.REGISTERED}),
    C.NUMBER_RESERVED: frozenset({C.REGISTERED}),
    C.REGISTERED: frozenset({C.SIGNED, C.SEALED, C.DISPATCHED}),
    C.SIGNED: frozenset({C.SEALED, C.DISPATCHED}),
    C.SEALED: frozenset({C.DISPATCHED}),
    C.DISPATCHED: frozenset({C.IN_TRANSIT, C.ACKNOWLEDGED, C.DELIVERED, C.RETURNED_UNDELIVERED}),
    C.IN_TRANSIT: frozenset({C.ACKNOWLEDGED, C.DELIVERED, C.RETURNED_UNDELIVERED}),
    C.ACKNOWLEDGED: frozenset({C.DELIVERED}),
    C.DELIVERED: frozenset({C.CLOSED}),
    C.RETURNED_UNDELIVERED: frozenset({C.DISPATCHED}),
    C.VOIDED: frozenset(),
    C.SUPERSEDED: frozenset(),
    C.CLOSED: frozenset(),
}

_DARTA_EDGES = {
    D.DRAFT: frozenset({D.PENDING_REVIEW}),
    D.PENDING_REVIEW: frozenset({D.CLASSIFICATION, D.DRAFT}),
    D.CLASSIFICATION: frozenset({D.NUMBER_RESERVED, D.REGISTERED, D.PENDING_REVIEW}),
    D.NUMBER_RESERVED: frozenset({D.REGISTERED}),
    D.REGISTERED: frozenset({D.SCANNED, D.ASSIGNED}),
    D.SCANNED: frozenset({D.METADATA_ENRICHED}),
    D.METADATA_ENRICHED: frozenset({D.DIGITALLY_ARCHIVED}),
    D.DIGITALLY_ARCHIVED: frozenset({D.ASSIGNED}),
    D.ASSIGNED: frozenset({D.IN_REVIEW_BY_SECTION}),
    D.IN_REVIEW_BY_SECTION: frozenset({D.NEEDS_CLARIFICATION, D.ACCEPTED, D.ASSIGNED}),
    D.NEEDS_CLARIFICATION: frozenset({D.IN_REVIEW_BY_SECTION}),
    D.ACCEPTED: frozenset({D.ACTION_TAKEN}),
    D.ACTION_TAKEN: frozenset({D.RESPONSE_ISSUED, D.CLOSED}),
    D.RESPONSE_ISSUED: frozenset({D.ACK_REQUESTED, D.CLOSED}),
    D.ACK_REQUESTED: frozenset({D.ACK_RECEIVED, D.CLOSED}),
    D.ACK_RECEIVED: frozenset({D.CLOSED}),
    D.VOIDED: frozenset(),
    D.SUPERSEDED: frozenset(),
    D.CLOSED: frozenset(),
}


def _as_values(edges) -> dict[str, frozenset[str]]:
    return {src.value: frozenset(dst.value for dst in dsts) for src, dsts in edges.items()}


CHALANI_TRANSITIONS = _as_values(_CHALANI_EDGES)
DARTA_TRANSITIONS = _as_values(_DARTA_EDGES)

TRANSITION_TABLES: dict[CaseKind, dict[str, frozenset[str]]] = {
    CaseKind.CHALANI: CHALANI_TRANSITIONS,
    CaseKind.DARTA: DARTA_TRANSITIONS,
}

# Void and supersede bypass the table but never leave a terminal status.
ESCAPE_STATUSES = frozenset({"VOIDED", "SUPERSEDED"})
TERMINAL_STATUSES = frozenset({"CLOSED", "VOIDED", "SUPERSEDED"})

INITIAL_STATUS = "DRAFT"


def _kind(entity_kind: CaseKind | str) -> CaseKind:
    try:
        return CaseKind(str(getattr(entity_kind, "value", entity_kind)).upper())
    except ValueError:
        raise ValueError(f"Unknown entity kind: {entity_kind}") from None


def _value(status) -> str | None:
    return getattr(status, "value", status)


def allowed_transitions(entity_kind: CaseKind | str, status: str) -> frozenset[str]:
    """Return the legal successor statuses of ``status``."""
    table = TRANSITION_TABLES[_kind(entity_kind)]
    return table.get(_value(status), frozenset())


def is_terminal(entity_kind: CaseKind | str, status: str) -> bool:
    _kind(entity_kind)
    return _value(status) in TERMINAL_STATUSES


def assert_transition(entity_kind: CaseKind | str, from_status, to_status, *, entity_id=None) -> None:
    """Raise BadTransitionError unless ``from_status → to_status`` is a table edge."""
    kind = _kind(entity_kind)
    from_value, to_value = _value(from_status), _value(to_status)
    if to_value not in allowed_transitions(kind, from_value):
        raise BadTransitionError(kind.value.title(), from_value, to_value, entity_id=entity_id)


def assert_escape_transition(entity_kind: CaseKind | str, from_status, to_status, *, entity_id=None) -> None:
    """Guard for void/supersede: any non-terminal status may escape."""
    kind = _kind(entity_kind)
    from_value, to_value = _value(from_status), _value(to_status)
    if to_value not in ESCAPE_STATUSES or from_value in TERMINAL_STATUSES:
        raise BadTransitionError(kind.value.title(), from_value, to_value, entity_id=entity_id)
