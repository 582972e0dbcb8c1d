"""Numbering enums."""

from enum import Enum


class AllocationStatus(str, Enum):
    """
    Number allocation status.

    PROVISIONAL → COMMITTED | VOIDED | EXPIRED; the last three are terminal.
    """

    PROVISIONAL = "PROVISIONAL"
    COMMITTED = "COMMITTED"
    VOIDED = "VOIDED"
    EXPIRED = "EXPIRED"


TERMINAL_ALLOCATION_STATUSES = frozenset(
    {AllocationStatus.COMMITTED.value, AllocationStatus.VOIDED.value, AllocationStatus.EXPIRED.value}
)
