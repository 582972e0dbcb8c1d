"""Enums shared by both correspondence record kinds."""

from enum import Enum


class CaseKind(str, Enum):
    """Record kinds handled by the orchestrator (also the audit entity_type)."""

    DARTA = "DARTA"  # incoming correspondence
    CHALANI = "CHALANI"  # outgoing correspondence


class Scope(str, Enum):
    """Organizational scope of a record and of its number counter."""

    MUNICIPALITY = "MUNICIPALITY"
    WARD = "WARD"


class DocumentType(str, Enum):
    """Counter type; one numbering sequence per type."""

    DARTA = "DARTA"
    CHALANI = "CHALANI"
