"""Enum definitions for application constants."""

from darta_chalani.db.enums.cases import CaseKind, DocumentType, Scope
from darta_chalani.db.enums.chalani import (
    ChalaniApprovalDecision,
    ChalaniReviewDecision,
    ChalaniStatus,
    DispatchChannel,
    RecipientType,
)
from darta_chalani.db.enums.darta import (
    ApplicantType,
    DartaReviewDecision,
    DartaStatus,
    IntakeChannel,
    Priority,
)
from darta_chalani.db.enums.numbering import AllocationStatus

__all__ = [
    "AllocationStatus",
    "ApplicantType",
    "CaseKind",
    "ChalaniApprovalDecision",
    "ChalaniReviewDecision",
    "ChalaniStatus",
    "DartaReviewDecision",
    "DartaStatus",
    "DispatchChannel",
    "DocumentType",
    "IntakeChannel",
    "Priority",
    "RecipientType",
    "Scope",
]
