"""Darta (incoming correspondence) enums."""

from enum import Enum


class DartaStatus(str, Enum):
    """
    Darta lifecycle.

    Intake:      DRAFT → PENDING_REVIEW → CLASSIFICATION
    Numbering:   → [NUMBER_RESERVED] → REGISTERED
    Archive:     → [SCANNED → METADATA_ENRICHED → DIGITALLY_ARCHIVED]
    Routing:     → ASSIGNED → IN_REVIEW_BY_SECTION ⇄ NEEDS_CLARIFICATION
    Resolution:  → ACCEPTED → ACTION_TAKEN → [RESPONSE_ISSUED → ACK_REQUESTED
                 → ACK_RECEIVED] → CLOSED
    Plus the VOIDED / SUPERSEDED escape statuses.
    """

    DRAFT = "DRAFT"
    PENDING_REVIEW = "PENDING_REVIEW"
    CLASSIFICATION = "CLASSIFICATION"
    NUMBER_RESERVED = "NUMBER_RESERVED"
    REGISTERED = "REGISTERED"
    SCANNED = "SCANNED"
    METADATA_ENRICHED = "METADATA_ENRICHED"
    DIGITALLY_ARCHIVED = "DIGITALLY_ARCHIVED"
    ASSIGNED = "ASSIGNED"
    IN_REVIEW_BY_SECTION = "IN_REVIEW_BY_SECTION"
    NEEDS_CLARIFICATION = "NEEDS_CLARIFICATION"
    ACCEPTED = "ACCEPTED"
    ACTION_TAKEN = "ACTION_TAKEN"
    RESPONSE_ISSUED = "RESPONSE_ISSUED"
    ACK_REQUESTED = "ACK_REQUESTED"
    ACK_RECEIVED = "ACK_RECEIVED"
    CLOSED = "CLOSED"
    VOIDED = "VOIDED"
    SUPERSEDED = "SUPERSEDED"


class DartaReviewDecision(str, Enum):
    APPROVE_REVIEW = "APPROVE_REVIEW"
    EDIT_REQUIRED = "EDIT_REQUIRED"


class IntakeChannel(str, Enum):
    COUNTER = "COUNTER"
    POSTAL = "POSTAL"
    COURIER = "COURIER"
    EMAIL = "EMAIL"
    EDARTA_PORTAL = "EDARTA_PORTAL"


class Priority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


class ApplicantType(str, Enum):
    CITIZEN = "CITIZEN"
    ORGANIZATION = "ORGANIZATION"
    GOVERNMENT_OFFICE = "GOVERNMENT_OFFICE"
    OTHER = "OTHER"
