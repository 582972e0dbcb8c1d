"""Chalani (outgoing correspondence) enums."""

from enum import Enum


class ChalaniStatus(str, Enum):
    """
    Chalani lifecycle.

    DRAFT → PENDING_REVIEW → PENDING_APPROVAL → APPROVED
    → [NUMBER_RESERVED] → REGISTERED → [SIGNED] → [SEALED] → DISPATCHED
    → [IN_TRANSIT] → [ACKNOWLEDGED] → DELIVERED → CLOSED
    Plus RETURNED_UNDELIVERED (loops back to DISPATCHED) and the
    VOIDED / SUPERSEDED escape statuses.
    """

    DRAFT = "DRAFT"
    PENDING_REVIEW = "PENDING_REVIEW"
    PENDING_APPROVAL = "PENDING_APPROVAL"
    APPROVED = "APPROVED"
    NUMBER_RESERVED = "NUMBER_RESERVED"
    REGISTERED = "REGISTERED"
    SIGNED = "SIGNED"
    SEALED = "SEALED"
    DISPATCHED = "DISPATCHED"
    IN_TRANSIT = "IN_TRANSIT"
    ACKNOWLEDGED = "ACKNOWLEDGED"
    DELIVERED = "DELIVERED"
    RETURNED_UNDELIVERED = "RETURNED_UNDELIVERED"
    CLOSED = "CLOSED"
    VOIDED = "VOIDED"
    SUPERSEDED = "SUPERSEDED"


class ChalaniReviewDecision(str, Enum):
    APPROVE_REVIEW = "APPROVE_REVIEW"
    EDIT_REQUIRED = "EDIT_REQUIRED"


class ChalaniApprovalDecision(str, Enum):
    APPROVE = "APPROVE"
    REJECT = "REJECT"


class DispatchChannel(str, Enum):
    POSTAL = "POSTAL"
    COURIER = "COURIER"
    EMAIL = "EMAIL"
    HAND_DELIVERY = "HAND_DELIVERY"
    EDARTA_PORTAL = "EDARTA_PORTAL"


class RecipientType(str, Enum):
    CITIZEN = "CITIZEN"
    ORGANIZATION = "ORGANIZATION"
    GOVERNMENT_OFFICE = "GOVERNMENT_OFFICE"
    OTHER = "OTHER"
