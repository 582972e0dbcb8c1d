"""SQLAlchemy ORM models."""

from darta_chalani.db.models.audit import CaseAuditEntry
from darta_chalani.db.models.cases import Chalani, Darta
from darta_chalani.db.models.idempotency import IdempotencyRecord
from darta_chalani.db.models.numbering import NumberAllocation, NumberCounter

__all__ = [
    "CaseAuditEntry",
    "Chalani",
    "Darta",
    "IdempotencyRecord",
    "NumberAllocation",
    "NumberCounter",
]
