"""Pydantic schemas for audit entries."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import AliasChoices, Field

from darta_chalani.schemas.common import ReadModel


class AuditEntryRead(ReadModel):
    id: UUID
    entity_type: str
    entity_id: UUID
    sequence: int
    action: str
    from_status: str | None
    to_status: str
    actor: str
    reason: str | None
    metadata: dict[str, Any] = Field(
        default_factory=dict, validation_alias=AliasChoices("details", "metadata")
    )
    timestamp: datetime
