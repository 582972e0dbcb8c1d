"""Structured logging helpers."""

import logging
from typing import Any

from darta_chalani.core.config import settings


def build_log_context(
    *,
    actor_id: str | None = None,
    entity_type: str | None = None,
    entity_id: str | None = None,
    action: str | None = None,
    request_id: str | None = None,
) -> dict[str, Any]:
    """Return a log context dict with only the provided fields."""
    context: dict[str, Any] = {}
    if actor_id:
        context["actor_id"] = actor_id
    if entity_type:
        context["entity_type"] = entity_type
    if entity_id:
        context["entity_id"] = str(entity_id)
    if action:
        context["action"] = action
    if request_id:
        context["request_id"] = request_id
    return context


def configure_logging() -> None:
    """Configure root logging once for API and CLI processes."""
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
