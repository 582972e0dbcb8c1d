"""FastAPI dependencies for database access and actor identity."""

from typing import Generator

from fastapi import HTTPException, Request
from sqlalchemy.orm import Session

from darta_chalani.core.config import settings
from darta_chalani.db.session import SessionLocal


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields a database session and ensures it's closed after the request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_actor(request: Request) -> str:
    """
    Acting user, as resolved by the upstream auth gateway.

    The registry does no authentication of its own; it only records who acted.

    Raises:
        HTTPException 401: header missing or blank
    """
    actor = request.headers.get(settings.ACTOR_HEADER, "").strip()
    if not actor:
        raise HTTPException(status_code=401, detail=f"Missing {settings.ACTOR_HEADER} header")
    return actor
