"""FastAPI application entry point."""
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from darta_chalani.core.config import settings
from darta_chalani.core.exceptions import (
    BadTransitionError,
    CaseRegistryError,
    ConflictError,
    CounterLockedError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from darta_chalani.core.structured_logging import configure_logging
from darta_chalani.db.session import engine

configure_logging()
logger = logging.getLogger(__name__)

# ============================================================================
# Sentry Integration (optional, for production error tracking)
# ============================================================================

if settings.SENTRY_DSN and settings.ENV != "dev":
    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.ENV,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
        ],
        traces_sample_rate=0.1,
        send_default_pii=False,
    )
    logging.info("Sentry initialized for error tracking")

# ============================================================================
# Rate Limiting
# ============================================================================

from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from darta_chalani.core.rate_limit import limiter

# ============================================================================
# FastAPI App
# ============================================================================

app = FastAPI(
    title="Darta/Chalani Registry API",
    description="Municipal correspondence registry: incoming (darta) and outgoing (chalani) letters",
    version=settings.VERSION,
    docs_url="/docs" if settings.ENV == "dev" else None,
    redoc_url="/redoc" if settings.ENV == "dev" else None,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Requested-With", settings.ACTOR_HEADER],
    expose_headers=["X-Request-ID"],
)

# ============================================================================
# Domain errors
# ============================================================================

ERROR_STATUS_CODES: dict[type[CaseRegistryError], int] = {
    NotFoundError: 404,
    BadTransitionError: 409,
    ValidationError: 422,
    ConflictError: 409,
    InvalidStateError: 409,
    CounterLockedError: 423,
}


def status_code_for(exc: CaseRegistryError) -> int:
    for error_type in type(exc).__mro__:
        if error_type in ERROR_STATUS_CODES:
            return ERROR_STATUS_CODES[error_type]
    return 400


@app.exception_handler(CaseRegistryError)
async def case_registry_error_handler(request: Request, exc: CaseRegistryError):
    status_code = status_code_for(exc)
    if isinstance(exc, ConflictError):
        logger.warning("Mutation conflict on %s: %s", request.url.path, exc.reason)
    return JSONResponse(status_code=status_code, content=exc.to_dict())


# ============================================================================
# Routers
# ============================================================================

from darta_chalani.routers import chalani, darta, numbering

app.include_router(chalani.router, prefix="/chalanis", tags=["chalani"])
app.include_router(darta.router, prefix="/dartas", tags=["darta"])
app.include_router(numbering.router, prefix="/numbering", tags=["numbering"])


# ============================================================================
# Health Check
# ============================================================================

@app.get("/health")
def health():
    """
    Health check endpoint.

    Verifies database connectivity and returns environment info.
    """
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    return {"status": "ok", "env": settings.ENV, "version": settings.VERSION}
