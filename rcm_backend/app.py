"""FastAPI backend for the RCM claim core."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from .audit import AuditLog
from .config import (
    AUDIT_DB_PATH,
    CLEARINGHOUSE_API_KEY,
    CLEARINGHOUSE_MAX_RETRIES,
    CLEARINGHOUSE_RETRY_DELAY,
    CLEARINGHOUSE_TIMEOUT,
    CLEARINGHOUSE_URL,
    CORS_ORIGINS,
    LOG_LEVEL,
    RCM_RULES_PATH,
    RCM_SETTINGS_PATH,
)
from .errors import (
    ClaimNotFoundError,
    CorrectionConflictError,
    ExternalSubmissionError,
    InvalidTransitionError,
    PaymentPostingError,
    RCMError,
    SuggestionClosedError,
    SuggestionNotFoundError,
)
from .gateway import HttpClearinghouseClient
from .lifecycle import ClaimCoordinator
from .rate_limit import limiter
from .routes import adjudications_router, ar_router, audit_router, claims_router
from .rules import load_ruleset
from .settings import load_settings

logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)

ERROR_STATUS_CODES: list[tuple[type[RCMError], int]] = [
    (ClaimNotFoundError, 404),
    (SuggestionNotFoundError, 404),
    (InvalidTransitionError, 409),
    (CorrectionConflictError, 409),
    (SuggestionClosedError, 409),
    (PaymentPostingError, 422),
    (ExternalSubmissionError, 502),
]


def build_coordinator(audit: AuditLog) -> ClaimCoordinator:
    """Wire a coordinator from environment configuration."""
    settings = load_settings(RCM_SETTINGS_PATH)
    ruleset = load_ruleset(RCM_RULES_PATH or None)

    gateway = None
    if CLEARINGHOUSE_URL:
        gateway = HttpClearinghouseClient(
            CLEARINGHOUSE_URL,
            timeout=CLEARINGHOUSE_TIMEOUT,
            max_retries=CLEARINGHOUSE_MAX_RETRIES,
            retry_delay=CLEARINGHOUSE_RETRY_DELAY,
            api_key=CLEARINGHOUSE_API_KEY or None,
        )
    else:
        logger.warning("CLEARINGHOUSE_URL not set - claim submission disabled")

    return ClaimCoordinator.from_settings(settings, ruleset, gateway=gateway, audit=audit)


async def rcm_error_handler(request: Request, exc: RCMError) -> JSONResponse:
    for error_type, status_code in ERROR_STATUS_CODES:
        if isinstance(exc, error_type):
            break
    else:
        status_code = 400

    content: dict = {"detail": str(exc), "error": type(exc).__name__}
    if isinstance(exc, ExternalSubmissionError):
        content["definitive"] = exc.definitive
        content["reasons"] = exc.reasons
    return JSONResponse(status_code=status_code, content=content)


def create_app(
    coordinator: ClaimCoordinator | None = None,
    audit: AuditLog | None = None,
) -> FastAPI:
    """Build the application.

    Args:
        coordinator: Pre-built coordinator; built from the environment on
            startup when omitted
        audit: Audit log; opened at ``AUDIT_DB_PATH`` on startup when omitted
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Initialize resources on startup."""
        owns_audit = False
        if app.state.audit is None:
            app.state.audit = AuditLog(AUDIT_DB_PATH)
            owns_audit = True
        if app.state.coordinator is None:
            app.state.coordinator = build_coordinator(app.state.audit)
            logger.info(
                f"Claim coordinator ready with rule catalog {app.state.coordinator.ruleset.version}"
            )

        yield

        gateway = app.state.coordinator.gateway
        if isinstance(gateway, HttpClearinghouseClient):
            gateway.close()
        if owns_audit:
            app.state.audit.close()

    app = FastAPI(
        title="RCM Claim Core",
        description="Claim validation, auto-correction and A/R aging",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.coordinator = coordinator
    app.state.audit = audit

    # Rate limiting on workflow endpoints
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(RCMError, rcm_error_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register API routers
    app.include_router(claims_router)
    app.include_router(adjudications_router)
    app.include_router(ar_router)
    app.include_router(audit_router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        current = app.state.coordinator
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "ruleset_version": current.ruleset.version if current else None,
            "submission_enabled": bool(current and current.gateway),
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8080)
