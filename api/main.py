"""
api/main.py -- FastAPI application entry point for the K8sNode API.

Run with:  python main.py serve
           uvicorn api.main:app --reload

Endpoints:
  GET  /        -- service banner
  GET  /health  -- process health snapshot
  POST /auth    -- username/password login, returns a JWT

Lifespan builds every long-lived collaborator exactly once and stores it on
app.state: Settings -> StructuredLogger -> PasswordHasher -> credential store
-> TokenIssuer -> AuthenticationPipeline, plus the HealthReporter. Route
handlers read them from request.app.state; nothing is a module-level global.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.models import ErrorResponse, HealthErrorResponse, HealthResponse, MemoryUsage, ServiceInfoResponse
from api.routes.v1.auth import router as auth_router
from auth.hashing import PasswordHasher
from auth.pipeline import AuthenticationPipeline
from auth.store import InMemoryCredentialStore, seed_accounts
from auth.tokens import TokenIssuer
from core.config import get_settings
from core.health import HealthReporter
from core.logger import StructuredLogger, utc_timestamp

# ---------------------------------------------------------------------------
# Logging
#
# Process diagnostics (uvicorn, config warnings) go through stdlib logging.
# The audit trail goes through app.state.logger as JSON lines.
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

REQUEST_ID_HEADER = "X-Request-ID"


# ---------------------------------------------------------------------------
# Lifespan -- modern startup / shutdown pattern (replaces @app.on_event)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the per-process collaborators on startup; log shutdown.

    Startup order matters:
      1. Logger first -- every later step may log.
      2. Hasher before the store -- the seed roster is hashed at startup.
      3. Pipeline last -- it takes the store, hasher, issuer and logger.
    """
    settings = get_settings()
    audit = StructuredLogger(level=settings.log_level)
    audit.info(
        "Starting K8sNode API server",
        {"environment": settings.environment, "version": settings.app_version},
    )

    hasher = PasswordHasher(rounds=settings.bcrypt_rounds)
    store = InMemoryCredentialStore(seed_accounts(hasher))
    issuer = TokenIssuer(
        secret=settings.jwt_secret,
        expire_seconds=settings.token_expire_seconds,
        issuer=settings.token_issuer,
    )

    app.state.settings = settings
    app.state.logger = audit
    app.state.pipeline = AuthenticationPipeline(store=store, hasher=hasher, issuer=issuer, logger=audit)
    app.state.health = HealthReporter(
        logger=audit,
        version=settings.app_version,
        environment=settings.environment,
    )
    audit.info("K8sNode API server started", {"accounts": len(store)})

    yield

    audit.info("Graceful shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="K8sNode API",
    description="Credential verification and process health for K8sNode.",
    version="1.0.0",
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Request logging middleware
#
# Every request gets a correlation id (caller-supplied X-Request-ID or a new
# uuid4 hex) on request.state before any route runs. The pipeline tags its
# log lines with it, and the same id is echoed back in the response header
# so operators can join client reports to server logs.
# ---------------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
    request.state.request_id = request_id
    start = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception:
        # The catch-all handler renders the 500 outside this middleware and
        # adds the X-Request-ID header itself; still log the request here.
        ms = round((time.perf_counter() - start) * 1000, 2)
        request.app.state.logger.log_request(request.method, request.url.path, 500, ms, request_id=request_id)
        raise
    ms = round((time.perf_counter() - start) * 1000, 2)
    response.headers[REQUEST_ID_HEADER] = request_id
    request.app.state.logger.log_request(
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request_id=request_id,
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, tags=["Auth"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# Every non-pipeline error uses the ErrorResponse envelope. Internal detail is
# logged, never returned.
# ---------------------------------------------------------------------------


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """404 -> "Route not found"; other HTTP errors keep their own detail."""
    if exc.status_code == 404:
        request.app.state.logger.warn(
            "Route not found",
            {"path": request.url.path, "method": request.method},
            getattr(request.state, "request_id", None),
        )
        message = "Route not found"
    else:
        message = str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(message=message, timestamp=utc_timestamp()).model_dump(),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    Security note: the stack goes to the audit log only, never to the
    response body.
    """
    request_id = getattr(request.state, "request_id", None)
    request.app.state.logger.log_error(
        exc,
        f"Unhandled error on {request.method} {request.url.path}",
        request_id,
    )
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(message="Internal server error", timestamp=utc_timestamp()).model_dump(),
        headers={REQUEST_ID_HEADER: request_id} if request_id else None,
    )


# ---------------------------------------------------------------------------
# Service banner + health
#
# Defined directly in main.py (not in a router) so they are always reachable
# regardless of router registration state.
# ---------------------------------------------------------------------------


@app.get("/", response_model=ServiceInfoResponse, tags=["Health"])
async def root(request: Request) -> ServiceInfoResponse:
    settings = request.app.state.settings
    return ServiceInfoResponse(
        message="K8sNode API is running",
        version=settings.app_version,
        environment=settings.environment,
        timestamp=utc_timestamp(),
        endpoints=[
            "GET /health - Health check endpoint",
            "POST /auth - Authentication endpoint",
        ],
    )


@app.get("/health", response_model=HealthResponse, tags=["Health"])
def health(request: Request) -> JSONResponse:
    """Return uptime and memory figures for this process.

    Sync handler: psutil sampling is blocking, so FastAPI runs it on the
    thread pool.
    """
    report = request.app.state.health.report(request.state.request_id)
    if report.status != "ok":
        body = HealthErrorResponse(timestamp=report.timestamp)
    else:
        body = HealthResponse(
            status=report.status,
            timestamp=report.timestamp,
            version=report.version,
            environment=report.environment,
            uptime=report.uptime_seconds,
            memory=MemoryUsage(used=report.used_mb, total=report.total_mb, percentage=report.percentage),
        )
    return JSONResponse(status_code=report.status_code, content=body.model_dump())
