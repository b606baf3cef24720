"""
api/main.py -- FastAPI application entry point for the KIN membership API.

Run with:  uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. CORSMiddleware        -- CORS headers for the client app (credentials allowed
                              so the httpOnly cookies travel)
  3. SlowAPIMiddleware     -- enforces per-route rate limits from api.limiter

Lifespan builds every long-lived object once (settings, stores, mailer, image
storage, auth service) and stores it on app.state. Shutdown closes the stores.

Error translation: route handlers raise core.errors exceptions; the handlers at
the bottom of this module are the only place error JSON is produced.
"""

from __future__ import annotations

import logging
import re
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.limiter import limiter
from api.models import HealthResponse
from api.responses import error, success
from api.routes.v1.advisors import router as advisors_router
from api.routes.v1.auth import router as auth_router
from api.routes.v1.ec import router as ec_router
from api.routes.v1.posts import router as posts_router
from api.routes.v1.programs import router as programs_router
from api.routes.v1.sliders import router as sliders_router
from api.routes.v1.subscribers import router as subscribers_router
from api.routes.v1.users import router as users_router
from auth.mailer import Mailer
from auth.service import AuthService
from auth.store import AccountStore
from content.store import ContentStore
from core.config import get_settings
from core.errors import AppError
from storage.local import LocalImageStorage

VERSION = "1.0.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("kin.api")

_settings = get_settings()


# ---------------------------------------------------------------------------
# Lifespan -- startup / shutdown
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application-level resources across the full server lifetime.

    Everything before yield runs on startup; everything after yield runs on
    shutdown. The auth service is built last because it depends on the
    account store, the mailer and the settings.
    """
    logger.info("KIN API starting up")
    app.state.settings = _settings
    app.state.account_store = AccountStore(_settings.database_url)
    app.state.content_store = ContentStore(_settings.database_url)
    app.state.image_storage = LocalImageStorage(_settings.upload_dir)
    app.state.mailer = Mailer(_settings)
    app.state.auth_service = AuthService(app.state.account_store, app.state.mailer, _settings)
    if not app.state.mailer.is_configured:
        logger.warning("SMTP not configured -- verification codes will be written to the log")
    logger.info("Stores initialized (has_users=%s)", app.state.account_store.has_users())

    yield

    app.state.account_store.close()
    app.state.content_store.close()
    logger.info("KIN API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="KIN API",
    description="Membership site backend: accounts, executive committees, posts, programs, sliders, subscribers, advisors.",
    version=VERSION,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
#
# Register in the order you want the request to encounter them:
# TrustedHost -> CORS -> SlowAPI.
# ---------------------------------------------------------------------------

app.add_middleware(TrustedHostMiddleware, allowed_hosts=_settings.allowed_hosts)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

app.add_middleware(SlowAPIMiddleware)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


# ---------------------------------------------------------------------------
# Request logging middleware
# ---------------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])
app.include_router(users_router, prefix="/api/v1", tags=["Users"])
app.include_router(ec_router, prefix="/api/v1", tags=["Executive Committee"])
app.include_router(posts_router, prefix="/api/v1", tags=["Posts"])
app.include_router(programs_router, prefix="/api/v1", tags=["Programs"])
app.include_router(sliders_router, prefix="/api/v1", tags=["Sliders"])
app.include_router(subscribers_router, prefix="/api/v1", tags=["Subscribers"])
app.include_router(advisors_router, prefix="/api/v1", tags=["Advisors"])
# Static image serving is mounted by asgi.py, not here.


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same envelope so API clients can parse errors
# uniformly:  {"success": false, "error": {"status", "code", "message"}}
# ---------------------------------------------------------------------------

_UNIQUE_PATTERNS = (
    re.compile(r"UNIQUE constraint failed: \w+\.(\w+)"),  # SQLite
    re.compile(r"Key \((\w+)\)=\("),  # PostgreSQL
    re.compile(r"Duplicate entry .* for key '(?:\w+\.)?(\w+)'"),  # MySQL
)


def unique_violation_field(exc: IntegrityError) -> str | None:
    """Extract the column name from a unique-index violation, if it is one."""
    text = str(exc.orig)
    for pattern in _UNIQUE_PATTERNS:
        match = pattern.search(text)
        if match:
            return match.group(1)
    return None


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
    return error(exc.status_code, exc.code, exc.message)


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 when a rate limit is exceeded.

    Retry-After tells clients how many seconds to wait before retrying.
    """
    retry_after = int(getattr(exc, "retry_after", 60))
    return error(
        429,
        "rate_limited",
        "Too many requests from this IP. Please try again later.",
        headers={"Retry-After": str(retry_after)},
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 with the first failing field when the request fails validation."""
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(p) for p in first.get("loc", ()) if p not in ("body", "query", "path", "form"))
        message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
    else:
        message = "Request validation failed."
    return error(400, "validation_error", message)


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    field = unique_violation_field(exc)
    if field is None:
        logger.warning("Integrity error on %s %s: %s", request.method, request.url.path, exc.orig)
        return error(400, "validation_error", "The request contains invalid or missing values.")
    return error(409, "conflict", f"{field} must be unique")


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Unknown routes, wrong methods and any HTTPException raised by a library."""
    if exc.status_code == 404:
        return error(404, "not_found", "Route not found.")
    return error(exc.status_code, f"http_{exc.status_code}", str(exc.detail), headers=getattr(exc, "headers", None))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The traceback goes to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return error(500, "internal_error", "An unexpected error occurred.")


# ---------------------------------------------------------------------------
# Root and health endpoints
#
# Defined directly in main.py (not in a router) so they are always reachable.
# No rate limit -- health checks from load balancers must not be throttled.
# ---------------------------------------------------------------------------


@app.get("/", include_in_schema=False)
async def root() -> JSONResponse:
    return success("Welcome to the KIN API.")


@app.get("/api/v1/health", include_in_schema=True, tags=["Health"])
async def health() -> HealthResponse:
    """Return API liveness and current version."""
    return HealthResponse(version=VERSION)
