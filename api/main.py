"""
api/main.py -- FastAPI application entry point for LocalHelp.

Run with:      uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. CORSMiddleware        -- adds CORS headers for the web client origin,
                              with credentials so the session cookie flows
  3. SlowAPIMiddleware     -- default limits from api.limiter; per-route limits
                              are enforced by @limiter.limit on each route

Lifespan builds the one shared Engine, the stores, and the lifecycle manager
on startup and disposes the engine on shutdown.
"""

from __future__ import annotations

import logging
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
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.auth import router as auth_router
from api.routes.geocode import router as geocode_router
from api.routes.resources import build_resource_router
from api.routes.users import router as users_router
from auth.models import Role, User
from auth.store import UserStore
from auth.tokens import hash_password
from core.config import Settings, get_settings
from core.database import create_db_engine
from core.errors import AppError, Conflict
from geocode.store import GeocodeStore
from listings.lifecycle import ResourceLifecycle
from listings.models import ResourceKind
from listings.store import ResourceStore

VERSION = "1.0.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("localhelp.api")


# ---------------------------------------------------------------------------
# Startup helpers
# ---------------------------------------------------------------------------


def seed_admin(user_store: UserStore, settings: Settings) -> None:
    """Create the bootstrap admin named in settings if that email is not registered.

    An existing account with that email is left untouched, even if it is not
    an admin -- promotion goes through PATCH /api/users/{id}.
    """
    if not (settings.bootstrap_admin_email and settings.bootstrap_admin_password):
        return
    if user_store.get_by_email(settings.bootstrap_admin_email) is not None:
        return
    try:
        user_store.create_user(
            User(
                email=settings.bootstrap_admin_email,
                name=settings.bootstrap_admin_name,
                hashed_password=hash_password(settings.bootstrap_admin_password),
                role=Role.admin,
            )
        )
    except Conflict:
        # Another worker seeded it first
        return
    logger.info("Seeded bootstrap admin account")


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the engine, stores and lifecycle manager; dispose the engine on exit.

    Stores share one Engine so the process holds a single connection pool.
    """
    settings = get_settings()
    logger.info("LocalHelp API starting up")
    engine = create_db_engine(settings.database_url)
    app.state.engine = engine
    app.state.user_store = UserStore(engine)
    app.state.resource_store = ResourceStore(engine)
    app.state.geocode_store = GeocodeStore(engine)
    app.state.lifecycle = ResourceLifecycle(app.state.resource_store, app.state.user_store)
    seed_admin(app.state.user_store, settings)
    logger.info("Stores initialized")

    yield

    engine.dispose()
    logger.info("LocalHelp API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

_settings = get_settings()

app = FastAPI(
    title="LocalHelp API",
    description="Community services, service requests, and rentals by district and upazila.",
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

# SlowAPIMiddleware finds the limiter on app.state.
app.state.limiter = limiter


# ---------------------------------------------------------------------------
# Request logging middleware
# ---------------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """One access-log line per request: method, path, status, latency, client."""
    started = time.perf_counter()
    response = await call_next(request)
    client_host = request.client.host if request.client else "-"
    logger.info(
        "%s %s -> %d in %.1fms from %s",
        request.method,
        request.url.path,
        response.status_code,
        (time.perf_counter() - started) * 1000,
        client_host,
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api", tags=["Auth"])
app.include_router(users_router, tags=["Users"])
for _kind in ResourceKind:
    app.include_router(build_resource_router(_kind))
app.include_router(geocode_router, tags=["Geocode"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# Every failure leaves as {"error": {"code", "message", "detail"?}}. AppError
# subclasses carry their own status; framework errors are mapped here.
# ---------------------------------------------------------------------------


def _error(status_code: int, code: str, message: str, detail: str | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(code=code, message=message, detail=detail)).model_dump(
            exclude_none=True
        ),
    )


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Map the core/errors.py taxonomy onto its HTTP status."""
    return _error(exc.status_code, exc.code, exc.message)


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with Retry-After when a rate limit is exceeded."""
    response = _error(429, "rate_limited", "Too many requests.", str(exc.detail))
    response.headers["Retry-After"] = str(int(getattr(exc, "retry_after", 60)))
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed or missing body fields are a 400, with the offending locations listed."""
    problems = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg', '')}" for err in exc.errors()
    )
    return _error(400, "validation_error", "Request validation failed.", problems)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Structured error for framework-raised HTTP exceptions (404 route, 405 method)."""
    if isinstance(exc.detail, dict):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})
    return _error(exc.status_code, f"http_{exc.status_code}", str(exc.detail))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """500 for anything unhandled. The traceback goes to the log, never to the client."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error(500, "internal_error", "An unexpected error occurred.")


# ---------------------------------------------------------------------------
# Liveness
# ---------------------------------------------------------------------------


@app.get("/", include_in_schema=False)
async def root() -> dict:
    return {"message": "Server is running."}


@app.get("/api/health", tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return API liveness, version, and database reachability."""
    components = {"app": "ok", "database": "ok"}
    try:
        with request.app.state.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.exception("Health check: database unreachable")
        components["database"] = "error"
    status = "healthy" if components["database"] == "ok" else "degraded"
    return HealthResponse(status=status, version=VERSION, components=components)
