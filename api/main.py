"""
api/main.py -- FastAPI application entry point for userbase.

Exposes registration, login and user CRUD over HTTP. The gRPC front-end
(rpc/) serves the same operations from the same service objects.

Run with:  python main.py serve-http
           uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. CORSMiddleware -- adds CORS headers for allowed browser origins
  2. log_requests   -- one log line per request with status and latency

Lifespan builds the object graph once (settings -> store -> hasher / codec ->
services) and tears the store down on shutdown. Route handlers reach the
services through request.app.state.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.models import ErrorDetail, ErrorResponse, HealthResponse, ReadyResponse
from api.routes.v1.auth import router as auth_router
from api.routes.v1.users import router as users_router
from auth.passwords import PasswordHasher
from auth.service import AuthService
from auth.store import UserStore
from auth.tokens import TokenCodec
from auth.users import UserService
from core.config import Settings, get_settings
from core.errors import AppError
from core.logging import configure_logging

logger = logging.getLogger("userbase.api")

VERSION = "1.0.0"

# Status codes for core error codes. rpc/servicer.py
# holds the gRPC equivalent.
_STATUS_BY_CODE = {
    "invalid_argument": 400,
    "invalid_credentials": 401,
    "unauthenticated": 401,
    "not_found": 404,
    "already_exists": 409,
    "internal": 500,
}


# ---------------------------------------------------------------------------
# Object graph
# ---------------------------------------------------------------------------


def build_services(app: FastAPI, settings: Settings, store: UserStore) -> None:
    """Wire settings and services onto app.state.

    Shared by the real lifespan and the test lifespan so both build the
    same graph around whichever store they were given.
    """
    hasher = PasswordHasher(rounds=settings.bcrypt_rounds)
    codec = TokenCodec(settings.secret_key)
    app.state.settings = settings
    app.state.user_store = store
    app.state.auth_service = AuthService(
        store,
        hasher,
        codec,
        token_ttl=settings.token_ttl,
        password_min_length=settings.password_min_length,
    )
    app.state.user_service = UserService(store)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build services on startup; dispose the store's engine on shutdown."""
    settings = get_settings()
    configure_logging(settings)
    logger.info("userbase API starting up")
    store = UserStore(settings.database_url, timeout=settings.store_timeout_seconds)
    build_services(app, settings, store)
    logger.info("User store initialized")

    yield

    store.close()
    logger.info("userbase API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="userbase API",
    description="User registration, authentication and management.",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost", "http://localhost:3000", "http://127.0.0.1"],
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)


# ---------------------------------------------------------------------------
# Request logging middleware
#
# Pattern: Interceptor / Chain of Responsibility. Every request passes through
# this coroutine before reaching any route handler. rpc/interceptors.py has
# the gRPC counterpart.
# ---------------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    settings = getattr(request.app.state, "settings", None)
    if settings is not None and settings.log_format == "detailed":
        logger.info(
            "%s %s %d %.1fms %s ua=%r req_bytes=%s resp_bytes=%s",
            request.method,
            request.url.path,
            response.status_code,
            ms,
            request.client.host if request.client else "unknown",
            request.headers.get("user-agent", ""),
            request.headers.get("content-length", "0"),
            response.headers.get("content-length", "-"),
        )
    else:
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


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Map a service error onto its HTTP status.

    Internal errors keep their message generic; the detail is logged, not sent.
    """
    status_code = _STATUS_BY_CODE.get(exc.code, 500)
    if status_code >= 500:
        logger.error("Internal error on %s %s: %s", request.method, request.url.path, exc.detail)
        detail = ErrorDetail(code="internal_error", message="An unexpected error occurred.")
    else:
        detail = ErrorDetail(code=exc.code, message=exc.message, detail=exc.detail)
    headers = {"WWW-Authenticate": "Bearer"} if status_code == 401 else None
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=detail).model_dump(),
        headers=headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 with structured error when request body or query params fail validation."""
    return JSONResponse(
        status_code=422,
        content=ErrorResponse(
            error=ErrorDetail(
                code="validation_error",
                message="Request validation failed.",
                detail=str(exc.errors()),
            )
        ).model_dump(),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Return a structured error for all FastAPI/Starlette HTTP exceptions.

    Handlers and dependencies raise HTTPException with a dict detail. When
    detail is already a structured dict, use it directly as the error field
    rather than stringifying it.
    """
    if isinstance(exc.detail, dict):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=exc.headers,
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(
                code=f"http_{exc.status_code}",
                message=str(exc.detail),
            )
        ).model_dump(),
        headers=exc.headers,
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception is written to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error=ErrorDetail(
                code="internal_error",
                message="An unexpected error occurred.",
            )
        ).model_dump(),
    )


# ---------------------------------------------------------------------------
# Health and readiness endpoints
#
# Defined directly in main.py (not in a gated router) so load balancers can
# call them without credentials.
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", include_in_schema=True, tags=["Health"])
async def health(request: Request) -> HealthResponse:
    """Return liveness, version and a database connectivity check."""
    store: UserStore = request.app.state.user_store
    database = "ok" if store.ping() else "error"
    return HealthResponse(
        status="healthy" if database == "ok" else "degraded",
        version=VERSION,
        components={"app": "ok", "database": database},
    )


@app.get("/api/v1/ready", tags=["Health"])
async def ready(request: Request) -> JSONResponse:
    """Readiness check: 200 once the user store answers, 503 until then.

    Unlike /health, which always answers 200 and reports degraded components,
    this is meant for orchestrators deciding whether to route traffic here.
    """
    store: UserStore = request.app.state.user_store
    if store.ping():
        return JSONResponse(status_code=200, content=ReadyResponse(checks={"database": "ok"}).model_dump())
    return JSONResponse(
        status_code=503,
        content=ReadyResponse(status="not_ready", checks={"database": "error"}).model_dump(),
    )
