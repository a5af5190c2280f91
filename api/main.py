"""
api/main.py -- FastAPI application entry point for TaskBoard.

Exposes the auth core over HTTP for the frontend.

Run with:  uvicorn asgi:app --reload

Middleware stack (outermost to innermost; Starlette wraps in reverse order
of registration):
  1. log_requests       -- one log line per request with latency
  2. SlowAPIMiddleware  -- rate-limit bookkeeping for api.limiter; the login
                           limit itself is checked by its route decorator
  3. CORSMiddleware     -- allows the configured frontend origin

Lifespan builds the user store and the AuthService on startup and closes the
store on shutdown. The signing secret is read once here, from Settings, and
injected into AuthService.

Error mapping:
  auth/ raises domain exceptions with no HTTP knowledge. _ERROR_STATUS below
  is the single place they become status codes.
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
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.auth import router as auth_router
from auth.errors import (
    AuthError,
    AuthorizationError,
    ExpiredTokenError,
    InvalidPasswordError,
    InvalidTokenError,
    RepositoryError,
    UserAlreadyExistsError,
    UserNotFoundError,
    ValidationError,
)
from auth.service import AuthService
from auth.store import UserStore
from core.config import get_settings

VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("taskboard.api")

# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create the store and service on startup, close the store on shutdown."""
    settings = get_settings()
    logger.info("TaskBoard API starting up")
    app.state.user_store = UserStore(settings.database_url)
    app.state.auth_service = AuthService(
        app.state.user_store,
        secret_key=settings.jwt_secret,
        token_expire_seconds=settings.token_expire_seconds,
    )
    logger.info("Auth initialized (has_users=%s)", app.state.user_store.has_users())

    yield

    app.state.user_store.close()
    logger.info("TaskBoard API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="TaskBoard API",
    description="Task management backend: authentication and role-based user administration.",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[get_settings().cors_origin],
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

app.add_middleware(SlowAPIMiddleware)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


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


app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------

# Order matters: the first matching class wins, so subclasses come first.
_ERROR_STATUS: list[tuple[type[AuthError], int, str]] = [
    (UserAlreadyExistsError, 409, "conflict"),
    (AuthorizationError, 403, "forbidden"),
    (UserNotFoundError, 404, "not_found"),
    (InvalidPasswordError, 401, "bad_credentials"),
    (ExpiredTokenError, 401, "token_expired"),
    (InvalidTokenError, 401, "invalid_token"),
    (ValidationError, 400, "validation_error"),
]


def _error_response(status_code: int, code: str, message: str, detail: str | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(code=code, message=message, detail=detail)).model_dump(),
    )


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    """Translate a domain error raised by AuthService into its HTTP status.

    RepositoryError (and anything unmapped) is a server fault: the cause is
    logged, the client sees a generic message.
    """
    if not isinstance(exc, RepositoryError):
        for error_type, status_code, code in _ERROR_STATUS:
            if isinstance(exc, error_type):
                return _error_response(status_code, code, exc.message)
    logger.error("Auth failure on %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
    return _error_response(500, "internal_error", "An unexpected error occurred.")


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a structured error when a rate limit is exceeded."""
    retry_after = int(getattr(exc, "retry_after", 60))
    response = _error_response(429, "rate_limited", "Too many requests.", str(exc))
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 with a structured error when the request body fails validation."""
    return _error_response(400, "validation_error", "Request validation failed.", str(exc.errors()))


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Return a structured error for all FastAPI/Starlette HTTP exceptions.

    Dependencies raise HTTPException with a dict detail; use it directly as
    the error field rather than stringifying it.
    """
    if isinstance(exc.detail, dict):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=ErrorDetail(code=f"http_{exc.status_code}", message=str(exc.detail))).model_dump(),
        headers=exc.headers,
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception goes to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error_response(500, "internal_error", "An unexpected error occurred.")


# ---------------------------------------------------------------------------
# Health endpoint
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return API liveness, version, and whether the user store answers."""
    db_ok = request.app.state.user_store.ping()
    return HealthResponse(version=VERSION, components={"app": "ok", "database": "ok" if db_ok else "error"})
