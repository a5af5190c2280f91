"""
api/routes/v1/auth.py -- Authentication and user management REST endpoints.

Routes:
  POST /api/v1/auth/register   -- self-service sign-up (always colaborador)
  POST /api/v1/auth/login      -- email/password login; returns a bearer token
  GET  /api/v1/auth/me         -- current user's safe view (requires auth)
  POST /api/v1/auth/users      -- create user with any role (admin only)
  GET  /api/v1/auth/users      -- list all users (admin only)

Every handler is a thin adapter: it unpacks a validated body, calls
AuthService, and wraps the result in the response envelope. Domain errors
raised by the service propagate to the exception handlers in api/main.py,
except on login where both credential errors collapse into one 401.

Handlers are plain `def` so bcrypt and store calls run in the thread pool.

Security:
  POST /login is rate-limited per IP (LOGIN_RATE_LIMIT, default 10/minute).
  The limit string is read from Settings on every request.
  Login responses carry Cache-Control: no-store.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter
from api.models import (
    AuthData,
    AuthResponse,
    ErrorDetail,
    ErrorResponse,
    LoginRequest,
    RegisterRequest,
    UserCreate,
    UserListResponse,
    UserResponse,
)
from auth.dependencies import get_current_user, require_admin
from auth.errors import INVALID_CREDENTIALS_MESSAGE, InvalidPasswordError, UserNotFoundError
from auth.models import AuthResult, User
from auth.service import AuthService
from core.config import get_settings

# Auth policy:
# - POST /api/v1/auth/register: public
# - POST /api/v1/auth/login:    public, rate-limited
# - GET  /api/v1/auth/me:       requires auth (get_current_user)
# - POST /api/v1/auth/users:    requires admin (require_admin); the service re-checks the role
# - GET  /api/v1/auth/users:    requires admin (require_admin); the service does not check
router = APIRouter()


def _login_rate_limit() -> str:
    return get_settings().login_rate_limit


def _auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def _envelope(message: str, result: AuthResult) -> AuthResponse:
    return AuthResponse(
        message=message,
        data=AuthData(token=result.token, user=UserResponse(**result.user)),
    )


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/register", response_model=AuthResponse, status_code=201)
def register(request: Request, body: RegisterRequest) -> AuthResponse:
    """Create a colaborador account and return a session token."""
    result = _auth_service(request).register(body.name, body.email, body.password)
    return _envelope("User registered successfully", result)


@router.post("/auth/login", response_model=AuthResponse)
@limiter.limit(_login_rate_limit)  # must be BELOW @router so the route registers the limited wrapper
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password.

    Unknown email and wrong password both return the same 401 body so the
    response never reveals whether an account exists.
    """
    try:
        result = _auth_service(request).login(body.email, body.password)
    except (UserNotFoundError, InvalidPasswordError):
        resp = JSONResponse(
            status_code=401,
            content=ErrorResponse(
                error=ErrorDetail(code="bad_credentials", message=INVALID_CREDENTIALS_MESSAGE)
            ).model_dump(),
        )
        resp.headers["Cache-Control"] = "no-store"
        return resp

    resp = JSONResponse(status_code=200, content=_envelope("Login successful", result).model_dump(mode="json"))
    resp.headers["Cache-Control"] = "no-store"
    return resp


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/auth/me", response_model=UserResponse)
def me(current_user: User = Depends(get_current_user)) -> UserResponse:
    """Return the safe view of the currently authenticated user."""
    return UserResponse(**current_user.to_safe_dict())


# ---------------------------------------------------------------------------
# User management (admin only)
# ---------------------------------------------------------------------------


@router.post("/auth/users", response_model=AuthResponse, status_code=201)
def create_user(
    request: Request,
    body: UserCreate,
    current_user: User = Depends(require_admin),
) -> AuthResponse:
    """Create an account with an explicit role. Admin only."""
    result = _auth_service(request).create_user(
        current_user.id,
        body.name,
        body.email,
        body.password,
        body.role,
    )
    return _envelope("User created successfully", result)


@router.get("/auth/users", response_model=UserListResponse)
def list_users(
    request: Request,
    current_user: User = Depends(require_admin),
) -> UserListResponse:
    """List every account ordered by name. Admin only."""
    users = _auth_service(request).get_users()
    return UserListResponse(data=[UserResponse(**u) for u in users])
