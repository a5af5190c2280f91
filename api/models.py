"""
API request and response models for TaskBoard REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Request models carry the input validation the routes rely on: by the time a
body reaches AuthService it is already trimmed, normalized, and bounded.
"""

from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, field_validator

from auth.models import EMAIL_PATTERN, Role
from auth.tokens import PASSWORD_MAX_BYTES

# Character bounds. RegisterRequest also enforces PASSWORD_MAX_BYTES.
PASSWORD_MIN_LENGTH = 6
PASSWORD_MAX_LENGTH = 72

# Emails are trimmed and lower-cased before the pattern check. Passwords are
# never stripped: surrounding spaces are part of the secret.
_Email = Annotated[
    str,
    StringConstraints(strip_whitespace=True, to_lower=True, min_length=3, max_length=255, pattern=EMAIL_PATTERN),
]
_Name = Annotated[str, StringConstraints(strip_whitespace=True, min_length=2, max_length=255)]


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login."""

    email: _Email
    password: str = Field(min_length=1, max_length=PASSWORD_MAX_LENGTH)


class RegisterRequest(BaseModel):
    """Request body for POST /api/v1/auth/register.

    There is deliberately no role field; extra keys such as "role" are
    ignored, and the service forces colaborador regardless.
    """

    name: _Name
    email: _Email
    password: str = Field(min_length=PASSWORD_MIN_LENGTH, max_length=PASSWORD_MAX_LENGTH)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, v: str) -> str:
        if len(v.encode("utf-8")) > PASSWORD_MAX_BYTES:
            raise ValueError(f"Password must be at most {PASSWORD_MAX_BYTES} bytes when UTF-8 encoded")
        return v


class UserCreate(RegisterRequest):
    """Request body for POST /api/v1/auth/users (admin only)."""

    role: Role


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    """Safe view of a user. There is no password field to leak."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    email: str
    role: Role


class AuthData(BaseModel):
    model_config = ConfigDict(frozen=True)

    token: str
    user: UserResponse


class AuthResponse(BaseModel):
    """Envelope for register, login and create-user responses."""

    model_config = ConfigDict(frozen=True)

    message: str
    data: AuthData


class UserListResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    data: list[UserResponse]


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)
