"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class. Unlike a plain container, User validates itself at
construction: a User object that exists is always well-formed, so the service
and the store never re-check name, email, hash, or role.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from auth.errors import ValidationError

EMAIL_PATTERN = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"
_EMAIL_RE = re.compile(EMAIL_PATTERN)


class Role(str, Enum):
    admin = "admin"
    gestor = "gestor"
    colaborador = "colaborador"


def normalize_email(email: str) -> str:
    """Return the canonical form used for storage and lookup."""
    return email.strip().lower()


@dataclass(frozen=True)
class User:
    """An account in TaskBoard.

    password_hash is always a bcrypt hash, never plaintext -- the service
    hashes before constructing. id is None until the store assigns one.

    Raises ValidationError on an empty name, a malformed email, an empty hash,
    or a role outside Role.
    """

    name: str
    email: str
    password_hash: str = field(repr=False)
    role: Role = Role.colaborador
    id: int | None = None
    created_at: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValidationError("Name is required")
        if not isinstance(self.email, str) or not _EMAIL_RE.match(self.email.strip()):
            raise ValidationError("Email format is invalid")
        if not isinstance(self.password_hash, str) or not self.password_hash:
            raise ValidationError("Password hash is required")
        try:
            role = Role(self.role)
        except ValueError as exc:
            allowed = ", ".join(r.value for r in Role)
            raise ValidationError(f"Role must be one of: {allowed}") from exc
        # Frozen dataclass: normalized values are written through object.__setattr__.
        object.__setattr__(self, "email", normalize_email(self.email))
        object.__setattr__(self, "role", role)

    def can_manage_users(self) -> bool:
        """Admins may create accounts and list every user."""
        return self.role is Role.admin

    def to_safe_dict(self) -> dict:
        """Return the public view of this user. Never includes password_hash."""
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role.value,
        }


@dataclass(frozen=True)
class TokenClaims:
    """Identity carried by a verified session token."""

    id: int
    email: str
    role: Role
    issued_at: datetime
    expires_at: datetime


@dataclass(frozen=True)
class AuthResult:
    """Return value of register/login/create_user: a token plus the safe user view."""

    token: str
    user: dict
