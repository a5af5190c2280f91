"""
auth/tokens.py -- Password hashing and session-token codec.

Security design decisions:
  Passwords: bcrypt used directly (no passlib wrapper). Each call draws a
       fresh salt, so the same password hashes differently every time while
       every hash still verifies. The cost factor makes brute force expensive.
       DUMMY_HASH enables timing equalization in AuthService.login() so
       response time does not reveal whether an email is registered.

  Tokens: python-jose with HS256. Tokens carry sub, id, email, role, iat and
       exp. Unlike decode helpers that return None, verify_token() raises
       ExpiredTokenError or InvalidTokenError so callers can tell a stale
       session from a forged one.

  Secret: passed in explicitly by the caller (AuthService holds the value it
       was constructed with). This module never reads configuration itself.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import bcrypt
from jose import ExpiredSignatureError, JWTError, jwt

from auth.errors import ExpiredTokenError, InvalidTokenError, ValidationError
from auth.models import Role, TokenClaims

ALGORITHM = "HS256"

# bcrypt rejects (or, in older releases, silently truncates) longer input.
PASSWORD_MAX_BYTES = 72

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a salted bcrypt hash of the given plaintext password.

    Raises ValidationError when the UTF-8 encoding exceeds PASSWORD_MAX_BYTES,
    which a short password of multi-byte characters can do.
    """
    encoded = plain.encode("utf-8")
    if len(encoded) > PASSWORD_MAX_BYTES:
        raise ValidationError(f"Password must be at most {PASSWORD_MAX_BYTES} bytes")
    return bcrypt.hashpw(encoded, bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    A malformed or empty hash yields False rather than an exception.
    """
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


# Timing equalization dummy hash. Computed once at module load so the first
# login against an unknown email is not measurably slower than later ones.
DUMMY_HASH: str = hash_password("taskboard_timing_dummy")


# ---------------------------------------------------------------------------
# Token encode / decode
# ---------------------------------------------------------------------------


def issue_token(claims: dict, secret_key: str, expire_seconds: int, now: datetime | None = None) -> str:
    """Encode a signed token for the given identity.

    Args:
        claims:         Mapping with "id", "email" and "role".
        secret_key:     HS256 signing secret.
        expire_seconds: Validity window measured from issued-at.
        now:            Issued-at override; defaults to the current UTC time.
                        With a fixed value the output is deterministic.
    """
    issued_at = (now or datetime.now(timezone.utc)).replace(microsecond=0)
    role = claims["role"]
    payload = {
        "sub": str(claims["id"]),
        "id": claims["id"],
        "email": claims["email"],
        "role": role.value if isinstance(role, Role) else role,
        "iat": issued_at,
        "exp": issued_at + timedelta(seconds=expire_seconds),
    }
    return jwt.encode(payload, secret_key, algorithm=ALGORITHM)


def verify_token(token: str, secret_key: str) -> TokenClaims:
    """Verify signature and expiry and return the token's claims.

    Raises:
        ExpiredTokenError: the signature is valid but exp has passed.
        InvalidTokenError: bad signature, malformed token, or missing claims.
    """
    try:
        payload = jwt.decode(token, secret_key, algorithms=[ALGORITHM])
    except ExpiredSignatureError as exc:
        raise ExpiredTokenError("Token expired") from exc
    except JWTError as exc:
        raise InvalidTokenError("Invalid token") from exc

    try:
        return TokenClaims(
            id=int(payload["id"]),
            email=str(payload["email"]),
            role=Role(payload["role"]),
            issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise InvalidTokenError("Invalid token") from exc
