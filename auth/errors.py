"""
auth/errors.py -- Exception taxonomy for the auth core.

Domain errors are raised by auth/service.py and cross the service boundary
unchanged. api/main.py owns the translation to HTTP status codes; nothing in
auth/ knows about HTTP.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

# Shared by UserNotFoundError and InvalidPasswordError on the login path so the
# response text never reveals which of the two fields was wrong.
INVALID_CREDENTIALS_MESSAGE = "Invalid email or password"


class AuthError(Exception):
    """Base class for every error raised by the auth package."""

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message


class ValidationError(AuthError):
    """An entity was constructed from malformed data."""


class UserAlreadyExistsError(AuthError):
    """An account with the same (normalized) email already exists."""


class UserNotFoundError(AuthError):
    """No account matches the given email or id."""


class InvalidPasswordError(AuthError):
    """The password does not match the stored hash."""


class AuthorizationError(AuthError):
    """The acting user's role does not grant the requested capability."""


class InvalidTokenError(AuthError):
    """A token is malformed, forged, or missing required claims."""


class ExpiredTokenError(AuthError):
    """A correctly signed token whose exp is in the past."""


class RepositoryError(AuthError):
    """A persistence failure, wrapped with the name of the failing operation."""

    def __init__(self, operation: str, cause: BaseException | None = None) -> None:
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Repository operation '{operation}' failed{detail}")
        self.operation = operation
        self.cause = cause


class DuplicateKeyError(RepositoryError):
    """The store's uniqueness constraint on email rejected a write."""
