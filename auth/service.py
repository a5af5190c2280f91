"""
auth/service.py -- Authentication and authorization use cases.

AuthService orchestrates the repository (auth/repository.py) and the codec
(auth/tokens.py). It is stateless per call: the only instance state is the
repository handle and the signing configuration fixed at construction.

Error policy:
  Domain errors (UserAlreadyExistsError, UserNotFoundError,
  InvalidPasswordError, AuthorizationError, ValidationError) are raised here
  and never caught here. RepositoryError from the repository passes through
  untouched -- it already names the failing operation. The one translation is
  DuplicateKeyError -> UserAlreadyExistsError, for the race the pre-check
  cannot close.

Login enumeration guard:
  Unknown email and wrong password raise different error kinds (so logs can
  tell them apart) with the same message, and both paths run bcrypt once so
  timing is equalized.
"""

from __future__ import annotations

import logging

from auth.errors import (
    INVALID_CREDENTIALS_MESSAGE,
    AuthorizationError,
    DuplicateKeyError,
    InvalidPasswordError,
    UserAlreadyExistsError,
    UserNotFoundError,
)
from auth.models import AuthResult, Role, TokenClaims, User, normalize_email
from auth.repository import UserRepository
from auth.tokens import DUMMY_HASH, hash_password, issue_token, verify_password, verify_token
from core.config import DEFAULT_TOKEN_EXPIRE_SECONDS

logger = logging.getLogger("taskboard.auth")

_DUPLICATE_EMAIL_MESSAGE = "A user with this email already exists"


class AuthService:
    """Register, log in, create and list users.

    Usage:
        service = AuthService(UserStore(), secret_key=settings.jwt_secret)
        result = service.register("Ada", "ada@example.com", "s3cret!")
        result.token, result.user
    """

    def __init__(
        self,
        repository: UserRepository,
        secret_key: str,
        token_expire_seconds: int = DEFAULT_TOKEN_EXPIRE_SECONDS,
    ) -> None:
        if not secret_key:
            raise ValueError("AuthService requires a signing secret.")
        if token_expire_seconds <= 0:
            raise ValueError("token_expire_seconds must be positive.")
        self._repository = repository
        self._secret_key = secret_key
        self._token_expire_seconds = token_expire_seconds

    # ------------------------------------------------------------------
    # Use cases
    # ------------------------------------------------------------------

    def register(self, name: str, email: str, password: str, role: Role | str | None = None) -> AuthResult:
        """Self-service sign-up. The account is always a colaborador.

        role is accepted and discarded so a caller that forwards an untrusted
        payload cannot elevate the new account's privileges.
        """
        if role is not None and role != Role.colaborador:
            logger.warning("Ignoring role %r supplied to self-registration", role)
        user = self._create_account(name, email, password, Role.colaborador)
        logger.info("Registered user id=%s", user.id)
        return self._auth_result(user)

    def create_user(self, acting_user_id: int, name: str, email: str, password: str, role: Role | str) -> AuthResult:
        """Create an account with an explicit role on behalf of an admin.

        The capability check runs before the duplicate-email lookup, so a
        non-admin caller learns nothing about which emails are registered.
        """
        acting_user = self._repository.find_by_id(acting_user_id)
        if acting_user is None:
            raise UserNotFoundError("Acting user not found")
        if not acting_user.can_manage_users():
            logger.info("User id=%s (role=%s) denied create_user", acting_user.id, acting_user.role.value)
            raise AuthorizationError("Only admins can create users")

        user = self._create_account(name, email, password, role)
        logger.info("User id=%s created user id=%s with role=%s", acting_user.id, user.id, user.role.value)
        return self._auth_result(user)

    def login(self, email: str, password: str) -> AuthResult:
        user = self._repository.find_by_email(normalize_email(email))
        if user is None:
            # Equalize timing -- do NOT return before running bcrypt.
            verify_password(password, DUMMY_HASH)
            logger.info("Login failed: unknown email")
            raise UserNotFoundError(INVALID_CREDENTIALS_MESSAGE)
        if not verify_password(password, user.password_hash):
            logger.info("Login failed: wrong password for user id=%s", user.id)
            raise InvalidPasswordError(INVALID_CREDENTIALS_MESSAGE)
        return self._auth_result(user)

    def get_users(self) -> list[dict]:
        """Return the safe view of every account, ordered by name.

        No role check here; callers restrict access (the HTTP route requires
        an admin).
        """
        return [u.to_safe_dict() for u in self._repository.find_all()]

    def verify_token(self, token: str) -> TokenClaims:
        """Verify a token issued by this service. See tokens.verify_token for errors."""
        return verify_token(token, self._secret_key)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _create_account(self, name: str, email: str, password: str, role: Role | str) -> User:
        normalized = normalize_email(email)
        if self._repository.find_by_email(normalized) is not None:
            raise UserAlreadyExistsError(_DUPLICATE_EMAIL_MESSAGE)

        new_user = User(name=name, email=normalized, password_hash=hash_password(password), role=role)
        try:
            return self._repository.create(new_user)
        except DuplicateKeyError as exc:
            # A concurrent request registered the same email after our pre-check.
            raise UserAlreadyExistsError(_DUPLICATE_EMAIL_MESSAGE) from exc

    def _auth_result(self, user: User) -> AuthResult:
        token = issue_token(
            {"id": user.id, "email": user.email, "role": user.role},
            self._secret_key,
            self._token_expire_seconds,
        )
        return AuthResult(token=token, user=user.to_safe_dict())
