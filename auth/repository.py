"""
auth/repository.py -- Persistence contract consumed by AuthService.

Pattern: Repository interface as a typing.Protocol (structural subtyping).
auth/store.py is the shipped implementation; tests substitute MagicMock
objects or the store itself with an in-memory SQLite URL.

Contract notes:
  - Lookups take an already-normalized email (see models.normalize_email).
  - create() must enforce email uniqueness itself and raise DuplicateKeyError
    when it rejects a write. The service's pre-check is best effort only;
    two concurrent registrations can both pass it.
  - Any other storage failure surfaces as RepositoryError naming the operation.
"""

from __future__ import annotations

from typing import Protocol

from auth.models import User


class UserRepository(Protocol):
    def find_by_email(self, email: str) -> User | None:
        """Return the user with this email, or None."""
        ...

    def find_by_id(self, user_id: int) -> User | None:
        """Return the user with this id, or None."""
        ...

    def create(self, user: User) -> User:
        """Persist a new user and return it with its assigned id."""
        ...

    def find_all(self) -> list[User]:
        """Return every user ordered by name ascending."""
        ...
