"""
tests/conftest.py -- Shared test fixtures for TaskBoard.

This module provides:
  - store / service: an in-memory UserStore and an AuthService over it
  - make_user(): builds and persists a User with a real bcrypt hash
  - api_client: TestClient over the real app with isolated stores and
    pre-created admin and colaborador accounts

Design: api_client uses a named shared-memory SQLite URI (not plain :memory:)
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker thread.

DEBUG must be set before any core/auth import so get_settings() falls back to
the development secret instead of raising. The login rate limit is raised so
the suite never trips it.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass

# CRITICAL: set before any core/auth import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.models import Role, User
from auth.service import AuthService
from auth.store import UserStore
from auth.tokens import hash_password

TEST_SECRET = "test-secret-key-0123456789abcdef0123456789"


# ---------------------------------------------------------------------------
# Unit-level fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> Generator[UserStore, None, None]:
    s = UserStore("sqlite:///:memory:")
    yield s
    s.close()


@pytest.fixture
def service(store: UserStore) -> AuthService:
    return AuthService(store, secret_key=TEST_SECRET)


@pytest.fixture
def make_user(store: UserStore) -> Callable[..., User]:
    """Return a factory that persists a user with a real bcrypt hash."""

    def _make(name: str, email: str, password: str = "secret123", role: Role = Role.colaborador) -> User:
        return store.create(User(name=name, email=email, password_hash=hash_password(password), role=role))

    return _make


# ---------------------------------------------------------------------------
# Integration fixture
# ---------------------------------------------------------------------------


@dataclass
class ApiContext:
    client: TestClient
    service: AuthService
    secret: str
    admin: User
    admin_token: str
    colaborador: User
    colaborador_token: str

    def auth(self, token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}"}


def _patch_lifespan(user_store: UserStore, auth_service: AuthService):
    """Return a lifespan that wires the test store and service into app.state."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.auth_service = auth_service
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api_client(request) -> Generator[ApiContext, None, None]:
    """Yield an ApiContext for HTTP integration tests.

    One isolated database per test module. The admin and colaborador
    accounts (password "adminpass1" / "colabpass1") exist before the client
    starts; their tokens are issued by the same service the app uses.
    """
    db_name = request.module.__name__.replace(".", "_")
    user_store = UserStore(f"sqlite:///file:{db_name}?mode=memory&cache=shared&uri=true")
    auth_service = AuthService(user_store, secret_key=TEST_SECRET)

    admin = user_store.create(
        User(name="Admin", email="admin@taskboard.test", password_hash=hash_password("adminpass1"), role=Role.admin)
    )
    colaborador = user_store.create(
        User(name="Colab", email="colab@taskboard.test", password_hash=hash_password("colabpass1"))
    )
    admin_token = auth_service.login("admin@taskboard.test", "adminpass1").token
    colaborador_token = auth_service.login("colab@taskboard.test", "colabpass1").token

    app.router.lifespan_context = _patch_lifespan(user_store, auth_service)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield ApiContext(
            client=client,
            service=auth_service,
            secret=TEST_SECRET,
            admin=admin,
            admin_token=admin_token,
            colaborador=colaborador,
            colaborador_token=colaborador_token,
        )

    user_store.close()
