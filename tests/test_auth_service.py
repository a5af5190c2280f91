"""Unit tests for auth/service.py -- register, login, create_user, get_users.

Most tests run against the real UserStore on in-memory SQLite. Tests that
assert on collaborator calls (which lookups ran, in what order) use a
MagicMock repository instead.
"""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from auth.errors import (
    AuthorizationError,
    DuplicateKeyError,
    InvalidPasswordError,
    RepositoryError,
    UserAlreadyExistsError,
    UserNotFoundError,
    ValidationError,
)
from auth.models import Role, User
from auth.service import AuthService
from auth.tokens import DUMMY_HASH

SECRET = "mock-repo-secret-0123456789abcdef012345"


def _mock_repo(acting: User | None) -> MagicMock:
    repo = MagicMock()
    repo.find_by_id.return_value = acting
    repo.find_by_email.return_value = None
    return repo


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


def test_missing_secret_fails_fast(store):
    with pytest.raises(ValueError):
        AuthService(store, secret_key="")


# ---------------------------------------------------------------------------
# register
# ---------------------------------------------------------------------------


class TestRegister:
    def test_returns_token_and_safe_user(self, service):
        result = service.register("Ana", "ana@example.com", "secret123")
        assert result.user["email"] == "ana@example.com"
        assert result.user["role"] == "colaborador"
        assert "password_hash" not in result.user
        claims = service.verify_token(result.token)
        assert claims.id == result.user["id"]
        assert claims.role is Role.colaborador

    @pytest.mark.parametrize("smuggled", ["admin", Role.admin, Role.gestor])
    def test_role_is_forced_to_colaborador(self, service, smuggled):
        result = service.register("Eve", "eve@example.com", "secret123", role=smuggled)
        assert service.verify_token(result.token).role is Role.colaborador
        assert result.user["role"] == "colaborador"

    def test_duplicate_email_is_case_insensitive(self, service):
        service.register("Ana", "ana@example.com", "secret123")
        with pytest.raises(UserAlreadyExistsError):
            service.register("Ana Again", "ANA@Example.com", "other-pass")

    def test_email_is_stored_normalized(self, service, store):
        service.register("Ana", "  Ana@Example.COM", "secret123")
        assert store.find_by_email("ana@example.com") is not None

    def test_password_is_hashed_before_storage(self, service, store):
        service.register("Ana", "ana@example.com", "secret123")
        stored = store.find_by_email("ana@example.com")
        assert stored.password_hash != "secret123"
        assert stored.password_hash.startswith("$2")

    def test_multibyte_password_over_72_bytes_is_a_validation_error(self, service, store):
        with pytest.raises(ValidationError):
            service.register("Ana", "ana@example.com", "\u00e9" * 40)
        assert store.find_by_email("ana@example.com") is None

    def test_race_on_create_maps_to_already_exists(self):
        repo = _mock_repo(None)
        repo.create.side_effect = DuplicateKeyError("create")
        service = AuthService(repo, secret_key=SECRET)
        with pytest.raises(UserAlreadyExistsError):
            service.register("Ana", "ana@example.com", "secret123")

    def test_repository_error_propagates_unchanged(self):
        repo = _mock_repo(None)
        error = RepositoryError("find_by_email", OSError("connection refused"))
        repo.find_by_email.side_effect = error
        service = AuthService(repo, secret_key=SECRET)
        with pytest.raises(RepositoryError) as exc_info:
            service.register("Ana", "ana@example.com", "secret123")
        assert exc_info.value is error


# ---------------------------------------------------------------------------
# login
# ---------------------------------------------------------------------------


class TestLogin:
    def test_login_after_register(self, service):
        registered = service.register("A", "a@x.com", "secret")
        result = service.login("a@x.com", "secret")
        claims = service.verify_token(result.token)
        assert claims.id == registered.user["id"]
        assert claims.role is Role.colaborador
        assert result.user == registered.user

    def test_login_email_is_case_insensitive(self, service):
        service.register("A", "a@x.com", "secret")
        assert service.login("A@X.COM", "secret").user["email"] == "a@x.com"

    def test_wrong_password_and_unknown_email_share_message(self, service):
        service.register("A", "a@x.com", "secret")
        with pytest.raises(InvalidPasswordError) as wrong_password:
            service.login("a@x.com", "not-the-secret")
        with pytest.raises(UserNotFoundError) as unknown_email:
            service.login("nobody@x.com", "secret")
        assert str(wrong_password.value) == str(unknown_email.value) == "Invalid email or password"

    def test_unknown_email_still_runs_bcrypt(self, service):
        with patch("auth.service.verify_password", return_value=False) as verify:
            with pytest.raises(UserNotFoundError):
                service.login("nobody@x.com", "secret")
        verify.assert_called_once_with("secret", DUMMY_HASH)


# ---------------------------------------------------------------------------
# create_user
# ---------------------------------------------------------------------------


class TestCreateUser:
    def test_admin_creates_user_with_role(self, service, make_user):
        admin = make_user("Root", "root@example.com", role=Role.admin)
        result = service.create_user(admin.id, "Gina", "gina@example.com", "secret123", Role.gestor)
        assert result.user["role"] == "gestor"
        assert service.verify_token(result.token).role is Role.gestor

    def test_admin_may_create_admin(self, service, make_user):
        admin = make_user("Root", "root@example.com", role=Role.admin)
        result = service.create_user(admin.id, "Second", "second@example.com", "secret123", "admin")
        assert result.user["role"] == "admin"

    def test_admin_duplicate_email(self, service, make_user):
        admin = make_user("Root", "root@example.com", role=Role.admin)
        make_user("Taken", "taken@example.com")
        with pytest.raises(UserAlreadyExistsError):
            service.create_user(admin.id, "Again", "TAKEN@example.com", "secret123", Role.gestor)

    def test_invalid_role_rejected(self, service, make_user, store):
        admin = make_user("Root", "root@example.com", role=Role.admin)
        with pytest.raises(ValidationError):
            service.create_user(admin.id, "Gina", "gina@example.com", "secret123", "superuser")
        assert store.find_by_email("gina@example.com") is None

    @pytest.mark.parametrize("role", [Role.gestor, Role.colaborador])
    def test_non_admin_denied_before_email_lookup(self, role):
        acting = User(id=5, name="Nope", email="nope@example.com", password_hash="h", role=role)
        repo = _mock_repo(acting)
        service = AuthService(repo, secret_key=SECRET)

        with pytest.raises(AuthorizationError):
            service.create_user(5, "Gina", "gina@example.com", "secret123", Role.admin)

        repo.find_by_id.assert_called_once_with(5)
        repo.find_by_email.assert_not_called()
        repo.create.assert_not_called()

    def test_missing_acting_user(self):
        repo = _mock_repo(None)
        service = AuthService(repo, secret_key=SECRET)
        with pytest.raises(UserNotFoundError):
            service.create_user(99, "Gina", "gina@example.com", "secret123", Role.gestor)
        repo.find_by_email.assert_not_called()

    def test_admin_path_checks_email_after_role(self):
        acting = User(id=1, name="Root", email="root@example.com", password_hash="h", role=Role.admin)
        repo = _mock_repo(acting)
        repo.create.side_effect = lambda user: User(
            id=2, name=user.name, email=user.email, password_hash=user.password_hash, role=user.role
        )
        service = AuthService(repo, secret_key=SECRET)

        service.create_user(1, "Gina", "Gina@Example.com", "secret123", Role.gestor)

        assert [c[0] for c in repo.method_calls] == ["find_by_id", "find_by_email", "create"]
        repo.find_by_email.assert_called_once_with("gina@example.com")


# ---------------------------------------------------------------------------
# get_users
# ---------------------------------------------------------------------------


class TestGetUsers:
    def test_ordered_by_name(self, service, make_user):
        for name in ("Bob", "alice", "Carl"):
            make_user(name, f"{name.lower()}@example.com")
        assert [u["name"] for u in service.get_users()] == ["alice", "Bob", "Carl"]

    def test_safe_views_only(self, service, make_user):
        make_user("Ana", "ana@example.com", role=Role.admin)
        (view,) = service.get_users()
        assert set(view) == {"id", "name", "email", "role"}
        assert view["role"] == "admin"

    def test_empty(self, service):
        assert service.get_users() == []
