"""
auth/store.py -- SQLAlchemy Core persistence layer for user accounts.

Pattern: Repository + Data Mapper. UserStore implements the UserRepository
protocol from auth/repository.py; _row_to_user is the mapper. Service and
route code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

Error handling:
  Every public method wraps SQLAlchemyError in RepositoryError naming the
  operation. An IntegrityError on insert means the UNIQUE(email) constraint
  fired and becomes DuplicateKeyError -- this is the authoritative duplicate
  check; the service's find_by_email pre-check is best effort.

Ordering:
  find_all() sorts on lower(name) first so "alice" sorts before "Bob"
  regardless of the backend's default collation.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, func, select, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.errors import DuplicateKeyError, RepositoryError
from auth.models import User, normalize_email
from core.config import get_settings

logger = logging.getLogger("taskboard.store")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False),
    Column("email", String(255), nullable=False, unique=True),  # stored normalized
    Column("password_hash", Text, nullable=False),
    Column("role", String(50), nullable=False, server_default="colaborador"),
    Column("created_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers do not block during writes.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """SQL-backed UserRepository.

    Usage:
        store = UserStore("sqlite:///:memory:")
        admin = store.create(User(name="Ada", email="ada@x.com", password_hash=hash_password("s3cret"), role="admin"))
        store.find_by_email("ada@x.com")
        store.close()
    """

    def __init__(self, db_url: str | None = None) -> None:
        db_url = db_url or get_settings().database_url
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # UserRepository
    # ------------------------------------------------------------------

    def find_by_email(self, email: str) -> User | None:
        try:
            with self.engine.connect() as conn:
                row = conn.execute(_users.select().where(_users.c.email == normalize_email(email))).fetchone()
        except SQLAlchemyError as exc:
            raise RepositoryError("find_by_email", exc) from exc
        return _row_to_user(row) if row is not None else None

    def find_by_id(self, user_id: int) -> User | None:
        try:
            with self.engine.connect() as conn:
                row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        except SQLAlchemyError as exc:
            raise RepositoryError("find_by_id", exc) from exc
        return _row_to_user(row) if row is not None else None

    def create(self, user: User) -> User:
        """Insert a new user and return it with its id and created_at filled in.

        Raises DuplicateKeyError if the email is already taken, including
        when a concurrent request won the race after the service's pre-check.
        """
        created_at = _now_iso()
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    _users.insert().values(
                        name=user.name,
                        email=user.email,
                        password_hash=user.password_hash,
                        role=user.role.value,
                        created_at=created_at,
                    )
                )
                conn.commit()
                user_id = result.inserted_primary_key[0]
        except IntegrityError as exc:
            raise DuplicateKeyError("create", exc) from exc
        except SQLAlchemyError as exc:
            raise RepositoryError("create", exc) from exc
        logger.debug("Inserted user id=%s", user_id)
        return replace(user, id=user_id, created_at=created_at)

    def find_all(self) -> list[User]:
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(
                    _users.select().order_by(func.lower(_users.c.name), _users.c.name, _users.c.id)
                ).fetchall()
        except SQLAlchemyError as exc:
            raise RepositoryError("find_all", exc) from exc
        return [_row_to_user(r) for r in rows]

    # ------------------------------------------------------------------
    # Housekeeping
    # ------------------------------------------------------------------

    def has_users(self) -> bool:
        """Return True if at least one account exists (first-run detection)."""
        try:
            with self.engine.connect() as conn:
                result = conn.execute(select(func.count()).select_from(_users)).scalar()
        except SQLAlchemyError as exc:
            raise RepositoryError("has_users", exc) from exc
        return (result or 0) > 0

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError:
            logger.warning("User store ping failed", exc_info=True)
            return False
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        name=row.name,
        email=row.email,
        password_hash=row.password_hash,
        role=row.role,
        created_at=row.created_at,
    )
