"""
auth/store.py -- SQLAlchemy Core persistence layer for User records.

Pattern: Repository + Data Mapper. UserStore is the repository (it satisfies
auth.ports.UserRepository); _row_to_user is the mapper. Service and route code
never touches SQL directly.

Error translation happens here, at the adapter boundary, so callers only see
the domain errors from core/errors.py:
  IntegrityError           -> AlreadyExists (UNIQUE(email))
  other SQLAlchemyError    -> Internal
  no matching row          -> NotFound

Email uniqueness: the service checks get_by_email() before inserting, but two
concurrent registrations can both pass that check. The UNIQUE index on
users.email is what actually guarantees one account per email -- the second
insert fails and surfaces as AlreadyExists.

Security:
  All queries use bound parameters. No f-strings in SQL.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import Column, MetaData, String, Table, Text, create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.models import User
from core.errors import AlreadyExists, Internal, NotFound

logger = logging.getLogger("userbase.store")

_DEFAULT_DB_URL = "sqlite:///userbase.db"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", String(32), primary_key=True),  # uuid4 hex, opaque to callers
    Column("name", String(255), nullable=False),
    Column("email", String(255), nullable=False, unique=True),
    Column("password_hash", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
)

# Columns update_user() may touch. id, password_hash and created_at are
# immutable through this path.
_UPDATABLE_FIELDS = frozenset({"name", "email"})


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers are not blocked during writes.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User entities.

    Usage:
        store = UserStore("sqlite:///users.db")
        user_id = store.create_user(User(name="Ann", email="ann@x.com", password_hash=h, created_at=now))
        user = store.get_by_email("ann@x.com")
        store.close()
    """

    def __init__(self, db_url: str = _DEFAULT_DB_URL, timeout: float = 5.0) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            # check_same_thread: FastAPI's threadpool and the gRPC executor
            # share the pool. timeout bounds how long a call waits on a lock.
            connect_args["check_same_thread"] = False
            connect_args["timeout"] = timeout
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite") and ":memory:" not in db_url and "mode=memory" not in db_url:
            event.listen(self.engine, "connect", _set_wal_mode)
        with self._translate_errors():
            _metadata.create_all(self.engine)

    @contextmanager
    def _translate_errors(self) -> Iterator[None]:
        try:
            yield
        except IntegrityError as exc:
            raise AlreadyExists("A user with that email already exists.") from exc
        except SQLAlchemyError as exc:
            logger.exception("User store operation failed")
            raise Internal("User store unavailable.", detail=type(exc).__name__) from exc

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> str:
        """Insert a new user and return its assigned opaque ID.

        Raises AlreadyExists if the email is already taken, including when a
        concurrent request inserted it after the caller's own lookup.
        """
        user_id = uuid.uuid4().hex
        with self._translate_errors(), self.engine.connect() as conn:
            conn.execute(
                _users.insert().values(
                    id=user_id,
                    name=user.name,
                    email=user.email,
                    password_hash=user.password_hash,
                    created_at=user.created_at,
                )
            )
            conn.commit()
        return user_id

    def update_user(self, user_id: str, **fields: str) -> None:
        """Update name and/or email. Unknown field names raise ValueError.

        Security: column names come from the _UPDATABLE_FIELDS whitelist,
        never from raw user input.
        """
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown user fields: {unknown!r}")
        if not fields:
            return
        with self._translate_errors(), self.engine.connect() as conn:
            result = conn.execute(_users.update().where(_users.c.id == user_id).values(**fields))
            conn.commit()
        if result.rowcount == 0:
            raise NotFound("User not found.")

    def delete_user(self, user_id: str) -> None:
        """Hard-delete a user. Raises NotFound if no record matched."""
        with self._translate_errors(), self.engine.connect() as conn:
            result = conn.execute(_users.delete().where(_users.c.id == user_id))
            conn.commit()
        if result.rowcount == 0:
            raise NotFound("User not found.")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_by_id(self, user_id: str) -> User:
        """Look up a user by ID. Raises NotFound if absent."""
        with self._translate_errors(), self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        if row is None:
            raise NotFound("User not found.")
        return _row_to_user(row)

    def get_by_email(self, email: str) -> User:
        """Look up a user by exact email. Raises NotFound if absent."""
        with self._translate_errors(), self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        if row is None:
            raise NotFound("User not found.")
        return _row_to_user(row)

    def list_users(self) -> list[User]:
        """Return all users, oldest first."""
        with self._translate_errors(), self.engine.connect() as conn:
            rows = conn.execute(_users.select().order_by(_users.c.created_at, _users.c.id)).fetchall()
        return [_row_to_user(r) for r in rows]

    def ping(self) -> bool:
        """Return True if the database answers SELECT 1. Used by the health endpoint."""
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
        created_at=row.created_at,
    )
