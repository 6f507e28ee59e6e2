"""Tests for auth/store.py -- SQLAlchemy-backed UserStore.

Covers:
- create_user assigns a 32-char hex id and persists every column
- UNIQUE(email): a second insert raises AlreadyExists
- get_by_id / get_by_email / update_user / delete_user raise NotFound for misses
- update_user whitelists columns
- list_users ordering
- database failures are translated to Internal
- ping() reports connectivity
- a lock held elsewhere fails the call after the configured timeout
"""

from __future__ import annotations

import sqlite3
import time

import pytest

from auth.models import User
from auth.store import UserStore
from core.errors import AlreadyExists, Internal, NotFound


def _user(email: str = "ann@x.com", name: str = "Ann", created_at: str = "2026-01-01T00:00:00+00:00") -> User:
    return User(name=name, email=email, password_hash="$2b$04$hash", created_at=created_at)


class TestCreate:
    def test_assigns_opaque_hex_id(self, store: UserStore) -> None:
        user_id = store.create_user(_user())
        assert len(user_id) == 32
        int(user_id, 16)

    def test_persists_all_fields(self, store: UserStore) -> None:
        user_id = store.create_user(_user())
        stored = store.get_by_id(user_id)
        assert stored.id == user_id
        assert stored.name == "Ann"
        assert stored.email == "ann@x.com"
        assert stored.password_hash == "$2b$04$hash"
        assert stored.created_at == "2026-01-01T00:00:00+00:00"

    def test_duplicate_email_rejected_by_constraint(self, store: UserStore) -> None:
        store.create_user(_user())
        with pytest.raises(AlreadyExists):
            store.create_user(_user(name="Other"))
        assert len(store.list_users()) == 1, "the duplicate row must not be written"


class TestLookup:
    def test_get_by_email(self, store: UserStore) -> None:
        user_id = store.create_user(_user())
        assert store.get_by_email("ann@x.com").id == user_id

    def test_missing_id(self, store: UserStore) -> None:
        with pytest.raises(NotFound):
            store.get_by_id("0" * 32)

    def test_missing_email(self, store: UserStore) -> None:
        with pytest.raises(NotFound):
            store.get_by_email("nobody@x.com")

    def test_list_users_oldest_first(self, store: UserStore) -> None:
        store.create_user(_user("b@x.com", created_at="2026-01-02T00:00:00+00:00"))
        store.create_user(_user("a@x.com", created_at="2026-01-01T00:00:00+00:00"))
        assert [u.email for u in store.list_users()] == ["a@x.com", "b@x.com"]

    def test_list_users_empty(self, store: UserStore) -> None:
        assert store.list_users() == []


class TestUpdateDelete:
    def test_update_name_and_email(self, store: UserStore) -> None:
        user_id = store.create_user(_user())
        store.update_user(user_id, name="Annie", email="annie@x.com")
        stored = store.get_by_id(user_id)
        assert (stored.name, stored.email) == ("Annie", "annie@x.com")
        assert stored.password_hash == "$2b$04$hash", "update must not touch the hash"

    def test_update_unknown_field(self, store: UserStore) -> None:
        user_id = store.create_user(_user())
        with pytest.raises(ValueError):
            store.update_user(user_id, password_hash="x")

    def test_update_missing_user(self, store: UserStore) -> None:
        with pytest.raises(NotFound):
            store.update_user("0" * 32, name="Ghost")

    def test_update_to_taken_email(self, store: UserStore) -> None:
        store.create_user(_user("a@x.com"))
        b_id = store.create_user(_user("b@x.com"))
        with pytest.raises(AlreadyExists):
            store.update_user(b_id, email="a@x.com")

    def test_delete(self, store: UserStore) -> None:
        user_id = store.create_user(_user())
        store.delete_user(user_id)
        with pytest.raises(NotFound):
            store.get_by_id(user_id)

    def test_delete_missing_user(self, store: UserStore) -> None:
        with pytest.raises(NotFound):
            store.delete_user("0" * 32)


class TestFailures:
    def test_ping(self, store: UserStore) -> None:
        assert store.ping() is True

    def test_failures_become_internal(self, tmp_path) -> None:
        broken = UserStore(f"sqlite:///{tmp_path / 'users.db'}")
        with broken.engine.connect() as conn:
            conn.exec_driver_sql("DROP TABLE users")
            conn.commit()
        with pytest.raises(Internal):
            broken.get_by_email("ann@x.com")
        broken.close()

    def test_locked_database_fails_within_timeout(self, tmp_path) -> None:
        """A write blocked by another connection's lock gives up after `timeout`."""
        path = tmp_path / "users.db"
        locked = UserStore(f"sqlite:///{path}", timeout=0.2)
        holder = sqlite3.connect(path, isolation_level=None)
        holder.execute("BEGIN EXCLUSIVE")
        try:
            start = time.monotonic()
            with pytest.raises(Internal):
                locked.create_user(_user())
            assert time.monotonic() - start < 3
        finally:
            holder.execute("ROLLBACK")
            holder.close()
            locked.close()
