"""
auth/ports.py -- The credential-store contract the services depend on.

auth/store.py (SQLAlchemy) is the production adapter. Services are typed
against this Protocol only, so any store honouring the error contract below
can be swapped in.

Error contract:
  NotFound       -- get_by_id / get_by_email / update_user / delete_user
                    when no record matches. Never a None return.
  AlreadyExists  -- create_user / update_user when the email is taken.
  Internal       -- any other storage failure. No retries happen above this
                    layer; a retry policy, if any, belongs to the adapter.
"""

from __future__ import annotations

from typing import Protocol

from auth.models import User


class UserRepository(Protocol):
    """Persistence port for User records."""

    def create_user(self, user: User) -> str:
        """Insert user and return the opaque id the store assigned."""
        ...

    def get_by_id(self, user_id: str) -> User: ...

    def get_by_email(self, email: str) -> User: ...

    def list_users(self) -> list[User]: ...

    def update_user(self, user_id: str, **fields: str) -> None:
        """Update name and/or email on an existing record."""
        ...

    def delete_user(self, user_id: str) -> None: ...

    def ping(self) -> bool:
        """Return True if the backing database answers a trivial query."""
        ...
