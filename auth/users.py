"""
auth/users.py -- User CRUD on top of the credential store.

Every User returned from here is a public() copy (no password_hash). Account
creation is not offered: accounts come into existence only through
AuthService.register(), which hashes the password and issues a token.
"""

from __future__ import annotations

import logging

from auth.models import Identity, User
from auth.ports import UserRepository
from auth.service import normalize_email, validate_profile
from core.errors import AlreadyExists, NotFound, ValidationError

logger = logging.getLogger("userbase.auth")

DEFAULT_PAGE_LIMIT = 100


class UserService:
    def __init__(self, store: UserRepository) -> None:
        self._store = store

    def get_user(self, user_id: str) -> User:
        """Raises NotFound if no user has this id."""
        if not user_id:
            raise ValidationError("User ID is required.")
        return self._store.get_by_id(user_id).public()

    def get_me(self, identity: Identity) -> User:
        """Return the caller's own record.

        A token can outlive its account (delete does not revoke tokens), so
        this raises NotFound for a validly-signed token of a deleted user.
        """
        return self.get_user(identity.user_id)

    def list_users(self, page: int = 1, limit: int = DEFAULT_PAGE_LIMIT) -> tuple[list[User], int]:
        """Return one page of users and the total count."""
        if page < 1 or limit < 1:
            raise ValidationError("page and limit must be positive.")
        users = self._store.list_users()
        start = (page - 1) * limit
        return [u.public() for u in users[start : start + limit]], len(users)

    def update_user(self, user_id: str, name: str, email: str) -> User:
        """Replace name and email. Password and created_at cannot change here.

        Raises ValidationError, NotFound, or AlreadyExists when the new email
        belongs to a different account.
        """
        if not user_id:
            raise ValidationError("User ID is required.")
        validate_profile(name, email)
        email = normalize_email(email)

        try:
            owner = self._store.get_by_email(email)
        except NotFound:
            pass
        else:
            if owner.id != user_id:
                raise AlreadyExists("Email is already in use.")

        self._store.update_user(user_id, name=name.strip(), email=email)
        logger.info("User updated: %s", user_id)
        return self.get_user(user_id)

    def delete_user(self, user_id: str) -> None:
        """Raises NotFound if no user has this id. Outstanding tokens stay valid until expiry."""
        if not user_id:
            raise ValidationError("User ID is required.")
        self._store.delete_user(user_id)
        logger.info("User deleted: %s", user_id)
