"""Tests for auth/users.py -- UserService CRUD.

Covers:
- get_user / get_me return public copies
- get_me for a deleted account raises NotFound
- list_users paging and total count
- update_user validation, normalization, email conflicts, keeping own email
- delete_user
"""

from __future__ import annotations

import pytest

from auth.models import Identity
from auth.service import AuthService
from auth.users import UserService
from core.errors import AlreadyExists, NotFound, ValidationError


@pytest.fixture
def ann(auth_service: AuthService):
    return auth_service.register("Ann", "ann@x.com", "secret1").user


class TestRead:
    def test_get_user_is_public(self, user_service: UserService, ann) -> None:
        user = user_service.get_user(ann.id)
        assert user.name == "Ann"
        assert user.password_hash is None

    def test_get_user_empty_id(self, user_service: UserService) -> None:
        with pytest.raises(ValidationError):
            user_service.get_user("")

    def test_get_user_missing(self, user_service: UserService) -> None:
        with pytest.raises(NotFound):
            user_service.get_user("f" * 32)

    def test_get_me(self, user_service: UserService, ann) -> None:
        me = user_service.get_me(Identity(user_id=ann.id, email=ann.email))
        assert me.id == ann.id

    def test_get_me_after_delete(self, user_service: UserService, ann) -> None:
        user_service.delete_user(ann.id)
        with pytest.raises(NotFound):
            user_service.get_me(Identity(user_id=ann.id, email=ann.email))


class TestList:
    def test_paging(self, auth_service: AuthService, user_service: UserService) -> None:
        for i in range(5):
            auth_service.register(f"User {i}", f"user{i}@x.com", "secret1")

        first, total = user_service.list_users(page=1, limit=2)
        third, _ = user_service.list_users(page=3, limit=2)
        beyond, _ = user_service.list_users(page=4, limit=2)

        assert total == 5
        assert len(first) == 2
        assert len(third) == 1
        assert beyond == []
        assert all(u.password_hash is None for u in first)

    @pytest.mark.parametrize("page,limit", [(0, 10), (1, 0), (-1, 10)])
    def test_bad_paging(self, user_service: UserService, page: int, limit: int) -> None:
        with pytest.raises(ValidationError):
            user_service.list_users(page=page, limit=limit)


class TestUpdate:
    def test_update(self, user_service: UserService, ann) -> None:
        updated = user_service.update_user(ann.id, " Annie ", "Annie@X.com")
        assert updated.name == "Annie"
        assert updated.email == "annie@x.com"
        assert updated.password_hash is None

    def test_keep_own_email(self, user_service: UserService, ann) -> None:
        updated = user_service.update_user(ann.id, "Annie", "ann@x.com")
        assert updated.email == "ann@x.com"

    def test_email_taken_by_other(self, auth_service: AuthService, user_service: UserService, ann) -> None:
        auth_service.register("Bob", "bob@x.com", "secret1")
        with pytest.raises(AlreadyExists):
            user_service.update_user(ann.id, "Ann", "bob@x.com")

    @pytest.mark.parametrize("name,email", [("", "ann@x.com"), ("Ann", ""), ("Ann", "no-at-sign")])
    def test_invalid(self, user_service: UserService, ann, name: str, email: str) -> None:
        with pytest.raises(ValidationError):
            user_service.update_user(ann.id, name, email)

    def test_missing_user(self, user_service: UserService) -> None:
        with pytest.raises(NotFound):
            user_service.update_user("f" * 32, "Ghost", "ghost@x.com")


class TestDelete:
    def test_delete_missing(self, user_service: UserService) -> None:
        with pytest.raises(NotFound):
            user_service.delete_user("f" * 32)

    def test_delete_empty_id(self, user_service: UserService) -> None:
        with pytest.raises(ValidationError):
            user_service.delete_user("")
