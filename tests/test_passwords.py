"""Unit tests for auth/passwords.py -- bcrypt hashing and verification.

Covers:
- hash() salts: same plaintext, different hashes, both verify
- verify() returns False (not an error) on mismatch
- verify() raises HashingError for a structurally invalid stored hash
- dummy_hash is a real bcrypt hash that never matches ordinary input
- the 72-byte bcrypt limit: exactly 72 bytes works, longer is rejected on
  hash and never matches on verify
"""

import pytest

from auth.passwords import MAX_PASSWORD_BYTES, PasswordHasher, password_too_long
from core.errors import HashingError, Internal, ValidationError


@pytest.fixture(scope="module")
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=4)


def test_hash_is_not_plaintext(hasher: PasswordHasher) -> None:
    hashed = hasher.hash("secret1")
    assert hashed != "secret1"
    assert hashed.startswith("$2")


def test_same_password_hashes_differently(hasher: PasswordHasher) -> None:
    first = hasher.hash("secret1")
    second = hasher.hash("secret1")
    assert first != second
    assert hasher.verify("secret1", first)
    assert hasher.verify("secret1", second)


def test_verify_mismatch_returns_false(hasher: PasswordHasher) -> None:
    hashed = hasher.hash("secret1")
    assert hasher.verify("wrong", hashed) is False


def test_verify_invalid_hash_raises(hasher: PasswordHasher) -> None:
    with pytest.raises(HashingError):
        hasher.verify("secret1", "not-a-bcrypt-hash")


def test_hashing_error_is_internal() -> None:
    """HashingError must surface through the transports as an internal error."""
    assert issubclass(HashingError, Internal)
    assert HashingError().code == "internal"


def test_dummy_hash_is_usable(hasher: PasswordHasher) -> None:
    assert hasher.verify("anything", hasher.dummy_hash) is False


def test_rounds_are_applied() -> None:
    hashed = PasswordHasher(rounds=5).hash("secret1")
    assert hashed.split("$")[2] == "05"


def test_password_at_byte_limit(hasher: PasswordHasher) -> None:
    plain = "a" * MAX_PASSWORD_BYTES
    hashed = hasher.hash(plain)
    assert hasher.verify(plain, hashed)
    assert hasher.verify(plain[:-1], hashed) is False


def test_overlong_password_rejected_on_hash(hasher: PasswordHasher) -> None:
    with pytest.raises(ValidationError):
        hasher.hash("a" * 100)


def test_overlong_password_never_matches(hasher: PasswordHasher) -> None:
    """A 72-byte prefix match must not let a longer password in."""
    stored = hasher.hash("a" * MAX_PASSWORD_BYTES)
    assert hasher.verify("a" * 100, stored) is False
    assert hasher.verify("a" * 100, hasher.dummy_hash) is False


def test_limit_counts_bytes_not_characters() -> None:
    assert not password_too_long("é" * 36)
    assert password_too_long("é" * 37)
