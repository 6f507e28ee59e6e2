"""
auth/passwords.py -- Password hashing (bcrypt, direct usage, no passlib wrapper).

bcrypt is the right choice for low-entropy secrets because its cost factor
makes brute-force expensive. gensalt() draws a fresh random salt per call, so
hashing the same password twice yields two different strings.

bcrypt only reads the first 72 bytes of its input, and bcrypt 5 raises
ValueError for anything longer. MAX_PASSWORD_BYTES is therefore a hard limit:
AuthService.register() rejects longer passwords as invalid input, and hash()
refuses them too. verify() answers False for an overlong password without
handing it to bcrypt whole, so a long wrong password at login is an ordinary
mismatch and not an internal error.

The dummy hash enables timing equalization in AuthService.login(): an unknown
email still costs one bcrypt verification, so response time does not reveal
whether an account exists.
"""

from __future__ import annotations

import bcrypt

from core.errors import HashingError, ValidationError

MAX_PASSWORD_BYTES = 72


def password_too_long(plain: str) -> bool:
    return len(plain.encode("utf-8")) > MAX_PASSWORD_BYTES


class PasswordHasher:
    """Salted adaptive hashing with a configurable bcrypt cost."""

    def __init__(self, rounds: int = 12) -> None:
        self.rounds = rounds
        # Computed once so the first failed login is not measurably slower
        # than later ones.
        self.dummy_hash: str = self.hash("userbase_timing_dummy")

    def hash(self, plain: str) -> str:
        """Return a bcrypt hash of the given plaintext password.

        Raises ValidationError for passwords over MAX_PASSWORD_BYTES.
        """
        if password_too_long(plain):
            raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes.")
        try:
            salt = bcrypt.gensalt(rounds=self.rounds)
            return bcrypt.hashpw(plain.encode("utf-8"), salt).decode("utf-8")
        except (ValueError, OSError) as exc:
            raise HashingError(detail=str(exc)) from exc

    def verify(self, plain: str, hashed: str) -> bool:
        """Return True if plain matches hashed, False on mismatch.

        checkpw compares the derived and stored digests in constant time.
        A stored value that is not a bcrypt hash raises HashingError -- that
        is corrupted data, not a wrong password.
        """
        encoded = plain.encode("utf-8")
        too_long = len(encoded) > MAX_PASSWORD_BYTES
        try:
            # An overlong password can never have been stored, but it still
            # pays for one bcrypt check so the timing matches a real mismatch.
            matched = bcrypt.checkpw(encoded[:MAX_PASSWORD_BYTES], hashed.encode("utf-8"))
        except ValueError as exc:
            raise HashingError("Stored password hash is invalid.", detail=str(exc)) from exc
        return matched and not too_long
