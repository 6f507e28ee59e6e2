"""
auth/service.py -- Registration, login and token validation.

AuthService is the only thing either transport talks to for authentication:
the HTTP routes and the gRPC servicer call register()/login(), and both
authorization gates call validate_token(). There is no per-user session
state; every call is independent.

Security:
  login() never distinguishes "no such email" from "wrong password": both
  raise InvalidCredentials, and both cost one bcrypt verification (the
  unknown-email path checks against the hasher's dummy hash) so response
  time does not leak account existence either.

  register() strips password_hash before returning; so does login().
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from auth.models import AuthResult, Claims, User
from auth.passwords import MAX_PASSWORD_BYTES, PasswordHasher, password_too_long
from auth.ports import UserRepository
from auth.tokens import TokenCodec
from core.errors import AlreadyExists, InvalidCredentials, NotFound, ValidationError

logger = logging.getLogger("userbase.auth")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def validate_profile(name: str, email: str) -> None:
    """Raise ValidationError unless name and email are usable.

    Shared with UserService.update_user() so both write paths apply the same
    rules.
    """
    if not name or not name.strip():
        raise ValidationError("Name is required.")
    if not email or not email.strip():
        raise ValidationError("Email is required.")
    local, _, domain = email.strip().partition("@")
    if not local or not domain:
        raise ValidationError("Email address is not valid.")


class AuthService:
    """Orchestrates the password hasher, token codec and user store."""

    def __init__(
        self,
        store: UserRepository,
        hasher: PasswordHasher,
        codec: TokenCodec,
        token_ttl: timedelta,
        password_min_length: int = 6,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._hasher = hasher
        self._codec = codec
        self._token_ttl = token_ttl
        self._password_min_length = password_min_length
        self._clock = clock

    def register(self, name: str, email: str, password: str) -> AuthResult:
        """Create an account and return a token for it.

        Raises ValidationError on missing/invalid fields or a password outside
        the length limits, AlreadyExists when the email is taken, Internal on
        store or hashing failure.
        """
        validate_profile(name, email)
        if not password:
            raise ValidationError("Password is required.")
        if len(password) < self._password_min_length:
            raise ValidationError(f"Password must be at least {self._password_min_length} characters.")
        if password_too_long(password):
            raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes.")
        email = normalize_email(email)

        try:
            self._store.get_by_email(email)
        except NotFound:
            pass
        else:
            raise AlreadyExists("Unable to register with the provided details.")

        user = User(
            name=name.strip(),
            email=email,
            password_hash=self._hasher.hash(password),
            created_at=self._clock().isoformat(),
        )
        try:
            user.id = self._store.create_user(user)
        except AlreadyExists as exc:
            # Lost the race against a concurrent registration for this email.
            raise AlreadyExists("Unable to register with the provided details.") from exc

        token = self._codec.issue(user.id, user.email, self._token_ttl)
        logger.info("User registered: %s", user.id)
        return AuthResult(token=token, user=user.public())

    def login(self, email: str, password: str) -> AuthResult:
        """Verify credentials and return a fresh token.

        Raises InvalidCredentials for unknown email, wrong password, or empty
        input; Internal on store or hashing failure.
        """
        if not email or not password:
            raise InvalidCredentials()
        try:
            user = self._store.get_by_email(normalize_email(email))
        except NotFound:
            # Equalize timing -- do NOT return before running bcrypt.
            self._hasher.verify(password, self._hasher.dummy_hash)
            logger.info("Login failed: unknown email")
            raise InvalidCredentials() from None

        if not self._hasher.verify(password, user.password_hash or ""):
            logger.info("Login failed: bad password for %s", user.id)
            raise InvalidCredentials()

        token = self._codec.issue(user.id, user.email, self._token_ttl)
        return AuthResult(token=token, user=user.public())

    def validate_token(self, token: str) -> Claims:
        """Verify a bearer token. TokenError subclasses propagate unchanged."""
        return self._codec.verify(token)
