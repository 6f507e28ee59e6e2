"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, no business rules). Stores,
services and transport adapters do the work.

Layer rule: no imports from api/ or rpc/.
"""

from __future__ import annotations

from dataclasses import dataclass, replace


@dataclass
class User:
    """A registered account.

    id is None until the store assigns one on insert; afterwards it is an
    opaque 32-char hex string and never changes. password_hash is the bcrypt
    hash -- it must not leave the auth core, so services hand out public()
    copies where it is None.
    """

    name: str
    email: str
    id: str | None = None
    password_hash: str | None = None
    created_at: str | None = None  # ISO 8601, set by the service on register

    def public(self) -> User:
        """Return a copy safe to return to callers outside the auth core."""
        return replace(self, password_hash=None)


@dataclass(frozen=True)
class Claims:
    """Identity payload decoded from a verified bearer token."""

    user_id: str
    email: str
    expires_at: int  # unix seconds


@dataclass(frozen=True)
class Identity:
    """The authenticated caller, attached to a request by the authorization gate.

    Handlers receive this as a typed parameter (FastAPI) or as
    context.identity (gRPC) instead of looking up loosely-keyed values.
    """

    user_id: str
    email: str

    @classmethod
    def from_claims(cls, claims: Claims) -> Identity:
        return cls(user_id=claims.user_id, email=claims.email)


@dataclass(frozen=True)
class AuthResult:
    """What register and login hand back: a fresh token and the public user."""

    token: str
    user: User
