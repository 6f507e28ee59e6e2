"""
auth/gate.py -- The authorization policy shared by every transport.

decide() is the single place that turns request metadata into an allow/deny
decision. The HTTP dependency (auth/dependencies.py) and the gRPC interceptor
(rpc/interceptors.py) are thin shims around it: each one only knows how to
read its own transport's metadata and how to report a Deny. Given the same
headers and operation, both reach the same decision and attach the same
Identity fields.

Public operations: only "register" and "login". Everything else needs a
valid bearer token.

Deny reasons (missing_metadata, missing_header, bad_prefix, empty_token,
invalid_token) are logged for operators. Clients only ever see one generic
Unauthenticated outcome -- the gate does not reveal which check failed, and in
particular never which token verification error occurred.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Union

from auth.models import Claims, Identity
from core.errors import TokenError, Unauthenticated

logger = logging.getLogger("userbase.gate")

PUBLIC_OPERATIONS = frozenset({"register", "login"})

AUTHORIZATION_KEY = "authorization"

# Scheme is case-insensitive; exactly one space before the token.
_BEARER_PREFIX_RE = re.compile(r"^bearer ", re.IGNORECASE)

Metadata = Union[Mapping[str, str], Iterable[tuple[str, str]]]


@dataclass(frozen=True)
class Allow:
    """Proceed. identity is None for public operations."""

    identity: Identity | None = None


@dataclass(frozen=True)
class Deny:
    reason: str

    def error(self) -> Unauthenticated:
        return Unauthenticated(self.reason)


Decision = Union[Allow, Deny]


def is_public(operation: str | None) -> bool:
    return operation in PUBLIC_OPERATIONS


def _first_authorization_value(metadata: Metadata) -> str | None:
    items = metadata.items() if isinstance(metadata, Mapping) else metadata
    for key, value in items:
        if key.lower() == AUTHORIZATION_KEY:
            return value
    return None


def extract_bearer_token(metadata: Metadata | None) -> str:
    """Return the token from an `Authorization: Bearer <token>` entry.

    Raises Unauthenticated with the specific reason on failure. The first
    authorization entry wins if the key is repeated.
    """
    if metadata is None:
        raise Unauthenticated("missing_metadata")
    value = _first_authorization_value(metadata)
    if value is None:
        raise Unauthenticated("missing_header")
    if isinstance(value, bytes):
        value = value.decode("latin-1")
    if not _BEARER_PREFIX_RE.match(value):
        raise Unauthenticated("bad_prefix")
    token = value[len("bearer ") :]
    if not token:
        raise Unauthenticated("empty_token")
    if any(ch.isspace() for ch in token):
        raise Unauthenticated("bad_prefix")
    return token


def decide(
    metadata: Metadata | None,
    public: bool,
    validate: Callable[[str], Claims],
) -> Decision:
    """Decide whether a request may proceed.

    Args:
        metadata: header-like key/value pairs (a Mapping or an iterable of
                  pairs), or None when the transport supplied none at all.
        public:   True if the target operation is on the public allow-list.
        validate: token validator -- AuthService.validate_token in production.
    """
    if public:
        return Allow()
    try:
        token = extract_bearer_token(metadata)
    except Unauthenticated as exc:
        logger.info("Request denied: %s", exc.reason)
        return Deny(exc.reason)
    try:
        claims = validate(token)
    except TokenError as exc:
        logger.info("Request denied: invalid_token (%s)", exc.code)
        return Deny("invalid_token")
    return Allow(Identity.from_claims(claims))
