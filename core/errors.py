"""
core/errors.py -- Error taxonomy shared by the services and both transports.

Every error carries a stable machine-readable `code`. Transport adapters map
codes onto their own status vocabulary (api/main.py for HTTP status codes,
rpc/servicer.py for gRPC status codes); nothing in here knows about either.

Two families:
  AppError   -- outcomes of a service operation (bad input, duplicate email,
                wrong credentials, missing record, infrastructure failure).
  TokenError -- the four ways a presented bearer token can fail verification.
                The authorization gate collapses all of them into a single
                Unauthenticated so clients never learn which check failed.
"""

from __future__ import annotations


class AppError(Exception):
    """Base class for all service-level errors."""

    code = "internal"
    default_message = "An unexpected error occurred."

    def __init__(self, message: str = "", detail: str | None = None) -> None:
        self.message = message or self.default_message
        self.detail = detail
        super().__init__(self.message)


class ValidationError(AppError):
    code = "invalid_argument"
    default_message = "Invalid request."


class AlreadyExists(AppError):
    code = "already_exists"
    default_message = "Resource already exists."


class InvalidCredentials(AppError):
    """Raised for both unknown email and wrong password -- never distinguish them."""

    code = "invalid_credentials"
    default_message = "Invalid email or password."


class Unauthenticated(AppError):
    """A protected operation was called without an acceptable bearer token.

    reason is one of missing_metadata, missing_header, bad_prefix, empty_token,
    invalid_token. It is logged server-side and never sent to the client.
    """

    code = "unauthenticated"
    default_message = "Authentication required."

    def __init__(self, reason: str, message: str = "") -> None:
        self.reason = reason
        super().__init__(message)


class NotFound(AppError):
    code = "not_found"
    default_message = "Resource not found."


class Internal(AppError):
    code = "internal"


class HashingError(Internal):
    """bcrypt failed: no entropy, out of resources, or an unparseable stored hash."""

    default_message = "Password hashing failed."


# ---------------------------------------------------------------------------
# Token verification failures
# ---------------------------------------------------------------------------


class TokenError(Exception):
    code = "token_invalid"


class TokenMalformed(TokenError):
    code = "malformed"


class TokenSignatureInvalid(TokenError):
    code = "signature_invalid"


class TokenExpired(TokenError):
    code = "expired"


class TokenClaimsInvalid(TokenError):
    code = "claims_invalid"
