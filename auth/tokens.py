"""
auth/tokens.py -- Bearer token issuance and verification.

Security design decisions:
  Format: compact JWS (header.payload.signature), HS256 via python-jose.
       The payload carries user_id, email and exp (unix seconds). Tokens are
       stateless: nothing is stored server-side, so a token stays valid until
       it expires. There is no revocation list.

  Verification order: the signature is checked before any claim is read.
       jose's jws.verify() returns the payload bytes only after the HMAC
       matches, and only then do we parse and type-check the claims. The
       expiry check is ours rather than jwt.decode()'s so each failure maps
       to exactly one error class:

         TokenMalformed        -- not a parseable compact JWS
         TokenSignatureInvalid -- HMAC mismatch or a header alg other than
                                  the configured one (including "none")
         TokenClaimsInvalid    -- user_id / email / exp missing or mistyped
         TokenExpired          -- now >= exp

  Secret: passed in by whoever builds the codec (api/main.py lifespan,
       main.py). The codec never reads configuration itself.

Layer rule: no imports from api/ or rpc/.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from jose import jws, jwt
from jose.exceptions import JWSError, JWTError

from auth.models import Claims
from core.errors import (
    Internal,
    TokenClaimsInvalid,
    TokenExpired,
    TokenMalformed,
    TokenSignatureInvalid,
)

logger = logging.getLogger("userbase.auth")

ALGORITHM = "HS256"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenCodec:
    """Sign and verify self-contained bearer tokens with a symmetric secret.

    clock is injectable so tests can issue a token "in the past" and verify
    it "in the future" without sleeping.
    """

    def __init__(
        self,
        secret_key: str,
        algorithm: str = ALGORITHM,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._secret_key = secret_key
        self._algorithm = algorithm
        self._clock = clock

    def issue(self, user_id: str, email: str, ttl: timedelta) -> str:
        """Encode a signed token for user_id/email that expires ttl from now."""
        expires_at = int((self._clock() + ttl).timestamp())
        payload = {"user_id": user_id, "email": email, "exp": expires_at}
        try:
            return jwt.encode(payload, self._secret_key, algorithm=self._algorithm)
        except JWTError as exc:
            raise Internal("Token signing failed.", detail=str(exc)) from exc

    def verify(self, token: str) -> Claims:
        """Return the Claims of a valid token or raise a TokenError subclass."""
        try:
            # Parses all three segments and the header JSON; no key involved.
            jws.get_unverified_header(token)
        except (JWSError, JWTError, AttributeError, TypeError) as exc:
            raise TokenMalformed(str(exc)) from exc

        try:
            raw_payload = jws.verify(token, self._secret_key, algorithms=[self._algorithm])
        except JWSError as exc:
            # Structure already parsed above, so any failure here is the
            # signature or the algorithm.
            raise TokenSignatureInvalid(str(exc)) from exc

        try:
            payload = json.loads(raw_payload)
        except ValueError as exc:
            raise TokenMalformed("Token payload is not JSON.") from exc
        if not isinstance(payload, dict):
            raise TokenMalformed("Token payload is not a JSON object.")

        claims = _claims_from_payload(payload)
        if self._clock().timestamp() >= claims.expires_at:
            raise TokenExpired(f"Token expired at {claims.expires_at}.")
        return claims


def _claims_from_payload(payload: dict) -> Claims:
    user_id = payload.get("user_id")
    email = payload.get("email")
    exp = payload.get("exp")
    if not isinstance(user_id, str) or not user_id:
        raise TokenClaimsInvalid("user_id claim missing or not a string.")
    if not isinstance(email, str) or not email:
        raise TokenClaimsInvalid("email claim missing or not a string.")
    # bool is an int subclass; a JSON true is not an expiry.
    if not isinstance(exp, int) or isinstance(exp, bool):
        raise TokenClaimsInvalid("exp claim missing or not an integer.")
    return Claims(user_id=user_id, email=email, expires_at=exp)
