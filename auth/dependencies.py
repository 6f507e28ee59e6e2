"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

The HTTP face of the authorization gate (auth/gate.py):

  gate_request()      -- router-level dependency. Uses the matched route's name
                         as the operation, asks gate.decide(), and raises 401
                         on Deny. FastAPI caches dependency results per request,
                         so the decision is computed once even when a handler
                         also depends on it.
  require_identity()  -- handler-level dependency that returns the typed
                         Identity for protected routes.

Usage:
    router = APIRouter(dependencies=[Depends(gate_request)])

    @router.get("/users/me")
    def get_me(identity: Identity = Depends(require_identity)): ...

Layer rule: auth/dependencies.py may import from fastapi because it is part of
the FastAPI dependency injection system. Nothing else in auth/ does.
"""

from __future__ import annotations

from fastapi import Depends, HTTPException, Request

from auth import gate
from auth.models import Identity
from auth.service import AuthService


def _operation_name(request: Request) -> str | None:
    route = request.scope.get("route")
    return getattr(route, "name", None)


def _unauthorized(exc) -> HTTPException:
    return HTTPException(
        status_code=401,
        detail={"code": exc.code, "message": exc.message},
        headers={"WWW-Authenticate": "Bearer"},
    )


def gate_request(request: Request) -> gate.Allow:
    """Apply the authorization gate to the current request.

    Returns the Allow decision (identity is None on public operations).
    Raises HTTP 401 on Deny -- every deny reason produces the same response.
    """
    auth_service: AuthService = request.app.state.auth_service
    decision = gate.decide(
        request.headers,
        gate.is_public(_operation_name(request)),
        auth_service.validate_token,
    )
    if isinstance(decision, gate.Deny):
        raise _unauthorized(decision.error())
    return decision


def require_identity(decision: gate.Allow = Depends(gate_request)) -> Identity:
    """Return the authenticated caller. Raises HTTP 401 if there is none.

    A public route depending on this would otherwise get identity=None; treat
    that as unauthenticated rather than handing the handler a None.
    """
    if decision.identity is None:
        raise _unauthorized(gate.Deny("missing_header").error())
    return decision.identity
