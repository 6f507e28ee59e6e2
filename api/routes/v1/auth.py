"""
api/routes/v1/auth.py -- Registration and login REST endpoints.

Routes:
  POST /api/v1/auth/register  -- create account; returns token + user (201)
  POST /api/v1/auth/login     -- password login; returns token + user

Both are on the public allow-list (auth/gate.PUBLIC_OPERATIONS); the router
still runs gate_request so the allow-list, not the router layout, decides.
The route function names ARE the operation names the gate checks -- renaming
them changes the policy.

Security:
  Login returns the same generic error for unknown email and wrong password.
  Cache-Control: no-store on both responses (they carry a credential).
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.models import AuthResponse, LoginRequest, RegisterRequest
from auth.dependencies import gate_request
from auth.service import AuthService

router = APIRouter(dependencies=[Depends(gate_request)])


def _token_response(payload: AuthResponse, status_code: int) -> JSONResponse:
    resp = JSONResponse(status_code=status_code, content=payload.model_dump())
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/auth/register", response_model=AuthResponse, status_code=201)
def register(request: Request, body: RegisterRequest) -> JSONResponse:
    """Create an account and return a bearer token for it.

    409 already_exists if the email is taken, 400 invalid_argument for
    missing fields or a password below the minimum length.
    """
    auth_service: AuthService = request.app.state.auth_service
    result = auth_service.register(body.name, body.email, body.password)
    expires_in = request.app.state.settings.token_expire_seconds
    return _token_response(AuthResponse.from_result(result, expires_in), 201)


@router.post("/auth/login", response_model=AuthResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password; returns a fresh bearer token."""
    auth_service: AuthService = request.app.state.auth_service
    result = auth_service.login(body.email, body.password)
    expires_in = request.app.state.settings.token_expire_seconds
    return _token_response(AuthResponse.from_result(result, expires_in), 200)
