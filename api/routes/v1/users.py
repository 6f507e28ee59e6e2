"""
api/routes/v1/users.py -- User CRUD REST endpoints. All require a bearer token.

Routes:
  GET    /api/v1/users/me     -- the caller's own record
  GET    /api/v1/users        -- paginated list
  POST   /api/v1/users        -- 405; accounts are created via /auth/register
  GET    /api/v1/users/{id}   -- one user
  PUT    /api/v1/users/{id}   -- replace name and email
  DELETE /api/v1/users/{id}   -- delete (204)

/users/me is declared before /users/{user_id} so "me" is never captured as an id.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.responses import JSONResponse

from api.models import UserListResponse, UserResponse, UserUpdate
from auth.dependencies import gate_request, require_identity
from auth.models import Identity
from auth.users import DEFAULT_PAGE_LIMIT, UserService

router = APIRouter(dependencies=[Depends(gate_request)])


def _user_service(request: Request) -> UserService:
    return request.app.state.user_service


@router.get("/users/me", response_model=UserResponse)
def get_me(request: Request, identity: Identity = Depends(require_identity)) -> UserResponse:
    """Return the authenticated caller's profile."""
    return UserResponse.from_user(_user_service(request).get_me(identity))


@router.get("/users", response_model=UserListResponse)
def list_users(
    request: Request,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_PAGE_LIMIT, ge=1, le=500),
    identity: Identity = Depends(require_identity),
) -> UserListResponse:
    users, total = _user_service(request).list_users(page=page, limit=limit)
    return UserListResponse(
        users=[UserResponse.from_user(u) for u in users],
        total=total,
        page=page,
        limit=limit,
    )


@router.post("/users", status_code=405)
def create_user(identity: Identity = Depends(require_identity)) -> JSONResponse:
    """Accounts are only created through registration, which hashes the password."""
    return JSONResponse(
        status_code=405,
        content={"error": {"code": "method_not_allowed", "message": "Use /api/v1/auth/register to create users."}},
    )


@router.get("/users/{user_id}", response_model=UserResponse)
def get_user(request: Request, user_id: str, identity: Identity = Depends(require_identity)) -> UserResponse:
    return UserResponse.from_user(_user_service(request).get_user(user_id))


@router.put("/users/{user_id}", response_model=UserResponse)
def update_user(
    request: Request,
    user_id: str,
    body: UserUpdate,
    identity: Identity = Depends(require_identity),
) -> UserResponse:
    """Replace name and email. 409 if the email belongs to another account."""
    return UserResponse.from_user(_user_service(request).update_user(user_id, body.name, body.email))


@router.delete("/users/{user_id}", status_code=204)
def delete_user(request: Request, user_id: str, identity: Identity = Depends(require_identity)) -> Response:
    """Delete a user. Tokens already issued to them stay valid until they expire."""
    _user_service(request).delete_user(user_id)
    return Response(status_code=204)
