"""
rpc/servicer.py -- users.UserService method implementations.

Each method takes the decoded JSON request dict and a context, calls the same
AuthService / UserService objects the HTTP routes use, and returns a JSON-able
dict. Protected methods receive an AuthenticatedContext from AuthInterceptor
and read the caller from context.identity.

Core errors are mapped onto gRPC status codes here -- the gRPC counterpart of
api/main.py's _STATUS_BY_CODE. Internal errors get a generic message; the
detail goes to the log only.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import grpc
from pydantic import BaseModel
from pydantic import ValidationError as SchemaError

from auth.service import AuthService
from auth.users import UserService
from core.errors import AppError
from rpc.interceptors import AuthenticatedContext
from rpc.messages import (
    CreateUserRequest,
    DeleteUserRequest,
    Empty,
    GetUserRequest,
    ListUsersRequest,
    LoginRequest,
    UpdateUserRequest,
    user_message,
)

logger = logging.getLogger("userbase.rpc")

_STATUS_BY_CODE = {
    "invalid_argument": grpc.StatusCode.INVALID_ARGUMENT,
    "invalid_credentials": grpc.StatusCode.UNAUTHENTICATED,
    "unauthenticated": grpc.StatusCode.UNAUTHENTICATED,
    "not_found": grpc.StatusCode.NOT_FOUND,
    "already_exists": grpc.StatusCode.ALREADY_EXISTS,
    "internal": grpc.StatusCode.INTERNAL,
}


@contextmanager
def _abort_on_error(context: grpc.ServicerContext) -> Iterator[None]:
    """Turn a core AppError into context.abort() with the mapped status."""
    try:
        yield
    except AppError as exc:
        status = _STATUS_BY_CODE.get(exc.code, grpc.StatusCode.INTERNAL)
        if status is grpc.StatusCode.INTERNAL:
            logger.error("Internal error: %s (%s)", exc.message, exc.detail)
            context.abort(status, "An unexpected error occurred.")
        context.abort(status, exc.message)


def _parse(model: type[BaseModel], request: Any, context: grpc.ServicerContext):
    if not isinstance(request, dict):
        context.abort(grpc.StatusCode.INVALID_ARGUMENT, "Request must be a JSON object.")
    try:
        return model.model_validate(request)
    except SchemaError as exc:
        context.abort(grpc.StatusCode.INVALID_ARGUMENT, f"Invalid request: {exc.error_count()} field error(s).")


class UserServicer:
    """Implements users.UserService on top of the shared services."""

    def __init__(self, auth_service: AuthService, user_service: UserService, token_expire_seconds: int) -> None:
        self._auth = auth_service
        self._users = user_service
        self._expires_in = token_expire_seconds

    # ------------------------------------------------------------------
    # Public methods
    # ------------------------------------------------------------------

    def CreateUser(self, request: dict, context: grpc.ServicerContext) -> dict:
        """Register an account. Public."""
        req = _parse(CreateUserRequest, request, context)
        with _abort_on_error(context):
            result = self._auth.register(req.name, req.email, req.password)
        return {
            "user": user_message(result.user),
            "token": result.token,
            "expires_in": self._expires_in,
            "message": "User created successfully",
        }

    def Login(self, request: dict, context: grpc.ServicerContext) -> dict:
        """Authenticate with email and password. Public."""
        req = _parse(LoginRequest, request, context)
        with _abort_on_error(context):
            result = self._auth.login(req.email, req.password)
        return {"user": user_message(result.user), "token": result.token, "expires_in": self._expires_in}

    # ------------------------------------------------------------------
    # Protected methods
    # ------------------------------------------------------------------

    def GetMe(self, request: dict, context: AuthenticatedContext) -> dict:
        _parse(Empty, request, context)
        with _abort_on_error(context):
            user = self._users.get_me(context.identity)
        return {"user": user_message(user)}

    def GetUser(self, request: dict, context: AuthenticatedContext) -> dict:
        req = _parse(GetUserRequest, request, context)
        with _abort_on_error(context):
            user = self._users.get_user(req.id)
        return {"user": user_message(user)}

    def ListUsers(self, request: dict, context: AuthenticatedContext) -> dict:
        req = _parse(ListUsersRequest, request, context)
        with _abort_on_error(context):
            users, total = self._users.list_users(page=req.page, limit=req.limit)
        return {
            "users": [user_message(u) for u in users],
            "total": total,
            "page": req.page,
            "limit": req.limit,
        }

    def UpdateUser(self, request: dict, context: AuthenticatedContext) -> dict:
        req = _parse(UpdateUserRequest, request, context)
        with _abort_on_error(context):
            user = self._users.update_user(req.id, req.name, req.email)
        return {"user": user_message(user)}

    def DeleteUser(self, request: dict, context: AuthenticatedContext) -> dict:
        req = _parse(DeleteUserRequest, request, context)
        with _abort_on_error(context):
            self._users.delete_user(req.id)
        return {}

    def StreamUsers(self, request: dict, context: AuthenticatedContext) -> Iterator[dict]:
        """Server-streaming list: one message per user.

        Each message names the caller (requested_by) to show the identity the
        gate attached is still present on every message of the stream.
        """
        req = _parse(ListUsersRequest, request, context)
        with _abort_on_error(context):
            users, _total = self._users.list_users(page=req.page, limit=req.limit)
        for user in users:
            if not context.is_active():
                logger.info("StreamUsers cancelled by client")
                return
            yield {"user": user_message(user), "requested_by": context.identity.user_id}
