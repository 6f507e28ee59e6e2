"""
rpc/messages.py -- Message types and wire codec for the gRPC service.

The service speaks JSON over gRPC instead of protobuf: each message is a UTF-8
JSON object. No generated stubs or protoc step are needed, and any gRPC client
can talk to it by passing the json_serialize / json_deserialize pair below.

Requests arrive as plain dicts (json_deserialize) and are validated inside the
servicer with the pydantic models here. Doing it there rather than in the
deserializer lets a bad payload come back as INVALID_ARGUMENT -- grpcio turns
deserializer exceptions into an opaque INTERNAL, so json_deserialize never
raises either. Field caps match api/models.py.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from auth.models import User
from auth.users import DEFAULT_PAGE_LIMIT

SERVICE_NAME = "users.UserService"


def json_serialize(message: dict[str, Any]) -> bytes:
    return json.dumps(message).encode("utf-8")


def json_deserialize(data: bytes) -> Any:
    """Decode a request body. Undecodable bytes are returned unchanged.

    The servicer rejects anything that is not a dict with INVALID_ARGUMENT.
    """
    if not data:
        return {}
    try:
        return json.loads(data.decode("utf-8"))
    except ValueError:
        return data


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class _Request(BaseModel):
    model_config = ConfigDict(extra="ignore")


class CreateUserRequest(_Request):
    name: str = Field(default="", max_length=255)
    email: str = Field(default="", max_length=255)
    password: str = Field(default="", max_length=128)


class LoginRequest(_Request):
    email: str = Field(default="", max_length=255)
    password: str = Field(default="", max_length=128)


class GetUserRequest(_Request):
    id: str = ""


class ListUsersRequest(_Request):
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=DEFAULT_PAGE_LIMIT, ge=1, le=500)


class UpdateUserRequest(_Request):
    id: str = ""
    name: str = Field(default="", max_length=255)
    email: str = Field(default="", max_length=255)


class DeleteUserRequest(_Request):
    id: str = ""


class Empty(_Request):
    pass


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


def user_message(user: User) -> dict[str, Any]:
    """Public wire form of a user. There is deliberately no password key."""
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "created_at": user.created_at or "",
    }
