"""
rpc/server.py -- Assemble and run the gRPC front-end.

create_server() wires a UserServicer into a grpc.server with the logging and
auth interceptors and binds it; the caller starts and stops it. serve() is the
blocking process entry used by `python main.py serve-grpc`.

Method table: every method is registered under SERVICE_NAME with the JSON
codec from rpc/messages.py. OPERATIONS maps full method names to the
operation names the authorization gate understands; CreateUser is the gRPC
spelling of "register".
"""

from __future__ import annotations

import logging
import signal
import threading
from concurrent import futures

import grpc

from auth.passwords import PasswordHasher
from auth.service import AuthService
from auth.store import UserStore
from auth.tokens import TokenCodec
from auth.users import UserService
from core.config import Settings
from rpc.interceptors import AuthInterceptor, LoggingInterceptor
from rpc.messages import SERVICE_NAME, json_deserialize, json_serialize
from rpc.servicer import UserServicer

logger = logging.getLogger("userbase.rpc")

_UNARY_METHODS = ("CreateUser", "Login", "GetMe", "GetUser", "ListUsers", "UpdateUser", "DeleteUser")
_STREAM_METHODS = ("StreamUsers",)

OPERATIONS = {
    f"/{SERVICE_NAME}/CreateUser": "register",
    f"/{SERVICE_NAME}/Login": "login",
    f"/{SERVICE_NAME}/GetMe": "get_me",
    f"/{SERVICE_NAME}/GetUser": "get_user",
    f"/{SERVICE_NAME}/ListUsers": "list_users",
    f"/{SERVICE_NAME}/UpdateUser": "update_user",
    f"/{SERVICE_NAME}/DeleteUser": "delete_user",
    f"/{SERVICE_NAME}/StreamUsers": "stream_users",
}


def _method_handlers(servicer: UserServicer) -> dict[str, grpc.RpcMethodHandler]:
    codec = {"request_deserializer": json_deserialize, "response_serializer": json_serialize}
    handlers = {
        name: grpc.unary_unary_rpc_method_handler(getattr(servicer, name), **codec) for name in _UNARY_METHODS
    }
    handlers.update(
        {name: grpc.unary_stream_rpc_method_handler(getattr(servicer, name), **codec) for name in _STREAM_METHODS}
    )
    return handlers


def create_server(
    auth_service: AuthService,
    user_service: UserService,
    settings: Settings,
    address: str | None = None,
) -> tuple[grpc.Server, int]:
    """Build and bind (but do not start) the gRPC server.

    Returns (server, bound_port). Pass address="127.0.0.1:0" to let the OS
    choose a free port, as the tests do.
    """
    servicer = UserServicer(auth_service, user_service, settings.token_expire_seconds)
    server = grpc.server(
        futures.ThreadPoolExecutor(max_workers=settings.grpc_max_workers),
        interceptors=[
            LoggingInterceptor(detailed=settings.log_format == "detailed"),
            AuthInterceptor(auth_service, OPERATIONS),
        ],
    )
    server.add_generic_rpc_handlers((grpc.method_handlers_generic_handler(SERVICE_NAME, _method_handlers(servicer)),))
    port = server.add_insecure_port(address or f"{settings.grpc_host}:{settings.grpc_port}")
    return server, port


def serve(settings: Settings) -> None:
    """Run the gRPC server until SIGINT/SIGTERM, then stop gracefully."""
    store = UserStore(settings.database_url, timeout=settings.store_timeout_seconds)
    auth_service = AuthService(
        store,
        PasswordHasher(rounds=settings.bcrypt_rounds),
        TokenCodec(settings.secret_key),
        token_ttl=settings.token_ttl,
        password_min_length=settings.password_min_length,
    )
    server, port = create_server(auth_service, UserService(store), settings)

    stop_requested = threading.Event()

    def _request_stop(signum, frame) -> None:
        logger.info("Received signal %d, shutting down", signum)
        stop_requested.set()

    signal.signal(signal.SIGINT, _request_stop)
    signal.signal(signal.SIGTERM, _request_stop)

    server.start()
    logger.info("gRPC server listening on %s:%d", settings.grpc_host, port)
    try:
        stop_requested.wait()
    finally:
        server.stop(grace=5).wait()
        store.close()
        logger.info("gRPC server stopped")
