"""
rpc/interceptors.py -- gRPC server interceptors: authorization and request logging.

AuthInterceptor is the gRPC face of the authorization gate (auth/gate.py). It
maps the full method name to an operation, reads the `authorization`
metadata entry, and calls gate.decide() -- the same function the HTTP
dependency calls. On Allow it rebuilds the method handler so the servicer
receives an AuthenticatedContext carrying the typed Identity; on Deny the
handler is replaced by one that aborts with UNAUTHENTICATED.

Streaming: the AuthenticatedContext is created once per call and closed over
by the wrapped behavior, so a server-streaming method sees the same identity
for every message it yields, for the full life of the stream.

LoggingInterceptor mirrors api/main.py's log_requests middleware: one line per
call with method, outcome and latency.

Register order matters: grpc.server(interceptors=[logging, auth]) runs the
first interceptor outermost, so denied calls are still logged.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any

import grpc

from auth import gate
from auth.models import Identity
from auth.service import AuthService

logger = logging.getLogger("userbase.rpc")


class AuthenticatedContext:
    """A grpc.ServicerContext plus the identity the gate attached.

    Every attribute other than identity is delegated to the wrapped context,
    so servicer code can still call abort(), invocation_metadata(), etc.
    """

    def __init__(self, context: grpc.ServicerContext, identity: Identity) -> None:
        self._context = context
        self.identity = identity

    def __getattr__(self, name: str) -> Any:
        return getattr(self._context, name)


# ---------------------------------------------------------------------------
# Handler rebuilding
# ---------------------------------------------------------------------------


def _rebuild(handler: grpc.RpcMethodHandler, wrap: Callable[[Callable], Callable]) -> grpc.RpcMethodHandler:
    """Return a handler of the same kind whose behavior is wrap(behavior)."""
    codec = {
        "request_deserializer": handler.request_deserializer,
        "response_serializer": handler.response_serializer,
    }
    if handler.request_streaming and handler.response_streaming:
        return grpc.stream_stream_rpc_method_handler(wrap(handler.stream_stream), **codec)
    if handler.request_streaming:
        return grpc.stream_unary_rpc_method_handler(wrap(handler.stream_unary), **codec)
    if handler.response_streaming:
        return grpc.unary_stream_rpc_method_handler(wrap(handler.unary_stream), **codec)
    return grpc.unary_unary_rpc_method_handler(wrap(handler.unary_unary), **codec)


def _metadata_of(handler_call_details: grpc.HandlerCallDetails):
    metadata = handler_call_details.invocation_metadata
    if metadata is None:
        return None
    return [(item[0], item[1]) for item in metadata]


# ---------------------------------------------------------------------------
# Authorization
# ---------------------------------------------------------------------------


class AuthInterceptor(grpc.ServerInterceptor):
    """Enforce the bearer-token gate on every method not on the public allow-list.

    operations maps full method names ("/users.UserService/Login") to the
    operation names gate.PUBLIC_OPERATIONS is written in. Methods missing
    from the map are treated as protected.
    """

    def __init__(self, auth_service: AuthService, operations: dict[str, str]) -> None:
        self._auth_service = auth_service
        self._operations = operations

    def intercept_service(self, continuation, handler_call_details):
        handler = continuation(handler_call_details)
        if handler is None:
            return None

        operation = self._operations.get(handler_call_details.method)
        decision = gate.decide(
            _metadata_of(handler_call_details),
            gate.is_public(operation),
            self._auth_service.validate_token,
        )

        if isinstance(decision, gate.Deny):
            message = decision.error().message

            def deny(behavior):
                def aborted(request_or_iterator, context):
                    context.abort(grpc.StatusCode.UNAUTHENTICATED, message)

                return aborted

            return _rebuild(handler, deny)

        if decision.identity is None:
            return handler

        identity = decision.identity

        def attach(behavior):
            def with_identity(request_or_iterator, context):
                return behavior(request_or_iterator, AuthenticatedContext(context, identity))

            return with_identity

        return _rebuild(handler, attach)


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


class LoggingInterceptor(grpc.ServerInterceptor):
    """Log method, outcome and latency for every call.

    For server-streaming calls the line is written when the stream finishes,
    so latency covers the whole stream.
    """

    def __init__(self, detailed: bool = False) -> None:
        self._detailed = detailed

    def intercept_service(self, continuation, handler_call_details):
        handler = continuation(handler_call_details)
        if handler is None:
            return None
        method = handler_call_details.method
        detailed = self._detailed

        def log_call(start: float, context, fallback: str) -> None:
            ms = (time.perf_counter() - start) * 1000
            code = context.code()
            outcome = code.name if isinstance(code, grpc.StatusCode) else fallback
            if detailed:
                logger.info("%s %s %.1fms peer=%s", method, outcome, ms, context.peer())
            else:
                logger.info("%s %s %.1fms", method, outcome, ms)

        def timed(behavior):
            if handler.response_streaming:

                def streamed(request_or_iterator, context):
                    start = time.perf_counter()
                    outcome = "OK"
                    try:
                        yield from behavior(request_or_iterator, context)
                    except GeneratorExit:
                        # grpcio closes the generator when the client cancels.
                        outcome = "CANCELLED"
                        raise
                    except Exception:
                        outcome = "ERROR"
                        raise
                    finally:
                        log_call(start, context, outcome)

                return streamed

            def unary(request_or_iterator, context):
                start = time.perf_counter()
                try:
                    response = behavior(request_or_iterator, context)
                except Exception:
                    log_call(start, context, "ERROR")
                    raise
                log_call(start, context, "OK")
                return response

            return unary

        return _rebuild(handler, timed)
