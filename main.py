#!/usr/bin/env python3
"""
userbase -- user registration, authentication and management service.

The same services are reachable over HTTP (FastAPI) and gRPC; run each
front-end as its own process against the same DATABASE_URL.

Usage:
  python main.py serve-http
  python main.py serve-http --port 8080
  python main.py serve-grpc
  python main.py serve-grpc --port 9090

Environment variables (see core/config.py for the full list):
  SECRET_KEY    Token signing secret, at least 32 characters. Required unless DEBUG=true.
  DATABASE_URL  SQLAlchemy URL of the user store (default: sqlite:///userbase.db).
  LOG_FORMAT    plain, detailed, or json.
"""

import argparse

from core.config import get_settings
from core.logging import configure_logging


def _serve_http(host: str, port: int) -> None:
    import uvicorn

    uvicorn.run("api.main:app", host=host, port=port, log_config=None)


def _serve_grpc(host: str, port: int) -> None:
    from rpc.server import serve

    settings = get_settings().model_copy(update={"grpc_host": host, "grpc_port": port})
    serve(settings)


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="userbase",
        description="User registration and authentication over HTTP and gRPC.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py serve-http
  SECRET_KEY=... python main.py serve-grpc --port 9090
  DEBUG=true python main.py serve-http
        """,
    )
    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    http_parser = subparsers.add_parser("serve-http", help="Run the HTTP/REST front-end (uvicorn)")
    http_parser.add_argument("--host", default=None, help="Bind address (default: HTTP_HOST)")
    http_parser.add_argument("--port", type=int, default=None, help="Bind port (default: HTTP_PORT)")

    grpc_parser = subparsers.add_parser("serve-grpc", help="Run the gRPC front-end")
    grpc_parser.add_argument("--host", default=None, help="Bind address (default: GRPC_HOST)")
    grpc_parser.add_argument("--port", type=int, default=None, help="Bind port (default: GRPC_PORT)")

    args = parser.parse_args()
    if args.command is None:
        parser.print_help()
        return

    # Fails fast on a missing/short SECRET_KEY before any port is bound.
    settings = get_settings()
    configure_logging(settings)

    if args.command == "serve-http":
        _serve_http(args.host or settings.http_host, args.port or settings.http_port)
    else:
        _serve_grpc(args.host or settings.grpc_host, args.port or settings.grpc_port)


if __name__ == "__main__":
    main()
