"""
asgi.py -- ASGI entry point for userbase's HTTP front-end.

Run with:  uvicorn asgi:app --reload
           python main.py serve-http

The gRPC front-end is not an ASGI app; it runs as its own process
(python main.py serve-grpc) against the same DATABASE_URL.
"""

from api.main import app

__all__ = ["app"]
