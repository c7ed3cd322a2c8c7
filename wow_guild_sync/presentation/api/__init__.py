"""
HTTP API

FastAPI application with the manual sync trigger and server-sent event
streams.
"""

from .app import create_app
from .routes import router, client_ip

__all__ = [
    "create_app",
    "router",
    "client_ip",
]
