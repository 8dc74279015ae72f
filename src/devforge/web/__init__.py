"""HTTP API for the Devforge project wizard."""

from __future__ import annotations

from devforge.web.app import create_app
from devforge.web.middleware import RequestLoggingMiddleware

__all__ = [
    "create_app",
    "RequestLoggingMiddleware",
]
