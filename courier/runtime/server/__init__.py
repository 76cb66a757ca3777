"""Server module -- aiohttp application factory and HTTP handlers."""

from __future__ import annotations

from .app import create_app
from .middleware import ADMIN_SECRET_KEY, QuietAccessLogger, auth_middleware

__all__ = ["ADMIN_SECRET_KEY", "QuietAccessLogger", "auth_middleware", "create_app"]
