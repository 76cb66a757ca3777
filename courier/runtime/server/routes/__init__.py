"""Server route handlers."""

from __future__ import annotations

from .auth_routes import AuthRoutes
from .message_routes import MessageRoutes

__all__ = [
    "AuthRoutes",
    "MessageRoutes",
]
