"""Control server -- aiohttp application factory."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from aiohttp import web

from .. import __version__
from ..messaging.bot import Bot
from .middleware import ADMIN_SECRET_KEY, auth_middleware
from .routes import AuthRoutes, MessageRoutes

logger = logging.getLogger(__name__)


def create_app(
    bot: Bot,
    *,
    admin_secret: str = "",
    qr_timeout: float = 30.0,
    enable_web_auth: bool = True,
) -> web.Application:
    """Build the HTTP control surface around a running :class:`Bot`.

    ``/health`` is always public.  Everything under ``/api/`` requires
    *admin_secret* when one is set.  With ``enable_web_auth`` off the
    login endpoints are not mounted and only the status endpoint remains.
    """
    app = web.Application(middlewares=[auth_middleware])
    app[ADMIN_SECRET_KEY] = admin_secret

    router = app.router
    router.add_get("/health", _health_handler(bot))
    AuthRoutes(bot.arbiter, qr_timeout=qr_timeout, ready=lambda: bot.ready).register(
        router, login=enable_web_auth,
    )
    MessageRoutes(bot).register(router)

    logger.info(
        "[server] app created web_auth=%s secret=%s",
        enable_web_auth, "set" if admin_secret else "unset",
    )
    return app


def _health_handler(bot: Bot) -> Callable:
    started = time.monotonic()

    async def handler(_req: web.Request) -> web.Response:
        return web.json_response({
            "status": "ok",
            "version": __version__,
            "ready": bot.ready,
            "auth_phase": bot.arbiter.session.phase.value,
            "uptime_seconds": int(time.monotonic() - started),
        })

    return handler
