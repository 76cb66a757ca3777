"""HTTP middleware -- admin-secret auth and quiet access logging."""

from __future__ import annotations

import hmac
import logging

from aiohttp import web
from aiohttp.abc import AbstractAccessLogger

logger = logging.getLogger(__name__)

ADMIN_SECRET_KEY = web.AppKey("admin_secret", str)

_QUIET_PATHS = frozenset({"/health", "/api/auth/status"})


class QuietAccessLogger(AbstractAccessLogger):
    """Demotes polling-endpoint and 401 log entries to DEBUG."""

    def log(self, request: web.BaseRequest, response: web.StreamResponse, time: float) -> None:
        status = response.status
        if request.path in _QUIET_PATHS or status == 401:
            level = logging.DEBUG
        else:
            level = logging.INFO
        self.logger.log(
            level,
            "%s %s %s %s %.3fs",
            request.remote,
            request.method,
            request.path,
            status,
            time,
        )


@web.middleware
async def auth_middleware(request: web.Request, handler):  # type: ignore[type-arg]
    """Require the admin secret on ``/api/*`` endpoints."""
    secret = request.app.get(ADMIN_SECRET_KEY, "")
    if not secret:
        return await handler(request)

    path = request.path
    if not path.startswith("/api/"):
        return await handler(request)

    auth = request.headers.get("Authorization", "")
    if hmac.compare_digest(auth, f"Bearer {secret}"):
        return await handler(request)

    token_param = request.query.get("token", "")
    if token_param and hmac.compare_digest(token_param, secret):
        return await handler(request)

    secret_param = request.query.get("secret", "")
    if secret_param and hmac.compare_digest(secret_param, secret):
        return await handler(request)

    logger.debug("[middleware.auth] rejected %s %s", request.method, path)
    return web.json_response(
        {"status": "unauthorized", "message": "Invalid or missing admin secret"},
        status=401,
    )
