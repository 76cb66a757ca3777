"""Web login routes -- /api/auth/*."""

from __future__ import annotations

import logging

from aiohttp import web

from ...auth.arbiter import AuthArbiter
from ...errors import CourierError
from ._helpers import courier_error_response, error_response, read_json

logger = logging.getLogger(__name__)


class AuthRoutes:
    """Drive the authentication arbiter from HTTP.

    The login method is implied by the endpoint: ``/qr`` scans a code,
    ``/pair`` links by phone number.  While the terminal owns the session
    both endpoints answer 403.
    """

    def __init__(self, arbiter: AuthArbiter, *, qr_timeout: float = 30.0, ready=lambda: False) -> None:
        self._arbiter = arbiter
        self._qr_timeout = qr_timeout
        self._ready = ready

    def register(self, router: web.UrlDispatcher, *, login: bool = True) -> None:
        router.add_get("/api/auth/status", self._status)
        if login:
            router.add_get("/api/auth/qr", self._qr)
            router.add_post("/api/auth/pair", self._pair)

    async def _status(self, _req: web.Request) -> web.Response:
        return web.json_response({"status": "ok", "ready": self._ready(), **self._arbiter.status()})

    async def _qr(self, _req: web.Request) -> web.Response:
        try:
            payload = await self._arbiter.begin_qr(self._qr_timeout)
        except CourierError as exc:
            logger.info("[auth.routes] qr rejected: %s", exc)
            return courier_error_response(exc)
        except TimeoutError:
            return error_response("Timed out waiting for a QR code", 504)
        return web.json_response({"status": "ok", "qr": payload})

    async def _pair(self, req: web.Request) -> web.Response:
        body = await read_json(req)
        phone = str(body.get("phone") or body.get("phone_number") or "").strip()
        if not phone:
            return error_response("phone is required", 400)
        try:
            code = await self._arbiter.begin_pairing(phone)
        except CourierError as exc:
            logger.info("[auth.routes] pairing rejected: %s", exc)
            return courier_error_response(exc)
        return web.json_response({"status": "ok", "code": code})
