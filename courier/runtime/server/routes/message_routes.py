"""Outbound messaging route -- /api/messages/send."""

from __future__ import annotations

import logging

from aiohttp import web

from ...errors import CourierError
from ...messaging.bot import Bot
from ._helpers import courier_error_response, error_response, read_json

logger = logging.getLogger(__name__)


class MessageRoutes:
    def __init__(self, bot: Bot) -> None:
        self._bot = bot

    def register(self, router: web.UrlDispatcher) -> None:
        router.add_post("/api/messages/send", self._send)

    async def _send(self, req: web.Request) -> web.Response:
        body = await read_json(req)
        target = str(body.get("to") or "").strip()
        content = str(body.get("content") or "")
        media = body.get("media") or None
        if not target or not (content or media):
            return error_response("'to' and 'content' (or 'media') are required", 400)
        try:
            chat_id = await self._bot.send_message(target, content, media=media)
        except CourierError as exc:
            return courier_error_response(exc)
        except Exception as exc:
            logger.exception("[routes.messages] send crashed")
            return error_response(f"Send failed: {exc}", 500)
        return web.json_response({"status": "ok", "to": chat_id})
