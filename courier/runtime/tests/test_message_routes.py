"""Tests for the outbound message route."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from aiohttp import web
from aiohttp.test_utils import TestClient, TestServer

from courier.runtime.errors import DeliveryError, TransportUnavailable
from courier.runtime.server.routes import MessageRoutes


@pytest.fixture()
def bot() -> MagicMock:
    b = MagicMock()
    b.send_message = AsyncMock(return_value="254712345678@c.us")
    return b


def _build_app(bot: MagicMock) -> web.Application:
    app = web.Application()
    MessageRoutes(bot).register(app.router)
    return app


class TestSend:
    async def test_sends_text(self, bot) -> None:
        async with TestClient(TestServer(_build_app(bot))) as client:
            resp = await client.post("/api/messages/send", json={"to": "254712345678", "content": "hi"})
            assert resp.status == 200
            assert await resp.json() == {"status": "ok", "to": "254712345678@c.us"}
        bot.send_message.assert_awaited_once_with("254712345678", "hi", media=None)

    async def test_sends_media(self, bot) -> None:
        async with TestClient(TestServer(_build_app(bot))) as client:
            resp = await client.post(
                "/api/messages/send",
                json={"to": "254712345678", "content": "", "media": "https://example.com/a.jpg"},
            )
            assert resp.status == 200
        bot.send_message.assert_awaited_once_with("254712345678", "", media="https://example.com/a.jpg")

    @pytest.mark.parametrize(
        "body",
        [{}, {"to": "254712345678"}, {"content": "hi"}, {"to": "  ", "content": "hi"}],
    )
    async def test_missing_fields_is_400(self, bot, body) -> None:
        async with TestClient(TestServer(_build_app(bot))) as client:
            resp = await client.post("/api/messages/send", json=body)
            assert resp.status == 400
            assert (await resp.json())["status"] == "error"
        bot.send_message.assert_not_awaited()

    async def test_not_ready_is_503(self, bot) -> None:
        bot.send_message.side_effect = TransportUnavailable("session is not authenticated yet")
        async with TestClient(TestServer(_build_app(bot))) as client:
            resp = await client.post("/api/messages/send", json={"to": "1", "content": "hi"})
            assert resp.status == 503
            assert (await resp.json())["message"] == "session is not authenticated yet"

    async def test_delivery_failure_is_json_502(self, bot) -> None:
        bot.send_message.side_effect = DeliveryError("failed to send message to 1@c.us: boom")
        async with TestClient(TestServer(_build_app(bot))) as client:
            resp = await client.post("/api/messages/send", json={"to": "1", "content": "hi"})
            assert resp.status == 502
            body = await resp.json()
        assert body["status"] == "error"
        assert "boom" in body["message"]

    async def test_unexpected_failure_is_json_500(self, bot) -> None:
        bot.send_message.side_effect = RuntimeError("browser crashed")
        async with TestClient(TestServer(_build_app(bot))) as client:
            resp = await client.post("/api/messages/send", json={"to": "1", "content": "hi"})
            assert resp.status == 500
            assert await resp.json() == {"status": "error", "message": "Send failed: browser crashed"}
