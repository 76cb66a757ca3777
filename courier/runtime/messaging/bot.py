"""Bot -- owns the transport session and routes its events.

Transport callbacks are turned into two queues: inbound messages feed
the command dispatcher, everything else (QR codes, login results,
readiness, logouts) feeds a single consumer that drives the
authentication arbiter in arrival order.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from ..auth.arbiter import AuthArbiter
from ..auth.terminal import TerminalAuthFlow
from ..config.settings import AuthFrontend
from ..errors import DeliveryError, TransportUnavailable
from ..transport import (
    AuthenticatedEvent,
    AuthFailureEvent,
    DisconnectedEvent,
    InboundMessage,
    MessageEvent,
    QrEvent,
    ReadyEvent,
    Transport,
    TransportEvent,
    TransportFactory,
)
from .commands import CommandDispatcher

logger = logging.getLogger(__name__)

_MAIN = "main"
_TRANSIENT = "transient"


def chat_id_for(target: str) -> str:
    """Accept a bare number or a full chat id."""
    target = target.strip()
    return target if "@" in target else f"{target}@c.us"


class Bot:
    def __init__(
        self,
        factory: TransportFactory,
        dispatcher: CommandDispatcher,
        *,
        auth_path: Path,
        headless: bool = True,
        frontend: AuthFrontend = AuthFrontend.auto,
        method_selection_timeout: float = 60.0,
    ) -> None:
        self._factory = factory
        self._dispatcher = dispatcher
        self._auth_path = auth_path
        self._headless = headless
        self._frontend = frontend

        self._messages: asyncio.Queue[InboundMessage] = asyncio.Queue()
        self._auth_events: asyncio.Queue[tuple[str, TransportEvent]] = asyncio.Queue()
        self._main: Transport | None = None
        self._ready = False
        self._consumers: list[asyncio.Task[None]] = []
        self._terminal: TerminalAuthFlow | None = None
        self._stopped = asyncio.Event()

        self.arbiter = AuthArbiter(
            main_transport=lambda: self._main,
            open_transient=self.open_transient,
            on_authenticated=self.ensure_main_session,
            method_selection_timeout=method_selection_timeout,
        )

    @property
    def ready(self) -> bool:
        return self._ready and self._main is not None

    @property
    def main_transport(self) -> Transport | None:
        return self._main

    @property
    def frontend(self) -> AuthFrontend:
        return self._frontend

    @property
    def stopped(self) -> bool:
        return self._stopped.is_set()

    def attach_terminal(self, flow: TerminalAuthFlow) -> None:
        self._terminal = flow

    # -- transport callbacks -----------------------------------------------

    def _emit_main(self, event: TransportEvent) -> None:
        if isinstance(event, MessageEvent):
            self._messages.put_nowait(event.message)
        else:
            self._auth_events.put_nowait((_MAIN, event))

    def _emit_transient(self, event: TransportEvent) -> None:
        if isinstance(event, MessageEvent):
            return
        self._auth_events.put_nowait((_TRANSIENT, event))

    # -- lifecycle ---------------------------------------------------------

    async def start(self) -> None:
        self._consumers = [
            asyncio.create_task(self._dispatcher.run(self._messages), name="courier-dispatch"),
            asyncio.create_task(self._consume_auth_events(), name="courier-auth-events"),
        ]
        await self.ensure_main_session()

    async def ensure_main_session(self) -> None:
        """Start the long-lived session unless it is already running."""
        if self._main is not None:
            return
        transport = self._factory(self._emit_main, auth_path=self._auth_path, headless=self._headless)
        self._main = transport
        self._dispatcher.bind_transport(transport)
        logger.info("[bot] starting main session auth_path=%s", self._auth_path)
        try:
            await transport.start()
        except Exception:
            logger.error("[bot] main session failed to start", exc_info=True)
            if self._main is transport:
                await self._teardown_main()
            raise

    async def open_transient(self) -> Transport:
        transport = self._factory(self._emit_transient, auth_path=self._auth_path, headless=self._headless)
        logger.info("[bot] starting transient auth client")
        await transport.start()
        return transport

    async def _teardown_main(self) -> None:
        transport, self._main = self._main, None
        self._ready = False
        self._dispatcher.bind_transport(None)
        if transport is None:
            return
        try:
            await transport.destroy()
        except Exception:
            logger.warning("[bot] failed to destroy main session", exc_info=True)

    async def _restart_after_reset(self) -> None:
        await self._teardown_main()
        if self._frontend is AuthFrontend.web:
            logger.info("[bot] main session stopped; waiting for a web login request")
            return
        await self.ensure_main_session()

    # -- auth event consumer -------------------------------------------------

    async def _consume_auth_events(self) -> None:
        while True:
            source, event = await self._auth_events.get()
            try:
                await self._on_auth_event(source, event)
            except Exception:
                logger.exception("[bot] failed to handle %s from %s", type(event).__name__, source)
            finally:
                self._auth_events.task_done()

    async def _on_auth_event(self, source: str, event: TransportEvent) -> None:
        if isinstance(event, QrEvent):
            await self.arbiter.on_qr(event.payload)
            if self._terminal is not None and source == _MAIN:
                self._terminal.on_qr(event.payload)
        elif isinstance(event, AuthenticatedEvent):
            logger.info("🔑 Logged in (%s)", source)
            await self._cancel_terminal()
            await self.arbiter.on_authenticated()
        elif isinstance(event, AuthFailureEvent):
            await self._cancel_terminal(f"\n❌ Authentication failed: {event.reason}")
            await self.arbiter.on_auth_failure(event.reason)
            if source == _MAIN:
                await self._restart_after_reset()
        elif isinstance(event, ReadyEvent):
            if source != _MAIN:
                logger.debug("[bot] transient client ready; waiting for main session")
                return
            self._ready = True
            await self._cancel_terminal()
            await self.arbiter.on_ready()
            await self._announce_online()
        elif isinstance(event, DisconnectedEvent):
            if source != _MAIN:
                return
            await self._cancel_terminal("\n🔌 Session disconnected")
            await self.arbiter.on_disconnected(event.reason)
            await self._restart_after_reset()

    async def _cancel_terminal(self, notice: str = "") -> None:
        if self._terminal is not None:
            await self._terminal.cancel(notice)

    async def _announce_online(self) -> None:
        config = self._dispatcher.config
        logger.info("🚀 Bot is online! prefix=%s mode=%s", config.prefix, config.mode)
        await self.notify_owner(
            f"🤖 Bot is online!\nPrefix: {config.prefix}\nMode: {config.mode}"
        )

    # -- outbound ------------------------------------------------------------

    async def send_message(self, target: str, content: str, *, media: str | None = None) -> str:
        transport = self._main
        if not self._ready or transport is None:
            raise TransportUnavailable("session is not authenticated yet")
        chat_id = chat_id_for(target)
        try:
            await transport.send_message(chat_id, content, media=media)
        except Exception as exc:
            logger.error("[bot] send to=%s failed: %s", chat_id, exc, exc_info=True)
            raise DeliveryError(f"failed to send message to {chat_id}: {exc}") from exc
        logger.info("[bot] sent message to=%s media=%s", chat_id, bool(media))
        return chat_id

    async def notify_owner(self, text: str) -> bool:
        """Best-effort message to the owner; never raises."""
        target = self._dispatcher.config.owner_chat_id
        if not target or not self.ready:
            return False
        try:
            await self._main.send_message(target, text)  # type: ignore[union-attr]
        except Exception:
            logger.warning("[bot] owner notification failed", exc_info=True)
            return False
        return True

    async def shutdown(self) -> None:
        if self._stopped.is_set():
            return
        logger.info("Shutting down...")
        await self.notify_owner("🛑 Bot shutting down")
        if self._terminal is not None:
            await self._terminal.stop()
        await self._dispatcher.drain()
        for task in self._consumers:
            task.cancel()
        await asyncio.gather(*self._consumers, return_exceptions=True)
        self._consumers = []
        await self.arbiter.close()
        await self._teardown_main()
        self._stopped.set()
