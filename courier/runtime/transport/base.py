"""Transport protocol consumed by the dispatcher, arbiter and HTTP routes."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Protocol

from .events import InboundMessage, TransportEvent

EmitFn = Callable[[TransportEvent], None]


class Transport(Protocol):
    """One browser-automation / protocol session with the messaging provider.

    Implementations push events through the ``emit`` callback they were
    built with; every operation below may suspend on network I/O.
    """

    async def start(self) -> None:
        """Launch the session; returns before login completes."""
        ...

    async def send_message(
        self,
        target: str,
        content: str,
        *,
        media: str | None = None,
        quoted: InboundMessage | None = None,
    ) -> None: ...

    async def reply(self, message: InboundMessage, content: str) -> None: ...

    async def react(self, message: InboundMessage, emoji: str) -> None: ...

    async def request_pairing_code(self, phone_number: str) -> str: ...

    async def destroy(self) -> None: ...


class TransportFactory(Protocol):
    def __call__(self, emit: EmitFn, *, auth_path: Path, headless: bool) -> Transport: ...
