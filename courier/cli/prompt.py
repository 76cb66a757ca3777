"""Rich-backed operator console for the terminal login flow.

Lines are read from stdin by one daemon thread and handed to the event
loop through a queue; a prompt that times out leaves no reader behind.
"""

from __future__ import annotations

import asyncio
import logging
import sys
import threading
from typing import TextIO

import qrcode
from qrcode.constants import ERROR_CORRECT_L
from rich.console import Console
from rich.panel import Panel
from rich.text import Text

logger = logging.getLogger(__name__)

_EOF = object()

# (upper module dark, lower module dark) -> glyph
_HALF_BLOCKS = {
    (True, True): "█",
    (True, False): "▀",
    (False, True): "▄",
    (False, False): " ",
}


def render_qr(payload: str, border: int = 2) -> Text:
    """Draw *payload* as a QR code, two module rows per terminal line.

    Dark modules are drawn black on a white background.
    """
    qr = qrcode.QRCode(error_correction=ERROR_CORRECT_L, border=border)
    qr.add_data(payload)
    qr.make(fit=True)
    matrix = [list(row) for row in qr.get_matrix()]
    if len(matrix) % 2:
        matrix.append([False] * len(matrix[0]))
    lines = [
        "".join(_HALF_BLOCKS[pair] for pair in zip(top, bottom))
        for top, bottom in zip(matrix[0::2], matrix[1::2])
    ]
    return Text("\n".join(lines), style="black on white", no_wrap=True)


class RichPrompt:
    def __init__(self, console: Console | None = None, stream: TextIO | None = None) -> None:
        self._console = console or Console(stderr=True)
        self._stream = stream or sys.stdin
        self._lines: asyncio.Queue[object] | None = None
        self._reader: threading.Thread | None = None

    def _start_reader(self) -> asyncio.Queue[object]:
        if self._lines is not None:
            return self._lines
        loop = asyncio.get_running_loop()
        lines: asyncio.Queue[object] = asyncio.Queue()

        def pump() -> None:
            while True:
                line = self._stream.readline()
                if not line:
                    loop.call_soon_threadsafe(lines.put_nowait, _EOF)
                    return
                loop.call_soon_threadsafe(lines.put_nowait, line.rstrip("\r\n"))

        self._reader = threading.Thread(target=pump, name="courier-stdin", daemon=True)
        self._reader.start()
        self._lines = lines
        return lines

    async def ask(self, question: str, timeout: float | None = None) -> str:
        """Print *question* and wait for one line.

        A closed stdin is treated like an expired prompt.
        """
        lines = self._start_reader()
        self._console.print(f"[bold]{question}[/bold]", end="")
        try:
            line = await asyncio.wait_for(lines.get(), timeout)
        except TimeoutError:
            self._console.print()
            raise
        if line is _EOF:
            lines.put_nowait(_EOF)
            logger.info("[cli.prompt] stdin closed")
            raise TimeoutError("stdin closed")
        return str(line)

    def show(self, text: str) -> None:
        self._console.print(text)

    def show_qr(self, payload: str) -> None:
        self._console.print(Panel(
            render_qr(payload),
            title="📱 Scan this QR code with WhatsApp",
            subtitle="Linked devices → Link a device",
            border_style="green",
            expand=False,
        ))

    def show_pairing_code(self, code: str) -> None:
        self._console.print(Panel(
            f"[bold cyan]{code}[/bold cyan]",
            title="🔑 Your pairing code",
            subtitle="Enter it under Linked devices → Link with phone number",
            border_style="cyan",
            expand=False,
        ))
