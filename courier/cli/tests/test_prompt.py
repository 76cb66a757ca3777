"""Tests for the rich operator console."""

from __future__ import annotations

import io

import pytest
import qrcode
from qrcode.constants import ERROR_CORRECT_L
from rich.console import Console

from courier.cli.prompt import RichPrompt, render_qr


def _prompt(stdin: str) -> tuple[RichPrompt, io.StringIO]:
    out = io.StringIO()
    console = Console(file=out, force_terminal=False, width=100)
    return RichPrompt(console, io.StringIO(stdin)), out


class TestAsk:
    async def test_reads_lines_in_order(self) -> None:
        prompt, out = _prompt("2\n254712345678\n")
        assert await prompt.ask("Enter choice (1/2): ", 1.0) == "2"
        assert await prompt.ask("Phone: ", 1.0) == "254712345678"
        assert "Enter choice (1/2):" in out.getvalue()

    async def test_closed_stdin_behaves_like_timeout(self) -> None:
        prompt, _ = _prompt("")
        with pytest.raises(TimeoutError):
            await prompt.ask("Enter choice (1/2): ", 1.0)
        with pytest.raises(TimeoutError):
            await prompt.ask("Again: ", 1.0)


class TestRender:
    def test_pairing_code_and_qr(self) -> None:
        prompt, out = _prompt("")
        prompt.show_pairing_code("ABCD-1234")
        prompt.show_qr("2@payload,xyz")
        prompt.show("plain")
        text = out.getvalue()
        assert "ABCD-1234" in text
        assert "2@payload,xyz" not in text
        assert "█" in text
        assert "plain" in text

    def test_qr_is_drawn_from_module_matrix(self) -> None:
        lines = render_qr("2@payload,xyz", border=2).plain.split("\n")
        assert len({len(line) for line in lines}) == 1
        assert lines[0].strip() == ""
        # top edge of both upper finder patterns
        assert lines[1][2:9] == "█▀▀▀▀▀█"
        assert lines[1][-9:-2] == "█▀▀▀▀▀█"

    def test_qr_matches_encoder_matrix(self) -> None:
        qr = qrcode.QRCode(error_correction=ERROR_CORRECT_L, border=0)
        qr.add_data("2@abc,def")
        qr.make(fit=True)
        expected = [list(row) for row in qr.get_matrix()]

        glyphs = {"█": (True, True), "▀": (True, False), "▄": (False, True), " ": (False, False)}
        decoded: list[list[bool]] = []
        for line in render_qr("2@abc,def", border=0).plain.split("\n"):
            pairs = [glyphs[ch] for ch in line]
            decoded.append([top for top, _ in pairs])
            decoded.append([bottom for _, bottom in pairs])

        assert decoded[: len(expected)] == expected
        assert all(not dark for row in decoded[len(expected):] for dark in row)
