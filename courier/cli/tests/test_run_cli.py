"""Tests for the long-running CLI (courier.cli.run)."""

from __future__ import annotations

import io
import os
import signal
import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from courier.cli.run import _build_bot, _build_parser, _run, _terminal_enabled
from courier.runtime.auth import TerminalAuthFlow
from courier.runtime.config.settings import AuthFrontend
from courier.runtime.errors import ValidationError


@pytest.fixture()
def parser():
    return _build_parser()


def _cfg(tmp_path: Path, **overrides) -> MagicMock:
    c = MagicMock()
    c.transport = "fake.module:factory"
    c.auth_frontend = AuthFrontend.auto
    c.admin_port = 8080
    c.admin_secret = "secret"
    c.auth_path = tmp_path / "auth"
    c.headless = True
    c.method_selection_timeout = 60.0
    c.terminal_input_timeout = 0.0
    c.phone_max_attempts = 0
    c.qr_wait_timeout = 30.0
    c.preferred_auth_method = ""
    c.pairing_number = ""
    c.prefix = "."
    c.bot_mode = "private"
    c.owner_number = "111"
    c.bot_number = ""
    c.blocked_users = frozenset()
    c.allowed_users = frozenset()
    for key, value in overrides.items():
        setattr(c, key, value)
    return c


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


class TestBuildParser:
    def test_defaults(self, parser):
        args = parser.parse_args([])
        assert args.frontend is None
        assert args.port is None
        assert args.no_server is False
        assert args.verbose is False

    def test_frontend_choice(self, parser):
        assert parser.parse_args(["--frontend", "web"]).frontend == "web"

    def test_invalid_frontend(self, parser):
        with pytest.raises(SystemExit):
            parser.parse_args(["--frontend", "carrier-pigeon"])

    def test_port_and_flags(self, parser):
        args = parser.parse_args(["--port", "9000", "--no-server", "-v"])
        assert args.port == 9000
        assert args.no_server is True
        assert args.verbose is True


# ---------------------------------------------------------------------------
# Front-end selection
# ---------------------------------------------------------------------------


class TestTerminalEnabled:
    def test_terminal_always(self):
        assert _terminal_enabled(AuthFrontend.terminal, io.StringIO()) is True

    def test_web_never(self):
        assert _terminal_enabled(AuthFrontend.web, MagicMock(isatty=lambda: True)) is False

    def test_auto_follows_tty(self):
        assert _terminal_enabled(AuthFrontend.auto, MagicMock(isatty=lambda: True)) is True
        assert _terminal_enabled(AuthFrontend.auto, io.StringIO()) is False


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------


class TestBuildBot:
    @patch("courier.cli.run.load_transport_factory")
    def test_terminal_flow_attached(self, mock_load, tmp_path):
        with patch("courier.cli.run.cfg", _cfg(tmp_path, preferred_auth_method="qr")):
            bot = _build_bot(AuthFrontend.terminal)
        mock_load.assert_called_once_with("fake.module:factory")
        assert isinstance(bot._terminal, TerminalAuthFlow)
        assert bot.frontend is AuthFrontend.terminal
        assert bot._dispatcher.registry.frozen
        assert bot._dispatcher.config.owner_id == "111"

    @patch("courier.cli.run.load_transport_factory")
    def test_web_frontend_has_no_terminal(self, mock_load, tmp_path):
        with patch("courier.cli.run.cfg", _cfg(tmp_path)):
            bot = _build_bot(AuthFrontend.web)
        assert bot._terminal is None


# ---------------------------------------------------------------------------
# Full run (mocked bot)
# ---------------------------------------------------------------------------


class TestRun:
    async def test_missing_transport_exits_2(self, parser, tmp_path):
        with patch("courier.cli.run.cfg", _cfg(tmp_path, transport="")):
            code = await _run(parser.parse_args(["--no-server"]))
        assert code == 2

    @patch("courier.cli.run._build_bot", side_effect=ValidationError("bad ref"))
    async def test_bad_transport_exits_2(self, mock_build, parser, tmp_path):
        with patch("courier.cli.run.cfg", _cfg(tmp_path)):
            code = await _run(parser.parse_args(["--no-server"]))
        assert code == 2

    @patch("courier.cli.run._build_bot")
    async def test_start_failure_exits_1_and_shuts_down(self, mock_build, parser, tmp_path):
        bot = MagicMock()
        bot.start = AsyncMock(side_effect=RuntimeError("browser crashed"))
        bot.shutdown = AsyncMock()
        mock_build.return_value = bot
        with patch("courier.cli.run.cfg", _cfg(tmp_path)):
            code = await _run(parser.parse_args(["--no-server"]))
        assert code == 1
        bot.shutdown.assert_awaited_once()

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX signals")
    @patch("courier.cli.run._build_bot")
    async def test_sigterm_stops_cleanly(self, mock_build, parser, tmp_path):
        bot = MagicMock()
        bot.start = AsyncMock(side_effect=lambda: os.kill(os.getpid(), signal.SIGTERM))
        bot.shutdown = AsyncMock()
        mock_build.return_value = bot
        with patch("courier.cli.run.cfg", _cfg(tmp_path)):
            code = await _run(parser.parse_args(["--no-server", "--frontend", "web"]))
        assert code == 0
        mock_build.assert_called_once_with(AuthFrontend.web)
        bot.shutdown.assert_awaited_once()

    @patch("courier.cli.run._start_server", new_callable=AsyncMock)
    @patch("courier.cli.run._build_bot")
    async def test_server_started_on_requested_port(self, mock_build, mock_server, parser, tmp_path):
        runner = MagicMock()
        runner.cleanup = AsyncMock()
        mock_server.return_value = runner
        bot = MagicMock()
        bot.start = AsyncMock(side_effect=RuntimeError("stop here"))
        bot.shutdown = AsyncMock()
        mock_build.return_value = bot
        with patch("courier.cli.run.cfg", _cfg(tmp_path)):
            await _run(parser.parse_args(["--port", "9100", "--frontend", "terminal"]))
        mock_server.assert_awaited_once_with(bot, AuthFrontend.terminal, 9100)
        runner.cleanup.assert_awaited_once()
