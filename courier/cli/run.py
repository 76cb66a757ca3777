"""Long-running bot entry point.

Loads settings and plugins, starts the transport session, and serves the
HTTP control surface until SIGINT/SIGTERM.

Usage::

    COURIER_TRANSPORT=mytransport:create courier-run
    courier-run --frontend web --port 9000
    courier-run --no-server --verbose
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import secrets
import signal
import sys
from typing import TextIO

from aiohttp import web
from rich.console import Console

from courier.runtime.auth import TerminalAuthFlow
from courier.runtime.config.settings import AuthFrontend, cfg
from courier.runtime.errors import CourierError
from courier.runtime.messaging.bot import Bot
from courier.runtime.messaging.commands import CommandDispatcher, CommandRegistry, load_plugins
from courier.runtime.server import QuietAccessLogger, create_app
from courier.runtime.state import RuntimeConfig
from courier.runtime.transport import load_transport_factory

from .prompt import RichPrompt

logger = logging.getLogger(__name__)
console = Console(stderr=True)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="courier-run",
        description="Run the Courier chat bot until interrupted.",
    )
    parser.add_argument(
        "--frontend",
        choices=[f.value for f in AuthFrontend],
        default=None,
        help="Login front-end (default: AUTH_FRONTEND from env / config).",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="HTTP control surface port (default: ADMIN_PORT).",
    )
    parser.add_argument(
        "--no-server",
        action="store_true",
        default=False,
        help="Do not start the HTTP control surface.",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        default=False,
        help="Log at DEBUG level.",
    )
    return parser


def _terminal_enabled(frontend: AuthFrontend, stdin: TextIO | None = None) -> bool:
    """Whether the interactive login prompt should run.

    ``auto`` only prompts when stdin is a terminal; otherwise the web
    surface is the sole way to log in.
    """
    if frontend is AuthFrontend.terminal:
        return True
    if frontend is AuthFrontend.web:
        return False
    stream = stdin or sys.stdin
    return stream is not None and stream.isatty()


def _ensure_admin_secret() -> str:
    if not cfg.admin_secret:
        cfg.write_env(ADMIN_SECRET=secrets.token_urlsafe(24))
        logger.info("Generated ADMIN_SECRET (persisted to .env)")
    return cfg.admin_secret


def _build_bot(frontend: AuthFrontend) -> Bot:
    factory = load_transport_factory(cfg.transport)
    registry = load_plugins(CommandRegistry())
    dispatcher = CommandDispatcher(registry, RuntimeConfig.from_settings(cfg))
    bot = Bot(
        factory,
        dispatcher,
        auth_path=cfg.auth_path,
        headless=cfg.headless,
        frontend=frontend,
        method_selection_timeout=cfg.method_selection_timeout,
    )
    if _terminal_enabled(frontend):
        bot.attach_terminal(TerminalAuthFlow(
            bot.arbiter,
            RichPrompt(console),
            preferred_method=cfg.preferred_auth_method,
            pairing_number=cfg.pairing_number,
            input_timeout=cfg.terminal_input_timeout,
            max_phone_attempts=cfg.phone_max_attempts,
        ))
    else:
        logger.info("[cli] terminal login disabled frontend=%s", frontend.value)
    return bot


async def _start_server(bot: Bot, frontend: AuthFrontend, port: int) -> web.AppRunner:
    secret = _ensure_admin_secret()
    app = create_app(
        bot,
        admin_secret=secret,
        qr_timeout=cfg.qr_wait_timeout,
        enable_web_auth=frontend is not AuthFrontend.terminal,
    )
    runner = web.AppRunner(app, access_log_class=QuietAccessLogger)
    await runner.setup()
    site = web.TCPSite(runner, "0.0.0.0", port)
    await site.start()
    logger.info("Control surface listening on port %d", port)
    console.print(f"\n  --> http://localhost:{port}/api/auth/status?secret={secret}\n")
    return runner


async def _run(args: argparse.Namespace) -> int:
    cfg.ensure_dirs()
    frontend = AuthFrontend(args.frontend) if args.frontend else cfg.auth_frontend
    port = args.port or cfg.admin_port

    if not cfg.transport:
        console.print("[red]Error:[/red] COURIER_TRANSPORT is not set (expected 'package.module:factory').")
        return 2
    try:
        bot = _build_bot(frontend)
    except (CourierError, ImportError) as exc:
        logger.error("[cli] startup failed: %s", exc, exc_info=args.verbose)
        console.print(f"[red]Error:[/red] {exc}")
        return 2

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    signals = (signal.SIGINT, signal.SIGTERM)
    for sig in signals:
        loop.add_signal_handler(sig, stop.set)

    runner: web.AppRunner | None = None
    exit_code = 0
    try:
        if not args.no_server:
            runner = await _start_server(bot, frontend, port)
        await bot.start()
        console.print(f"[bold green]courier-run[/bold green] started (frontend={frontend.value})")
        await stop.wait()
        console.print("\n[dim]Interrupted.[/dim]")
    except Exception as exc:
        logger.error("[cli] bot error: %s", exc, exc_info=True)
        console.print(f"[red]Error:[/red] {exc}")
        exit_code = 1
    finally:
        for sig in signals:
            loop.remove_signal_handler(sig)
        await bot.shutdown()
        if runner is not None:
            await runner.cleanup()
        console.print("[dim]Done.[/dim]")

    return exit_code


def main() -> None:
    """CLI entry point for ``courier-run``."""
    parser = _build_parser()
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s  %(name)s  %(levelname)s  %(message)s",
    )
    cfg.reload()

    try:
        code = asyncio.run(_run(args))
    except KeyboardInterrupt:
        code = 130

    sys.exit(code)


if __name__ == "__main__":
    main()
