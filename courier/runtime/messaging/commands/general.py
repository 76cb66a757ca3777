"""General-purpose commands available to every permitted sender."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

from ._registry import command

if TYPE_CHECKING:
    from ...transport import InboundMessage, Transport
    from ._dispatcher import ExecutionContext

BOOT_TIME = time.monotonic()


def format_uptime(seconds: float) -> str:
    total = int(seconds)
    days, remainder = divmod(total, 86400)
    hours, remainder = divmod(remainder, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{days}d {hours}h {minutes}m {secs}s"


@command("ping", aliases=("speed",), description="Check the bot's response speed.")
async def cmd_ping(transport: Transport, message: InboundMessage, ctx: ExecutionContext) -> None:
    start = time.perf_counter()
    await ctx.reply("Pinging...")
    elapsed_ms = int((time.perf_counter() - start) * 1000)
    await ctx.reply(f"Pong: {elapsed_ms}ms")
    await ctx.react("✅")


@command("uptime", aliases=("runtime",), description="Check the bot's server runtime.")
async def cmd_uptime(transport: Transport, message: InboundMessage, ctx: ExecutionContext) -> None:
    await ctx.reply(f"*Uptime:* {format_uptime(time.monotonic() - BOOT_TIME)}")


@command("menu", aliases=("help", "list"), description="List available commands.")
async def cmd_menu(transport: Transport, message: InboundMessage, ctx: ExecutionContext) -> None:
    lines = [f"*Commands* (prefix: {ctx.prefix})"]
    for category, descriptors in sorted(ctx.registry.categories().items()):
        if category == "owner" and not (ctx.is_owner or ctx.is_self):
            continue
        lines.append(f"\n*{category.title()}*")
        for d in descriptors:
            aliases = f" ({', '.join(sorted(d.aliases))})" if d.aliases else ""
            desc = f" - {d.description}" if d.description else ""
            lines.append(f"  {ctx.prefix}{d.name}{aliases}{desc}")
    await ctx.reply("\n".join(lines))
