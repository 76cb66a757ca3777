"""Owner-only commands that reconfigure the running bot."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ...errors import ValidationError
from ...state.runtime_config import BotMode
from ._registry import command

if TYPE_CHECKING:
    from ...transport import InboundMessage, Transport
    from ._dispatcher import ExecutionContext


@command(
    "prefix",
    restricted_to_owner=True,
    category="owner",
    description="Change command prefix",
    usage="prefix <new_prefix>",
)
async def cmd_prefix(transport: Transport, message: InboundMessage, ctx: ExecutionContext) -> None:
    if not ctx.args:
        await ctx.reply(f"Current prefix: {ctx.config.prefix}")
        return
    try:
        ctx.config.set_prefix(ctx.args[0])
    except ValidationError as exc:
        await ctx.reply(f"❌ {exc}")
        return
    await ctx.reply(f"✅ Command prefix changed to: {ctx.config.prefix}")


@command(
    "mode",
    restricted_to_owner=True,
    category="owner",
    description="Change bot mode",
    usage="mode <public|private|inbox-only|groups-only>",
)
async def cmd_mode(transport: Transport, message: InboundMessage, ctx: ExecutionContext) -> None:
    valid = ", ".join(BotMode.values())
    if not ctx.args:
        await ctx.reply(f"Current mode: {ctx.config.mode}\nValid modes: {valid}")
        return
    try:
        ctx.config.set_mode(ctx.args[0])
    except ValidationError:
        await ctx.reply(f"Current mode: {ctx.config.mode}\nValid modes: {valid}")
        return
    await ctx.reply(f"✅ Bot mode changed to: {ctx.config.mode}")
