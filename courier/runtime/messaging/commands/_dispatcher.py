"""Prefix-command dispatcher.

Turns every inbound chat message into at most one command invocation:
ignore-checks, prefix/command parse, registry lookup, permission
evaluation, context build, handler call -- always in that order.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from ...errors import HandlerError
from ...state.runtime_config import BotMode, RuntimeConfig
from ...transport import InboundMessage, Transport
from ..policy import DenyReason, Sender, evaluate
from ._registry import CommandDescriptor, CommandRegistry

logger = logging.getLogger(__name__)

ReplyFn = Callable[[str], Awaitable[None]]
ReactFn = Callable[[str], Awaitable[None]]

_DENY_MESSAGES: dict[DenyReason, str] = {
    DenyReason.blocked: "🚫 You are not allowed to use this bot",
    DenyReason.owner_only: "🔐 This command is restricted to the owner",
}

_MODE_MESSAGES: dict[str, str] = {
    BotMode.private.value: "🔒 Bot is currently private",
    BotMode.inbox_only.value: "📩 Bot only works in private chats",
    BotMode.groups_only.value: "👥 Bot only works in groups",
}

_FALLBACK_DENY = "🚫 Command not allowed"


def deny_message(reason: DenyReason | None, mode: str) -> str:
    if reason is DenyReason.mode_restricted:
        return _MODE_MESSAGES.get(mode, _FALLBACK_DENY)
    if reason is None:
        return _FALLBACK_DENY
    return _DENY_MESSAGES.get(reason, _FALLBACK_DENY)


@dataclass
class ExecutionContext:
    """Everything a command handler may use for one invocation.

    Built fresh per dispatch and dropped once the handler returns.
    ``reply`` and ``react`` are bound to the triggering message.
    """

    sender: str
    chat_id: str
    body: str
    command: str
    args: list[str]
    prefix: str
    reply: ReplyFn
    react: ReactFn
    config: RuntimeConfig
    registry: CommandRegistry
    push_name: str = ""
    quoted: InboundMessage | None = None
    is_owner: bool = False
    is_self: bool = False
    is_group: bool = False
    is_allowed_sender: bool = False
    text: str = field(init=False)

    def __post_init__(self) -> None:
        self.text = " ".join(self.args)


@dataclass(frozen=True)
class ParsedCommand:
    name: str
    args: list[str]


def parse_command(body: str, prefix: str) -> ParsedCommand | None:
    """Split ``<prefix><name> arg...`` into a lower-cased name and args."""
    if not prefix or not body.startswith(prefix):
        return None
    parts = body[len(prefix):].split()
    if not parts:
        return None
    return ParsedCommand(name=parts[0].lower(), args=parts[1:])


class CommandDispatcher:
    def __init__(
        self,
        registry: CommandRegistry,
        config: RuntimeConfig,
        transport: Transport | None = None,
    ) -> None:
        self._registry = registry
        self._config = config
        self._transport = transport
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def registry(self) -> CommandRegistry:
        return self._registry

    @property
    def config(self) -> RuntimeConfig:
        return self._config

    def bind_transport(self, transport: Transport | None) -> None:
        """Point the dispatcher at the session that now carries messages."""
        self._transport = transport

    async def handle(self, message: InboundMessage) -> bool:
        """Process one inbound message.

        Returns ``True`` when a registered command matched (whether it was
        then allowed or denied), ``False`` when the message was ignored.
        """
        transport = self._transport
        if transport is None:
            logger.warning("[dispatch] no transport bound, dropping message id=%s", message.id)
            return False
        if message.is_broadcast:
            return False

        prefix = self._config.prefix
        parsed = parse_command(message.body, prefix)
        if parsed is None:
            return False

        descriptor = self._registry.lookup(parsed.name)
        if descriptor is None:
            return False

        sender_id = message.sender_id
        decision = evaluate(
            Sender(id=sender_id, is_group=message.is_group), descriptor, self._config,
        )
        if not decision.allow:
            logger.info(
                "[dispatch] deny command=%s sender=%s reason=%s",
                descriptor.name, sender_id, decision.outcome,
            )
            await transport.reply(message, deny_message(decision.reason, self._config.mode))
            return True

        ctx = self._build_context(transport, message, descriptor, parsed, prefix)
        logger.info("Executing: %s%s from %s", prefix, descriptor.name, message.chat_id)
        try:
            await descriptor.handler(transport, message, ctx)
        except Exception as exc:
            error = HandlerError(descriptor.name, exc)
            logger.error("[dispatch] handler failed: %s", error, exc_info=exc)
            await self._notify_owner(transport, f"⚠️ Error in {prefix}{descriptor.name}: {exc}")
        return True

    def _build_context(
        self,
        transport: Transport,
        message: InboundMessage,
        descriptor: CommandDescriptor,
        parsed: ParsedCommand,
        prefix: str,
    ) -> ExecutionContext:
        sender_id = message.sender_id
        config = self._config

        async def reply(text: str) -> None:
            await transport.reply(message, text)

        async def react(emoji: str) -> None:
            await transport.react(message, emoji)

        return ExecutionContext(
            sender=sender_id,
            chat_id=message.chat_id,
            body=message.body,
            command=descriptor.name,
            args=list(parsed.args),
            prefix=prefix,
            reply=reply,
            react=react,
            config=config,
            registry=self._registry,
            push_name=message.push_name,
            quoted=message.quoted,
            is_owner=bool(sender_id) and sender_id == config.owner_id,
            is_self=message.from_self or (bool(sender_id) and sender_id == config.self_id),
            is_group=message.is_group,
            is_allowed_sender=sender_id in config.allowed_senders,
        )

    async def _notify_owner(self, transport: Transport, text: str) -> None:
        target = self._config.owner_chat_id
        if not target:
            return
        try:
            await transport.send_message(target, text)
        except Exception:
            logger.warning("[dispatch] owner notification failed", exc_info=True)

    # -- event loop --------------------------------------------------------

    async def run(self, queue: asyncio.Queue[InboundMessage]) -> None:
        """Consume *queue* forever, handling each message in its own task."""
        while True:
            message = await queue.get()
            task = asyncio.create_task(self._handle_logged(message))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            queue.task_done()

    async def _handle_logged(self, message: InboundMessage) -> None:
        try:
            await self.handle(message)
        except Exception:
            logger.exception("[dispatch] message handling failed id=%s", message.id)

    async def drain(self, timeout: float = 5.0) -> None:
        """Wait for in-flight commands, cancelling whatever outlives *timeout*."""
        if not self._tasks:
            return
        pending = set(self._tasks)
        _, still_running = await asyncio.wait(pending, timeout=timeout)
        for task in still_running:
            task.cancel()
