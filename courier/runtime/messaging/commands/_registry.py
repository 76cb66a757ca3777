"""Command descriptors and the append-only command registry."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable, Iterator
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from ...errors import DuplicateNameError

if TYPE_CHECKING:
    from ...transport import InboundMessage, Transport
    from ._dispatcher import ExecutionContext

logger = logging.getLogger(__name__)

Handler = Callable[["Transport", "InboundMessage", "ExecutionContext"], Awaitable[None]]

_COMMAND_ATTR = "__courier_command__"


@dataclass(frozen=True)
class CommandDescriptor:
    name: str
    handler: Handler
    aliases: frozenset[str] = field(default_factory=frozenset)
    restricted_to_owner: bool = False
    category: str = "general"
    description: str = ""
    usage: str = ""
    hidden: bool = False

    def __post_init__(self) -> None:
        name = self.name.strip().lower()
        if not name:
            raise ValueError("command name must not be empty")
        object.__setattr__(self, "name", name)
        object.__setattr__(
            self,
            "aliases",
            frozenset(a.strip().lower() for a in self.aliases if a.strip()) - {name},
        )

    @property
    def tokens(self) -> frozenset[str]:
        return self.aliases | {self.name}


class CommandRegistry:
    """Ordered table of :class:`CommandDescriptor`.

    Populated once while plugins load, then frozen.  Lookups never mutate
    the table, so concurrent dispatches may read it without locking.
    """

    def __init__(self) -> None:
        self._commands: list[CommandDescriptor] = []
        self._frozen = False

    def register(self, descriptor: CommandDescriptor, *, replace: bool = False) -> None:
        """Append *descriptor*.

        A name or alias already claimed by another command raises
        :class:`DuplicateNameError`.  With ``replace=True`` every colliding
        descriptor is dropped instead and the override is logged.
        """
        if self._frozen:
            raise RuntimeError("command registry is frozen; register plugins at load time")
        clashes = [c for c in self._commands if c.tokens & descriptor.tokens]
        if clashes and not replace:
            existing = clashes[0]
            token = sorted(existing.tokens & descriptor.tokens)[0]
            raise DuplicateNameError(token, existing.name)
        for old in clashes:
            logger.warning(
                "[registry.register] %s overrides %s (shared tokens: %s)",
                descriptor.name, old.name, ", ".join(sorted(old.tokens & descriptor.tokens)),
            )
            self._commands.remove(old)
        self._commands.append(descriptor)
        logger.debug("[registry.register] name=%s aliases=%s", descriptor.name, sorted(descriptor.aliases))

    def lookup(self, token: str) -> CommandDescriptor | None:
        """Case-insensitive exact match on names first, then on aliases."""
        key = token.strip().lower()
        if not key:
            return None
        for descriptor in self._commands:
            if descriptor.name == key:
                return descriptor
        for descriptor in self._commands:
            if key in descriptor.aliases:
                return descriptor
        return None

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def categories(self) -> dict[str, list[CommandDescriptor]]:
        grouped: dict[str, list[CommandDescriptor]] = {}
        for descriptor in self._commands:
            if not descriptor.hidden:
                grouped.setdefault(descriptor.category, []).append(descriptor)
        return grouped

    def __iter__(self) -> Iterator[CommandDescriptor]:
        return iter(tuple(self._commands))

    def __len__(self) -> int:
        return len(self._commands)


def command(
    name: str,
    *,
    aliases: Iterable[str] = (),
    restricted_to_owner: bool = False,
    category: str = "general",
    description: str = "",
    usage: str = "",
    hidden: bool = False,
) -> Callable[[Handler], Handler]:
    """Mark a coroutine function as a plugin command.

    The descriptor is attached to the function and picked up by
    :func:`~courier.runtime.messaging.commands.load_plugins`.
    """

    def decorator(func: Handler) -> Handler:
        descriptor = CommandDescriptor(
            name=name,
            handler=func,
            aliases=frozenset(aliases),
            restricted_to_owner=restricted_to_owner,
            category=category,
            description=description,
            usage=usage,
            hidden=hidden,
        )
        setattr(func, _COMMAND_ATTR, descriptor)
        return func

    return decorator


def descriptors_in(namespace: dict[str, Any]) -> list[CommandDescriptor]:
    """Return the command descriptors defined in a module namespace, in order."""
    found: list[CommandDescriptor] = []
    for value in namespace.values():
        descriptor = getattr(value, _COMMAND_ATTR, None)
        if isinstance(descriptor, CommandDescriptor):
            found.append(descriptor)
    return found
