"""Prefix-command registry, dispatcher, and built-in command plugins.

Plugin modules group commands by audience:

- ``admin``   -- owner-only reconfiguration (prefix, mode)
- ``general`` -- ping, uptime, menu

Any non-underscore module in this package is a plugin; functions marked
with :func:`command` are registered when :func:`load_plugins` runs.
"""

from __future__ import annotations

import importlib
import logging
import pkgutil

from ._dispatcher import (
    CommandDispatcher,
    ExecutionContext,
    ReactFn,
    ReplyFn,
    deny_message,
    parse_command,
)
from ._registry import (
    CommandDescriptor,
    CommandRegistry,
    Handler,
    command,
    descriptors_in,
)

logger = logging.getLogger(__name__)


def load_plugins(registry: CommandRegistry, package: str = __name__) -> CommandRegistry:
    """Import every plugin module of *package*, register its commands, and freeze.

    A name or alias collision aborts loading with
    :class:`~courier.runtime.errors.DuplicateNameError`.
    """
    pkg = importlib.import_module(package)
    names = sorted(
        info.name for info in pkgutil.iter_modules(pkg.__path__)
        if not info.name.startswith("_")
    )
    for name in names:
        module = importlib.import_module(f"{package}.{name}")
        for descriptor in descriptors_in(vars(module)):
            registry.register(descriptor)
    registry.freeze()
    logger.info("✅ Plugins loaded: %d commands from %d modules", len(registry), len(names))
    return registry


__all__ = [
    "CommandDescriptor",
    "CommandDispatcher",
    "CommandRegistry",
    "ExecutionContext",
    "Handler",
    "ReactFn",
    "ReplyFn",
    "command",
    "deny_message",
    "descriptors_in",
    "load_plugins",
    "parse_command",
]
