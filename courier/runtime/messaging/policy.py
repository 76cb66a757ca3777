"""Permission evaluator -- decides whether a sender may run a command.

The decision is a pure function of the sender, the command descriptor,
and the runtime configuration.  Rules apply in strict precedence:

1. blocked senders are denied (``blocked``);
2. the owner and the bot itself are always allowed;
3. owner-restricted commands are denied to everyone else (``owner-only``);
4. allow-listed senders may run any remaining command;
5. otherwise the global mode decides (``mode-restricted`` on deny).
   An unknown mode denies.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..state.runtime_config import BotMode

if TYPE_CHECKING:
    from ..state.runtime_config import RuntimeConfig
    from .commands._registry import CommandDescriptor


class DenyReason(enum.Enum):
    blocked = "blocked"
    owner_only = "owner-only"
    mode_restricted = "mode-restricted"


@dataclass(frozen=True)
class Decision:
    allow: bool
    reason: DenyReason | None = None

    @property
    def outcome(self) -> str:
        if self.allow:
            return "allow"
        return self.reason.value if self.reason is not None else "deny"


ALLOW = Decision(allow=True)


@dataclass(frozen=True)
class Sender:
    """Who sent a message and where."""

    id: str
    is_group: bool = False


def is_privileged(sender_id: str, config: RuntimeConfig) -> bool:
    return bool(sender_id) and sender_id in (config.owner_id, config.self_id)


def evaluate(sender: Sender, command: CommandDescriptor, config: RuntimeConfig) -> Decision:
    if sender.id in config.blocked_senders:
        return Decision(False, DenyReason.blocked)
    if is_privileged(sender.id, config):
        return ALLOW
    if command.restricted_to_owner:
        return Decision(False, DenyReason.owner_only)
    if sender.id in config.allowed_senders:
        return ALLOW
    return _evaluate_mode(sender, config.mode)


def _evaluate_mode(sender: Sender, mode: str) -> Decision:
    try:
        parsed = BotMode(mode)
    except ValueError:
        return Decision(False, DenyReason.mode_restricted)
    if parsed is BotMode.public:
        allowed = True
    elif parsed is BotMode.inbox_only:
        allowed = not sender.is_group
    elif parsed is BotMode.groups_only:
        allowed = sender.is_group
    else:
        allowed = False
    return ALLOW if allowed else Decision(False, DenyReason.mode_restricted)
