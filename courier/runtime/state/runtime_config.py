"""Mutable process-wide bot configuration (prefix, mode, sender lists)."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ..errors import ValidationError

if TYPE_CHECKING:
    from ..config.settings import Settings

logger = logging.getLogger(__name__)


class BotMode(enum.Enum):
    public = "public"
    private = "private"
    inbox_only = "inbox-only"
    groups_only = "groups-only"

    @classmethod
    def values(cls) -> list[str]:
        return [m.value for m in cls]


@dataclass
class RuntimeConfig:
    """Live bot configuration shared by the dispatcher and admin commands.

    Only the ``prefix`` and ``mode`` admin commands mutate it, one field
    assignment at a time; readers may observe a change between two reads
    in the same request.  ``mode`` is kept as a plain string so that an
    unrecognised value loaded from the environment survives and is denied
    by the evaluator instead of silently becoming a valid mode.
    """

    prefix: str = "."
    mode: str = BotMode.private.value
    blocked_senders: set[str] = field(default_factory=set)
    allowed_senders: set[str] = field(default_factory=set)
    owner_id: str = ""
    self_id: str = ""

    @classmethod
    def from_settings(cls, settings: Settings) -> RuntimeConfig:
        if settings.bot_mode not in BotMode.values():
            logger.warning(
                "[runtime_config] unknown BOT_MODE=%r, every non-owner command will be denied",
                settings.bot_mode,
            )
        return cls(
            prefix=settings.prefix,
            mode=settings.bot_mode,
            blocked_senders=set(settings.blocked_users),
            allowed_senders=set(settings.allowed_users),
            owner_id=settings.owner_number,
            self_id=settings.bot_number,
        )

    @property
    def owner_chat_id(self) -> str:
        return f"{self.owner_id}@c.us" if self.owner_id else ""

    def set_prefix(self, prefix: str) -> None:
        if not prefix or not prefix.strip():
            raise ValidationError("prefix must not be empty")
        self.prefix = prefix.strip()
        logger.info("[runtime_config] prefix=%r", self.prefix)

    def set_mode(self, mode: str) -> None:
        value = mode.strip().lower()
        if value not in BotMode.values():
            raise ValidationError(
                f"unknown mode {mode!r}; valid modes: {', '.join(BotMode.values())}"
            )
        self.mode = value
        logger.info("[runtime_config] mode=%s", self.mode)
