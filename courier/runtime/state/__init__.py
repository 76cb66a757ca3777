"""Process-lifetime runtime state."""

from __future__ import annotations

from .runtime_config import BotMode, RuntimeConfig

__all__ = [
    "BotMode",
    "RuntimeConfig",
]
