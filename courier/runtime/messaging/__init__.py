"""Chat messaging pipeline -- bot session, permission policy, and commands."""

from .bot import Bot, chat_id_for
from .policy import Decision, DenyReason, Sender, evaluate

__all__ = [
    "Bot",
    "Decision",
    "DenyReason",
    "Sender",
    "chat_id_for",
    "evaluate",
]
