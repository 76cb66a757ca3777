"""Events emitted by a chat transport."""

from __future__ import annotations

from dataclasses import dataclass

BROADCAST_CHAT_ID = "status@broadcast"


def normalize_id(raw: str) -> str:
    """Strip the ``@domain`` suffix from a transport identifier."""
    return raw.split("@", 1)[0] if raw else ""


@dataclass(frozen=True)
class InboundMessage:
    id: str
    chat_id: str
    sender: str
    body: str
    is_group: bool = False
    from_self: bool = False
    push_name: str = ""
    quoted: InboundMessage | None = None

    @property
    def is_broadcast(self) -> bool:
        return self.chat_id == BROADCAST_CHAT_ID or self.sender == BROADCAST_CHAT_ID

    @property
    def sender_id(self) -> str:
        return normalize_id(self.sender)


@dataclass(frozen=True)
class MessageEvent:
    message: InboundMessage


@dataclass(frozen=True)
class QrEvent:
    payload: str


@dataclass(frozen=True)
class AuthenticatedEvent:
    pass


@dataclass(frozen=True)
class AuthFailureEvent:
    reason: str


@dataclass(frozen=True)
class ReadyEvent:
    pass


@dataclass(frozen=True)
class DisconnectedEvent:
    reason: str = ""


TransportEvent = (
    MessageEvent
    | QrEvent
    | AuthenticatedEvent
    | AuthFailureEvent
    | ReadyEvent
    | DisconnectedEvent
)
