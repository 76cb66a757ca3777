"""Chat transport contract -- events, protocol, and factory loading."""

from .base import EmitFn, Transport, TransportFactory
from .events import (
    BROADCAST_CHAT_ID,
    AuthenticatedEvent,
    AuthFailureEvent,
    DisconnectedEvent,
    InboundMessage,
    MessageEvent,
    QrEvent,
    ReadyEvent,
    TransportEvent,
    normalize_id,
)
from .loader import load_transport_factory

__all__ = [
    "BROADCAST_CHAT_ID",
    "AuthFailureEvent",
    "AuthenticatedEvent",
    "DisconnectedEvent",
    "EmitFn",
    "InboundMessage",
    "MessageEvent",
    "QrEvent",
    "ReadyEvent",
    "Transport",
    "TransportEvent",
    "TransportFactory",
    "load_transport_factory",
    "normalize_id",
]
