"""Session-establishment arbitration between the terminal and the web surface."""

from .arbiter import AuthArbiter, AuthMethod, AuthOwner, AuthPhase, AuthSession
from .phone import validate_phone_number
from .terminal import OperatorPrompt, TerminalAuthFlow

__all__ = [
    "AuthArbiter",
    "AuthMethod",
    "AuthOwner",
    "AuthPhase",
    "AuthSession",
    "OperatorPrompt",
    "TerminalAuthFlow",
    "validate_phone_number",
]
