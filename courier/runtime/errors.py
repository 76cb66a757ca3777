"""Error types shared by the registry, dispatcher, arbiter and HTTP surface."""

from __future__ import annotations


class CourierError(Exception):
    """Base class for every error raised by the runtime."""


class DuplicateNameError(CourierError):
    """A command name or alias collides with an already registered command."""

    def __init__(self, token: str, existing: str) -> None:
        super().__init__(f"command token {token!r} is already registered by {existing!r}")
        self.token = token
        self.existing = existing


class ValidationError(CourierError, ValueError):
    """User-supplied input (phone number, prefix, mode) is malformed."""


class AuthFailure(CourierError):
    """The transport rejected the supplied credentials."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"authentication failed: {reason}")
        self.reason = reason


class OwnershipConflict(CourierError):
    """Another entry point already drives the authentication session."""

    def __init__(self, owner: str, requested: str) -> None:
        super().__init__(
            f"authentication is already in progress from the {owner} entry point"
        )
        self.owner = owner
        self.requested = requested


class AuthStateError(CourierError):
    """The requested authentication step is not valid in the current phase."""


class PairingCodeError(CourierError):
    """The transport could not produce a pairing code."""


class TransportUnavailable(CourierError):
    """No ready transport session exists to carry the request."""


class HandlerError(CourierError):
    """An exception escaped a command handler."""

    def __init__(self, command: str, cause: BaseException) -> None:
        super().__init__(f"{command}: {cause}")
        self.command = command
        self.__cause__ = cause


class DeliveryError(CourierError):
    """The transport failed to deliver an outbound message."""
