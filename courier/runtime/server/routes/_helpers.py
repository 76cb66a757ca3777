"""Shared helpers for route handlers."""

from __future__ import annotations

import json
from typing import Any

from aiohttp import web

from ...errors import (
    AuthFailure,
    AuthStateError,
    CourierError,
    DeliveryError,
    OwnershipConflict,
    PairingCodeError,
    TransportUnavailable,
    ValidationError,
)

_STATUS_BY_ERROR: tuple[tuple[type[CourierError], int], ...] = (
    (ValidationError, 400),
    (OwnershipConflict, 403),
    (AuthStateError, 409),
    (AuthFailure, 409),
    (PairingCodeError, 502),
    (DeliveryError, 502),
    (TransportUnavailable, 503),
)


def error_response(message: str, status: int, **extra: Any) -> web.Response:
    """Return the standard ``{"status": "error"}`` body."""
    return web.json_response({"status": "error", "message": message, **extra}, status=status)


def courier_error_response(exc: CourierError) -> web.Response:
    """Translate a runtime error into its HTTP status."""
    for error_type, status in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            break
    else:
        status = 500
    extra: dict[str, Any] = {}
    if isinstance(exc, OwnershipConflict):
        extra["owner"] = exc.owner
    return error_response(str(exc), status, **extra)


async def read_json(req: web.Request) -> dict[str, Any]:
    """Parse a JSON object body; anything else is treated as empty."""
    if not req.can_read_body:
        return {}
    try:
        data = await req.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return {}
    return data if isinstance(data, dict) else {}
