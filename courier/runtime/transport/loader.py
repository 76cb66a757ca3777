"""Resolve a transport factory from a ``module:callable`` reference."""

from __future__ import annotations

import importlib
import logging

from ..errors import ValidationError
from .base import TransportFactory

logger = logging.getLogger(__name__)


def load_transport_factory(ref: str) -> TransportFactory:
    module_name, sep, attr = ref.partition(":")
    if not sep or not module_name or not attr:
        raise ValidationError(
            f"COURIER_TRANSPORT must look like 'package.module:factory', got {ref!r}"
        )
    module = importlib.import_module(module_name)
    factory = getattr(module, attr, None)
    if not callable(factory):
        raise ValidationError(f"{ref!r} does not name a callable transport factory")
    logger.info("[transport.load] using factory %s", ref)
    return factory
