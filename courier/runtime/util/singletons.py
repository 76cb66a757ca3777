"""Registry of reset hooks for module-level singletons.

Modules that keep a process-wide instance (``cfg``) register a callable
that rebuilds it; tests call :func:`reset_all_singletons` between cases.
"""

from __future__ import annotations

from collections.abc import Callable

_RESETTERS: list[Callable[[], None]] = []


def register_singleton(reset: Callable[[], None]) -> None:
    if reset not in _RESETTERS:
        _RESETTERS.append(reset)


def reset_all_singletons() -> None:
    for reset in list(_RESETTERS):
        reset()
