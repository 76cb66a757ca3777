"""Runtime configuration."""

from .settings import AuthFrontend, Settings, cfg

__all__ = ["AuthFrontend", "Settings", "cfg"]
