"""Courier runtime -- dispatch, authentication arbitration, and control surface."""

from .. import __version__

__all__ = ["__version__"]
