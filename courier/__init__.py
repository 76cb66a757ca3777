"""Courier -- a command-driven automation agent for chat transports."""

__version__ = "0.3.0"
