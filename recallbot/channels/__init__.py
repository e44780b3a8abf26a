"""Chat transports."""

from recallbot.channels.base import BaseChannel

__all__ = ["BaseChannel"]
