"""Utility helpers."""

from recallbot.utils.helpers import local_part, now_ms

__all__ = ["local_part", "now_ms"]
