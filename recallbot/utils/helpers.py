"""Small time and identifier helpers shared across recallbot."""

import time


def now_ms() -> int:
    """Current wall-clock time in milliseconds."""
    return int(time.time() * 1000)


def local_part(identifier: str) -> str:
    """Return the part of a chat identifier before ``@``.

    ``"4477@s.whatsapp.net"`` -> ``"4477"``; plain ids are returned unchanged.
    """
    return identifier.split("@", 1)[0]
