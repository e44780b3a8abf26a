"""Event bus for inbound conversation events."""

from recallbot.bus.events import (
    ConversationEvent,
    MediaAttachment,
    MessageRef,
    OutboundReport,
)
from recallbot.bus.queue import EventBus

__all__ = [
    "ConversationEvent",
    "EventBus",
    "MediaAttachment",
    "MessageRef",
    "OutboundReport",
]
