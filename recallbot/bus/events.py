"""Event types for the event bus."""

from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Callable

MediaStreamFactory = Callable[[], AsyncIterator[bytes]]
# Returns a fresh lazy byte stream for the attached media


@dataclass
class MediaAttachment:
    """A media attachment on an inbound conversation event.

    The payload is never downloaded by the channel; ``open_stream`` hands the
    consumer a lazy chunk iterator that it drains itself.
    """

    kind: str  # "image" | "video" | "audio" | "sticker" | "document"
    open_stream: MediaStreamFactory
    mime_type: str | None = None
    file_name: str | None = None
    caption: str | None = None


@dataclass(frozen=True)
class MessageRef:
    """Reference to a previously delivered message."""

    conversation_id: str
    message_id: str


@dataclass
class ConversationEvent:
    """Event received from a chat channel.

    Regular messages and revoke notices travel on the same stream; an event
    with ``revoked`` set is a revoke notice for the referenced message.
    """

    channel: str  # e.g. "telegram"
    conversation_id: str
    message_id: str | None = None
    sender_id: str | None = None
    is_group: bool = False
    timestamp_ms: int | None = None
    text: str | None = None  # Plain or quoted/extended text
    media: MediaAttachment | None = None
    raw: dict[str, Any] | None = None  # Unrecognized content, kept opaque
    revoked: MessageRef | None = None

    @property
    def is_revoke(self) -> bool:
        return self.revoked is not None


@dataclass
class OutboundReport:
    """Report sent to the operator's conversation."""

    chat_id: str
    kind: str  # "text" | "image" | "video" | "audio" | "sticker" | "document"
    text: str = ""
    data: bytes | None = None
    caption: str | None = None
    mime_type: str | None = None
    file_name: str | None = None
    mentions: list[str] = field(default_factory=list)
