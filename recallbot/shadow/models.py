"""Cache keys and typed cache entries for the shadow store."""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any


class EntryKind(str, Enum):
    text = "text"
    image = "image"
    video = "video"
    audio = "audio"
    sticker = "sticker"
    document = "document"
    raw = "raw"
    unknown = "unknown"


MEDIA_KINDS = frozenset({
    EntryKind.image,
    EntryKind.video,
    EntryKind.audio,
    EntryKind.sticker,
    EntryKind.document,
})


@dataclass(frozen=True)
class CacheKey:
    """Composite key correlating a cached entry with a later revoke notice."""

    conversation_id: str
    message_id: str

    def __str__(self) -> str:
        return f"{self.conversation_id}:{self.message_id}"

    @classmethod
    def parse(cls, value: str) -> "CacheKey":
        """Parse the canonical ``conversation:message`` form.

        Splits on the last colon so conversation ids containing ``:`` survive.
        """
        conversation_id, sep, message_id = value.rpartition(":")
        if not sep or not conversation_id or not message_id:
            raise ValueError(f"Malformed cache key: {value!r}")
        return cls(conversation_id, message_id)


@dataclass(frozen=True)
class CacheEntry:
    """Fields shared by every cached entry."""

    message_id: str
    conversation_id: str
    sender_id: str
    timestamp_ms: int
    kind: EntryKind

    @property
    def key(self) -> CacheKey:
        return CacheKey(self.conversation_id, self.message_id)

    def to_metadata(self) -> dict[str, Any]:
        """JSON-ready mapping of everything except binary payloads."""
        data = asdict(self)
        data.pop("payload", None)
        data["kind"] = self.kind.value
        return data


@dataclass(frozen=True)
class TextEntry(CacheEntry):
    kind: EntryKind = EntryKind.text
    body: str = ""


@dataclass(frozen=True)
class MediaEntry(CacheEntry):
    payload: bytes | None = field(default=None, repr=False)
    mime_type: str | None = None
    file_name: str | None = None
    caption: str | None = None
    size_bytes: int = 0

    @property
    def recoverable(self) -> bool:
        """True while the payload bytes are still held in memory."""
        return self.payload is not None


@dataclass(frozen=True)
class RawEntry(CacheEntry):
    kind: EntryKind = EntryKind.raw
    raw: dict[str, Any] = field(default_factory=dict)


_COMMON_FIELDS = ("message_id", "conversation_id", "sender_id", "timestamp_ms")


def entry_from_metadata(data: dict[str, Any]) -> CacheEntry:
    """Rebuild an entry from its persisted metadata.

    The payload is never part of the metadata, so media entries come back
    with ``payload=None``. Unrecognized kinds load as ``unknown`` raw entries.

    Raises:
        ValueError: If a common field is missing or has the wrong type.
    """
    common: dict[str, Any] = {}
    for name in _COMMON_FIELDS:
        if name not in data:
            raise ValueError(f"missing field '{name}'")
        common[name] = data[name]
    common["message_id"] = str(common["message_id"])
    common["conversation_id"] = str(common["conversation_id"])
    common["sender_id"] = str(common["sender_id"])
    common["timestamp_ms"] = int(common["timestamp_ms"])

    try:
        kind = EntryKind(data.get("kind"))
    except ValueError:
        kind = EntryKind.unknown

    if kind == EntryKind.text:
        return TextEntry(**common, body=str(data.get("body") or ""))

    if kind in MEDIA_KINDS:
        return MediaEntry(
            **common,
            kind=kind,
            payload=None,
            mime_type=data.get("mime_type"),
            file_name=data.get("file_name"),
            caption=data.get("caption"),
            size_bytes=int(data.get("size_bytes") or 0),
        )

    raw = data.get("raw")
    return RawEntry(**common, kind=kind, raw=raw if isinstance(raw, dict) else {})
