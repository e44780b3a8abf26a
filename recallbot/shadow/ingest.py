"""Classify inbound conversation events into cache entries."""

import asyncio

from loguru import logger

from recallbot.bus.events import ConversationEvent, MediaAttachment
from recallbot.shadow.models import (
    MEDIA_KINDS,
    CacheEntry,
    CacheKey,
    EntryKind,
    MediaEntry,
    RawEntry,
    TextEntry,
)
from recallbot.shadow.outcome import Outcome
from recallbot.shadow.store import ShadowStore
from recallbot.utils.helpers import now_ms

DEFAULT_ACQUISITION_TIMEOUT_S = 60.0
DEFAULT_MAX_MEDIA_BYTES = 64 * 1024 * 1024


class AcquisitionError(Exception):
    """Raised when a media payload cannot be fully acquired."""


class UnsupportedContentError(ValueError):
    """Raised when an event carries content the store cannot represent."""


class IngestClassifier:
    """Turns each inbound event into a typed entry and stores it.

    Text is stored synchronously. Media needs its lazy byte stream drained
    first, which may take a while; a revoke notice for the same message that
    is handled before the drain completes will miss. That window is accepted:
    the miss is reported as "not found" like any other.
    """

    def __init__(
        self,
        store: ShadowStore,
        acquisition_timeout_s: float = DEFAULT_ACQUISITION_TIMEOUT_S,
        max_media_bytes: int = DEFAULT_MAX_MEDIA_BYTES,
    ):
        self.store = store
        self.acquisition_timeout_s = acquisition_timeout_s
        self.max_media_bytes = max_media_bytes

    async def ingest(self, event: ConversationEvent) -> Outcome:
        """Classify ``event`` and put the result into the store.

        Never raises: failures come back as a failed outcome and the event
        is dropped.
        """
        if not event.conversation_id:
            return Outcome.skipped("ingest", reason="event has no conversation id")

        message_id = event.message_id or f"{event.conversation_id}-{now_ms()}"
        key = CacheKey(event.conversation_id, message_id)

        try:
            entry = await self.classify(event, message_id)
        except AcquisitionError as e:
            return Outcome.failed("ingest", str(key), f"media acquisition failed: {e}")
        except UnsupportedContentError as e:
            return Outcome.failed("ingest", str(key), str(e))
        except Exception as e:
            logger.exception(f"AntiDelete: failed to classify event {key}")
            return Outcome.failed("ingest", str(key), f"classification failed: {e}")

        evicted = self.store.put(key, entry)
        reason = f"{entry.kind.value}, evicted {evicted}" if evicted else entry.kind.value
        return Outcome.ok("ingest", str(key), reason)

    async def classify(self, event: ConversationEvent, message_id: str) -> CacheEntry:
        """Build the entry for ``event``.

        Raises:
            UnsupportedContentError: If the media kind is not cacheable.
            AcquisitionError: If the media payload cannot be acquired.
        """
        common = {
            "message_id": message_id,
            "conversation_id": event.conversation_id,
            "sender_id": event.sender_id or event.conversation_id,
            "timestamp_ms": event.timestamp_ms or now_ms(),
        }

        if event.text is not None:
            return TextEntry(**common, body=event.text)

        if event.media is not None:
            kind = self._media_kind(event.media)
            payload = await self.acquire(event.media)
            return MediaEntry(
                **common,
                kind=kind,
                payload=payload,
                mime_type=event.media.mime_type,
                file_name=event.media.file_name,
                caption=event.media.caption,
                size_bytes=len(payload),
            )

        return RawEntry(**common, raw=dict(event.raw or {}))

    async def acquire(self, media: MediaAttachment) -> bytes:
        """Drain the media stream into memory, bounded by time and size."""
        try:
            return await asyncio.wait_for(self._drain(media), timeout=self.acquisition_timeout_s)
        except asyncio.TimeoutError as e:
            raise AcquisitionError(
                f"timed out after {self.acquisition_timeout_s}s"
            ) from e
        except AcquisitionError:
            raise
        except Exception as e:
            raise AcquisitionError(str(e) or type(e).__name__) from e

    async def _drain(self, media: MediaAttachment) -> bytes:
        buffer = bytearray()
        async for chunk in media.open_stream():
            buffer.extend(chunk)
            if len(buffer) > self.max_media_bytes:
                raise AcquisitionError(
                    f"payload exceeds {self.max_media_bytes} bytes"
                )
        return bytes(buffer)

    @staticmethod
    def _media_kind(media: MediaAttachment) -> EntryKind:
        try:
            kind = EntryKind(media.kind)
        except ValueError:
            kind = None
        if kind not in MEDIA_KINDS:
            raise UnsupportedContentError(f"unsupported media kind '{media.kind}'")
        return kind
