"""Turn revoke notices into recovery reports for the operator."""

from loguru import logger

from recallbot.bus.events import ConversationEvent, OutboundReport
from recallbot.channels.base import BaseChannel
from recallbot.shadow.models import (
    MEDIA_KINDS,
    CacheEntry,
    CacheKey,
    EntryKind,
    MediaEntry,
    TextEntry,
)
from recallbot.shadow.outcome import Outcome
from recallbot.shadow.store import ShadowStore
from recallbot.utils.helpers import local_part

UNKNOWN_SENDER = "unknown"
DEFAULT_AUDIO_MIME = "audio/mpeg"
DEFAULT_DOCUMENT_NAME = "file"

# Media kinds whose reports carry the header as a caption
_CAPTIONED_KINDS = {EntryKind.image, EntryKind.video, EntryKind.document}


def build_header(context: str, sender_id: str) -> str:
    return f"🛡️ *Anti-Delete*\nGroup: {context}\nUser: @{local_part(sender_id)}"


def build_not_found(chat_id: str, context: str) -> OutboundReport:
    return OutboundReport(
        chat_id=chat_id,
        kind="text",
        text=f"⚠️ A deleted message was not found in cache in group: {context}",
    )


def render_report(chat_id: str, entry: CacheEntry, context: str) -> OutboundReport:
    """Render the recovery report for a cached entry.

    Text is quoted back, media is re-sent as the same kind, and anything that
    cannot be reproduced (raw content, media without its payload) becomes a
    notice.
    """
    sender = entry.sender_id or UNKNOWN_SENDER
    header = build_header(context, sender)
    mentions = [sender]

    if isinstance(entry, TextEntry):
        return OutboundReport(
            chat_id=chat_id,
            kind="text",
            text=f"{header}\n\nDeleted message:\n{entry.body}",
            mentions=mentions,
        )

    if isinstance(entry, MediaEntry) and entry.kind in MEDIA_KINDS:
        if not entry.recoverable:
            return OutboundReport(
                chat_id=chat_id,
                kind="text",
                text=f"{header}\n(Content type not recoverable)",
                mentions=mentions,
            )

        report = OutboundReport(
            chat_id=chat_id,
            kind=entry.kind.value,
            data=entry.payload,
            mime_type=entry.mime_type,
            file_name=entry.file_name,
        )
        if entry.kind == EntryKind.audio:
            report.mime_type = entry.mime_type or DEFAULT_AUDIO_MIME
        elif entry.kind == EntryKind.document:
            report.file_name = entry.file_name or DEFAULT_DOCUMENT_NAME
        if entry.kind in _CAPTIONED_KINDS:
            report.caption = f"{header}\nOriginal caption: {entry.caption or '—'}"
            report.mentions = mentions
        return report

    return OutboundReport(
        chat_id=chat_id,
        kind="text",
        text=f"{header}\n(Content type not supported)",
        mentions=mentions,
    )


class RevokeHandler:
    """Looks up revoked messages and reports them to the operator.

    Each revoke notice yields at most one report. Lookup misses are a normal
    outcome, not an error; delivery failures are logged and never retried.
    """

    def __init__(self, store: ShadowStore, channel: BaseChannel, owner_chat_id: str):
        self.store = store
        self.channel = channel
        self.owner_chat_id = owner_chat_id

    async def handle(self, event: ConversationEvent) -> Outcome:
        """Process one revoke notice. Never raises."""
        ref = event.revoked
        if ref is None:
            return Outcome.skipped("revoke", reason="not a revoke notice")

        conversation_id = ref.conversation_id or event.conversation_id
        if not conversation_id or not ref.message_id:
            return Outcome.skipped("revoke", reason="malformed revoke: missing key")

        key = CacheKey(conversation_id, ref.message_id)
        if not self.owner_chat_id:
            return Outcome.skipped("revoke", str(key), "no operator chat configured")

        context = await self._resolve_context(conversation_id, event.is_group)

        entry = self.store.get(key)
        if entry is None:
            report = build_not_found(self.owner_chat_id, context)
            result = "not found"
        else:
            report = render_report(self.owner_chat_id, entry, context)
            result = f"recovered {entry.kind.value}"

        try:
            await self.channel.send_report(report)
        except Exception as e:
            logger.error(f"AntiDelete: failed to send report for {key}: {e}")
            return Outcome.failed("revoke", str(key), f"report dispatch failed: {e}")

        return Outcome.ok("revoke", str(key), result)

    async def _resolve_context(self, conversation_id: str, is_group: bool) -> str:
        if not is_group:
            return conversation_id
        try:
            name = await self.channel.resolve_conversation_name(conversation_id)
        except Exception as e:
            logger.debug(f"AntiDelete: name lookup for {conversation_id} failed: {e}")
            return conversation_id
        return name or conversation_id
