"""Telegram channel implementation using python-telegram-bot.

The bot is connected to a Telegram Business account: messages in the owner's
chats arrive as ``business_message`` updates and deletions as
``deleted_business_messages`` updates, which map directly onto conversation
events and revoke notices.
"""

import asyncio
from functools import partial
from typing import Any, AsyncIterator, Callable

import httpx
from loguru import logger
from telegram import MessageEntity, Update
from telegram.ext import (
    Application,
    BusinessMessagesDeletedHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from recallbot.bus.events import (
    ConversationEvent,
    MediaAttachment,
    MessageRef,
    OutboundReport,
)
from recallbot.bus.queue import EventBus
from recallbot.channels.base import BaseChannel
from recallbot.config.schema import TelegramConfig
from recallbot.utils.helpers import local_part

TELEGRAM_MAX_LENGTH = 4096
TELEGRAM_MAX_CAPTION = 1024
DOWNLOAD_CHUNK_SIZE = 64 * 1024
DEFAULT_AUDIO_NAME = "audio"

StreamOpener = Callable[[str], AsyncIterator[bytes]]
# Takes file_id, returns a lazy chunk stream


def _split_plain_text(text: str, max_length: int = TELEGRAM_MAX_LENGTH) -> list[str]:
    """Split plain text into chunks that fit Telegram's message limit."""
    if len(text) <= max_length:
        return [text]

    chunks: list[str] = []
    remaining = text
    min_pos = max_length // 4

    while remaining:
        if len(remaining) <= max_length:
            chunks.append(remaining)
            break

        pos = remaining.rfind('\n\n', 0, max_length)
        if pos <= min_pos:
            pos = remaining.rfind('\n', 0, max_length)
        if pos <= min_pos:
            pos = remaining.rfind(' ', 0, max_length)
        if pos <= min_pos:
            pos = max_length

        chunks.append(remaining[:pos])
        remaining = remaining[pos:].lstrip('\n')

    return chunks


def _truncate_caption(caption: str | None) -> str | None:
    if caption is None or len(caption) <= TELEGRAM_MAX_CAPTION:
        return caption
    return caption[:TELEGRAM_MAX_CAPTION - 3] + "..."


def _utf16_len(text: str) -> int:
    # Entity offsets are counted in UTF-16 code units
    return len(text.encode("utf-16-le")) // 2


def _mention_entities(text: str | None, mentions: list[str]) -> list[MessageEntity] | None:
    """Link ``@<user id>`` tokens in ``text`` to the numeric users they name.

    Telegram resolves ``@username`` on its own; a bare numeric id needs a
    ``tg://user`` link to mention anyone.
    """
    if not text:
        return None
    entities = []
    for mention in mentions:
        user_id = local_part(mention)
        if not user_id.isdigit():
            continue
        token = f"@{user_id}"
        pos = text.find(token)
        if pos < 0:
            continue
        entities.append(MessageEntity(
            type=MessageEntity.TEXT_LINK,
            offset=_utf16_len(text[:pos]),
            length=_utf16_len(token),
            url=f"tg://user?id={user_id}",
        ))
    return entities or None


def _sticker_mime(sticker: Any) -> str:
    if getattr(sticker, "is_animated", False):
        return "application/x-tgsticker"
    if getattr(sticker, "is_video", False):
        return "video/webm"
    return "image/webp"


def media_from_message(message: Any, open_stream: StreamOpener) -> MediaAttachment | None:
    """Describe the media attached to a Telegram message, if any.

    Nothing is downloaded here; the attachment only knows how to open a
    stream for its file when asked.
    """
    caption = message.caption

    def attach(kind: str, file_obj: Any, mime_type: str | None) -> MediaAttachment:
        return MediaAttachment(
            kind=kind,
            open_stream=partial(open_stream, file_obj.file_id),
            mime_type=mime_type,
            file_name=getattr(file_obj, "file_name", None),
            caption=caption,
        )

    if message.photo:
        return attach("image", message.photo[-1], "image/jpeg")  # Largest resolution
    if message.video:
        return attach("video", message.video, message.video.mime_type)
    if message.animation:
        return attach("video", message.animation, message.animation.mime_type)
    if message.video_note:
        return attach("video", message.video_note, "video/mp4")
    if message.voice:
        return attach("audio", message.voice, message.voice.mime_type or "audio/ogg")
    if message.audio:
        return attach("audio", message.audio, message.audio.mime_type)
    if message.sticker:
        return attach("sticker", message.sticker, _sticker_mime(message.sticker))
    if message.document:
        return attach("document", message.document, message.document.mime_type)
    return None


def event_from_message(message: Any, open_stream: StreamOpener) -> ConversationEvent:
    """Map a Telegram (business) message onto a conversation event."""
    chat = message.chat
    user = message.from_user
    if user is not None:
        sender_id = user.username or str(user.id)
    else:
        sender_id = str(chat.id)

    event = ConversationEvent(
        channel="telegram",
        conversation_id=str(chat.id),
        message_id=str(message.message_id),
        sender_id=sender_id,
        is_group=chat.type != "private",
        timestamp_ms=int(message.date.timestamp() * 1000) if message.date else None,
    )

    if message.text is not None:
        event.text = message.text
        return event

    media = media_from_message(message, open_stream)
    if media is not None:
        event.media = media
        return event

    event.raw = message.to_dict()
    return event


def events_from_deletion(deleted: Any) -> list[ConversationEvent]:
    """Map a deleted-business-messages update onto revoke notices."""
    chat = deleted.chat
    conversation_id = str(chat.id)
    return [
        ConversationEvent(
            channel="telegram",
            conversation_id=conversation_id,
            is_group=chat.type != "private",
            revoked=MessageRef(conversation_id, str(message_id)),
        )
        for message_id in deleted.message_ids
    ]


class TelegramChannel(BaseChannel):
    """
    Telegram Business channel using long polling.

    Simple and reliable - no webhook/public IP needed.
    """

    name = "telegram"

    def __init__(self, config: TelegramConfig, bus: EventBus):
        super().__init__(config, bus)
        self.config: TelegramConfig = config
        self._app: Application | None = None

    async def start(self) -> None:
        """Start the Telegram bot with long polling."""
        if not self.config.token:
            logger.error("Telegram bot token not configured")
            return

        self._running = True

        builder = Application.builder().token(self.config.token)
        if self.config.proxy:
            builder = builder.proxy(self.config.proxy).get_updates_proxy(self.config.proxy)
        self._app = builder.build()

        self._app.add_handler(
            MessageHandler(filters.UpdateType.BUSINESS_MESSAGE, self._on_business_message)
        )
        self._app.add_handler(BusinessMessagesDeletedHandler(self._on_deleted_business_messages))

        logger.info("Starting Telegram bot (polling mode)...")

        await self._app.initialize()
        await self._app.start()

        bot_info = await self._app.bot.get_me()
        logger.info(f"Telegram bot @{bot_info.username} connected")

        # Deletions queued while offline are still delivered
        await self._app.updater.start_polling(
            allowed_updates=["business_message", "deleted_business_messages"],
            drop_pending_updates=False,
        )

        while self._running:
            await asyncio.sleep(1)

    async def stop(self) -> None:
        """Stop the Telegram bot."""
        self._running = False

        if self._app:
            logger.info("Stopping Telegram bot...")
            await self._app.updater.stop()
            await self._app.stop()
            await self._app.shutdown()
            self._app = None

    async def send_report(self, report: OutboundReport) -> None:
        """Send a recovery report. Raises if the bot is down or Telegram rejects it."""
        if not self._app:
            raise RuntimeError("Telegram bot not running")

        bot = self._app.bot
        chat_id = int(report.chat_id)
        caption = _truncate_caption(report.caption)
        caption_entities = _mention_entities(caption, report.mentions)

        if report.kind == "text":
            for chunk in _split_plain_text(report.text):
                await bot.send_message(
                    chat_id=chat_id, text=chunk,
                    entities=_mention_entities(chunk, report.mentions),
                )
        elif report.kind == "image":
            await bot.send_photo(
                chat_id=chat_id, photo=report.data, caption=caption,
                caption_entities=caption_entities,
            )
        elif report.kind == "video":
            await bot.send_video(
                chat_id=chat_id, video=report.data, caption=caption,
                caption_entities=caption_entities, filename=report.file_name,
            )
        elif report.kind == "audio":
            await bot.send_audio(
                chat_id=chat_id, audio=report.data, caption=caption,
                caption_entities=caption_entities,
                filename=report.file_name or DEFAULT_AUDIO_NAME,
            )
        elif report.kind == "sticker":
            await bot.send_sticker(chat_id=chat_id, sticker=report.data)
        elif report.kind == "document":
            await bot.send_document(
                chat_id=chat_id, document=report.data, caption=caption,
                caption_entities=caption_entities, filename=report.file_name,
            )
        else:
            raise ValueError(f"Unsupported report kind: {report.kind}")

    async def resolve_conversation_name(self, conversation_id: str) -> str:
        """Look up the chat title (or the user's name for private chats)."""
        if not self._app:
            raise RuntimeError("Telegram bot not running")
        chat = await self._app.bot.get_chat(chat_id=int(conversation_id))
        return chat.title or chat.full_name or chat.username or ""

    async def open_file_stream(self, file_id: str) -> AsyncIterator[bytes]:
        """Stream a Telegram file's bytes without buffering it here."""
        if not self._app:
            raise RuntimeError("Telegram bot not running")
        file = await self._app.bot.get_file(file_id)
        async with httpx.AsyncClient(proxy=self.config.proxy) as client:
            async with client.stream("GET", file.file_path) as response:
                response.raise_for_status()
                async for chunk in response.aiter_bytes(DOWNLOAD_CHUNK_SIZE):
                    yield chunk

    async def _on_business_message(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Publish a message from one of the business account's chats."""
        message = update.business_message
        if not message:
            return
        event = event_from_message(message, self.open_file_stream)
        logger.debug(f"Telegram business message {event.conversation_id}:{event.message_id}")
        await self.bus.publish([event])

    async def _on_deleted_business_messages(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE,
    ) -> None:
        """Publish revoke notices for deleted business messages as one batch."""
        deleted = update.deleted_business_messages
        if not deleted:
            return
        events = events_from_deletion(deleted)
        logger.debug(f"Telegram deletion of {len(events)} message(s) in {deleted.chat.id}")
        await self.bus.publish(events)
