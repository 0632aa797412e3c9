"""Telegram adapter: Messenger on top of python-telegram-bot, and Update -> inbound event."""

import logging

from telegram import Bot, Message, Update
from telegram.error import TelegramError

from santa.application.dto import (
    Command,
    ContentKind,
    ContentMessage,
    ContentRef,
    ConversationStart,
    InboundEvent,
    TextMessage,
)
from santa.application.errors import DeliveryError

logger = logging.getLogger(__name__)

START_COMMAND = "start"

# Message attribute -> kind, checked in order. Animations also carry a document.
_CONTENT_ATTRIBUTES: tuple[tuple[str, ContentKind], ...] = (
    ("photo", ContentKind.IMAGE),
    ("video_note", ContentKind.VIDEO_NOTE),
    ("video", ContentKind.SHORT_VIDEO),
    ("voice", ContentKind.VOICE),
    ("audio", ContentKind.AUDIO),
    ("sticker", ContentKind.STICKER),
    ("document", ContentKind.DOCUMENT),
)


class TelegramMessenger:
    """Sends replies and relays gifts with copyMessage, which carries no forward header."""

    def __init__(self, bot: Bot) -> None:
        self._bot = bot

    async def send_text(self, handle: str, body: str) -> None:
        try:
            await self._bot.send_message(chat_id=handle, text=body)
        except TelegramError as e:
            raise DeliveryError(f"send_message to {handle} failed: {e}") from e

    async def relay_content(self, from_handle: str, to_handle: str, content: ContentRef) -> None:
        try:
            await self._bot.copy_message(
                chat_id=to_handle,
                from_chat_id=content.chat_id,
                message_id=content.message_id,
            )
        except TelegramError as e:
            raise DeliveryError(f"copy_message to {to_handle} failed: {e}") from e


def display_name(user) -> str | None:
    """Build a display name from a Telegram user (first_name, last_name, username)."""
    if not user:
        return None
    first = (getattr(user, "first_name", None) or "").strip()
    last = (getattr(user, "last_name", None) or "").strip()
    if first or last:
        return f"{first} {last}".strip()
    username = getattr(user, "username", None)
    if username and str(username).strip():
        return str(username).strip()
    return None


def _content_ref(message: Message, kind: ContentKind) -> ContentRef:
    return ContentRef(chat_id=str(message.chat_id), message_id=message.message_id, kind=kind)


def event_from_update(update: Update | None) -> InboundEvent | None:
    """Map a Telegram update to an inbound event. Returns None if nothing relevant."""
    if not update or not update.effective_user:
        return None
    message = update.message
    if message is None:
        return None
    handle = str(update.effective_user.id)

    if message.text is not None:
        text = message.text.strip()
        if text.startswith("/"):
            head, _, rest = text[1:].partition(" ")
            name = head.split("@", 1)[0].lower()
            if name == START_COMMAND:
                return ConversationStart(handle=handle, display_name=display_name(update.effective_user))
            return Command(handle=handle, name=name, args=tuple(rest.split()))
        return TextMessage(
            handle=handle,
            text=message.text,
            content=_content_ref(message, ContentKind.TEXT),
        )

    for attr, kind in _CONTENT_ATTRIBUTES:
        if getattr(message, attr, None):
            return ContentMessage(handle=handle, kind=kind, content=_content_ref(message, kind))
    logger.debug("Ignoring unsupported message from %s", handle)
    return None
