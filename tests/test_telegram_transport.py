"""Tests for the Telegram adapter: Update -> inbound event and the Messenger."""

import asyncio

import pytest
from telegram import Update
from telegram.error import TelegramError

from santa.application import (
    Command,
    ContentKind,
    ContentMessage,
    ContentRef,
    ConversationStart,
    DeliveryError,
    TextMessage,
)
from santa.infrastructure import TelegramMessenger, event_from_update
from santa.infrastructure.telegram_transport import display_name


def _update(**message_fields) -> Update:
    message = {
        "message_id": 5,
        "date": 1700000000,
        "chat": {"id": 42, "type": "private"},
        "from": {"id": 42, "is_bot": False, "first_name": "Alice", "last_name": "Smith"},
    }
    message.update(message_fields)
    return Update.de_json({"update_id": 1, "message": message}, None)


def test_start_command():
    event = event_from_update(_update(text="/start"))
    assert event == ConversationStart(handle="42", display_name="Alice Smith")


def test_send_command_with_bot_suffix_and_args():
    event = event_from_update(_update(text="/Send@santa_bot now please"))
    assert event == Command(handle="42", name="send", args=("now", "please"))


def test_plain_text_carries_content_ref():
    event = event_from_update(_update(text="Bob Brown"))
    assert isinstance(event, TextMessage)
    assert event.text == "Bob Brown"
    assert event.content == ContentRef(chat_id="42", message_id=5, kind=ContentKind.TEXT)


def test_photo():
    photo = [{"file_id": "p1", "file_unique_id": "u1", "width": 90, "height": 90}]
    event = event_from_update(_update(photo=photo, caption="for you"))
    assert isinstance(event, ContentMessage)
    assert event.kind is ContentKind.IMAGE
    assert event.content == ContentRef(chat_id="42", message_id=5, kind=ContentKind.IMAGE)


@pytest.mark.parametrize(
    "field, payload, kind",
    [
        ("voice", {"file_id": "v", "file_unique_id": "uv", "duration": 3}, ContentKind.VOICE),
        ("document", {"file_id": "d", "file_unique_id": "ud"}, ContentKind.DOCUMENT),
        ("audio", {"file_id": "a", "file_unique_id": "ua", "duration": 60}, ContentKind.AUDIO),
    ],
)
def test_media_kinds(field, payload, kind):
    event = event_from_update(_update(**{field: payload}))
    assert isinstance(event, ContentMessage)
    assert event.kind is kind


def test_irrelevant_updates():
    assert event_from_update(None) is None
    assert event_from_update(Update.de_json({"update_id": 2}, None)) is None
    location = {"latitude": 1.0, "longitude": 2.0}
    assert event_from_update(_update(location=location)) is None


def test_display_name_fallbacks():
    class User:
        first_name = ""
        last_name = None
        username = "santa_fan"

    assert display_name(User()) == "santa_fan"
    assert display_name(None) is None


class _RecordingBot:
    def __init__(self, fail: bool = False):
        self.calls = []
        self.fail = fail

    async def send_message(self, **kwargs):
        if self.fail:
            raise TelegramError("Forbidden: bot was blocked by the user")
        self.calls.append(("send_message", kwargs))

    async def copy_message(self, **kwargs):
        if self.fail:
            raise TelegramError("Bad Request: message to copy not found")
        self.calls.append(("copy_message", kwargs))


def test_messenger_sends_and_copies():
    bot = _RecordingBot()
    messenger = TelegramMessenger(bot)
    ref = ContentRef(chat_id="42", message_id=5, kind=ContentKind.IMAGE)

    asyncio.run(messenger.send_text("7", "hello"))
    asyncio.run(messenger.relay_content("42", "7", ref))

    assert bot.calls == [
        ("send_message", {"chat_id": "7", "text": "hello"}),
        ("copy_message", {"chat_id": "7", "from_chat_id": "42", "message_id": 5}),
    ]


def test_messenger_wraps_transport_errors():
    messenger = TelegramMessenger(_RecordingBot(fail=True))
    with pytest.raises(DeliveryError, match="blocked"):
        asyncio.run(messenger.send_text("7", "hello"))
    with pytest.raises(DeliveryError, match="copy_message"):
        asyncio.run(
            messenger.relay_content("42", "7", ContentRef(chat_id="42", message_id=5))
        )
