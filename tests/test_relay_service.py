"""Tests for RelayService: replies, sender notifications and the anonymous relay."""

import asyncio

import pytest

from santa.application import (
    BulkEntry,
    ContentKind,
    ContentRef,
    DeliveryError,
    InvalidName,
    PairingService,
    RelayService,
    SelfAssignmentError,
)
from santa.domain import NAME_MAX_LENGTH
from santa.infrastructure import InMemoryParticipantRepository

from conftest import FakeMessenger


def _gift(chat_id: str = "100", message_id: int = 7) -> ContentRef:
    return ContentRef(chat_id=chat_id, message_id=message_id, kind=ContentKind.IMAGE)


# --- own name ---


def test_own_name_without_recipient_asks_for_one(relay, messenger, text) -> None:
    outcome = asyncio.run(relay.on_own_name_submitted("100", "Alice"))
    assert not outcome.has_receiver
    assert outcome.participant.name == "Alice"
    assert messenger.texts_for("100") == [text("ask_recipient_name", name="Alice")]


def test_own_name_with_unreachable_recipient(pairing, relay, messenger, text) -> None:
    pairing.bulk_create([BulkEntry("Alice", "Bob"), BulkEntry("Bob")])
    outcome = asyncio.run(relay.on_own_name_submitted("100", "Alice"))
    assert outcome.has_receiver
    expected = text("registration_complete", recipient_status=text("recipient_unreachable"))
    assert messenger.texts_for("100") == [expected]


def test_own_name_with_reachable_recipient(pairing, relay, messenger, text) -> None:
    pairing.bulk_create([BulkEntry("Alice", "Bob"), BulkEntry("Bob")])
    pairing.upsert_by_identity("200", "Bob")
    asyncio.run(relay.on_own_name_submitted("100", "Alice"))
    expected = text("registration_complete", recipient_status=text("recipient_reachable"))
    assert messenger.texts_for("100") == [expected]


def test_own_name_invalid_replies_and_raises(relay, messenger, text) -> None:
    with pytest.raises(InvalidName):
        asyncio.run(relay.on_own_name_submitted("100", "   "))
    assert messenger.texts_for("100") == [text("invalid_name")]


def test_own_name_storage_failure_replies_and_raises(messenger, text) -> None:
    class BrokenRepository(InMemoryParticipantRepository):
        def save(self, participant):
            raise RuntimeError("database down")

    relay = RelayService(PairingService(BrokenRepository()), messenger)
    with pytest.raises(RuntimeError):
        asyncio.run(relay.on_own_name_submitted("100", "Alice"))
    assert messenger.texts_for("100") == [text("registration_failed")]


# --- sender notifications ---


def test_registering_notifies_every_sender_once(pairing, relay, messenger, text) -> None:
    pairing.bulk_create(
        [BulkEntry("Alice", "Bob"), BulkEntry("Carol", "Bob"), BulkEntry("Dave", "Bob"), BulkEntry("Bob")]
    )
    pairing.upsert_by_identity("100", "Alice")
    pairing.upsert_by_identity("300", "Carol")
    # Dave never opened the bot and has no handle.

    asyncio.run(relay.on_own_name_submitted("200", "Bob"))

    notice = text("recipient_registered_notice", name="Bob")
    assert messenger.texts_for("100") == [notice]
    assert messenger.texts_for("300") == [notice]


def test_notification_failure_does_not_stop_others(pairing, text) -> None:
    messenger = FakeMessenger(fail_for={"100"})
    relay = RelayService(pairing, messenger)
    pairing.bulk_create([BulkEntry("Alice", "Bob"), BulkEntry("Carol", "Bob"), BulkEntry("Bob")])
    pairing.upsert_by_identity("100", "Alice")
    pairing.upsert_by_identity("300", "Carol")
    bob = pairing.upsert_by_identity("200", "Bob")

    delivered = asyncio.run(relay.notify_senders(bob))

    assert delivered == 1
    assert messenger.texts_for("300") == [text("recipient_registered_notice", name="Bob")]


# --- recipient name ---


def test_recipient_name_links_and_completes(pairing, relay, messenger, text) -> None:
    pairing.upsert_by_identity("100", "Alice")
    asyncio.run(relay.on_recipient_name_submitted("100", "Bob"))
    assert pairing.find_by_handle("100").recipient.name == "Bob"
    expected = text("registration_complete", recipient_status=text("recipient_unreachable"))
    assert messenger.texts_for("100") == [expected]


def test_recipient_self_assignment_replies_and_raises(pairing, relay, messenger, text) -> None:
    pairing.upsert_by_identity("100", "Alice")
    with pytest.raises(SelfAssignmentError):
        asyncio.run(relay.on_recipient_name_submitted("100", "alice"))
    assert messenger.texts_for("100") == [text("self_assignment")]


def test_recipient_for_unregistered_caller(relay, messenger, text) -> None:
    with pytest.raises(LookupError):
        asyncio.run(relay.on_recipient_name_submitted("100", "Bob"))
    assert messenger.texts_for("100") == [text("link_failed")]


# --- content relay ---


def _paired(pairing) -> None:
    pairing.upsert_by_identity("100", "Alice")
    pairing.link_by_name("100", "Bob")
    pairing.upsert_by_identity("200", "Bob")


def test_content_copied_to_recipient_anonymously(pairing, relay, messenger, text) -> None:
    _paired(pairing)
    gift = _gift()

    asyncio.run(relay.on_content_submitted("100", gift))

    assert messenger.relayed == [("100", "200", gift)]
    assert messenger.texts_for("200") == []
    assert messenger.texts_for("100") == [text("content_sent")]


def test_content_without_reachable_recipient(pairing, relay, messenger, text) -> None:
    pairing.upsert_by_identity("100", "Alice")
    pairing.link_by_name("100", "Bob")
    asyncio.run(relay.on_content_submitted("100", _gift()))
    assert messenger.relayed == []
    assert messenger.texts_for("100") == [text("recipient_not_found")]


def test_content_from_unknown_handle(relay, messenger, text) -> None:
    asyncio.run(relay.on_content_submitted("999", _gift("999")))
    assert messenger.texts_for("999") == [text("recipient_not_found")]


def test_missing_content(pairing, relay, messenger, text) -> None:
    _paired(pairing)
    asyncio.run(relay.on_content_submitted("100", None))
    assert messenger.relayed == []
    assert messenger.texts_for("100") == [text("message_not_found")]


def test_relay_failure_replies_and_raises(pairing, text) -> None:
    messenger = FakeMessenger(fail_for={"200"})
    relay = RelayService(pairing, messenger)
    _paired(pairing)

    with pytest.raises(DeliveryError):
        asyncio.run(relay.on_content_submitted("100", _gift()))
    assert messenger.texts_for("100") == [text("relay_failed")]


def test_recipient_invalid_name_does_not_promise_start(pairing, relay, messenger, text) -> None:
    pairing.upsert_by_identity("100", "Alice")
    with pytest.raises(InvalidName):
        asyncio.run(relay.on_recipient_name_submitted("100", "X" * (NAME_MAX_LENGTH + 1)))
    assert messenger.texts_for("100") == [text("invalid_recipient_name")]
    assert "/start" not in text("invalid_recipient_name")
    assert "/start" not in text("self_assignment")


def test_rename_to_overlong_name_replies_invalid_name(pairing, relay, messenger, text) -> None:
    pairing.upsert_by_identity("100", "Alice")
    with pytest.raises(InvalidName):
        asyncio.run(relay.on_own_name_submitted("100", "X" * (NAME_MAX_LENGTH + 1)))
    assert messenger.texts_for("100") == [text("invalid_name")]
