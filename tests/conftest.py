"""Shared fixtures: a recording Messenger and in-memory wiring of the services."""

import pytest

from santa.application import (
    ConversationMachine,
    DeliveryError,
    PairingService,
    RelayService,
)
from santa.application.messages import format_message, get_messages
from santa.infrastructure import InMemoryConversationStateStore, InMemoryParticipantRepository


class FakeMessenger:
    """Records every outbound text and relayed copy. Handles in fail_for raise DeliveryError."""

    def __init__(self, fail_for=()):
        self.sent: list[tuple[str, str]] = []
        self.relayed: list[tuple[str, str, object]] = []
        self.fail_for = set(fail_for)

    async def send_text(self, handle, body):
        if handle in self.fail_for:
            raise DeliveryError(f"cannot reach {handle}")
        self.sent.append((handle, body))

    async def relay_content(self, from_handle, to_handle, content):
        if to_handle in self.fail_for:
            raise DeliveryError(f"cannot reach {to_handle}")
        self.relayed.append((from_handle, to_handle, content))

    def texts_for(self, handle):
        return [body for h, body in self.sent if h == handle]


@pytest.fixture
def messages():
    return get_messages()


@pytest.fixture
def text(messages):
    """text(message_id, **vars) -> the rendered catalog entry."""

    def _render(message_id, **template_vars):
        return format_message(messages, message_id, **template_vars)

    return _render


@pytest.fixture
def messenger():
    return FakeMessenger()


@pytest.fixture
def pairing():
    return PairingService(InMemoryParticipantRepository())


@pytest.fixture
def relay(pairing, messenger):
    return RelayService(pairing, messenger)


@pytest.fixture
def states():
    return InMemoryConversationStateStore()


@pytest.fixture
def conversation(pairing, relay, messenger, states):
    return ConversationMachine(pairing, relay, messenger, states)
