"""Conversation state machine: classify an inbound chat event by the sender's state and run it."""

import logging

from santa.application.dto import (
    Command,
    ContentMessage,
    ContentRef,
    ConversationStart,
    InboundEvent,
    TextMessage,
)
from santa.application.machine import get_machine, transition
from santa.application.messages import format_message, get_messages
from santa.application.pairing_service import PairingService
from santa.application.ports import ConversationStateStore, Messenger
from santa.application.relay_service import RelayService
from santa.domain import ConversationState, normalize_handle

logger = logging.getLogger(__name__)

SEND_COMMAND = "send"


class ConversationMachine:
    """Registration -> pairing -> relay, one participant at a time.

    Waiting states live in the ConversationStateStore. A failed handler leaves
    the waiting state exactly like a successful one; the participant re-arms
    the flow with /start or /send.
    """

    def __init__(
        self,
        pairing: PairingService,
        relay: RelayService,
        messenger: Messenger,
        states: ConversationStateStore,
        *,
        messages: dict[str, str] | None = None,
        machine: dict | None = None,
    ) -> None:
        self._pairing = pairing
        self._relay = relay
        self._messenger = messenger
        self._states = states
        self._messages = messages if messages is not None else get_messages()
        self._machine = machine if machine is not None else get_machine()

    def state_of(self, handle: int | str) -> ConversationState:
        return self._states.get(normalize_handle(handle))

    async def handle(self, event: InboundEvent) -> None:
        if isinstance(event, ConversationStart):
            await self._on_start(event)
        elif isinstance(event, Command):
            await self._on_command(event)
        elif isinstance(event, TextMessage):
            await self._on_text(event)
        elif isinstance(event, ContentMessage):
            await self._on_content(event)

    def _advance(self, handle: str, current: ConversationState, xevent: str) -> ConversationState:
        next_value = transition(self._machine, current.value, xevent)
        new_state = ConversationState(next_value) if next_value else current
        if new_state is ConversationState.IDLE:
            self._states.clear(handle)
        else:
            self._states.set(handle, new_state)
        if new_state is not current:
            logger.debug("Chat handle %s: %s -> %s", handle, current.value, new_state.value)
        return new_state

    def _text(self, message_id: str, **template_vars) -> str:
        return format_message(self._messages, message_id, **template_vars)

    async def _reply(self, handle: str, message_id: str, **template_vars) -> None:
        await self._messenger.send_text(handle, self._text(message_id, **template_vars))

    async def _reply_failure(self, handle: str) -> None:
        try:
            await self._reply(handle, "request_failed")
        except Exception:
            logger.exception("Could not deliver failure reply to chat handle %s", handle)

    async def _on_start(self, event: ConversationStart) -> None:
        handle = normalize_handle(event.handle)
        logger.info("Start received from chat handle %s (%s)", handle, event.display_name)
        try:
            await self._start(handle)
        except Exception:
            logger.exception("Error handling start for chat handle %s", handle)
            await self._reply_failure(handle)

    async def _start(self, handle: str) -> None:
        participant = self._pairing.find_by_handle(handle)
        if participant is None:
            self._advance(handle, self._states.get(handle), "START_UNREGISTERED")
            await self._reply(handle, "welcome")
            return

        logger.info("Participant %r already registered, showing status", participant.name)
        lines = [self._text("status_greeting", name=participant.name), ""]
        if participant.recipient is None:
            lines.append(self._text("status_no_recipient"))
        elif participant.recipient.is_reachable:
            lines.append(self._text("status_recipient_registered"))
        else:
            lines.append(self._text("status_recipient_pending"))
        if self._pairing.has_secret_santa(handle):
            lines.append(self._text("status_santa_assigned"))
        else:
            lines.append(self._text("status_santa_pending"))
        lines.extend(["", self._text("status_footer")])
        await self._messenger.send_text(handle, "\n".join(lines))

    async def _on_command(self, event: Command) -> None:
        handle = normalize_handle(event.handle)
        if event.name.lower() != SEND_COMMAND:
            logger.debug("Ignoring command /%s from %s", event.name, handle)
            return
        logger.info("Send command received from chat handle %s", handle)
        try:
            await self._send(handle)
        except Exception:
            logger.exception("Error handling send for chat handle %s", handle)
            await self._reply_failure(handle)

    async def _send(self, handle: str) -> None:
        participant = self._pairing.find_by_handle(handle)
        if participant is None:
            await self._reply(handle, "send_not_registered")
            return
        if participant.recipient is None:
            await self._reply(handle, "send_no_recipient")
            return
        if not participant.recipient.is_reachable:
            await self._reply(handle, "send_recipient_not_registered")
            return

        new_state = self._advance(handle, self._states.get(handle), "SEND_ACCEPTED")
        if new_state is not ConversationState.AWAITING_CONTENT:
            logger.info("Send not accepted for %s while %s", handle, new_state.value)
            await self._reply(handle, "send_unavailable")
            return
        await self._reply(handle, "send_prompt")

    async def _on_text(self, event: TextMessage) -> None:
        handle = normalize_handle(event.handle)
        text = event.text or ""
        if text.startswith("/"):
            return

        state = self._states.get(handle)
        if state is ConversationState.AWAITING_OWN_NAME:
            try:
                outcome = await self._relay.on_own_name_submitted(handle, text)
            except Exception:
                logger.warning("Name entry failed for %s, waiting state cleared", handle)
                self._advance(handle, state, "FAILED")
                return
            self._advance(
                handle,
                state,
                "NAME_SAVED_WITH_RECIPIENT" if outcome.has_receiver else "NAME_SAVED_NO_RECIPIENT",
            )
        elif state is ConversationState.AWAITING_RECIPIENT_NAME:
            try:
                await self._relay.on_recipient_name_submitted(handle, text)
            except Exception:
                logger.warning("Recipient entry failed for %s, waiting state cleared", handle)
                self._advance(handle, state, "FAILED")
                return
            self._advance(handle, state, "RECIPIENT_HANDLED")
        elif state is ConversationState.AWAITING_CONTENT:
            await self._relay_content(handle, state, event.content)

    async def _on_content(self, event: ContentMessage) -> None:
        handle = normalize_handle(event.handle)
        state = self._states.get(handle)
        if state is not ConversationState.AWAITING_CONTENT:
            return
        await self._relay_content(handle, state, event.content)

    async def _relay_content(
        self, handle: str, state: ConversationState, content: ContentRef | None
    ) -> None:
        try:
            await self._relay.on_content_submitted(handle, content)
        except Exception:
            logger.warning("Relay failed for %s, waiting state cleared", handle)
            self._advance(handle, state, "FAILED")
            return
        self._advance(handle, state, "CONTENT_HANDLED")
