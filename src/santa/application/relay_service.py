"""Replies, sender notifications and the anonymous gift relay.

Every handler sends exactly one reply to the acting participant before an
error is re-raised, so the participant always gets feedback.
"""

import logging

from santa.application.dto import ContentRef, OwnNameOutcome
from santa.application.errors import InvalidName, SelfAssignmentError
from santa.application.messages import format_message, get_messages
from santa.application.pairing_service import PairingService
from santa.application.ports import Messenger
from santa.domain import Participant

logger = logging.getLogger(__name__)


class RelayService:
    """Drives the pairing engine on behalf of a chat participant and talks back to them."""

    def __init__(
        self,
        pairing: PairingService,
        messenger: Messenger,
        messages: dict[str, str] | None = None,
    ) -> None:
        self._pairing = pairing
        self._messenger = messenger
        self._messages = messages if messages is not None else get_messages()

    def _text(self, message_id: str, **template_vars) -> str:
        return format_message(self._messages, message_id, **template_vars)

    def completion_text(self, recipient: Participant) -> str:
        """Registration-complete message; the body depends on whether the recipient is reachable."""
        status_id = "recipient_reachable" if recipient.is_reachable else "recipient_unreachable"
        return self._text("registration_complete", recipient_status=self._text(status_id))

    async def notify_senders(self, participant: Participant) -> int:
        """Tell everyone giving to participant that they can now send. Returns deliveries made.

        One attempt per sender with a handle; a failure is logged and never
        stops the remaining notifications.
        """
        senders = self._pairing.find_senders_for_receiver(participant.chat_handle)
        delivered = 0
        for sender in senders:
            if not sender.chat_handle:
                continue
            try:
                await self._messenger.send_text(
                    sender.chat_handle,
                    self._text("recipient_registered_notice", name=participant.name),
                )
            except Exception:
                logger.exception(
                    "Failed to notify sender %r that %r registered",
                    sender.name,
                    participant.name,
                )
                continue
            delivered += 1
            logger.info(
                "Notified sender %r that receiver %r registered",
                sender.name,
                participant.name,
            )
        return delivered

    async def on_own_name_submitted(self, chat_handle: str, name: str) -> OwnNameOutcome:
        try:
            participant = self._pairing.upsert_by_identity(chat_handle, name)
            logger.info(
                "Participant name saved: chat_handle=%s, name=%r, id=%s",
                chat_handle,
                participant.name,
                participant.id,
            )

            await self.notify_senders(participant)

            if participant.recipient is not None:
                logger.info("Participant %r already has a recipient assigned", participant.name)
                await self._messenger.send_text(
                    chat_handle, self.completion_text(participant.recipient)
                )
                return OwnNameOutcome(participant=participant, has_receiver=True)

            await self._messenger.send_text(
                chat_handle, self._text("ask_recipient_name", name=participant.name)
            )
            return OwnNameOutcome(participant=participant, has_receiver=False)
        except InvalidName:
            await self._messenger.send_text(chat_handle, self._text("invalid_name"))
            raise
        except Exception:
            logger.exception("Error saving name for chat handle %s", chat_handle)
            await self._messenger.send_text(chat_handle, self._text("registration_failed"))
            raise

    async def on_recipient_name_submitted(self, chat_handle: str, recipient_name: str) -> None:
        try:
            participant = self._pairing.link_by_name(chat_handle, recipient_name)
            logger.info(
                "Secret Santa recipient linked: participant=%r, recipient=%r",
                participant.name,
                participant.recipient.name,
            )
            await self._messenger.send_text(
                chat_handle, self.completion_text(participant.recipient)
            )
        except SelfAssignmentError:
            await self._messenger.send_text(chat_handle, self._text("self_assignment"))
            raise
        except InvalidName:
            await self._messenger.send_text(chat_handle, self._text("invalid_recipient_name"))
            raise
        except Exception:
            logger.exception("Error linking recipient for chat handle %s", chat_handle)
            await self._messenger.send_text(chat_handle, self._text("link_failed"))
            raise

    async def on_content_submitted(self, chat_handle: str, content: ContentRef | None) -> None:
        """Copy content to the caller's recipient without revealing the caller."""
        try:
            participant = self._pairing.find_by_handle(chat_handle)
            recipient = participant.recipient if participant else None
            if recipient is None or not recipient.is_reachable:
                await self._messenger.send_text(chat_handle, self._text("recipient_not_found"))
                return

            if content is None:
                await self._messenger.send_text(chat_handle, self._text("message_not_found"))
                return

            await self._messenger.relay_content(chat_handle, recipient.chat_handle, content)
        except Exception:
            logger.exception("Error relaying content for chat handle %s", chat_handle)
            await self._messenger.send_text(chat_handle, self._text("relay_failed"))
            raise

        logger.info(
            "Gift relayed from Secret Santa %r (%s) to recipient (%s)",
            participant.name,
            chat_handle,
            recipient.chat_handle,
        )
        await self._messenger.send_text(chat_handle, self._text("content_sent"))
