"""Application ports (interfaces). Implemented by infrastructure adapters."""

from typing import Protocol

from santa.application.dto import ContentRef
from santa.domain import ConversationState, Participant


class ParticipantRepository(Protocol):
    """Persists and queries participants. Every read returns recipient populated."""

    def save(self, participant: Participant) -> None:
        """Insert or update by id, including the recipient link. Raises ConstraintViolation."""
        ...

    def get_by_id(self, participant_id: str) -> Participant | None:
        ...

    def find_by_name(self, name: str) -> Participant | None:
        """Return the participant whose normalized, casefolded name matches, or None."""
        ...

    def find_by_handle(self, chat_handle: str) -> Participant | None:
        ...

    def find_senders(self, receiver_id: str) -> list[Participant]:
        """Return every participant whose recipient is receiver_id."""
        ...

    def has_sender(self, receiver_id: str) -> bool:
        ...

    def list_all(self) -> list[Participant]:
        """Return all participants in creation order."""
        ...


class ConversationStateStore(Protocol):
    """Keeps the per-handle conversation state. Idle is represented by absence."""

    def get(self, handle: str) -> ConversationState:
        ...

    def set(self, handle: str, state: ConversationState) -> None:
        ...

    def clear(self, handle: str) -> None:
        ...


class Messenger(Protocol):
    """Outbound chat transport. Both methods raise DeliveryError on failure."""

    async def send_text(self, handle: str, body: str) -> None:
        ...

    async def relay_content(
        self, from_handle: str, to_handle: str, content: ContentRef
    ) -> None:
        """Deliver a copy of content to to_handle without revealing from_handle."""
        ...
