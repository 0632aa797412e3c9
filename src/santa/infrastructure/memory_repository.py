"""In-memory implementations of ParticipantRepository and ConversationStateStore (no DB)."""

from dataclasses import replace

from santa.application.errors import ConstraintViolation
from santa.domain import ConversationState, Participant, name_key, normalize_handle


class InMemoryParticipantRepository:
    """Stores participants in memory. Order preserved by insertion.
    Records are kept without the populated recipient; reads attach it.
    Name and chat handle uniqueness are enforced the way the database would.
    """

    def __init__(self) -> None:
        self._by_id: dict[str, Participant] = {}
        self._order: list[str] = []

    def _with_recipient(self, participant: Participant) -> Participant:
        recipient = self._by_id.get(participant.recipient_id) if participant.recipient_id else None
        if recipient is None:
            return replace(participant, recipient_id=None, recipient=None)
        return replace(participant, recipient=recipient)

    def save(self, participant: Participant) -> None:
        for other in self._by_id.values():
            if other.id == participant.id:
                continue
            if other.name_key == participant.name_key:
                raise ConstraintViolation(f"Name {participant.name!r} is already taken")
            if participant.chat_handle and other.chat_handle == participant.chat_handle:
                raise ConstraintViolation(
                    f"Chat handle {participant.chat_handle} is already taken"
                )
        if participant.recipient_id and participant.recipient_id not in self._by_id:
            raise ConstraintViolation(f"Unknown recipient {participant.recipient_id}")
        if participant.id not in self._by_id:
            self._order.append(participant.id)
        self._by_id[participant.id] = replace(participant, recipient=None)

    def get_by_id(self, participant_id: str) -> Participant | None:
        participant = self._by_id.get(participant_id)
        if participant is None:
            return None
        return self._with_recipient(participant)

    def find_by_name(self, name: str) -> Participant | None:
        key = name_key(name)
        if not key:
            return None
        for participant in self._by_id.values():
            if participant.name_key == key:
                return self._with_recipient(participant)
        return None

    def find_by_handle(self, chat_handle: str) -> Participant | None:
        handle = normalize_handle(chat_handle)
        if handle is None:
            return None
        for participant in self._by_id.values():
            if participant.chat_handle == handle:
                return self._with_recipient(participant)
        return None

    def find_senders(self, receiver_id: str) -> list[Participant]:
        return [
            self._with_recipient(self._by_id[pid])
            for pid in self._order
            if self._by_id[pid].recipient_id == receiver_id
        ]

    def has_sender(self, receiver_id: str) -> bool:
        return any(p.recipient_id == receiver_id for p in self._by_id.values())

    def list_all(self) -> list[Participant]:
        return [self._with_recipient(self._by_id[pid]) for pid in self._order]


class InMemoryConversationStateStore:
    """Per-process conversation state. Not shared between instances."""

    def __init__(self) -> None:
        self._states: dict[str, ConversationState] = {}

    def get(self, handle: str) -> ConversationState:
        return self._states.get(handle, ConversationState.IDLE)

    def set(self, handle: str, state: ConversationState) -> None:
        if state is ConversationState.IDLE:
            self.clear(handle)
            return
        self._states[handle] = state

    def clear(self, handle: str) -> None:
        self._states.pop(handle, None)
