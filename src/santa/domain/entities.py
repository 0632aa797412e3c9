"""Domain entities: Participant and the per-handle ConversationState."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

# Max length for a participant's full name.
NAME_MAX_LENGTH = 500


def normalize_name(raw: str | None) -> str:
    """Strip and collapse inner whitespace. Case is kept for display."""
    return " ".join((raw or "").split())


def name_key(raw: str | None) -> str:
    """Lookup key for a name: normalized and casefolded."""
    return normalize_name(raw).casefold()


def normalize_handle(value: int | str | None) -> str | None:
    if value is None:
        return None
    return str(value).strip() or None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Participant:
    """
    A person taking part in the exchange, identified durably by name.

    chat_handle is attached once the person opens a conversation with the bot.
    recipient_id points at the participant this one gives a gift to; the
    reverse direction is never stored. recipient is the populated view of that
    link as returned by repository reads (its own recipient is not populated).
    """

    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    name: str = field(default="")
    chat_handle: str | None = None
    gift_code: str | None = None
    created_at: datetime = field(default_factory=_utcnow)
    recipient_id: str | None = None
    recipient: "Participant | None" = field(default=None, compare=False)

    def __post_init__(self):
        name = normalize_name(self.name)
        if not name:
            raise ValueError("Participant name must be non-empty.")
        if len(name) > NAME_MAX_LENGTH:
            raise ValueError(
                f"Participant name must be at most {NAME_MAX_LENGTH} chars."
            )
        object.__setattr__(self, "name", name)
        object.__setattr__(self, "chat_handle", normalize_handle(self.chat_handle))

        if self.recipient_id is not None and self.recipient_id == self.id:
            raise ValueError("Participant cannot be their own recipient.")
        if self.recipient is not None and self.recipient.id != self.recipient_id:
            raise ValueError("Populated recipient does not match recipient_id.")

    @property
    def name_key(self) -> str:
        return self.name.casefold()

    @property
    def is_reachable(self) -> bool:
        """True once the participant has a chat handle the bot can write to."""
        return self.chat_handle is not None

    @property
    def has_recipient(self) -> bool:
        return self.recipient_id is not None


class ConversationState(str, Enum):
    """Where a participant is in the chat flow. Values match the XState machine."""

    IDLE = "idle"
    AWAITING_OWN_NAME = "awaiting_own_name"
    AWAITING_RECIPIENT_NAME = "awaiting_recipient_name"
    AWAITING_CONTENT = "awaiting_content"
