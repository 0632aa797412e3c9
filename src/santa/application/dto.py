"""Inbound chat events, content references, and use-case results."""

from dataclasses import dataclass, field
from enum import Enum

from santa.domain import Participant


class ContentKind(str, Enum):
    """Kinds of message a participant can relay as a gift."""

    TEXT = "text"
    IMAGE = "image"
    DOCUMENT = "document"
    VOICE = "voice"
    AUDIO = "audio"
    STICKER = "sticker"
    SHORT_VIDEO = "short_video"
    VIDEO_NOTE = "video_note"


@dataclass(frozen=True)
class ContentRef:
    """Points at a message already sitting in the sender's chat. Copied, never forwarded."""

    chat_id: str
    message_id: int
    kind: ContentKind = ContentKind.TEXT


# --- inbound events ---


@dataclass(frozen=True)
class ConversationStart:
    handle: str
    display_name: str | None = None


@dataclass(frozen=True)
class Command:
    handle: str
    name: str
    args: tuple[str, ...] = ()


@dataclass(frozen=True)
class TextMessage:
    handle: str
    text: str
    content: ContentRef | None = None


@dataclass(frozen=True)
class ContentMessage:
    handle: str
    kind: ContentKind
    content: ContentRef | None = None


InboundEvent = ConversationStart | Command | TextMessage | ContentMessage


# --- results ---


@dataclass(frozen=True)
class OwnNameOutcome:
    """Result of a participant submitting their own name."""

    participant: Participant
    has_receiver: bool


@dataclass(frozen=True)
class BulkEntry:
    """One row of a batch import: a participant and, optionally, who they give to."""

    name: str
    receiver_name: str | None = None


@dataclass(frozen=True)
class BulkCreateResult:
    created: int = 0
    linked: int = 0
    skipped_links: list[BulkEntry] = field(default_factory=list)
