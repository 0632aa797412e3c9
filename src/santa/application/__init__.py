"""Application layer: use cases, ports, and DTOs. Depends only on domain."""

from santa.application.conversation import ConversationMachine
from santa.application.dto import (
    BulkCreateResult,
    BulkEntry,
    Command,
    ContentKind,
    ContentMessage,
    ContentRef,
    ConversationStart,
    InboundEvent,
    OwnNameOutcome,
    TextMessage,
)
from santa.application.errors import (
    ConstraintViolation,
    DeliveryError,
    InvalidName,
    PairingError,
    ParticipantNotFound,
    SelfAssignmentError,
)
from santa.application.pairing_service import PairingService
from santa.application.ports import ConversationStateStore, Messenger, ParticipantRepository
from santa.application.relay_service import RelayService

__all__ = [
    "BulkCreateResult",
    "BulkEntry",
    "Command",
    "ConstraintViolation",
    "ContentKind",
    "ContentMessage",
    "ContentRef",
    "ConversationMachine",
    "ConversationStart",
    "ConversationStateStore",
    "DeliveryError",
    "InboundEvent",
    "InvalidName",
    "Messenger",
    "OwnNameOutcome",
    "PairingError",
    "PairingService",
    "ParticipantNotFound",
    "ParticipantRepository",
    "RelayService",
    "SelfAssignmentError",
    "TextMessage",
]
