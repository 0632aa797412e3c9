"""
Santa core: clean-architecture layout.

- domain: entities (Participant, ConversationState). No outer dependencies.
- application: use cases (PairingService, RelayService, ConversationMachine), ports, DTOs.
- infrastructure: adapters (in-memory and Neo4j stores, Telegram messenger, settings).
"""

from santa.application import (
    BulkCreateResult,
    BulkEntry,
    ConversationMachine,
    PairingService,
    RelayService,
)
from santa.domain import ConversationState, Participant
from santa.infrastructure import (
    InMemoryConversationStateStore,
    InMemoryParticipantRepository,
    Neo4jConversationStateStore,
    Neo4jParticipantRepository,
)

__all__ = [
    "BulkCreateResult",
    "BulkEntry",
    "ConversationMachine",
    "ConversationState",
    "InMemoryConversationStateStore",
    "InMemoryParticipantRepository",
    "Neo4jConversationStateStore",
    "Neo4jParticipantRepository",
    "PairingService",
    "Participant",
    "RelayService",
]
