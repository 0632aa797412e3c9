"""Infrastructure layer: concrete implementations of application ports."""

from santa.infrastructure.memory_repository import (
    InMemoryConversationStateStore,
    InMemoryParticipantRepository,
)
from santa.infrastructure.persistence.neo4j_repository import (
    Neo4jConversationStateStore,
    Neo4jParticipantRepository,
    ensure_constraints,
)
from santa.infrastructure.settings import Settings, configure_logging, load_env, load_settings
from santa.infrastructure.telegram_transport import TelegramMessenger, event_from_update

__all__ = [
    "InMemoryConversationStateStore",
    "InMemoryParticipantRepository",
    "Neo4jConversationStateStore",
    "Neo4jParticipantRepository",
    "Settings",
    "TelegramMessenger",
    "configure_logging",
    "ensure_constraints",
    "event_from_update",
    "load_env",
    "load_settings",
]
