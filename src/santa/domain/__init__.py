"""Domain layer: entities and value objects. No dependencies on outer layers."""

from santa.domain.entities import (
    NAME_MAX_LENGTH,
    ConversationState,
    Participant,
    name_key,
    normalize_handle,
    normalize_name,
)

__all__ = [
    "NAME_MAX_LENGTH",
    "ConversationState",
    "Participant",
    "name_key",
    "normalize_handle",
    "normalize_name",
]
