"""Errors raised by the pairing engine, repositories, and messengers."""


class PairingError(Exception):
    """Base class for failures of the pairing engine."""


class ParticipantNotFound(PairingError, LookupError):
    def __init__(self, chat_handle: str) -> None:
        super().__init__(f"Participant with chat handle {chat_handle} not found")
        self.chat_handle = chat_handle


class SelfAssignmentError(PairingError, ValueError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Participant {name!r} cannot be their own recipient")
        self.name = name


class InvalidName(PairingError, ValueError):
    pass


class ConstraintViolation(PairingError):
    """A uniqueness rule of the store (name or chat handle) was broken."""


class DeliveryError(Exception):
    """The chat transport failed to deliver a message or a copy."""
