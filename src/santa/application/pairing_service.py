"""Identity resolution and pairing: merge by name or handle, link senders to receivers."""

import logging
from collections.abc import Iterable
from dataclasses import replace

from santa.application.dto import BulkCreateResult, BulkEntry
from santa.application.errors import (
    InvalidName,
    ParticipantNotFound,
    SelfAssignmentError,
)
from santa.application.ports import ParticipantRepository
from santa.domain import Participant, normalize_handle, normalize_name

logger = logging.getLogger(__name__)


def _new_participant(name: str, chat_handle: str | None = None) -> Participant:
    try:
        return Participant(name=name, chat_handle=chat_handle)
    except ValueError as e:
        raise InvalidName(str(e)) from e


def _renamed(participant: Participant, **changes) -> Participant:
    try:
        return replace(participant, **changes)
    except ValueError as e:
        raise InvalidName(str(e)) from e


def _require_handle(chat_handle: int | str) -> str:
    handle = normalize_handle(chat_handle)
    if handle is None:
        raise ValueError("chat_handle must be non-empty")
    return handle


class PairingService:
    """Resolves participants by name or chat handle and maintains sender -> receiver links.

    Reads and writes go to the repository one call at a time; nothing here is
    transactional across calls.
    """

    def __init__(self, repository: ParticipantRepository) -> None:
        self._repo = repository

    # --- lookups ---

    def find_by_handle(self, chat_handle: int | str) -> Participant | None:
        handle = normalize_handle(chat_handle)
        if handle is None:
            return None
        return self._repo.find_by_handle(handle)

    def find_senders_for_receiver(self, chat_handle: int | str) -> list[Participant]:
        """Return everyone who gives to the participant owning chat_handle."""
        receiver = self.find_by_handle(chat_handle)
        if receiver is None:
            return []
        return self._repo.find_senders(receiver.id)

    def has_secret_santa(self, chat_handle: int | str) -> bool:
        receiver = self.find_by_handle(chat_handle)
        if receiver is None:
            return False
        return self._repo.has_sender(receiver.id)

    def list_participants(self) -> list[Participant]:
        return self._repo.list_all()

    # --- writes ---

    def upsert_by_identity(self, chat_handle: int | str, name: str) -> Participant:
        """Resolve the caller's own record when they submit their name.

        A record with the same name wins (this claims a pre-seeded participant);
        otherwise the record already owning the handle is renamed; otherwise a
        new participant is created. Exactly one record owns chat_handle afterwards.
        """
        handle = _require_handle(chat_handle)
        clean_name = normalize_name(name)
        if not clean_name:
            raise InvalidName("Name is required.")

        participant = self._repo.find_by_name(clean_name)
        if participant is not None:
            if participant.chat_handle and participant.chat_handle != handle:
                logger.warning(
                    "Participant %r already has chat handle %s, updating to %s",
                    participant.name,
                    participant.chat_handle,
                    handle,
                )
            self._release_handle(handle, keep_id=participant.id)
            participant = _renamed(participant, name=clean_name, chat_handle=handle)
            logger.info("Linking chat handle %s to participant %r", handle, clean_name)
        else:
            participant = self._repo.find_by_handle(handle)
            if participant is not None:
                logger.info(
                    "Renaming participant %s from %r to %r",
                    handle,
                    participant.name,
                    clean_name,
                )
                participant = _renamed(participant, name=clean_name)
            else:
                participant = _new_participant(clean_name, chat_handle=handle)
                logger.info("Creating participant %s: %r", handle, clean_name)

        self._repo.save(participant)
        return self._repo.get_by_id(participant.id)

    def find_or_create_by_name(self, name: str) -> tuple[Participant, bool]:
        """Return (participant, created). A created participant has no handle and no recipient."""
        clean_name = normalize_name(name)
        if not clean_name:
            raise InvalidName("Name is required.")
        existing = self._repo.find_by_name(clean_name)
        if existing is not None:
            return existing, False
        participant = _new_participant(clean_name)
        self._repo.save(participant)
        logger.info("Created participant by name: %r", clean_name)
        return self._repo.get_by_id(participant.id), True

    def link_by_name(self, chat_handle: int | str, recipient_name: str) -> Participant:
        """Point the caller at the participant named recipient_name, creating them if needed."""
        handle = _require_handle(chat_handle)
        sender = self._repo.find_by_handle(handle)
        if sender is None:
            raise ParticipantNotFound(handle)

        receiver, _ = self.find_or_create_by_name(recipient_name)
        if receiver.id == sender.id:
            raise SelfAssignmentError(sender.name)

        self._warn_on_fan_in(sender, receiver)
        self._repo.save(replace(sender, recipient_id=receiver.id, recipient=receiver))
        logger.info("Linked %r -> %r", sender.name, receiver.name)
        return self._repo.get_by_id(sender.id)

    def bulk_create(self, entries: Iterable[BulkEntry]) -> BulkCreateResult:
        """Seed participants by name, then link them by name.

        Existing names are skipped, never overwritten; invalid names are
        logged and skipped. The link pass only resolves; it does not create
        missing receivers. Rows that cannot be linked are logged and reported
        in skipped_links.
        """
        entries = list(entries)
        created = 0
        for entry in entries:
            if not normalize_name(entry.name):
                logger.warning("Skipping batch row without a name")
                continue
            if self._repo.find_by_name(entry.name) is not None:
                logger.info("Participant already exists: %r, skipping", entry.name)
                continue
            try:
                participant = _new_participant(entry.name)
            except InvalidName as e:
                logger.warning("Skipping batch row with invalid name: %s", e)
                continue
            self._repo.save(participant)
            created += 1
            logger.info("Created participant: %r", normalize_name(entry.name))

        linked = 0
        skipped: list[BulkEntry] = []
        for entry in entries:
            if not normalize_name(entry.receiver_name):
                continue
            sender = self._repo.find_by_name(entry.name)
            receiver = self._repo.find_by_name(entry.receiver_name)
            if sender is None or receiver is None:
                if sender is None:
                    logger.warning("Sender not found: %r", entry.name)
                if receiver is None:
                    logger.warning("Receiver not found: %r", entry.receiver_name)
                skipped.append(entry)
                continue
            if sender.id == receiver.id:
                logger.warning("Skipping self link for %r", sender.name)
                skipped.append(entry)
                continue
            self._warn_on_fan_in(sender, receiver)
            self._repo.save(replace(sender, recipient_id=receiver.id, recipient=receiver))
            linked += 1
            logger.info("Linked %r -> %r", sender.name, receiver.name)

        return BulkCreateResult(created=created, linked=linked, skipped_links=skipped)

    # --- helpers ---

    def _release_handle(self, handle: str, *, keep_id: str) -> None:
        """Detach handle from any record other than keep_id so it stays unique."""
        holder = self._repo.find_by_handle(handle)
        if holder is None or holder.id == keep_id:
            return
        logger.warning(
            "Chat handle %s moves from participant %r to another record",
            handle,
            holder.name,
        )
        self._repo.save(replace(holder, chat_handle=None))

    def _warn_on_fan_in(self, sender: Participant, receiver: Participant) -> None:
        others = [s for s in self._repo.find_senders(receiver.id) if s.id != sender.id]
        if others:
            logger.warning(
                "Participant %r already receives from %d other participant(s)",
                receiver.name,
                len(others),
            )
