"""Neo4j implementations of ParticipantRepository and ConversationStateStore.
Graph: (:Participant {id, name, name_key, chat_handle, gift_code, created_at})
-[:GIFTS_TO]->(:Participant). At most one outgoing GIFTS_TO per participant;
the reverse direction is a query, never a stored property.
Conversation state: (:ChatState {handle, state, updated_at}); idle means no node.
"""

from datetime import datetime, timezone

from neo4j.exceptions import ConstraintError

from santa.application.errors import ConstraintViolation
from santa.domain import ConversationState, Participant, name_key, normalize_handle

_CONSTRAINT_QUERIES = (
    """
    CREATE CONSTRAINT participant_id_unique IF NOT EXISTS
    FOR (p:Participant) REQUIRE p.id IS UNIQUE
    """,
    """
    CREATE CONSTRAINT participant_name_key_unique IF NOT EXISTS
    FOR (p:Participant) REQUIRE p.name_key IS UNIQUE
    """,
    """
    CREATE CONSTRAINT participant_chat_handle_unique IF NOT EXISTS
    FOR (p:Participant) REQUIRE p.chat_handle IS UNIQUE
    """,
    """
    CREATE CONSTRAINT chat_state_handle_unique IF NOT EXISTS
    FOR (s:ChatState) REQUIRE s.handle IS UNIQUE
    """,
)

# Every read returns p, its recipient r (or null) and r's own recipient id.
_RETURN_WITH_RECIPIENT = """
OPTIONAL MATCH (p)-[:GIFTS_TO]->(r:Participant)
OPTIONAL MATCH (r)-[:GIFTS_TO]->(rr:Participant)
RETURN p, r, rr.id AS rr_id
"""

_SAVE_QUERY = """
MERGE (p:Participant {id: $id})
ON CREATE SET p.created_at = $created_at
SET p.name = $name,
    p.name_key = $name_key,
    p.chat_handle = $chat_handle,
    p.gift_code = $gift_code
WITH p
OPTIONAL MATCH (p)-[old:GIFTS_TO]->()
DELETE old
WITH DISTINCT p
OPTIONAL MATCH (r:Participant {id: $recipient_id})
FOREACH (_ IN CASE WHEN r IS NULL THEN [] ELSE [1] END |
    MERGE (p)-[:GIFTS_TO]->(r)
)
RETURN p.id AS id
"""


def _datetime_to_iso(dt: datetime) -> str:
    return dt.isoformat()


def _iso_to_datetime(s: str | None) -> datetime:
    if not s:
        return datetime.now(timezone.utc)
    return datetime.fromisoformat(s.replace("Z", "+00:00"))


def ensure_constraints(driver) -> None:
    """Create uniqueness constraints for participants and chat state if missing."""
    with driver.session() as session:
        for query in _CONSTRAINT_QUERIES:
            session.run(query)


class Neo4jParticipantRepository:
    """Stores participants as nodes and the recipient link as a GIFTS_TO relationship."""

    def __init__(self, driver: object) -> None:
        self._driver = driver

    def save(self, participant: Participant) -> None:
        try:
            with self._driver.session() as session:
                session.run(
                    _SAVE_QUERY,
                    id=participant.id,
                    created_at=_datetime_to_iso(participant.created_at),
                    name=participant.name,
                    name_key=participant.name_key,
                    chat_handle=participant.chat_handle,
                    gift_code=participant.gift_code,
                    recipient_id=participant.recipient_id,
                ).consume()
        except ConstraintError as e:
            raise ConstraintViolation(str(e)) from e

    def get_by_id(self, participant_id: str) -> Participant | None:
        return self._single(
            "MATCH (p:Participant {id: $id})" + _RETURN_WITH_RECIPIENT,
            id=participant_id,
        )

    def find_by_name(self, name: str) -> Participant | None:
        key = name_key(name)
        if not key:
            return None
        return self._single(
            "MATCH (p:Participant {name_key: $name_key})" + _RETURN_WITH_RECIPIENT,
            name_key=key,
        )

    def find_by_handle(self, chat_handle: str) -> Participant | None:
        handle = normalize_handle(chat_handle)
        if handle is None:
            return None
        return self._single(
            "MATCH (p:Participant {chat_handle: $chat_handle})" + _RETURN_WITH_RECIPIENT,
            chat_handle=handle,
        )

    def find_senders(self, receiver_id: str) -> list[Participant]:
        with self._driver.session() as session:
            result = session.run(
                """
                MATCH (p:Participant)-[:GIFTS_TO]->(r:Participant {id: $receiver_id})
                OPTIONAL MATCH (r)-[:GIFTS_TO]->(rr:Participant)
                RETURN p, r, rr.id AS rr_id
                ORDER BY p.created_at
                """,
                receiver_id=receiver_id,
            )
            return [_record_to_participant(rec) for rec in result]

    def has_sender(self, receiver_id: str) -> bool:
        with self._driver.session() as session:
            result = session.run(
                """
                MATCH (:Participant)-[:GIFTS_TO]->(r:Participant {id: $receiver_id})
                RETURN count(*) > 0 AS has_sender
                """,
                receiver_id=receiver_id,
            )
            record = result.single()
        return bool(record and record["has_sender"])

    def list_all(self) -> list[Participant]:
        with self._driver.session() as session:
            result = session.run(
                "MATCH (p:Participant)"
                + _RETURN_WITH_RECIPIENT
                + "ORDER BY p.created_at"
            )
            return [_record_to_participant(rec) for rec in result]

    def _single(self, query: str, **params) -> Participant | None:
        with self._driver.session() as session:
            result = session.run(query, **params)
            record = result.single()
        if not record:
            return None
        return _record_to_participant(record)


class Neo4jConversationStateStore:
    """Conversation state shared by every process talking to the same database."""

    def __init__(self, driver: object) -> None:
        self._driver = driver

    def get(self, handle: str) -> ConversationState:
        with self._driver.session() as session:
            result = session.run(
                "MATCH (s:ChatState {handle: $handle}) RETURN s.state AS state",
                handle=handle,
            )
            record = result.single()
        if not record or not record["state"]:
            return ConversationState.IDLE
        try:
            return ConversationState(record["state"])
        except ValueError:
            return ConversationState.IDLE

    def set(self, handle: str, state: ConversationState) -> None:
        if state is ConversationState.IDLE:
            self.clear(handle)
            return
        with self._driver.session() as session:
            session.run(
                """
                MERGE (s:ChatState {handle: $handle})
                SET s.state = $state, s.updated_at = $updated_at
                """,
                handle=handle,
                state=state.value,
                updated_at=_datetime_to_iso(datetime.now(timezone.utc)),
            )

    def clear(self, handle: str) -> None:
        with self._driver.session() as session:
            session.run(
                "MATCH (s:ChatState {handle: $handle}) DELETE s",
                handle=handle,
            )


def _node_to_participant(
    node, recipient: Participant | None = None, recipient_id: str | None = None
) -> Participant:
    return Participant(
        id=node["id"],
        name=node.get("name") or "",
        chat_handle=node.get("chat_handle") or None,
        gift_code=node.get("gift_code") or None,
        created_at=_iso_to_datetime(node.get("created_at")),
        recipient_id=recipient.id if recipient is not None else recipient_id,
        recipient=recipient,
    )


def _record_to_participant(record) -> Participant:
    r = record["r"]
    recipient = None
    if r is not None:
        recipient = _node_to_participant(r, recipient_id=record["rr_id"])
    return _node_to_participant(record["p"], recipient=recipient)
