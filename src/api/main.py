"""
FastAPI backend: participant import and listing, and the Telegram webhook.
Run with uvicorn: uvicorn api.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from santa.infrastructure.settings import (
    STORAGE_MEMORY,
    STORAGE_NEO4J,
    configure_logging,
    load_env,
    load_settings,
)

# Load .env from repo root (when run from repo root or from Docker)
load_env()

from fastapi import FastAPI, HTTPException, Request
from neo4j import GraphDatabase
from pydantic import AliasChoices, BaseModel, Field

from santa.application import (
    BulkEntry,
    ConversationMachine,
    PairingError,
    PairingService,
    RelayService,
)
from santa.domain import NAME_MAX_LENGTH, Participant
from santa.infrastructure import (
    InMemoryConversationStateStore,
    InMemoryParticipantRepository,
    Neo4jConversationStateStore,
    Neo4jParticipantRepository,
    TelegramMessenger,
    ensure_constraints,
    event_from_update,
)

SETTINGS = load_settings()
configure_logging(SETTINGS)
logger = logging.getLogger(__name__)


def _get_driver():
    return GraphDatabase.driver(
        SETTINGS.neo4j_uri, auth=(SETTINGS.neo4j_user, SETTINGS.neo4j_password)
    )


def _get_cached_driver(app: FastAPI):
    if getattr(app.state, "driver", None) is None:
        app.state.driver = _get_driver()
    return app.state.driver


def _get_repository(app: FastAPI):
    repo = getattr(app.state, "repository", None)
    if repo is None:
        if SETTINGS.storage == STORAGE_MEMORY:
            repo = InMemoryParticipantRepository()
        else:
            repo = Neo4jParticipantRepository(_get_cached_driver(app))
        app.state.repository = repo
    return repo


def _get_state_store(app: FastAPI):
    store = getattr(app.state, "state_store", None)
    if store is None:
        if SETTINGS.storage == STORAGE_MEMORY:
            store = InMemoryConversationStateStore()
        else:
            store = Neo4jConversationStateStore(_get_cached_driver(app))
        app.state.state_store = store
    return store


def _get_messenger(app: FastAPI):
    messenger = getattr(app.state, "messenger", None)
    if messenger is None:
        if not SETTINGS.telegram_bot_token:
            logger.error("TELEGRAM_BOT_TOKEN not set in backend environment")
            return None
        from telegram import Bot

        messenger = TelegramMessenger(Bot(token=SETTINGS.telegram_bot_token))
        app.state.messenger = messenger
    return messenger


def get_pairing_service(app: FastAPI) -> PairingService:
    return PairingService(_get_repository(app))


def get_conversation(app: FastAPI) -> ConversationMachine | None:
    conversation = getattr(app.state, "conversation", None)
    if conversation is None:
        messenger = _get_messenger(app)
        if messenger is None:
            return None
        pairing = get_pairing_service(app)
        conversation = ConversationMachine(
            pairing,
            RelayService(pairing, messenger),
            messenger,
            _get_state_store(app),
        )
        app.state.conversation = conversation
    return conversation


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.driver = None
    logger.info(
        "Storage: %s. Telegram webhook: POST /webhook/telegram. "
        "Set webhook to a public HTTPS URL (e.g. scripts/set_webhook_ngrok.py).",
        SETTINGS.storage,
    )
    try:
        if SETTINGS.storage == STORAGE_NEO4J:
            app.state.driver = _get_driver()
            ensure_constraints(app.state.driver)
        yield
    finally:
        if getattr(app.state, "driver", None) is not None:
            app.state.driver.close()


app = FastAPI(title="Secret Santa API", lifespan=lifespan)


# --- REST: health ---


@app.get("/health")
def health():
    return {"status": "ok"}


# --- REST: participants ---


class BulkUserItem(BaseModel):
    name: str = Field(
        min_length=1,
        max_length=NAME_MAX_LENGTH,
        validation_alias=AliasChoices("name", "fio"),
    )
    receiver_name: str | None = Field(
        default=None,
        max_length=NAME_MAX_LENGTH,
        validation_alias=AliasChoices("receiver_name", "receiver_fio"),
    )


class BulkUploadBody(BaseModel):
    users: list[BulkUserItem]


class BulkUploadResponse(BaseModel):
    created: int
    total: int
    linked: int
    message: str


class RecipientItem(BaseModel):
    id: str
    name: str
    chat_handle: str | None = None


class ParticipantItem(BaseModel):
    id: str
    name: str
    chat_handle: str | None = None
    gift_code: str | None = None
    created_at: str
    recipient: RecipientItem | None = None


def _participant_item(p: Participant) -> ParticipantItem:
    recipient = None
    if p.recipient is not None:
        recipient = RecipientItem(
            id=p.recipient.id, name=p.recipient.name, chat_handle=p.recipient.chat_handle
        )
    return ParticipantItem(
        id=p.id,
        name=p.name,
        chat_handle=p.chat_handle,
        gift_code=p.gift_code,
        created_at=p.created_at.isoformat(),
        recipient=recipient,
    )


@app.post("/participants/bulk-upload", response_model=BulkUploadResponse)
def bulk_upload(body: BulkUploadBody, request: Request):
    service = get_pairing_service(request.app)
    entries = [BulkEntry(name=u.name, receiver_name=u.receiver_name) for u in body.users]
    try:
        result = service.bulk_create(entries)
    except PairingError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    total = len(entries)
    return BulkUploadResponse(
        created=result.created,
        total=total,
        linked=result.linked,
        message=(
            f"Successfully processed {total} participants. Created: {result.created}, "
            f"Skipped: {total - result.created}, Receiver links: {result.linked}"
        ),
    )


@app.get("/participants", response_model=list[ParticipantItem])
def list_participants(request: Request):
    service = get_pairing_service(request.app)
    return [_participant_item(p) for p in service.list_participants()]


# --- Telegram webhook ---


@app.post("/webhook/telegram")
async def webhook_telegram(request: Request):
    """Handle Telegram updates. Set Telegram webhook URL to https://<your-domain>/webhook/telegram"""
    from telegram import Update

    logger.info("Telegram webhook received")
    try:
        body = await request.json()
    except Exception as e:
        logger.warning("Telegram webhook body error: %s", e)
        raise HTTPException(status_code=400, detail="Invalid JSON") from e
    try:
        update = Update.de_json(body, None)
    except Exception as e:
        logger.warning("Telegram webhook parse error: %s", e)
        raise HTTPException(status_code=400, detail="Invalid update") from e

    event = event_from_update(update)
    if event is None:
        return {}
    conversation = get_conversation(request.app)
    if conversation is None:
        return {}
    await conversation.handle(event)
    return {}
