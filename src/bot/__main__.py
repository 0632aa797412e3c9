"""
Local dev bot: Telegram polling + ConversationMachine.
Run: python -m bot (from repo root, with .env or env vars set, USE_POLLING=1).
"""
import logging

from santa.infrastructure.settings import (
    STORAGE_MEMORY,
    configure_logging,
    load_env,
    load_settings,
)

load_env()

from neo4j import GraphDatabase
from telegram import Update
from telegram.ext import (
    Application,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from santa.application import ConversationMachine, PairingService, RelayService
from santa.infrastructure import (
    InMemoryConversationStateStore,
    InMemoryParticipantRepository,
    Neo4jConversationStateStore,
    Neo4jParticipantRepository,
    TelegramMessenger,
    ensure_constraints,
    event_from_update,
)

logger = logging.getLogger(__name__)

CONVERSATION_KEY = "conversation"

_CONTENT_FILTER = (
    filters.PHOTO
    | filters.Document.ALL
    | filters.VOICE
    | filters.AUDIO
    | filters.Sticker.ALL
    | filters.VIDEO
    | filters.VIDEO_NOTE
)


def _get_conversation(context: ContextTypes.DEFAULT_TYPE) -> ConversationMachine:
    return context.bot_data[CONVERSATION_KEY]


async def dispatch(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    event = event_from_update(update)
    if event is None:
        return
    await _get_conversation(context).handle(event)


def main() -> None:
    settings = load_settings()
    configure_logging(settings)
    if not settings.use_polling:
        raise SystemExit(
            "For production use the FastAPI backend: uvicorn api.main:app "
            "and set the Telegram webhook to https://<your-domain>/webhook/telegram. "
            "For local dev with polling set USE_POLLING=1 and run python -m bot again."
        )
    if not settings.telegram_bot_token:
        raise SystemExit(
            "Set TELEGRAM_BOT_TOKEN (e.g. in .env). Get a token from @BotFather."
        )

    driver = None
    if settings.storage == STORAGE_MEMORY:
        repo = InMemoryParticipantRepository()
        states = InMemoryConversationStateStore()
    else:
        driver = GraphDatabase.driver(
            settings.neo4j_uri, auth=(settings.neo4j_user, settings.neo4j_password)
        )
        ensure_constraints(driver)
        repo = Neo4jParticipantRepository(driver)
        states = Neo4jConversationStateStore(driver)

    app = Application.builder().token(settings.telegram_bot_token).build()
    messenger = TelegramMessenger(app.bot)
    pairing = PairingService(repo)
    app.bot_data[CONVERSATION_KEY] = ConversationMachine(
        pairing, RelayService(pairing, messenger), messenger, states
    )
    app.add_handler(CommandHandler("start", dispatch))
    app.add_handler(CommandHandler("send", dispatch))
    app.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, dispatch))
    app.add_handler(MessageHandler(_CONTENT_FILTER & ~filters.COMMAND, dispatch))
    logger.info("Bot running (polling, dev, storage=%s). Commands: /start, /send", settings.storage)
    try:
        app.run_polling(allowed_updates=Update.ALL_TYPES)
    finally:
        if driver is not None:
            driver.close()


if __name__ == "__main__":
    main()
