"""Environment configuration shared by the API and the polling bot."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Repo root: src/santa/infrastructure/settings.py -> four levels up
_REPO_ROOT = Path(__file__).resolve().parent.parent.parent.parent

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

STORAGE_NEO4J = "neo4j"
STORAGE_MEMORY = "memory"


def load_env() -> None:
    """Load .env from repo root or current dir (first one found)."""
    for path in (_REPO_ROOT / ".env", Path.cwd() / ".env"):
        if path.exists():
            load_dotenv(path)
            break


def _flag(value: str | None) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes")


@dataclass(frozen=True)
class Settings:
    neo4j_uri: str = "bolt://localhost:7687"
    neo4j_user: str = "neo4j"
    neo4j_password: str = "password"
    telegram_bot_token: str = ""
    storage: str = STORAGE_NEO4J
    use_polling: bool = False
    log_level: str = "INFO"

    def __post_init__(self):
        if self.storage not in (STORAGE_NEO4J, STORAGE_MEMORY):
            raise ValueError(
                f"SANTA_STORAGE must be '{STORAGE_NEO4J}' or '{STORAGE_MEMORY}', got '{self.storage}'"
            )


def load_settings() -> Settings:
    """Build Settings from the environment. Call load_env() first to pick up .env."""
    return Settings(
        neo4j_uri=os.environ.get("NEO4J_URI", "bolt://localhost:7687").strip(),
        neo4j_user=os.environ.get("NEO4J_USER", "neo4j").strip(),
        neo4j_password=os.environ.get("NEO4J_PASSWORD", "password").strip(),
        telegram_bot_token=os.environ.get("TELEGRAM_BOT_TOKEN", "").strip(),
        storage=os.environ.get("SANTA_STORAGE", STORAGE_NEO4J).strip().lower(),
        use_polling=_flag(os.environ.get("USE_POLLING")),
        log_level=os.environ.get("LOG_LEVEL", "INFO").strip().upper() or "INFO",
    )


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(format=LOG_FORMAT, level=settings.log_level)
