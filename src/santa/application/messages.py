"""Load and validate the YAML message catalog used for every reply the bot sends."""

import os
from pathlib import Path

import yaml

# Every id the handlers and the conversation machine reply with.
REQUIRED_MESSAGES = frozenset(
    {
        "welcome",
        "status_greeting",
        "status_recipient_registered",
        "status_recipient_pending",
        "status_no_recipient",
        "status_santa_assigned",
        "status_santa_pending",
        "status_footer",
        "ask_recipient_name",
        "registration_complete",
        "recipient_reachable",
        "recipient_unreachable",
        "recipient_registered_notice",
        "invalid_name",
        "self_assignment",
        "invalid_recipient_name",
        "registration_failed",
        "link_failed",
        "send_not_registered",
        "send_no_recipient",
        "send_recipient_not_registered",
        "send_prompt",
        "send_unavailable",
        "recipient_not_found",
        "message_not_found",
        "content_sent",
        "relay_failed",
        "request_failed",
    }
)


def get_messages_path() -> Path:
    """Return path to the message catalog (MESSAGES_PATH env or flows/messages.yaml)."""
    default = Path(__file__).resolve().parent.parent / "flows" / "messages.yaml"
    path = os.environ.get("MESSAGES_PATH", "").strip()
    if path:
        return Path(path).resolve()
    return default


def load_messages(path: Path | None = None) -> dict[str, str]:
    """Load the catalog and return message id -> template. Validates required ids."""
    if path is None:
        path = get_messages_path()
    raw = path.read_text(encoding="utf-8")
    doc = yaml.safe_load(raw)
    if not isinstance(doc, dict):
        raise ValueError("Messages YAML must be a dict")
    messages = doc.get("messages")
    if not isinstance(messages, dict) or not messages:
        raise ValueError("Messages YAML must have a non-empty 'messages' mapping")
    missing = sorted(REQUIRED_MESSAGES - set(messages))
    if missing:
        raise ValueError(f"Messages YAML is missing: {', '.join(missing)}")
    return {str(k): str(v).rstrip("\n") for k, v in messages.items()}


def format_message(messages: dict[str, str], message_id: str, **template_vars) -> str:
    text = messages.get(message_id) or message_id
    for k, v in template_vars.items():
        text = text.replace("{" + k + "}", str(v) if v is not None else "")
    return text


# Module-level cache for the loaded catalog
_messages_cache: dict[str, str] | None = None


def get_messages(cache: bool = True) -> dict[str, str]:
    """Load messages (cached by default). Pass cache=False to reload."""
    global _messages_cache
    if cache and _messages_cache is not None:
        return _messages_cache
    _messages_cache = load_messages()
    return _messages_cache
