#!/usr/bin/env python3
"""Point the Telegram webhook at the current ngrok tunnel. Run after: ngrok http 8010

Pass --drop-pending to discard updates queued while the backend was down.
"""
import asyncio
import json
import os
import sys
import urllib.request
from pathlib import Path

from dotenv import load_dotenv
from telegram import Bot
from telegram.error import TelegramError

REPO_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(REPO_ROOT / ".env")

NGROK_API = "http://127.0.0.1:4040/api/tunnels"
WEBHOOK_PATH = "/webhook/telegram"


def ngrok_public_url() -> str | None:
    """First HTTPS public URL reported by the local ngrok API."""
    with urllib.request.urlopen(NGROK_API, timeout=2) as r:
        data = json.loads(r.read().decode())
    for tunnel in data.get("tunnels", []):
        if tunnel.get("proto") == "https" and tunnel.get("public_url"):
            return tunnel["public_url"].rstrip("/")
    return None


async def set_webhook(token: str, url: str, drop_pending: bool) -> bool:
    async with Bot(token=token) as bot:
        return await bot.set_webhook(url=url, drop_pending_updates=drop_pending)


def main() -> None:
    token = (os.environ.get("TELEGRAM_BOT_TOKEN") or "").strip()
    if not token:
        print("TELEGRAM_BOT_TOKEN not set in .env", file=sys.stderr)
        sys.exit(1)
    try:
        public_url = ngrok_public_url()
    except OSError as e:
        print(f"Ngrok not running or API unreachable: {e}", file=sys.stderr)
        print("Start ngrok first: ngrok http 8010", file=sys.stderr)
        sys.exit(1)
    if not public_url:
        print("No HTTPS tunnel found in ngrok", file=sys.stderr)
        sys.exit(1)

    webhook_url = f"{public_url}{WEBHOOK_PATH}"
    try:
        ok = asyncio.run(set_webhook(token, webhook_url, "--drop-pending" in sys.argv[1:]))
    except TelegramError as e:
        print(f"Failed to set webhook: {e}", file=sys.stderr)
        sys.exit(1)
    if not ok:
        print("Telegram refused the webhook", file=sys.stderr)
        sys.exit(1)
    print(f"Webhook set to {webhook_url}")


if __name__ == "__main__":
    main()
