#!/usr/bin/env python3
"""Set the bot command menu shown when a participant taps '/' in Telegram.
Run once after creating the bot (or when changing commands).
Requires TELEGRAM_BOT_TOKEN in .env.
"""
import asyncio
import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from telegram import Bot, BotCommand
from telegram.error import TelegramError

REPO_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(REPO_ROOT / ".env")

COMMANDS = [
    BotCommand("start", "Register or show your status"),
    BotCommand("send", "Send an anonymous gift to your recipient"),
]


async def set_commands(token: str) -> None:
    async with Bot(token=token) as bot:
        await bot.set_my_commands(COMMANDS)


def main() -> None:
    token = (os.environ.get("TELEGRAM_BOT_TOKEN") or "").strip()
    if not token:
        print("TELEGRAM_BOT_TOKEN not set in .env", file=sys.stderr)
        sys.exit(1)
    try:
        asyncio.run(set_commands(token))
    except TelegramError as e:
        print(f"Failed to set commands: {e}", file=sys.stderr)
        sys.exit(1)
    print("Command menu set: " + ", ".join(c.command for c in COMMANDS))


if __name__ == "__main__":
    main()
