"""Telegram client factory for botwarden.

The moderator logs in with a bot token, so there is no interactive login:
credentials are read from the environment once and the client is started
with them explicitly from app.py.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv
from telethon import TelegramClient

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class BotCredentials:
    api_id: int
    api_hash: str
    bot_token: str
    session_name: str = "botwarden"

    def secrets(self) -> list[str]:
        """Values that must never reach a log line."""

        return [self.api_hash, self.bot_token]


def load_credentials() -> BotCredentials:
    """Read API_ID, API_HASH, BOT_TOKEN (and SESSION_NAME) from the environment."""

    load_dotenv()

    api_id = os.getenv("API_ID")
    api_hash = os.getenv("API_HASH")
    token = os.getenv("BOT_TOKEN")
    missing = [name for name, value in (("API_ID", api_id), ("API_HASH", api_hash), ("BOT_TOKEN", token)) if not value]
    if missing:
        raise RuntimeError(f"Missing {', '.join(missing)} in environment")
    try:
        parsed_id = int(api_id)
    except ValueError as exc:
        raise RuntimeError(f"API_ID must be numeric, got {api_id!r}") from exc

    return BotCredentials(
        api_id=parsed_id,
        api_hash=api_hash,
        bot_token=token,
        session_name=os.getenv("SESSION_NAME", "botwarden"),
    )


def build_client(credentials: BotCredentials) -> TelegramClient:
    """Create the Telethon client; call start(bot_token=...) on it to log in."""

    LOGGER.info("Initializing Telegram client (session %s)", credentials.session_name)
    return TelegramClient(credentials.session_name, credentials.api_id, credentials.api_hash)
