"""Application entry point for the botwarden moderator."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Iterable, Optional
from urllib.parse import urlsplit

from art import tprint
from telethon import events

import settings
from adapters.redis_store import RedisStore, build_redis
from adapters.telegram_gateway import TelethonGateway
from adapters.telegram_mapper import build_action_event, build_message_event
from client import build_client, load_credentials
from core.dispatcher import EventDispatcher
from core.engine import ModerationEngine
from core.state import GroupState

NAME = "BOTWARDEN"
FONT = "tarty-1"


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _redis_password(url: str) -> Optional[str]:
    """Password embedded in a redis:// URL, if any."""

    return urlsplit(url).password


def _collect_redaction_values(config: dict, known: Iterable[Optional[str]] = ()) -> list[str]:
    """Secrets to mask: the ones the process holds plus env vars named in patterns."""

    redact_cfg = config.get("redact", {}) if config else {}
    if not redact_cfg.get("enabled", True):
        return []
    values = [value for value in known if value]
    for name in redact_cfg.get("patterns", []):
        value = os.getenv(name)
        if value:
            values.append(value)
    # Longest first so a token is masked whole before any substring of it.
    return sorted(set(values), key=len, reverse=True)


def _configure_logging(known_secrets: Iterable[Optional[str]] = ()) -> None:
    config = settings.LOGGING or {}
    if not config.get("enabled", False):
        return

    level_name = str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    secrets = _collect_redaction_values(config, known_secrets)
    formatter = _RedactingFormatter(secrets, fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    if config.get("console", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/botwarden.log")
        if not os.path.isabs(path):
            path = os.path.join(settings.PROJECT_ROOT, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        max_bytes = int(file_cfg.get("max_bytes", 5 * 1024 * 1024))
        backup_count = int(file_cfg.get("backup_count", 5))
        file_handler = RotatingFileHandler(
            path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers)


def _run() -> None:
    _print_banner()
    credentials = load_credentials()
    _configure_logging([*credentials.secrets(), _redis_password(settings.REDIS_URL)])
    logger = logging.getLogger(__name__)

    logger.info("Starting botwarden")

    store = RedisStore(build_redis(settings.REDIS_URL))
    client = build_client(credentials)
    client.start(bot_token=credentials.bot_token)

    # Fail fast when Redis is down; every flow depends on it.
    client.loop.run_until_complete(store.ping())
    me = client.loop.run_until_complete(client.get_me())
    logger.info("Logged in as @%s (%s)", me.username, me.id)

    engine = ModerationEngine(
        state=GroupState(store),
        gateway=TelethonGateway(client, parse_mode=settings.NOTICE_PARSE_MODE),
        self_id=me.id,
        defaults=settings.GROUP_DEFAULTS,
    )
    dispatcher = EventDispatcher(engine)

    # Handlers only map Telethon events; routing and policy live in the core.
    @client.on(events.ChatAction())
    async def on_chat_action(event) -> None:
        try:
            inbound = await build_action_event(event, me.id)
        except Exception:
            logger.exception("Cannot map chat action in chat %s", event.chat_id)
            return
        if inbound is not None:
            dispatcher.dispatch(inbound)

    @client.on(events.NewMessage(incoming=True))
    async def on_message(event) -> None:
        try:
            inbound = await build_message_event(event)
        except Exception:
            logger.exception("Cannot map message in chat %s", event.chat_id)
            return
        dispatcher.dispatch(inbound)

    logger.info("Client connected. Listening for updates...")
    try:
        client.run_until_disconnected()
    finally:
        client.loop.run_until_complete(dispatcher.drain())
        client.loop.run_until_complete(store.close())


def _list_groups(creator_id: int) -> None:
    """Print the chats provisioned for a creator, from the admin index."""

    async def _collect() -> list[tuple[int, str]]:
        store = RedisStore(build_redis(settings.REDIS_URL))
        state = GroupState(store)
        try:
            rows = []
            for chat_id in sorted(await state.groups_of_creator(creator_id)):
                group = await state.find_group(chat_id)
                if group is None:
                    rows.append((chat_id, "(missing settings)"))
                    continue
                status = "active" if group.is_active else "inactive"
                rows.append((chat_id, f"{group.title} | {status} | limit {group.warn_limit}"))
            return rows
        finally:
            await store.close()

    rows = asyncio.run(_collect())
    if not rows:
        print(f"No groups are registered for creator {creator_id}.")
        return
    for index, (chat_id, summary) in enumerate(rows, start=1):
        print(f"{index}. {chat_id} | {summary}")


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="botwarden")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Start the moderator")
    groups_parser = subparsers.add_parser(
        "groups",
        help="Shows the groups registered for a creator.",
    )
    groups_parser.add_argument("creator_id", type=int)

    args = parser.parse_args(argv)
    if args.command == "groups":
        _list_groups(args.creator_id)
        return
    _run()


if __name__ == "__main__":
    main()
