"""Telethon chat gateway adapter.

Implements the core GatewayPort with a bot-authorized Telethon client and
translates Telegram RPC errors into the core error taxonomy.
"""

from __future__ import annotations

import logging

from telethon import errors
from telethon.tl.types import ChannelParticipantCreator, ChannelParticipantsAdmins

from adapters.notice_formatting import format_notice
from core.errors import GatewayError, PermissionDenied, WardenError
from core.models import ADMINISTRATOR_ROLE, CREATOR_ROLE, Administrator, Notice

LOGGER = logging.getLogger(__name__)

# Telethon parse_mode name -> notice format.
_FORMAT_BY_PARSE_MODE = {"md": "markdown", "markdown": "markdown", "html": "html"}


def translate_error(action: str, chat_id: int, exc: Exception) -> WardenError:
    """Map a Telethon failure onto PermissionDenied or GatewayError.

    Telegram answers refused admin actions with 400 (e.g. USER_ADMIN_INVALID,
    CHAT_ADMIN_REQUIRED) or 403 (e.g. RIGHT_FORBIDDEN), so both count as a
    permission signal.
    """

    if isinstance(exc, (errors.BadRequestError, errors.ForbiddenError)):
        return PermissionDenied(action, chat_id, str(exc))
    return GatewayError(f"{action} failed in chat {chat_id}: {exc}")


class TelethonGateway:
    """Gateway adapter backed by a Telethon client logged in as a bot."""

    def __init__(self, client, parse_mode: str = "md") -> None:
        if parse_mode not in _FORMAT_BY_PARSE_MODE:
            raise ValueError(f"Unsupported parse mode: {parse_mode}")
        self._client = client
        self._parse_mode = parse_mode
        self._format = _FORMAT_BY_PARSE_MODE[parse_mode]

    async def get_administrators(self, chat_id: int) -> list[Administrator]:
        try:
            users = await self._client.get_participants(chat_id, filter=ChannelParticipantsAdmins)
        except (errors.RPCError, OSError) as exc:
            raise translate_error("get_administrators", chat_id, exc) from exc

        admins: list[Administrator] = []
        for user in users:
            participant = getattr(user, "participant", None)
            role = CREATOR_ROLE if isinstance(participant, ChannelParticipantCreator) else ADMINISTRATOR_ROLE
            admins.append(Administrator(account_id=user.id, role=role))
        return admins

    async def send_notice(self, chat_id: int, notice: Notice) -> None:
        text = format_notice(notice, mode=self._format)
        try:
            await self._client.send_message(
                chat_id,
                text,
                parse_mode=self._parse_mode,
                reply_to=notice.reply_to,
                silent=notice.silent,
            )
        except (errors.RPCError, OSError) as exc:
            raise translate_error("send_message", chat_id, exc) from exc

    async def remove_member(self, chat_id: int, account_id: int) -> None:
        """Ban the account from the chat for good."""

        try:
            await self._client.edit_permissions(chat_id, account_id, view_messages=False)
        except (errors.RPCError, OSError) as exc:
            raise translate_error("remove_member", chat_id, exc) from exc

    async def delete_message(self, chat_id: int, message_id: int) -> None:
        try:
            await self._client.delete_messages(chat_id, [message_id])
        except (errors.RPCError, OSError) as exc:
            raise translate_error("delete_message", chat_id, exc) from exc

    async def leave_chat(self, chat_id: int) -> None:
        try:
            await self._client.kick_participant(chat_id, "me")
        except (errors.RPCError, OSError) as exc:
            raise translate_error("leave_chat", chat_id, exc) from exc
        LOGGER.info("Left chat %s", chat_id)
