"""Telegram-to-core event mapping adapter.

This keeps Telethon-specific details out of the core engine.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from telethon import errors
from telethon.tl.functions.channels import GetFullChannelRequest

from core.models import Account, ChatKind, InboundEvent

LOGGER = logging.getLogger(__name__)

UNKNOWN_ACCOUNT = Account(id=0)


def chat_kind_of(chat: Any) -> ChatKind:
    """Classify a Telethon chat entity.

    Supergroups are channels with the megagroup flag; broadcast channels
    are everything else on the channel side.
    """

    if getattr(chat, "megagroup", False):
        return ChatKind.SUPERGROUP
    if getattr(chat, "broadcast", False):
        return ChatKind.CHANNEL
    if getattr(chat, "title", None) is not None:
        return ChatKind.GROUP
    return ChatKind.PRIVATE


def account_from_user(user: Any) -> Account:
    if user is None:
        return UNKNOWN_ACCOUNT
    return Account(
        id=user.id,
        is_bot=bool(getattr(user, "bot", False)),
        username=getattr(user, "username", None),
    )


def is_command_text(text: Optional[str]) -> bool:
    return bool(text) and text.startswith("/")


async def _fetch_description(client, chat) -> str:
    try:
        full = await client(GetFullChannelRequest(chat))
    except (errors.RPCError, OSError) as exc:
        LOGGER.warning("Cannot fetch description of chat %s: %s", getattr(chat, "id", "?"), exc)
        return ""
    return getattr(full.full_chat, "about", "") or ""


async def build_action_event(event, self_id: int) -> Optional[InboundEvent]:
    """Build an InboundEvent from a Telethon ChatAction event.

    Returns None for actions the engine does not care about (title edits,
    pins and so on).
    """

    chat = await event.get_chat()
    kind = chat_kind_of(chat)
    title = getattr(chat, "title", "") or ""
    action_message = getattr(event, "action_message", None)
    message_id = getattr(action_message, "id", 0) or 0

    if event.user_added or event.user_joined:
        users = await event.get_users()
        new_members = tuple(account_from_user(user) for user in users)
        if event.user_added:
            sender = account_from_user(await event.get_added_by())
        else:
            sender = new_members[0] if new_members else UNKNOWN_ACCOUNT

        description = ""
        if kind is ChatKind.SUPERGROUP and any(member.id == self_id for member in new_members):
            # Only needed when provisioning, and it costs an extra request.
            description = await _fetch_description(event.client, chat)

        return InboundEvent(
            chat_id=event.chat_id,
            chat_kind=kind,
            sender=sender,
            message_id=message_id,
            new_members=new_members,
            chat_title=title,
            chat_description=description,
        )

    if event.user_left or event.user_kicked:
        left = account_from_user(await event.get_user())
        sender = left
        if event.user_kicked:
            sender = account_from_user(await event.get_kicked_by())
        return InboundEvent(
            chat_id=event.chat_id,
            chat_kind=kind,
            sender=sender,
            message_id=message_id,
            left_member=left,
            chat_title=title,
        )

    return None


async def build_message_event(event) -> InboundEvent:
    """Build an InboundEvent from a Telethon NewMessage event."""

    chat = await event.get_chat()
    sender = await event.get_sender()
    return InboundEvent(
        chat_id=event.chat_id,
        chat_kind=chat_kind_of(chat),
        sender=account_from_user(sender),
        message_id=event.message.id,
        is_command=is_command_text(event.raw_text),
        chat_title=getattr(chat, "title", "") or "",
    )
