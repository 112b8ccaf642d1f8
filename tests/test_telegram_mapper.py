from __future__ import annotations

import asyncio
from types import SimpleNamespace
from typing import Optional

from adapters.telegram_mapper import (
    account_from_user,
    build_action_event,
    build_message_event,
    chat_kind_of,
    is_command_text,
)
from core.models import Account, ChatKind

SELF = 1


class DummyChat:
    def __init__(self, *, megagroup: bool = False, broadcast: bool = False, title: Optional[str] = "Group") -> None:
        self.id = 123
        self.megagroup = megagroup
        self.broadcast = broadcast
        self.title = title


class DummyUser:
    def __init__(self, user_id: int, bot: bool = False, username: Optional[str] = None) -> None:
        self.id = user_id
        self.bot = bot
        self.username = username


class DummyClient:
    def __init__(self) -> None:
        self.requests = []

    async def __call__(self, request):
        self.requests.append(request)
        return SimpleNamespace(full_chat=SimpleNamespace(about="No spam"))


class DummyAction:
    def __init__(
        self,
        *,
        chat: DummyChat,
        users: "list[DummyUser]" = (),
        added_by: Optional[DummyUser] = None,
        kicked_by: Optional[DummyUser] = None,
        user_added: bool = False,
        user_joined: bool = False,
        user_left: bool = False,
        user_kicked: bool = False,
    ) -> None:
        self.chat_id = -100123
        self.client = DummyClient()
        self.action_message = SimpleNamespace(id=50)
        self._chat = chat
        self._users = list(users)
        self._added_by = added_by
        self._kicked_by = kicked_by
        self.user_added = user_added
        self.user_joined = user_joined
        self.user_left = user_left
        self.user_kicked = user_kicked

    async def get_chat(self):
        return self._chat

    async def get_users(self):
        return self._users

    async def get_user(self):
        return self._users[0] if self._users else None

    async def get_added_by(self):
        return self._added_by

    async def get_kicked_by(self):
        return self._kicked_by


class DummyMessageEvent:
    def __init__(self, *, chat: DummyChat, sender: Optional[DummyUser], text: str) -> None:
        self.chat_id = -100123
        self.raw_text = text
        self.message = SimpleNamespace(id=77)
        self._chat = chat
        self._sender = sender

    async def get_chat(self):
        return self._chat

    async def get_sender(self):
        return self._sender


def test_chat_kind_of() -> None:
    assert chat_kind_of(DummyChat(megagroup=True)) is ChatKind.SUPERGROUP
    assert chat_kind_of(DummyChat(broadcast=True)) is ChatKind.CHANNEL
    assert chat_kind_of(DummyChat()) is ChatKind.GROUP
    assert chat_kind_of(DummyUser(5)) is ChatKind.PRIVATE


def test_account_from_user() -> None:
    assert account_from_user(DummyUser(5, bot=True, username="x_bot")) == Account(5, True, "x_bot")
    assert account_from_user(None).id == 0


def test_is_command_text() -> None:
    assert is_command_text("/settings")
    assert not is_command_text("hello /settings")
    assert not is_command_text(None)


def test_user_added_bot() -> None:
    event = DummyAction(
        chat=DummyChat(megagroup=True),
        users=[DummyUser(999, bot=True, username="spam_bot")],
        added_by=DummyUser(200),
        user_added=True,
    )
    inbound = asyncio.run(build_action_event(event, SELF))

    assert inbound is not None
    assert inbound.chat_kind is ChatKind.SUPERGROUP
    assert inbound.sender == Account(200)
    assert inbound.new_members == (Account(999, True, "spam_bot"),)
    assert inbound.message_id == 50
    assert inbound.chat_description == ""
    assert event.client.requests == []


def test_moderator_added_fetches_description() -> None:
    event = DummyAction(
        chat=DummyChat(megagroup=True),
        users=[DummyUser(SELF, bot=True)],
        added_by=DummyUser(100),
        user_added=True,
    )
    inbound = asyncio.run(build_action_event(event, SELF))

    assert inbound is not None
    assert inbound.chat_title == "Group"
    assert inbound.chat_description == "No spam"
    assert len(event.client.requests) == 1


def test_user_joined_is_its_own_actor() -> None:
    event = DummyAction(chat=DummyChat(megagroup=True), users=[DummyUser(300)], user_joined=True)
    inbound = asyncio.run(build_action_event(event, SELF))
    assert inbound is not None
    assert inbound.sender == Account(300)


def test_user_kicked_maps_left_member() -> None:
    event = DummyAction(
        chat=DummyChat(megagroup=True),
        users=[DummyUser(SELF, bot=True)],
        kicked_by=DummyUser(100),
        user_kicked=True,
    )
    inbound = asyncio.run(build_action_event(event, SELF))

    assert inbound is not None
    assert inbound.left_member == Account(SELF, True)
    assert inbound.sender == Account(100)
    assert inbound.new_members == ()


def test_other_actions_are_skipped() -> None:
    event = DummyAction(chat=DummyChat(megagroup=True))
    assert asyncio.run(build_action_event(event, SELF)) is None


def test_build_message_event() -> None:
    event = DummyMessageEvent(
        chat=DummyChat(megagroup=True),
        sender=DummyUser(999, bot=True),
        text="/start@spam_bot",
    )
    inbound = asyncio.run(build_message_event(event))

    assert inbound.sender == Account(999, True)
    assert inbound.message_id == 77
    assert inbound.is_command
    assert inbound.chat_kind is ChatKind.SUPERGROUP
