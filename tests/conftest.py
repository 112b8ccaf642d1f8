from __future__ import annotations

from typing import Awaitable, Callable, Optional

import pytest
from fakeredis import FakeServer, aioredis

from adapters.redis_store import RedisStore
from core.errors import GatewayError, PermissionDenied
from core.models import Administrator, Notice, NoticeKind
from core.state import GroupState


class FakeGateway:
    """Records every call; removals can be denied or failed per account."""

    def __init__(self) -> None:
        self.admins: list[Administrator] = [Administrator(account_id=100, role="creator")]
        self.admins_error: Optional[Exception] = None
        self.notices: list[tuple[int, Notice]] = []
        self.removed: list[tuple[int, int]] = []
        self.deleted: list[tuple[int, int]] = []
        self.left: list[int] = []
        self.deny_removal: set[int] = set()
        self.fail_removal: set[int] = set()
        self.deny_delete = False
        self.before_remove: Optional[Callable[[int, int], Awaitable[None]]] = None

    async def get_administrators(self, chat_id: int) -> list[Administrator]:
        if self.admins_error is not None:
            raise self.admins_error
        return list(self.admins)

    async def send_notice(self, chat_id: int, notice: Notice) -> None:
        self.notices.append((chat_id, notice))

    async def remove_member(self, chat_id: int, account_id: int) -> None:
        if self.before_remove is not None:
            await self.before_remove(chat_id, account_id)
        if account_id in self.deny_removal:
            raise PermissionDenied("remove_member", chat_id, "CHAT_ADMIN_REQUIRED")
        if account_id in self.fail_removal:
            raise GatewayError("connection reset")
        self.removed.append((chat_id, account_id))

    async def delete_message(self, chat_id: int, message_id: int) -> None:
        if self.deny_delete:
            raise PermissionDenied("delete_message", chat_id)
        self.deleted.append((chat_id, message_id))

    async def leave_chat(self, chat_id: int) -> None:
        self.left.append(chat_id)

    def notices_of(self, kind: NoticeKind) -> list[Notice]:
        return [notice for _, notice in self.notices if notice.kind is kind]


@pytest.fixture
def redis_client():
    return aioredis.FakeRedis(server=FakeServer(), decode_responses=True)


@pytest.fixture
def store(redis_client) -> RedisStore:
    return RedisStore(redis_client)


@pytest.fixture
def state(store) -> GroupState:
    return GroupState(store)


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()
