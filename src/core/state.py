"""Group state accessors.

Translate store operations into domain entities: settings, whitelist, warn
counters and the creator's admin index. Nothing here is cached between
calls; the store owns all state.
"""

from __future__ import annotations

import logging
from typing import Optional

from core.errors import DataCorruption, NotFound
from core.keys import admin_key, group_key, warn_key, whitelist_key
from core.models import GroupSettings
from core.ports import StoreBatch, StorePort

LOGGER = logging.getLogger(__name__)


class GroupState:
    """Typed read/write helpers over a StorePort."""

    def __init__(self, store: StorePort) -> None:
        self._store = store

    async def find_group(self, chat_id: int) -> Optional[GroupSettings]:
        """Return the chat's settings, or None when it was never initialized."""

        mapping = await self._store.hgetall(group_key(chat_id))
        if not mapping:
            return None
        return GroupSettings.from_mapping(mapping)

    async def get_group(self, chat_id: int) -> GroupSettings:
        settings = await self.find_group(chat_id)
        if settings is None:
            raise NotFound(f"Chat {chat_id} is not initialized")
        return settings

    async def create_group(self, chat_id: int, settings: GroupSettings) -> None:
        """Write settings and index the chat under its creator in one batch."""

        batch = StoreBatch()
        batch.sadd(admin_key(settings.creator_id), chat_id)
        batch.hset(group_key(chat_id), settings.to_mapping())
        await self._store.execute(batch)

    async def remove_group(self, chat_id: int) -> None:
        """Delete settings, whitelist and admin-index entry in one batch.

        An unparsable creator id only skips the admin-index removal.
        """

        raw_creator = await self._store.hget(group_key(chat_id), "creator")

        batch = StoreBatch()
        batch.delete(group_key(chat_id))
        batch.delete(whitelist_key(chat_id))
        try:
            creator_id = _parse_creator(raw_creator)
        except DataCorruption as exc:
            LOGGER.warning("Skipping admin index cleanup for chat %s: %s", chat_id, exc)
        else:
            batch.srem(admin_key(creator_id), chat_id)

        await self._store.execute(batch)

    async def is_active(self, chat_id: int) -> bool:
        """Absent settings count as inactive."""

        raw = await self._store.hget(group_key(chat_id), "is_active")
        return raw == "1"

    async def set_active(self, chat_id: int, active: bool) -> bool:
        """Flip moderation on or off; returns False if the chat has no settings."""

        return await self._store.hset_existing(group_key(chat_id), {"is_active": "1" if active else "0"})

    async def set_show_warn(self, chat_id: int, show_warn: bool) -> bool:
        return await self._store.hset_existing(group_key(chat_id), {"show_warn": "1" if show_warn else "0"})

    async def set_warn_limit(self, chat_id: int, warn_limit: int) -> bool:
        if warn_limit < 1:
            raise ValueError(f"warn_limit must be >= 1, got {warn_limit}")
        return await self._store.hset_existing(group_key(chat_id), {"warn_limit": str(warn_limit)})

    async def whitelist(self, chat_id: int, account_id: int) -> bool:
        """Approve an account; returns True only if it was not approved yet."""

        return await self._store.sadd(whitelist_key(chat_id), account_id)

    async def unwhitelist(self, chat_id: int, account_id: int) -> bool:
        return await self._store.srem(whitelist_key(chat_id), account_id)

    async def is_whitelisted(self, chat_id: int, account_id: int) -> bool:
        return await self._store.sismember(whitelist_key(chat_id), account_id)

    async def whitelist_members(self, chat_id: int) -> set[int]:
        members = await self._store.smembers(whitelist_key(chat_id))
        return {int(member) for member in members}

    async def groups_of_creator(self, creator_id: int) -> set[int]:
        members = await self._store.smembers(admin_key(creator_id))
        return {int(member) for member in members}

    async def add_warning(self, chat_id: int, user_id: int, warn_limit: int) -> int:
        """Atomically bump the warn counter, never past warn_limit."""

        return await self._store.incr(warn_key(chat_id, user_id), ceiling=warn_limit)

    async def warnings(self, chat_id: int, user_id: int) -> int:
        raw = await self._store.get(warn_key(chat_id, user_id))
        return int(raw or 0)

    async def reset_warnings(self, chat_id: int, user_id: int) -> None:
        await self._store.delete(warn_key(chat_id, user_id))


def _parse_creator(raw: Optional[str]) -> int:
    if raw is None:
        raise DataCorruption("creator field is missing")
    try:
        return int(raw)
    except ValueError as exc:
        raise DataCorruption(f"creator field is not an integer: {raw!r}") from exc
