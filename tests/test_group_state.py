from __future__ import annotations

import asyncio

import pytest
from fakeredis import FakeServer, aioredis

from adapters.redis_store import RedisStore
from core.errors import DataCorruption, NotFound, StoreError
from core.keys import admin_key, group_key, warn_key, whitelist_key
from core.models import GroupSettings
from core.ports import StoreBatch
from core.state import GroupState

CHAT = -100555


def _settings(**overrides) -> GroupSettings:
    values = dict(is_active=False, show_warn=True, warn_limit=3, creator_id=7, title="T", description="D")
    values.update(overrides)
    return GroupSettings(**values)


def test_settings_mapping_is_string_only() -> None:
    mapping = _settings(is_active=True).to_mapping()
    assert mapping == {
        "is_active": "1",
        "show_warn": "1",
        "warn_limit": "3",
        "creator": "7",
        "title": "T",
        "description": "D",
    }
    assert GroupSettings.from_mapping(mapping) == _settings(is_active=True)


@pytest.mark.parametrize(
    "field_name, value",
    [("warn_limit", "three"), ("warn_limit", "0"), ("creator", ""), ("is_active", "maybe")],
)
def test_settings_with_bad_fields_are_rejected(field_name: str, value: str) -> None:
    mapping = _settings().to_mapping()
    mapping[field_name] = value
    with pytest.raises(DataCorruption):
        GroupSettings.from_mapping(mapping)


def test_settings_missing_field_is_rejected() -> None:
    mapping = _settings().to_mapping()
    del mapping["creator"]
    with pytest.raises(DataCorruption):
        GroupSettings.from_mapping(mapping)


def test_create_group_writes_settings_and_index(state, redis_client) -> None:
    async def scenario() -> None:
        await state.create_group(CHAT, _settings())
        assert await redis_client.hget(group_key(CHAT), "creator") == "7"
        assert await redis_client.smembers(admin_key(7)) == {str(CHAT)}
        assert await state.get_group(CHAT) == _settings()

    asyncio.run(scenario())


def test_get_group_raises_for_unknown_chat(state) -> None:
    with pytest.raises(NotFound):
        asyncio.run(state.get_group(CHAT))


def test_settings_mutators(state) -> None:
    async def scenario() -> None:
        await state.create_group(CHAT, _settings())
        assert await state.set_active(CHAT, True)
        assert await state.set_show_warn(CHAT, False)
        assert await state.set_warn_limit(CHAT, 5)

        assert await state.is_active(CHAT)
        assert await state.get_group(CHAT) == _settings(is_active=True, show_warn=False, warn_limit=5)

        with pytest.raises(ValueError):
            await state.set_warn_limit(CHAT, 0)

    asyncio.run(scenario())


def test_mutators_leave_unknown_chat_untouched(state, redis_client) -> None:
    async def scenario() -> None:
        assert await state.set_active(CHAT, False) is False
        assert await state.set_show_warn(CHAT, True) is False
        assert await state.set_warn_limit(CHAT, 2) is False
        assert await redis_client.hgetall(group_key(CHAT)) == {}
        assert await redis_client.exists(group_key(CHAT)) == 0

    asyncio.run(scenario())


def test_whitelist_add_is_idempotent(state) -> None:
    async def scenario() -> None:
        assert await state.whitelist(CHAT, 42) is True
        assert await state.whitelist(CHAT, 42) is False
        assert await state.is_whitelisted(CHAT, 42)
        assert await state.unwhitelist(CHAT, 42) is True
        assert await state.unwhitelist(CHAT, 42) is False
        assert not await state.is_whitelisted(CHAT, 42)

    asyncio.run(scenario())


def test_add_warning_is_capped(state) -> None:
    async def scenario() -> None:
        counts = [await state.add_warning(CHAT, 9, 2) for _ in range(4)]
        assert counts == [1, 2, 2, 2]
        await state.reset_warnings(CHAT, 9)
        assert await state.warnings(CHAT, 9) == 0

    asyncio.run(scenario())


def test_uncapped_incr(store) -> None:
    async def scenario() -> None:
        assert await store.incr("counter") == 1
        assert await store.incr("counter") == 2

    asyncio.run(scenario())


def test_remove_group_drops_every_key(state, redis_client) -> None:
    async def scenario() -> None:
        await state.create_group(CHAT, _settings())
        await state.create_group(-100777, _settings())
        await state.whitelist(CHAT, 42)

        await state.remove_group(CHAT)

        assert not await redis_client.exists(group_key(CHAT), whitelist_key(CHAT))
        assert await state.groups_of_creator(7) == {-100777}

    asyncio.run(scenario())


def test_remove_group_for_unknown_chat_is_harmless(state) -> None:
    asyncio.run(state.remove_group(CHAT))


def test_batch_applies_all_ops(store, redis_client) -> None:
    batch = StoreBatch().sadd("s", 1).hset("h", {"a": "1"}).delete("gone").srem("s", 2)
    assert len(batch) == 4

    async def scenario() -> None:
        await redis_client.set("gone", "x")
        await store.execute(batch)
        assert await redis_client.smembers("s") == {"1"}
        assert await redis_client.hgetall("h") == {"a": "1"}
        assert await redis_client.get("gone") is None

    asyncio.run(scenario())


def test_store_errors_are_translated() -> None:
    server = FakeServer()
    store = RedisStore(aioredis.FakeRedis(server=server, decode_responses=True))
    server.connected = False

    async def scenario() -> None:
        with pytest.raises(StoreError):
            await store.hgetall(group_key(CHAT))
        with pytest.raises(StoreError):
            await store.incr(warn_key(CHAT, 1), ceiling=3)
        with pytest.raises(StoreError):
            await store.hset_existing(group_key(CHAT), {"is_active": "0"})
        with pytest.raises(StoreError):
            await store.execute(StoreBatch().delete(group_key(CHAT)))
        with pytest.raises(StoreError):
            await store.ping()

    asyncio.run(scenario())
