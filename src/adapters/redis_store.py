"""Redis storage adapter.

Implements the core StorePort on top of redis.asyncio. Batches run inside a
MULTI/EXEC pipeline so multi-key writes are all-or-nothing.
"""

from __future__ import annotations

import logging
from typing import Optional

from redis.asyncio import Redis
from redis.exceptions import RedisError

from core.errors import StoreError
from core.ports import Member, StoreBatch

LOGGER = logging.getLogger(__name__)

# INCR then clamp, in one server-side step so concurrent incidents never
# lose an update or push the counter past the ceiling.
_CAPPED_INCR = """
local value = redis.call('INCR', KEYS[1])
local ceiling = tonumber(ARGV[1])
if value > ceiling then
    redis.call('SET', KEYS[1], ceiling)
    value = ceiling
end
return value
"""

# Settings fields are only written into a hash that already exists, so a
# late write cannot resurrect a chat whose keys were just deleted.
_HSET_EXISTING = """
if redis.call('EXISTS', KEYS[1]) == 0 then
    return 0
end
for i = 1, #ARGV, 2 do
    redis.call('HSET', KEYS[1], ARGV[i], ARGV[i + 1])
end
return 1
"""


def build_redis(url: str) -> Redis:
    """Create an async Redis client that returns str values."""

    return Redis.from_url(url, decode_responses=True)


class RedisStore:
    """Thin Redis wrapper that satisfies the StorePort contract."""

    def __init__(self, redis: Redis) -> None:
        self._redis = redis
        self._capped_incr = redis.register_script(_CAPPED_INCR)
        self._hset_existing = redis.register_script(_HSET_EXISTING)

    async def ping(self) -> None:
        try:
            await self._redis.ping()
        except RedisError as exc:
            raise StoreError(f"Redis is unreachable: {exc}") from exc

    async def close(self) -> None:
        await self._redis.aclose()

    async def get(self, key: str) -> Optional[str]:
        try:
            return await self._redis.get(key)
        except RedisError as exc:
            raise StoreError(f"GET {key} failed: {exc}") from exc

    async def hgetall(self, key: str) -> dict[str, str]:
        try:
            return await self._redis.hgetall(key)
        except RedisError as exc:
            raise StoreError(f"HGETALL {key} failed: {exc}") from exc

    async def hget(self, key: str, field_name: str) -> Optional[str]:
        try:
            return await self._redis.hget(key, field_name)
        except RedisError as exc:
            raise StoreError(f"HGET {key} {field_name} failed: {exc}") from exc

    async def hset(self, key: str, mapping: dict[str, str]) -> None:
        try:
            await self._redis.hset(key, mapping=mapping)
        except RedisError as exc:
            raise StoreError(f"HSET {key} failed: {exc}") from exc

    async def hset_existing(self, key: str, mapping: dict[str, str]) -> bool:
        args = [item for pair in mapping.items() for item in pair]
        try:
            return bool(await self._hset_existing(keys=[key], args=args))
        except RedisError as exc:
            raise StoreError(f"HSET {key} failed: {exc}") from exc

    async def sadd(self, key: str, member: Member) -> bool:
        try:
            return await self._redis.sadd(key, member) > 0
        except RedisError as exc:
            raise StoreError(f"SADD {key} failed: {exc}") from exc

    async def srem(self, key: str, member: Member) -> bool:
        try:
            return await self._redis.srem(key, member) > 0
        except RedisError as exc:
            raise StoreError(f"SREM {key} failed: {exc}") from exc

    async def sismember(self, key: str, member: Member) -> bool:
        try:
            return bool(await self._redis.sismember(key, member))
        except RedisError as exc:
            raise StoreError(f"SISMEMBER {key} failed: {exc}") from exc

    async def smembers(self, key: str) -> set[str]:
        try:
            return set(await self._redis.smembers(key))
        except RedisError as exc:
            raise StoreError(f"SMEMBERS {key} failed: {exc}") from exc

    async def incr(self, key: str, ceiling: Optional[int] = None) -> int:
        try:
            if ceiling is None:
                return int(await self._redis.incr(key))
            return int(await self._capped_incr(keys=[key], args=[ceiling]))
        except RedisError as exc:
            raise StoreError(f"INCR {key} failed: {exc}") from exc

    async def delete(self, *keys: str) -> int:
        try:
            return int(await self._redis.delete(*keys))
        except RedisError as exc:
            raise StoreError(f"DEL {' '.join(keys)} failed: {exc}") from exc

    async def execute(self, batch: StoreBatch) -> None:
        """Apply every queued op inside one MULTI/EXEC transaction."""

        if not batch.ops:
            return
        try:
            async with self._redis.pipeline(transaction=True) as pipe:
                for op in batch.ops:
                    if op.name == "hset":
                        pipe.hset(op.key, mapping=op.args[0])
                    elif op.name == "sadd":
                        pipe.sadd(op.key, *op.args)
                    elif op.name == "srem":
                        pipe.srem(op.key, *op.args)
                    elif op.name == "delete":
                        pipe.delete(op.key)
                    else:
                        raise ValueError(f"Unsupported batch op: {op.name}")
                await pipe.execute()
        except RedisError as exc:
            raise StoreError(f"Batch of {len(batch)} ops failed: {exc}") from exc
        LOGGER.debug("Executed batch of %s ops", len(batch))
