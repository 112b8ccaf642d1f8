"""Ports (interfaces) used by the core engine.

Ports define the minimal contracts for store and chat gateway adapters so
that the core can be reused with different backends.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Protocol, Sequence, Union

from core.models import Administrator, InboundEvent, Notice

Member = Union[int, str]


@dataclass(frozen=True)
class StoreOp:
    """One queued write inside a StoreBatch."""

    name: str
    key: str
    args: tuple = ()


@dataclass
class StoreBatch:
    """Multi-key writes that a store must apply all-or-nothing."""

    ops: list[StoreOp] = field(default_factory=list)

    def sadd(self, key: str, member: Member) -> "StoreBatch":
        self.ops.append(StoreOp("sadd", key, (member,)))
        return self

    def srem(self, key: str, member: Member) -> "StoreBatch":
        self.ops.append(StoreOp("srem", key, (member,)))
        return self

    def hset(self, key: str, mapping: dict[str, str]) -> "StoreBatch":
        self.ops.append(StoreOp("hset", key, (dict(mapping),)))
        return self

    def delete(self, key: str) -> "StoreBatch":
        self.ops.append(StoreOp("delete", key))
        return self

    def __len__(self) -> int:
        return len(self.ops)


class StorePort(Protocol):
    """Key-value, set, hash and counter operations required by the core.

    Implementations raise StoreError when the backend call fails.
    """

    async def get(self, key: str) -> Optional[str]:
        ...

    async def hgetall(self, key: str) -> dict[str, str]:
        ...

    async def hget(self, key: str, field_name: str) -> Optional[str]:
        ...

    async def hset(self, key: str, mapping: dict[str, str]) -> None:
        ...

    async def hset_existing(self, key: str, mapping: dict[str, str]) -> bool:
        """Update fields only if the hash exists; returns whether it did."""
        ...

    async def sadd(self, key: str, member: Member) -> bool:
        ...

    async def srem(self, key: str, member: Member) -> bool:
        ...

    async def sismember(self, key: str, member: Member) -> bool:
        ...

    async def smembers(self, key: str) -> set[str]:
        ...

    async def incr(self, key: str, ceiling: Optional[int] = None) -> int:
        ...

    async def delete(self, *keys: str) -> int:
        ...

    async def execute(self, batch: StoreBatch) -> None:
        ...


class GatewayPort(Protocol):
    """Chat platform operations required by the core.

    Privileged calls raise PermissionDenied when refused and GatewayError on
    any other failure.
    """

    async def get_administrators(self, chat_id: int) -> Sequence[Administrator]:
        ...

    async def send_notice(self, chat_id: int, notice: Notice) -> None:
        ...

    async def remove_member(self, chat_id: int, account_id: int) -> None:
        ...

    async def delete_message(self, chat_id: int, message_id: int) -> None:
        ...

    async def leave_chat(self, chat_id: int) -> None:
        ...


class CommandHandlerPort(Protocol):
    """Collaborator that owns command parsing and settings commands."""

    async def handle(self, event: InboundEvent) -> None:
        ...
