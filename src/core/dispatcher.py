"""Event routing.

Each inbound event is classified into exactly one flow and launched as its
own task. Tasks share nothing in-process, so no ordering between them is
required.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import AsyncIterable, Awaitable, Optional

from core.engine import ModerationEngine
from core.models import ChatKind, InboundEvent
from core.ports import CommandHandlerPort

LOGGER = logging.getLogger(__name__)


class Flow(str, Enum):
    NEW_MEMBERS = "new_members"
    LEFT_MEMBER = "left_member"
    BOT_MESSAGE = "bot_message"
    COMMAND = "command"
    IGNORED = "ignored"


class EventDispatcher:
    """Route inbound events to the engine, one task per event."""

    def __init__(
        self,
        engine: ModerationEngine,
        command_handler: Optional[CommandHandlerPort] = None,
    ) -> None:
        self._engine = engine
        self._command_handler = command_handler
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def classify(self, event: InboundEvent) -> Flow:
        """Pick the single flow an event belongs to."""

        is_command = event.is_command and self._command_handler is not None

        # Commands are accepted from any chat kind; moderation only runs in supergroups.
        if event.chat_kind is not ChatKind.SUPERGROUP:
            return Flow.COMMAND if is_command else Flow.IGNORED

        if event.new_members:
            return Flow.NEW_MEMBERS
        if event.left_member is not None:
            return Flow.LEFT_MEMBER
        if event.sender.is_bot and event.sender.id != self._engine.self_id:
            return Flow.BOT_MESSAGE
        if is_command:
            return Flow.COMMAND
        return Flow.IGNORED

    def dispatch(self, event: InboundEvent) -> Optional[asyncio.Task]:
        """Launch the flow for an event; must be called inside a running loop."""

        flow = self.classify(event)
        if flow is Flow.NEW_MEMBERS:
            coro = self._engine.handle_new_members(event)
        elif flow is Flow.LEFT_MEMBER:
            coro = self._engine.handle_left_member(event)
        elif flow is Flow.BOT_MESSAGE:
            coro = self._engine.handle_bot_message(event)
        elif flow is Flow.COMMAND:
            coro = self._command_handler.handle(event)
        else:
            return None
        return self._spawn(coro, f"{flow.value}:{event.chat_id}:{event.message_id}")

    async def consume(self, events: AsyncIterable[InboundEvent]) -> None:
        """Dispatch every event of a stream, then wait for in-flight tasks."""

        async for event in events:
            self.dispatch(event)
        await self.drain()

    async def drain(self) -> None:
        """Wait until every in-flight task has finished."""

        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _spawn(self, coro: Awaitable[None], name: str) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        task.set_name(name)
        # The loop keeps only weak references to tasks.
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            LOGGER.error("Event task %s crashed", task.get_name(), exc_info=exc)
