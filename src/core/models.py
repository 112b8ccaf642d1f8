"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any integration-specific types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from core.errors import DataCorruption

CREATOR_ROLE = "creator"
ADMINISTRATOR_ROLE = "administrator"


class ChatKind(str, Enum):
    PRIVATE = "private"
    GROUP = "group"
    SUPERGROUP = "supergroup"
    CHANNEL = "channel"


class NoticeKind(str, Enum):
    """Categories of outbound in-chat notifications."""

    INTRODUCTION = "introduction"
    CREATOR_REQUIRED = "creator_required"
    WHITELISTED = "whitelisted"
    WARNING = "warning"
    PERMISSION_REQUIRED = "permission_required"


@dataclass(frozen=True)
class Account:
    """A Telegram account as seen by the engine."""

    id: int
    is_bot: bool = False
    username: Optional[str] = None


@dataclass(frozen=True)
class Administrator:
    account_id: int
    role: str

    @property
    def is_creator(self) -> bool:
        return self.role == CREATOR_ROLE


@dataclass(frozen=True)
class Notice:
    """A notification category plus its parameters.

    Rendering into text is left to the gateway adapter.
    """

    kind: NoticeKind
    params: dict[str, Any] = field(default_factory=dict)
    reply_to: Optional[int] = None
    silent: bool = False


@dataclass(frozen=True)
class InboundEvent:
    """Minimal update context consumed by the dispatcher."""

    chat_id: int
    chat_kind: ChatKind
    sender: Account
    message_id: int
    new_members: tuple[Account, ...] = ()
    left_member: Optional[Account] = None
    is_command: bool = False
    chat_title: str = ""
    chat_description: str = ""


def _parse_flag(raw: str, name: str) -> bool:
    if raw in ("1", "true", "True"):
        return True
    if raw in ("0", "false", "False"):
        return False
    raise DataCorruption(f"Invalid boolean for {name}: {raw!r}")


def _parse_int(raw: Any, name: str) -> int:
    try:
        return int(raw)
    except (TypeError, ValueError) as exc:
        raise DataCorruption(f"Invalid integer for {name}: {raw!r}") from exc


@dataclass(frozen=True)
class GroupSettings:
    """Per-chat moderation settings persisted as a hash."""

    is_active: bool
    show_warn: bool
    warn_limit: int
    creator_id: int
    title: str = ""
    description: str = ""

    def to_mapping(self) -> dict[str, str]:
        """Flatten into the string-only mapping stored in the settings hash."""

        return {
            "is_active": "1" if self.is_active else "0",
            "show_warn": "1" if self.show_warn else "0",
            "warn_limit": str(self.warn_limit),
            "creator": str(self.creator_id),
            "title": self.title,
            "description": self.description,
        }

    @classmethod
    def from_mapping(cls, mapping: dict[str, str]) -> "GroupSettings":
        """Parse a stored settings hash, raising DataCorruption on bad fields."""

        for name in ("is_active", "show_warn", "warn_limit", "creator"):
            if name not in mapping:
                raise DataCorruption(f"Settings field missing: {name}")

        warn_limit = _parse_int(mapping["warn_limit"], "warn_limit")
        if warn_limit < 1:
            raise DataCorruption(f"warn_limit must be >= 1, got {warn_limit}")

        return cls(
            is_active=_parse_flag(mapping["is_active"], "is_active"),
            show_warn=_parse_flag(mapping["show_warn"], "show_warn"),
            warn_limit=warn_limit,
            creator_id=_parse_int(mapping["creator"], "creator"),
            title=mapping.get("title", ""),
            description=mapping.get("description", ""),
        )
