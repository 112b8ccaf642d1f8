"""Helpers for building store keys.

Every key the engine touches is derived here so the layout stays in one
place.
"""

from __future__ import annotations

GROUP_PREFIX = "group:"
WHITELIST_PREFIX = "whitelist:"
ADMIN_PREFIX = "admin:"
WARN_PREFIX = "warns:"


def group_key(chat_id: int) -> str:
    """Hash holding a chat's GroupSettings."""

    return f"{GROUP_PREFIX}{chat_id}"


def whitelist_key(chat_id: int) -> str:
    """Set of approved account ids for a chat."""

    return f"{WHITELIST_PREFIX}{chat_id}"


def admin_key(creator_id: int) -> str:
    """Set of chat ids provisioned for a creator."""

    return f"{ADMIN_PREFIX}{creator_id}"


def warn_key(chat_id: int, user_id: int) -> str:
    """Counter of unauthorized-account incidents for (chat, user)."""

    return f"{WARN_PREFIX}{chat_id}:{user_id}"
