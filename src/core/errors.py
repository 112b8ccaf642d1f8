"""Error taxonomy shared by the core and its adapters.

Adapters translate library exceptions into these types so the engine can
tell a policy signal (permission denied) apart from plain I/O failures.
"""

from __future__ import annotations


class WardenError(Exception):
    """Base class for all botwarden errors."""


class TransientIOError(WardenError):
    """A gateway or store call failed; the event may be retried upstream."""


class GatewayError(TransientIOError):
    """The chat platform call failed for a non-permission reason."""


class StoreError(TransientIOError):
    """The persistent store call failed."""


class PermissionDenied(WardenError):
    """The chat platform refused a privileged action."""

    def __init__(self, action: str, chat_id: int, detail: str = "") -> None:
        message = f"{action} denied in chat {chat_id}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.action = action
        self.chat_id = chat_id


class NotFound(WardenError):
    """Expected state is absent, e.g. the chat was never initialized."""


class DataCorruption(WardenError):
    """A persisted field could not be parsed."""
