"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class GroupDefaults:
    """Settings written for a chat when the moderator first joins it."""

    is_active: bool = False
    show_warn: bool = True
    warn_limit: int = 3

    def __post_init__(self) -> None:
        if self.warn_limit < 1:
            raise ValueError(f"warn_limit must be >= 1, got {self.warn_limit}")
