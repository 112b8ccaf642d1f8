"""Notice rendering helpers.

The engine emits notices as a category plus parameters; this module turns
them into chat text so wording stays consistent across adapters.
"""

from __future__ import annotations

import html

from core.models import Notice, NoticeKind

BOT_NAME = "Warden"

_MARKDOWN_TEMPLATES = {
    NoticeKind.INTRODUCTION: (
        "Hi 👋\n"
        "I'm {name}, I protect groups 🛡 from spammer bots.\n"
        "To get me ready, make me an admin with the **Ban users** permission, "
        "then ask the group creator to activate me.\n"
        "I only take orders from the group creator."
    ),
    NoticeKind.CREATOR_REQUIRED: (
        "⛔️ I cannot operate in this group. ⛔️\n"
        "Reason: the group creator must be a member of the group."
    ),
    NoticeKind.WHITELISTED: "🤖 Bot @{username} was added to the list of approved bots. ✅",
    NoticeKind.WARNING: (
        "⚠️ Warning {count} of {limit} ⚠️\n"
        "Only the group creator may add bots to this group."
    ),
    NoticeKind.PERMISSION_REQUIRED: (
        "⛔️ I need the **Ban users** permission to protect this group. "
        "Moderation is now paused until the creator activates me again. ⛔️"
    ),
}


def _params(notice: Notice, escape=str) -> dict[str, str]:
    params = {"name": BOT_NAME}
    for key, value in notice.params.items():
        params[key] = escape(str(value))
    return params


def _format_markdown(notice: Notice) -> str:
    template = _MARKDOWN_TEMPLATES[notice.kind]
    # Telethon markdown has no escape syntax; values go in verbatim.
    return template.format(**_params(notice))


def _format_html(notice: Notice) -> str:
    # Same wording; only the bold markers differ.
    template = _MARKDOWN_TEMPLATES[notice.kind]
    template = html.escape(template, quote=False)
    while "**" in template:
        template = template.replace("**", "<b>", 1).replace("**", "</b>", 1)
    return template.format(**_params(notice, html.escape))


def format_notice(notice: Notice, mode: str = "markdown") -> str:
    """Return the notice text formatted for the requested mode."""

    if mode == "markdown":
        return _format_markdown(notice)
    if mode == "html":
        return _format_html(notice)
    raise ValueError(f"Unsupported notice format: {mode}")
