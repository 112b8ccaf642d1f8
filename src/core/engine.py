"""Moderation engine.

This module is integration-agnostic. It only relies on ports for the store
and the chat gateway, and holds no mutable state between events: every
decision is made from what the store returns for the current event.

Flow summary:
1) Moderator joins a chat -> provision default settings (inactive)
2) Someone other than the creator adds an account -> remove it and warn the adder
3) Adder reaches the warn limit -> remove the adder as well
4) Unapproved bot posts a message -> remove it and delete the message
5) Moderator leaves a chat -> drop all state for that chat

Any permission-denied removal switches the chat to inactive; only an external
command turns it back on.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from core.config import GroupDefaults
from core.errors import DataCorruption, GatewayError, NotFound, PermissionDenied, StoreError
from core.models import Account, Administrator, GroupSettings, InboundEvent, Notice, NoticeKind
from core.ports import GatewayPort
from core.state import GroupState

LOGGER = logging.getLogger(__name__)


def find_creator(admins: Iterable[Administrator]) -> Optional[Administrator]:
    """Return the owner-role administrator, if the chat has one."""

    for admin in admins:
        if admin.is_creator:
            return admin
    return None


class ModerationEngine:
    """Applies the anti-spam policy to membership and message events."""

    def __init__(
        self,
        state: GroupState,
        gateway: GatewayPort,
        self_id: int,
        defaults: GroupDefaults = GroupDefaults(),
    ) -> None:
        self._state = state
        self._gateway = gateway
        self._self_id = self_id
        self._defaults = defaults

    @property
    def self_id(self) -> int:
        return self._self_id

    async def initialize(self, event: InboundEvent) -> Optional[GroupSettings]:
        """Provision a chat the moderator was just added to.

        Returns None when the chat could not be provisioned: administrators
        could not be fetched, the chat has no creator (we leave it), or the
        settings batch failed.
        """

        chat_id = event.chat_id
        try:
            admins = await self._gateway.get_administrators(chat_id)
        except (GatewayError, PermissionDenied) as exc:
            LOGGER.error("Cannot retrieve administrators of chat %s: %s", chat_id, exc)
            return None

        await self._notify(chat_id, Notice(NoticeKind.INTRODUCTION))

        creator = find_creator(admins)
        if creator is None:
            LOGGER.error("Chat %s does not have a creator, leaving", chat_id)
            await self._notify(chat_id, Notice(NoticeKind.CREATOR_REQUIRED))
            try:
                await self._gateway.leave_chat(chat_id)
            except (GatewayError, PermissionDenied) as exc:
                LOGGER.error("Cannot leave chat %s: %s", chat_id, exc)
            return None

        settings = GroupSettings(
            is_active=self._defaults.is_active,
            show_warn=self._defaults.show_warn,
            warn_limit=self._defaults.warn_limit,
            creator_id=creator.account_id,
            title=event.chat_title,
            description=event.chat_description,
        )
        try:
            await self._state.create_group(chat_id, settings)
        except StoreError:
            LOGGER.exception("Cannot provision settings for chat %s", chat_id)
            return None
        return settings

    async def handle_new_members(self, event: InboundEvent) -> None:
        try:
            await self._process_new_members(event)
        except (StoreError, DataCorruption):
            LOGGER.exception("New member processing aborted in chat %s", event.chat_id)

    async def _process_new_members(self, event: InboundEvent) -> None:
        chat_id = event.chat_id

        if any(member.id == self._self_id for member in event.new_members):
            settings = await self.initialize(event)
            if settings is None:
                return
            LOGGER.info("Initialized chat %s with default settings", chat_id)
        else:
            try:
                settings = await self._state.get_group(chat_id)
            except NotFound:
                LOGGER.warning("Chat %s is not registered, skip processing", chat_id)
                return

        for account in event.new_members:
            if account.id == self._self_id:
                continue
            await self._moderate_joined(event, settings, account)

    async def _moderate_joined(self, event: InboundEvent, settings: GroupSettings, account: Account) -> None:
        """Apply the policy to one joined account.

        Settings are the ones loaded for the event; a deactivation only ends
        processing of the current account.
        """

        chat_id = event.chat_id
        actor_id = event.sender.id

        if actor_id == settings.creator_id:
            if await self._state.whitelist(chat_id, account.id):
                LOGGER.info("Account %s whitelisted in chat %s (added by creator)", account.id, chat_id)
                await self._notify(
                    chat_id,
                    Notice(
                        NoticeKind.WHITELISTED,
                        {"username": account.username or str(account.id)},
                        reply_to=event.message_id,
                        silent=True,
                    ),
                )
            return

        if not settings.is_active:
            return

        if await self._state.is_whitelisted(chat_id, account.id):
            LOGGER.info("Whitelisted account %s added to chat %s", account.id, chat_id)
            return

        LOGGER.info("Unauthorized account %s detected in chat %s, removing it", account.id, chat_id)
        try:
            await self._gateway.remove_member(chat_id, account.id)
        except PermissionDenied as exc:
            await self._deactivate(chat_id, exc)
            return
        except GatewayError as exc:
            LOGGER.error("Cannot remove account %s from chat %s: %s", account.id, chat_id, exc)
            return

        LOGGER.info("Unauthorized account %s removed from chat %s", account.id, chat_id)

        warns = await self._state.add_warning(chat_id, actor_id, settings.warn_limit)
        if warns >= settings.warn_limit:
            LOGGER.info("User %s reached the warn limit in chat %s", actor_id, chat_id)
            try:
                await self._gateway.remove_member(chat_id, actor_id)
            except PermissionDenied as exc:
                await self._deactivate(chat_id, exc)
                return
            except GatewayError as exc:
                LOGGER.error("Cannot remove user %s from chat %s: %s", actor_id, chat_id, exc)
                return
            LOGGER.info("Removed user %s from chat %s", actor_id, chat_id)
            await self._state.reset_warnings(chat_id, actor_id)
        elif settings.show_warn:
            await self._notify(
                chat_id,
                Notice(NoticeKind.WARNING, {"count": warns, "limit": settings.warn_limit}),
            )

    async def handle_left_member(self, event: InboundEvent) -> None:
        chat_id = event.chat_id
        left = event.left_member
        if left is None:
            return

        try:
            if left.id == self._self_id:
                LOGGER.info("Removed from chat %s, starting clean up", chat_id)
                await self._state.remove_group(chat_id)
                LOGGER.info("Chat %s cleaned up", chat_id)
            elif left.is_bot:
                await self._state.unwhitelist(chat_id, left.id)
                LOGGER.info("Bot %s left chat %s, dropped from whitelist if present", left.id, chat_id)
        except StoreError:
            LOGGER.exception("Left member processing aborted in chat %s", chat_id)

    async def handle_bot_message(self, event: InboundEvent) -> None:
        try:
            await self._process_bot_message(event)
        except StoreError:
            LOGGER.exception("Bot message processing aborted in chat %s", event.chat_id)

    async def _process_bot_message(self, event: InboundEvent) -> None:
        chat_id = event.chat_id
        bot_id = event.sender.id

        if not await self._state.is_active(chat_id):
            LOGGER.debug("Skip bot message in inactive chat %s", chat_id)
            return

        if await self._state.is_whitelisted(chat_id, bot_id):
            return

        LOGGER.info("Message from unauthorized bot %s in chat %s", bot_id, chat_id)
        try:
            await self._gateway.remove_member(chat_id, bot_id)
        except PermissionDenied as exc:
            await self._deactivate(chat_id, exc)
            return
        except GatewayError as exc:
            LOGGER.error("Cannot remove bot %s from chat %s: %s", bot_id, chat_id, exc)
            return

        LOGGER.info("Unauthorized bot %s removed from chat %s", bot_id, chat_id)

        try:
            await self._gateway.delete_message(chat_id, event.message_id)
        except PermissionDenied as exc:
            LOGGER.warning("Cannot delete message %s: %s", event.message_id, exc)
        except GatewayError as exc:
            LOGGER.error("Failed to delete message %s: %s", event.message_id, exc)
        else:
            LOGGER.info("Deleted message %s from unauthorized bot", event.message_id)

    async def _deactivate(self, chat_id: int, reason: PermissionDenied) -> None:
        LOGGER.warning("Permission required in chat %s (%s), deactivating", chat_id, reason)
        if not await self._state.set_active(chat_id, False):
            # Settings were dropped meanwhile (moderator removed); stay uninitialized.
            LOGGER.info("Chat %s has no settings anymore, nothing to deactivate", chat_id)
            return
        LOGGER.info("Deactivated chat %s", chat_id)
        await self._notify(chat_id, Notice(NoticeKind.PERMISSION_REQUIRED))

    async def _notify(self, chat_id: int, notice: Notice) -> None:
        """Best-effort notice; failures are logged only."""

        try:
            await self._gateway.send_notice(chat_id, notice)
        except (GatewayError, PermissionDenied) as exc:
            LOGGER.error("Cannot send %s notice into chat %s: %s", notice.kind.value, chat_id, exc)
