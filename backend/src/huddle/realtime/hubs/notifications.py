"""Notification hub: unread counters and read acknowledgements."""

from __future__ import annotations

import logging
from typing import Any

from ..channel import HubChannel, HubSession, SessionTransport
from ..events import ClientEvent
from ..ports import NotificationStore
from .commands import MarkAllAsRead, MarkNotificationAsRead, notification_commands


logger = logging.getLogger(__name__)


class NotificationHub:
    commands = notification_commands

    def __init__(self, channel: HubChannel, store: NotificationStore) -> None:
        self.channel = channel
        self._store = store

    async def on_connect(self, user_id: int, transport: SessionTransport) -> HubSession:
        session, _ = self.channel.attach(user_id, transport)
        try:
            count = await self._store.unread_count(user_id)
        except Exception:
            logger.warning(
                "Could not load the unread counter for user %s",
                user_id,
                exc_info=logger.isEnabledFor(logging.DEBUG),
            )
            return session
        await self.channel.reply(session, ClientEvent.UNREAD_NOTIFICATIONS_COUNT, {"count": count})
        return session

    async def on_disconnect(self, session: HubSession) -> None:
        self.channel.detach(session)

    async def handle(self, session: HubSession, command: Any) -> None:
        if isinstance(command, MarkNotificationAsRead):
            await self.mark_notification_as_read(session, command.notification_id)
        elif isinstance(command, MarkAllAsRead):
            await self.mark_all_as_read(session)
        else:  # pragma: no cover - the command adapter rejects anything else
            raise TypeError(f"Unsupported notification command: {command!r}")

    async def mark_notification_as_read(self, session: HubSession, notification_id: int) -> None:
        await self._store.mark_as_read(session.user_id, notification_id)
        await self.publish_unread_count(session.user_id)

    async def mark_all_as_read(self, session: HubSession) -> None:
        await self._store.mark_all_as_read(session.user_id)
        await self.publish_unread_count(session.user_id)

    async def publish_unread_count(self, user_id: int) -> int:
        """Send the current unread counter to every notification session of *user_id*."""

        count = await self._store.unread_count(user_id)
        await self.channel.push_to_user(
            user_id, ClientEvent.UNREAD_NOTIFICATIONS_COUNT, {"count": count}
        )
        return count
