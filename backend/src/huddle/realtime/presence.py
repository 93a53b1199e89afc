"""Online/offline tracking for the chat channel."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from app.monitoring.metrics import realtime_online_users

from .channel import HubChannel, HubSession, SessionTransport
from .events import ClientEvent
from .ports import UserStore


logger = logging.getLogger(__name__)


class PresenceTracker:
    """Turn registry occupancy changes on a channel into presence updates.

    Only the first session opening and the last session closing are
    observable: they update the user record and are announced to every
    other session on the channel. Any other connect or disconnect is
    silent.
    """

    def __init__(self, channel: HubChannel, users: UserStore) -> None:
        self._channel = channel
        self._users = users

    async def connect(self, user_id: int, transport: SessionTransport) -> HubSession:
        session, first = self._channel.attach(user_id, transport)
        if first:
            await self._went_online(session)
        return session

    async def disconnect(self, session: HubSession) -> bool:
        last = self._channel.detach(session)
        if last:
            await self._went_offline(session.user_id, session.session_id)
        return last

    async def _went_online(self, session: HubSession) -> None:
        realtime_online_users.set(len(self._channel.registry))
        await self._store_status(session.user_id, True, None)
        await self._channel.push(
            self._channel.all_sessions(exclude=session.session_id),
            ClientEvent.USER_ONLINE,
            {"user_id": session.user_id},
        )

    async def _went_offline(self, user_id: int, session_id: str) -> None:
        realtime_online_users.set(len(self._channel.registry))
        last_seen = datetime.now(timezone.utc)
        await self._store_status(user_id, False, last_seen)
        await self._channel.push(
            self._channel.all_sessions(exclude=session_id),
            ClientEvent.USER_OFFLINE,
            {"user_id": user_id, "last_seen": last_seen.isoformat()},
        )

    async def _store_status(self, user_id: int, is_online: bool, last_seen: datetime | None) -> None:
        try:
            await self._users.set_online_status(user_id, is_online, last_seen)
        except Exception:
            logger.warning(
                "Failed to store presence for user %s (online=%s)",
                user_id,
                is_online,
                exc_info=logger.isEnabledFor(logging.DEBUG),
            )
