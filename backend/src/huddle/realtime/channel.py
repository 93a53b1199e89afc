"""Hub channel: sessions, rooms and concurrent push fan-out for one hub."""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Mapping, Protocol

from fastapi.websockets import WebSocketDisconnect, WebSocketState

from app.monitoring.metrics import (
    realtime_connections,
    realtime_events_total,
    realtime_push_failures_total,
)

from .registry import ConnectionRegistry
from .rooms import RoomMembership


logger = logging.getLogger(__name__)

CHAT_CHANNEL = "chat"
NOTIFICATION_CHANNEL = "notification"
POST_CHANNEL = "post"


class SessionTransport(Protocol):
    """The part of a websocket the hubs rely on."""

    application_state: WebSocketState

    async def send_json(self, data: Any) -> None: ...


@dataclass(slots=True, eq=False)
class HubSession:
    """A live, authenticated connection to one hub channel."""

    user_id: int
    transport: SessionTransport
    channel: str
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    opened_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(slots=True)
class PushOutcome:
    delivered: int = 0
    failed: int = 0

    def merge(self, other: "PushOutcome") -> "PushOutcome":
        return PushOutcome(self.delivered + other.delivered, self.failed + other.failed)


def build_frame(event: str, payload: Mapping[str, Any]) -> dict[str, Any]:
    return {"type": event, "payload": dict(payload)}


async def safe_send_json(transport: SessionTransport, data: dict[str, Any]) -> bool:
    """Safely send JSON data through a session transport.

    Returns True if the message was sent, False when the socket is gone.
    """
    if transport.application_state != WebSocketState.CONNECTED:
        return False
    try:
        await transport.send_json(data)
        return True
    except (WebSocketDisconnect, RuntimeError) as e:
        logger.debug("Failed to send websocket message: %s", e)
        return False


class HubChannel:
    """Own the registry, rooms and live sessions of a single hub channel.

    Pushes fan out concurrently. Each target is bounded by
    ``push_timeout`` so one stalled socket cannot hold back the others.
    """

    def __init__(self, name: str, *, push_timeout: float = 5.0) -> None:
        self.name = name
        self.registry = ConnectionRegistry()
        self.rooms = RoomMembership()
        self._sessions: Dict[str, HubSession] = {}
        self._push_timeout = push_timeout

    def attach(self, user_id: int, transport: SessionTransport) -> tuple[HubSession, bool]:
        """Register a new session; the flag reports a 0 -> 1 transition."""

        session = HubSession(user_id=user_id, transport=transport, channel=self.name)
        self._sessions[session.session_id] = session
        first = self.registry.add_session(user_id, session.session_id)
        realtime_connections.labels(self.name).inc()
        return session, first

    def detach(self, session: HubSession) -> bool:
        """Drop *session* from rooms and the registry; flag reports 1 -> 0."""

        if self._sessions.pop(session.session_id, None) is None:
            return False
        self.rooms.leave_all(session.session_id)
        last = self.registry.remove_session(session.user_id, session.session_id)
        realtime_connections.labels(self.name).dec()
        return last

    def release(self, transport: SessionTransport) -> int:
        """Detach every session still bound to *transport*."""

        stale = [
            session for session in list(self._sessions.values()) if session.transport is transport
        ]
        for session in stale:
            self.detach(session)
        return len(stale)

    def get(self, session_id: str) -> HubSession | None:
        return self._sessions.get(session_id)

    def sessions_for_user(self, user_id: int) -> list[HubSession]:
        return self._resolve(self.registry.get_sessions(user_id))

    def room_sessions(self, room: str, *, exclude: str | None = None) -> list[HubSession]:
        members = self.rooms.members(room)
        return self._resolve(member for member in members if member != exclude)

    def all_sessions(self, *, exclude: str | None = None) -> list[HubSession]:
        return [
            session
            for session in list(self._sessions.values())
            if session.session_id != exclude
        ]

    def join_room(self, room: str, session: HubSession) -> bool:
        return self.rooms.join(room, session.session_id)

    def leave_room(self, room: str, session: HubSession) -> bool:
        return self.rooms.leave(room, session.session_id)

    async def push(
        self, sessions: Iterable[HubSession], event: str, payload: Mapping[str, Any]
    ) -> PushOutcome:
        """Send one ``event`` frame to every session in *sessions*."""

        targets = list(sessions)
        if not targets:
            return PushOutcome()
        frame = build_frame(event, payload)
        results = await asyncio.gather(
            *(self._push_one(session, frame) for session in targets), return_exceptions=True
        )
        delivered = 0
        for session, result in zip(targets, results):
            if isinstance(result, BaseException):
                logger.warning(
                    "Push of %s to session %s on %s failed: %s",
                    event,
                    session.session_id,
                    self.name,
                    result,
                    exc_info=result if logger.isEnabledFor(logging.DEBUG) else None,
                )
                realtime_push_failures_total.labels(self.name, "error").inc()
            elif result:
                delivered += 1
        if delivered:
            realtime_events_total.labels(self.name, "out", event).inc(delivered)
        return PushOutcome(delivered=delivered, failed=len(results) - delivered)

    async def push_to_user(
        self, user_id: int, event: str, payload: Mapping[str, Any]
    ) -> PushOutcome:
        return await self.push(self.sessions_for_user(user_id), event, payload)

    async def reply(self, session: HubSession, event: str, payload: Mapping[str, Any]) -> bool:
        outcome = await self.push([session], event, payload)
        return outcome.delivered == 1

    async def _push_one(self, session: HubSession, frame: dict[str, Any]) -> bool:
        try:
            sent = await asyncio.wait_for(
                safe_send_json(session.transport, frame), timeout=self._push_timeout
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Push of %s to session %s (user %s) on %s timed out after %.2fs",
                frame["type"],
                session.session_id,
                session.user_id,
                self.name,
                self._push_timeout,
            )
            realtime_push_failures_total.labels(self.name, "timeout").inc()
            return False
        if not sent:
            logger.debug(
                "Session %s (user %s) on %s is no longer connected",
                session.session_id,
                session.user_id,
                self.name,
            )
            realtime_push_failures_total.labels(self.name, "closed").inc()
        return sent

    def _resolve(self, session_ids: Iterable[str]) -> list[HubSession]:
        resolved: list[HubSession] = []
        for session_id in session_ids:
            session = self._sessions.get(session_id)
            if session is not None:
                resolved.append(session)
        return resolved

    def __len__(self) -> int:
        return len(self._sessions)
