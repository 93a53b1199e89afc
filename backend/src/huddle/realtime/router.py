"""Fan domain events out to live hub sessions and the notification store."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Mapping

from app.monitoring.metrics import (
    notification_persist_failures_total,
    notifications_created_total,
)

from .channel import NOTIFICATION_CHANNEL, HubChannel, PushOutcome
from .events import ClientEvent, DomainEvent, NotificationContent, NotificationRecord
from .ports import NotificationStore


logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RouteResult:
    """What a single ``route`` call did."""

    pushed: int = 0
    failed: int = 0
    suppressed: int = 0
    notifications: list[NotificationRecord] = field(default_factory=list)
    persist_failures: int = 0

    def add_push(self, outcome: PushOutcome) -> None:
        self.pushed += outcome.delivered
        self.failed += outcome.failed


class EventRouter:
    """Resolve an event's targets and deliver it.

    Delivery and persistence are independent best-effort steps: a failed
    push never prevents the notification record and a failed write never
    undoes or delays a push. Recipients are served concurrently with no
    ordering between them.
    """

    def __init__(
        self,
        channels: Mapping[str, HubChannel],
        notifications: NotificationStore,
        *,
        notification_channel: str = NOTIFICATION_CHANNEL,
    ) -> None:
        self._channels = dict(channels)
        self._notifications = notifications
        self._notification_channel = notification_channel

    def channel(self, name: str) -> HubChannel:
        try:
            return self._channels[name]
        except KeyError:
            raise LookupError(f"Unknown hub channel '{name}'") from None

    async def route(self, event: DomainEvent) -> RouteResult:
        if event.is_room_event:
            return await self._route_room(event)

        result = RouteResult()
        recipients: list[int] = []
        for recipient_id in dict.fromkeys(event.recipient_ids):
            if recipient_id == event.actor_id:
                result.suppressed += 1
                continue
            recipients.append(recipient_id)

        if recipients:
            await asyncio.gather(
                *(self._deliver(event, recipient_id, result) for recipient_id in recipients)
            )
        return result

    async def _route_room(self, event: DomainEvent) -> RouteResult:
        # Room broadcasts are per session and never leave a record.
        channel = self.channel(event.channel)  # type: ignore[arg-type]
        sessions = channel.room_sessions(event.room, exclude=event.exclude_session)  # type: ignore[arg-type]
        result = RouteResult()
        result.add_push(await channel.push(sessions, event.client_event, event.payload))  # type: ignore[arg-type]
        return result

    async def _deliver(self, event: DomainEvent, recipient_id: int, result: RouteResult) -> None:
        steps = []
        if event.channel is not None:
            steps.append(self._push(event, recipient_id, result))
        content = event.notification
        if event.kind.notification_worthy and content is not None:
            steps.append(self._record(event, content, recipient_id, result))
        if steps:
            await asyncio.gather(*steps)

    async def _push(self, event: DomainEvent, recipient_id: int, result: RouteResult) -> None:
        channel = self.channel(event.channel)  # type: ignore[arg-type]
        sessions = [
            session
            for session in channel.sessions_for_user(recipient_id)
            if session.session_id != event.exclude_session
        ]
        result.add_push(await channel.push(sessions, event.client_event, event.payload))  # type: ignore[arg-type]

    async def _record(
        self,
        event: DomainEvent,
        content: NotificationContent,
        recipient_id: int,
        result: RouteResult,
    ) -> None:
        kind = event.kind.value
        try:
            record = await self._notifications.create_notification(
                recipient_id,
                event.actor_id,
                content.title,
                content.message,
                kind,
                content.data,
            )
        except Exception:
            logger.warning(
                "Failed to store %s notification for user %s",
                kind,
                recipient_id,
                exc_info=logger.isEnabledFor(logging.DEBUG),
            )
            notification_persist_failures_total.labels(kind).inc()
            result.persist_failures += 1
            return

        notifications_created_total.labels(kind).inc()
        result.notifications.append(record)

        channel = self._channels.get(self._notification_channel)
        if channel is None:
            return
        outcome = await channel.push_to_user(
            recipient_id, ClientEvent.RECEIVE_NOTIFICATION, record.as_payload()
        )
        result.add_push(outcome)
