"""Notification persistence used by the event router and the REST API."""

from __future__ import annotations

from typing import Any, Callable, Mapping

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session, selectinload

from huddle.realtime.errors import NotFoundError
from huddle.realtime.events import NotificationRecord

from app.database import SessionLocal
from app.models import Notification, NotificationType
from app.schemas import NotificationRead
from app.services.users import public_user


def _record(notification: Notification) -> NotificationRecord:
    return NotificationRecord(
        id=notification.id,
        recipient_id=notification.user_id,
        actor_id=notification.actor_user_id,
        title=notification.title,
        message=notification.message,
        kind=notification.type.value,
        is_read=notification.is_read,
        created_at=notification.created_at,
        data=notification.data,
        actor=public_user(notification.actor) if notification.actor is not None else None,
    )


class NotificationService:
    def __init__(self, session_factory: Callable[[], Session] = SessionLocal) -> None:
        self._session_factory = session_factory

    async def create_notification(
        self,
        recipient_id: int,
        actor_id: int | None,
        title: str,
        message: str,
        kind: str,
        data: Mapping[str, Any] | None = None,
    ) -> NotificationRecord:
        with self._session_factory() as db:
            notification = Notification(
                user_id=recipient_id,
                actor_user_id=actor_id,
                title=title,
                message=message,
                type=NotificationType(kind),
                is_read=False,
                data=dict(data) if data is not None else None,
            )
            db.add(notification)
            db.commit()
            db.refresh(notification)
            return _record(notification)

    async def list_notifications(self, user_id: int, *, skip: int = 0, take: int = 20) -> list[dict[str, Any]]:
        stmt = (
            select(Notification)
            .where(Notification.user_id == user_id)
            .options(selectinload(Notification.actor))
            .order_by(Notification.id.desc())
            .offset(skip)
            .limit(take)
        )
        with self._session_factory() as db:
            rows = db.execute(stmt).scalars().all()
            return [NotificationRead.model_validate(row).model_dump(mode="json") for row in rows]

    async def unread_count(self, user_id: int) -> int:
        stmt = select(func.count(Notification.id)).where(
            Notification.user_id == user_id,
            Notification.is_read.is_(False),
        )
        with self._session_factory() as db:
            return int(db.execute(stmt).scalar_one())

    async def mark_as_read(self, user_id: int, notification_id: int) -> None:
        with self._session_factory() as db:
            notification = db.get(Notification, notification_id)
            if notification is None or notification.user_id != user_id:
                raise NotFoundError("Notification not found")
            if not notification.is_read:
                notification.is_read = True
                db.commit()

    async def mark_all_as_read(self, user_id: int) -> int:
        stmt = (
            update(Notification)
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
            .values(is_read=True)
        )
        with self._session_factory() as db:
            result = db.execute(stmt)
            db.commit()
            return int(result.rowcount or 0)
