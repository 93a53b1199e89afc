"""REST endpoints for stored notifications."""

from fastapi import APIRouter, Depends, Query

from huddle.realtime import HubError

from app.api.deps import as_http_error, get_current_user
from app.config import get_settings
from app.models import User
from app.schemas import MarkAllReadResult, NotificationRead, UnreadCount
from app.services.realtime import Realtime, get_realtime

router = APIRouter(prefix="/notifications", tags=["notifications"])

settings = get_settings()


@router.get("", response_model=list[NotificationRead])
async def list_notifications(
    skip: int = Query(default=0, ge=0),
    take: int | None = Query(default=None, ge=1),
    current_user: User = Depends(get_current_user),
    realtime: Realtime = Depends(get_realtime),
) -> list[dict]:
    """Newest first; ``take`` is capped by the configured page size limit."""

    take = min(take or settings.notifications_page_size, settings.notifications_max_page_size)
    return await realtime.notification_service.list_notifications(
        current_user.id, skip=skip, take=take
    )


@router.get("/unread-count", response_model=UnreadCount)
async def read_unread_count(
    current_user: User = Depends(get_current_user),
    realtime: Realtime = Depends(get_realtime),
) -> UnreadCount:
    return UnreadCount(count=await realtime.notification_service.unread_count(current_user.id))


@router.put("/{notification_id}/read", response_model=UnreadCount)
async def mark_notification_read(
    notification_id: int,
    current_user: User = Depends(get_current_user),
    realtime: Realtime = Depends(get_realtime),
) -> UnreadCount:
    try:
        await realtime.notification_service.mark_as_read(current_user.id, notification_id)
    except HubError as exc:
        raise as_http_error(exc) from exc
    count = await realtime.notification_hub.publish_unread_count(current_user.id)
    return UnreadCount(count=count)


@router.put("/read-all", response_model=MarkAllReadResult)
async def mark_all_notifications_read(
    current_user: User = Depends(get_current_user),
    realtime: Realtime = Depends(get_realtime),
) -> MarkAllReadResult:
    updated = await realtime.notification_service.mark_all_as_read(current_user.id)
    await realtime.notification_hub.publish_unread_count(current_user.id)
    return MarkAllReadResult(updated=updated)
