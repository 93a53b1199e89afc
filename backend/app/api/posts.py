"""REST endpoints for posts, comments and likes."""

from fastapi import APIRouter, Depends, Query, status

from huddle.realtime import HubError

from app.api.deps import as_http_error, get_current_user
from app.config import get_settings
from app.models import User
from app.schemas import (
    CommentCreate,
    CommentRead,
    CommentUpdate,
    LikeToggleRead,
    PostCreate,
    PostRead,
    PostUpdate,
)
from app.services.realtime import Realtime, get_realtime

router = APIRouter(prefix="/posts", tags=["posts"])

settings = get_settings()


@router.post("", response_model=PostRead, status_code=status.HTTP_201_CREATED)
async def create_post(
    payload: PostCreate,
    current_user: User = Depends(get_current_user),
    realtime: Realtime = Depends(get_realtime),
) -> dict:
    return await realtime.post_service.create_post(
        current_user.id,
        text_content=payload.text_content,
        media_url=payload.media_url,
        thumbnail_url=payload.thumbnail_url,
        media_kind=payload.media_kind,
    )


@router.get("/feed", response_model=list[PostRead])
async def read_feed(
    skip: int = Query(default=0, ge=0),
    take: int | None = Query(default=None, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    realtime: Realtime = Depends(get_realtime),
) -> list[dict]:
    return await realtime.post_service.feed(
        current_user.id, skip=skip, take=take or settings.feed_page_size
    )


@router.get("/user/{user_id}", response_model=list[PostRead])
async def read_user_posts(
    user_id: int,
    skip: int = Query(default=0, ge=0),
    take: int | None = Query(default=None, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    realtime: Realtime = Depends(get_realtime),
) -> list[dict]:
    try:
        return await realtime.post_service.user_posts(
            user_id, current_user.id, skip=skip, take=take or settings.feed_page_size
        )
    except HubError as exc:
        raise as_http_error(exc) from exc


@router.get("/{post_id}", response_model=PostRead)
async def get_post(
    post_id: int,
    current_user: User = Depends(get_current_user),
    realtime: Realtime = Depends(get_realtime),
) -> dict:
    try:
        return await realtime.post_service.get_post(post_id, viewer_id=current_user.id)
    except HubError as exc:
        raise as_http_error(exc) from exc


@router.put("/{post_id}", response_model=PostRead)
async def update_post(
    post_id: int,
    payload: PostUpdate,
    current_user: User = Depends(get_current_user),
    realtime: Realtime = Depends(get_realtime),
) -> dict:
    try:
        return await realtime.post_service.update_post(current_user.id, post_id, payload.text_content)
    except HubError as exc:
        raise as_http_error(exc) from exc


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_post(
    post_id: int,
    current_user: User = Depends(get_current_user),
    realtime: Realtime = Depends(get_realtime),
) -> None:
    try:
        await realtime.post_service.delete_post(current_user.id, post_id)
    except HubError as exc:
        raise as_http_error(exc) from exc


@router.get("/{post_id}/comments", response_model=list[CommentRead])
async def list_comments(
    post_id: int,
    current_user: User = Depends(get_current_user),
    realtime: Realtime = Depends(get_realtime),
) -> list[dict]:
    try:
        return await realtime.post_service.list_comments(post_id)
    except HubError as exc:
        raise as_http_error(exc) from exc


@router.post(
    "/{post_id}/comments",
    response_model=CommentRead,
    status_code=status.HTTP_201_CREATED,
)
async def add_comment(
    post_id: int,
    payload: CommentCreate,
    current_user: User = Depends(get_current_user),
    realtime: Realtime = Depends(get_realtime),
) -> dict:
    """Store a comment and broadcast it to viewers; notifies the owners involved."""

    try:
        return await realtime.post_hub.add_comment(
            current_user.id, post_id, payload.content, payload.parent_comment_id
        )
    except HubError as exc:
        raise as_http_error(exc) from exc


@router.post("/{post_id}/like", response_model=LikeToggleRead)
async def toggle_post_like(
    post_id: int,
    current_user: User = Depends(get_current_user),
    realtime: Realtime = Depends(get_realtime),
) -> LikeToggleRead:
    try:
        toggle = await realtime.post_hub.toggle_post_like(current_user.id, post_id)
    except HubError as exc:
        raise as_http_error(exc) from exc
    return LikeToggleRead(is_liked=toggle.liked, likes_count=toggle.likes_count)


@router.post("/comments/{comment_id}/like", response_model=LikeToggleRead)
async def toggle_comment_like(
    comment_id: int,
    current_user: User = Depends(get_current_user),
    realtime: Realtime = Depends(get_realtime),
) -> LikeToggleRead:
    try:
        toggle = await realtime.post_hub.toggle_comment_like(current_user.id, comment_id)
    except HubError as exc:
        raise as_http_error(exc) from exc
    return LikeToggleRead(is_liked=toggle.liked, likes_count=toggle.likes_count)


@router.put("/comments/{comment_id}", response_model=CommentRead)
async def update_comment(
    comment_id: int,
    payload: CommentUpdate,
    current_user: User = Depends(get_current_user),
    realtime: Realtime = Depends(get_realtime),
) -> dict:
    try:
        return await realtime.post_service.update_comment(current_user.id, comment_id, payload.content)
    except HubError as exc:
        raise as_http_error(exc) from exc


@router.delete("/comments/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_comment(
    comment_id: int,
    current_user: User = Depends(get_current_user),
    realtime: Realtime = Depends(get_realtime),
) -> None:
    try:
        await realtime.post_service.delete_comment(current_user.id, comment_id)
    except HubError as exc:
        raise as_http_error(exc) from exc
