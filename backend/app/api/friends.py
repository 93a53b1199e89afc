"""REST endpoints for friend requests and follows."""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from huddle.realtime import HubError
from huddle.realtime import notifications

from app.api.deps import as_http_error, get_current_user
from app.models import User
from app.schemas import (
    FollowList,
    FollowState,
    FriendRequestCreate,
    FriendRequestList,
    FriendRequestRead,
    PublicUser,
    RelationshipStatus,
    UserProfile,
    UserStats,
)
from app.services.realtime import Realtime, get_realtime
from app.services.users import public_user

router = APIRouter(prefix="/friends", tags=["friends"])


@router.get("", response_model=list[PublicUser])
async def list_friends(
    current_user: User = Depends(get_current_user),
    realtime: Realtime = Depends(get_realtime),
) -> list[dict]:
    return await realtime.friend_service.list_friends(current_user.id)


@router.delete("/{friend_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_friend(
    friend_id: int,
    current_user: User = Depends(get_current_user),
    realtime: Realtime = Depends(get_realtime),
) -> None:
    try:
        await realtime.friend_service.remove_friend(current_user.id, friend_id)
    except HubError as exc:
        raise as_http_error(exc) from exc


@router.get("/requests", response_model=FriendRequestList)
async def list_requests(
    current_user: User = Depends(get_current_user),
    realtime: Realtime = Depends(get_realtime),
) -> dict:
    return await realtime.friend_service.list_requests(current_user.id)


@router.get("/requests/pending", response_model=list[FriendRequestRead])
async def list_pending_requests(
    current_user: User = Depends(get_current_user),
    realtime: Realtime = Depends(get_realtime),
) -> list[dict]:
    return (await realtime.friend_service.list_requests(current_user.id))["incoming"]


@router.get("/requests/sent", response_model=list[FriendRequestRead])
async def list_sent_requests(
    current_user: User = Depends(get_current_user),
    realtime: Realtime = Depends(get_realtime),
) -> list[dict]:
    return (await realtime.friend_service.list_requests(current_user.id))["outgoing"]


@router.post("/requests", response_model=FriendRequestRead, status_code=status.HTTP_201_CREATED)
async def send_request(
    payload: FriendRequestCreate,
    current_user: User = Depends(get_current_user),
    realtime: Realtime = Depends(get_realtime),
) -> dict:
    try:
        request = await realtime.friend_service.send_request(current_user.id, payload.addressee_id)
    except HubError as exc:
        raise as_http_error(exc) from exc
    await realtime.router.route(
        notifications.friend_request_sent(public_user(current_user), payload.addressee_id)
    )
    return request


@router.post("/requests/{request_id}/accept", response_model=FriendRequestRead)
async def accept_request(
    request_id: int,
    current_user: User = Depends(get_current_user),
    realtime: Realtime = Depends(get_realtime),
) -> dict:
    try:
        request = await realtime.friend_service.accept_request(current_user.id, request_id)
    except HubError as exc:
        raise as_http_error(exc) from exc
    await realtime.router.route(
        notifications.friend_request_accepted(public_user(current_user), request["requester"]["id"])
    )
    return request


@router.post("/requests/{request_id}/reject", status_code=status.HTTP_204_NO_CONTENT)
async def reject_request(
    request_id: int,
    current_user: User = Depends(get_current_user),
    realtime: Realtime = Depends(get_realtime),
) -> None:
    try:
        await realtime.friend_service.reject_request(current_user.id, request_id)
    except HubError as exc:
        raise as_http_error(exc) from exc


@router.delete("/requests/{request_id}", status_code=status.HTTP_204_NO_CONTENT)
async def cancel_request(
    request_id: int,
    current_user: User = Depends(get_current_user),
    realtime: Realtime = Depends(get_realtime),
) -> None:
    try:
        await realtime.friend_service.cancel_request(current_user.id, request_id)
    except HubError as exc:
        raise as_http_error(exc) from exc


@router.post("/follow/{user_id}", response_model=FollowState)
async def follow_user(
    user_id: int,
    current_user: User = Depends(get_current_user),
    realtime: Realtime = Depends(get_realtime),
) -> dict:
    """Follow *user_id*; only a new follow notifies the followed user."""

    try:
        state, created = await realtime.friend_service.follow(current_user.id, user_id)
    except HubError as exc:
        raise as_http_error(exc) from exc
    if created:
        await realtime.router.route(notifications.new_follower(public_user(current_user), user_id))
    return state


@router.delete("/follow/{user_id}", response_model=FollowState)
async def unfollow_user(
    user_id: int,
    current_user: User = Depends(get_current_user),
    realtime: Realtime = Depends(get_realtime),
) -> dict:
    try:
        return await realtime.friend_service.unfollow(current_user.id, user_id)
    except HubError as exc:
        raise as_http_error(exc) from exc


@router.get("/search", response_model=list[PublicUser])
async def search_users(
    query: str = Query(..., max_length=100),
    skip: int = Query(default=0, ge=0),
    take: int = Query(default=20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    realtime: Realtime = Depends(get_realtime),
) -> list[dict]:
    if not query.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Query parameter is required")
    return await realtime.users.search_users(
        query, exclude_user_id=current_user.id, skip=skip, take=take
    )


@router.get("/mutual/{user_id}", response_model=list[PublicUser])
async def list_mutual_friends(
    user_id: int,
    current_user: User = Depends(get_current_user),
    realtime: Realtime = Depends(get_realtime),
) -> list[dict]:
    try:
        return await realtime.friend_service.mutual_friends(current_user.id, user_id)
    except HubError as exc:
        raise as_http_error(exc) from exc


@router.get("/check/{user_id}", response_model=bool)
async def check_friendship(
    user_id: int,
    current_user: User = Depends(get_current_user),
    realtime: Realtime = Depends(get_realtime),
) -> bool:
    return await realtime.friend_service.are_friends(current_user.id, user_id)


@router.get("/following/check/{user_id}", response_model=bool)
async def check_following(
    user_id: int,
    current_user: User = Depends(get_current_user),
    realtime: Realtime = Depends(get_realtime),
) -> bool:
    return await realtime.friend_service.is_following(current_user.id, user_id)


@router.get("/{user_id}/followers", response_model=FollowList)
async def list_followers(
    user_id: int,
    skip: int = Query(default=0, ge=0),
    take: int = Query(default=50, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    realtime: Realtime = Depends(get_realtime),
) -> dict:
    try:
        return await realtime.friend_service.followers(user_id, skip=skip, take=take)
    except HubError as exc:
        raise as_http_error(exc) from exc


@router.get("/{user_id}/following", response_model=FollowList)
async def list_following(
    user_id: int,
    skip: int = Query(default=0, ge=0),
    take: int = Query(default=50, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    realtime: Realtime = Depends(get_realtime),
) -> dict:
    try:
        return await realtime.friend_service.following(user_id, skip=skip, take=take)
    except HubError as exc:
        raise as_http_error(exc) from exc


@router.get("/status/{user_id}", response_model=RelationshipStatus)
async def relationship_status(
    user_id: int,
    current_user: User = Depends(get_current_user),
    realtime: Realtime = Depends(get_realtime),
) -> dict:
    try:
        return await realtime.friend_service.relationship_status(current_user.id, user_id)
    except HubError as exc:
        raise as_http_error(exc) from exc


@router.get("/profile/{user_id}", response_model=UserProfile)
async def user_profile(
    user_id: int,
    current_user: User = Depends(get_current_user),
    realtime: Realtime = Depends(get_realtime),
) -> dict:
    try:
        return await realtime.friend_service.profile(user_id, current_user.id)
    except HubError as exc:
        raise as_http_error(exc) from exc


@router.get("/stats/{user_id}", response_model=UserStats)
async def user_stats(
    user_id: int,
    current_user: User = Depends(get_current_user),
    realtime: Realtime = Depends(get_realtime),
) -> dict:
    try:
        return await realtime.friend_service.stats(user_id)
    except HubError as exc:
        raise as_http_error(exc) from exc


@router.get("/blocked", response_model=list[PublicUser])
async def list_blocked_users(
    current_user: User = Depends(get_current_user),
    realtime: Realtime = Depends(get_realtime),
) -> list[dict]:
    return await realtime.friend_service.list_blocked(current_user.id)


@router.post("/block/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def block_user(
    user_id: int,
    current_user: User = Depends(get_current_user),
    realtime: Realtime = Depends(get_realtime),
) -> None:
    try:
        await realtime.friend_service.block_user(current_user.id, user_id)
    except HubError as exc:
        raise as_http_error(exc) from exc


@router.delete("/block/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def unblock_user(
    user_id: int,
    current_user: User = Depends(get_current_user),
    realtime: Realtime = Depends(get_realtime),
) -> None:
    try:
        await realtime.friend_service.unblock_user(current_user.id, user_id)
    except HubError as exc:
        raise as_http_error(exc) from exc
