"""Builders for notification-bearing domain events."""

from __future__ import annotations

from typing import Any, Mapping

from .events import DomainEvent, EventKind, NotificationContent


def display_name(user: Mapping[str, Any]) -> str:
    return user.get("display_name") or user.get("username") or f"user {user.get('id')}"


def _notify(
    kind: EventKind,
    actor: Mapping[str, Any],
    recipient_id: int,
    title: str,
    message: str,
    data: Mapping[str, Any],
) -> DomainEvent:
    return DomainEvent(
        kind=kind,
        actor_id=int(actor["id"]),
        recipient_ids=(recipient_id,),
        payload=data,
        notification=NotificationContent(title=title, message=message, data=data),
    )


def post_commented(
    actor: Mapping[str, Any], owner_id: int, post_id: int, comment: Mapping[str, Any]
) -> DomainEvent:
    return _notify(
        EventKind.POST_COMMENT,
        actor,
        owner_id,
        "New Comment",
        f'{display_name(actor)} commented on your post: "{comment["content"]}"',
        {"post_id": post_id, "comment_id": comment["id"]},
    )


def comment_replied(
    actor: Mapping[str, Any], owner_id: int, post_id: int, reply: Mapping[str, Any]
) -> DomainEvent:
    return _notify(
        EventKind.COMMENT_REPLY,
        actor,
        owner_id,
        "New Reply",
        f'{display_name(actor)} replied to your comment: "{reply["content"]}"',
        {
            "post_id": post_id,
            "comment_id": reply["id"],
            "parent_comment_id": reply.get("parent_comment_id"),
        },
    )


def post_liked(actor: Mapping[str, Any], owner_id: int, post_id: int) -> DomainEvent:
    return _notify(
        EventKind.POST_LIKE,
        actor,
        owner_id,
        "Post Liked",
        f"{display_name(actor)} liked your post!",
        {"post_id": post_id, "liker_user_id": actor["id"]},
    )


def comment_liked(actor: Mapping[str, Any], owner_id: int, comment_id: int) -> DomainEvent:
    return _notify(
        EventKind.COMMENT_LIKE,
        actor,
        owner_id,
        "Comment Liked",
        f"{display_name(actor)} liked your comment!",
        {"comment_id": comment_id, "liker_user_id": actor["id"]},
    )


def friend_request_sent(actor: Mapping[str, Any], addressee_id: int) -> DomainEvent:
    return _notify(
        EventKind.FRIEND_REQUEST,
        actor,
        addressee_id,
        "Friend Request",
        f"{display_name(actor)} sent you a friend request!",
        {"requester_id": actor["id"]},
    )


def friend_request_accepted(actor: Mapping[str, Any], requester_id: int) -> DomainEvent:
    return _notify(
        EventKind.FRIEND_REQUEST_ACCEPTED,
        actor,
        requester_id,
        "Friend Request Accepted",
        f"{display_name(actor)} accepted your friend request!",
        {"user_id": actor["id"]},
    )


def new_follower(actor: Mapping[str, Any], followed_id: int) -> DomainEvent:
    return _notify(
        EventKind.NEW_FOLLOWER,
        actor,
        followed_id,
        "New Follower",
        f"{display_name(actor)} started following you!",
        {"follower_id": actor["id"]},
    )
