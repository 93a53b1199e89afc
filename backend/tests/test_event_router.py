from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Mapping

import pytest
from fastapi.websockets import WebSocketState

from app.monitoring.metrics import (
    notification_persist_failures_total,
    realtime_push_failures_total,
)
from huddle.realtime import (
    CHAT_CHANNEL,
    NOTIFICATION_CHANNEL,
    POST_CHANNEL,
    ClientEvent,
    DomainEvent,
    EventKind,
    EventRouter,
    HubChannel,
    NotificationContent,
    NotificationRecord,
)
from huddle.realtime import notifications


class DummyWebSocket:
    def __init__(self) -> None:
        self.application_state = WebSocketState.CONNECTED
        self.sent: list[dict[str, Any]] = []

    async def send_json(self, payload: dict[str, Any]) -> None:
        self.sent.append(payload)


class HangingWebSocket(DummyWebSocket):
    async def send_json(self, payload: dict[str, Any]) -> None:
        await asyncio.sleep(60)


class ExplodingWebSocket(DummyWebSocket):
    async def send_json(self, payload: dict[str, Any]) -> None:
        raise ValueError("encoder broke")


class DummyNotificationStore:
    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.created: list[NotificationRecord] = []

    async def create_notification(
        self,
        recipient_id: int,
        actor_id: int | None,
        title: str,
        message: str,
        kind: str,
        data: Mapping[str, Any] | None = None,
    ) -> NotificationRecord:
        if self.fail:
            raise ConnectionError("database unavailable")
        record = NotificationRecord(
            id=len(self.created) + 1,
            recipient_id=recipient_id,
            actor_id=actor_id,
            title=title,
            message=message,
            kind=kind,
            is_read=False,
            created_at=datetime.now(timezone.utc),
            data=data,
        )
        self.created.append(record)
        return record

    async def unread_count(self, user_id: int) -> int:
        return sum(1 for record in self.created if record.recipient_id == user_id)

    async def mark_as_read(self, user_id: int, notification_id: int) -> None:
        return None

    async def mark_all_as_read(self, user_id: int) -> int:
        return 0


@pytest.fixture(autouse=True)
def reset_failure_metrics():
    for metric in (notification_persist_failures_total, realtime_push_failures_total):
        metric._samples.clear()
    yield
    for metric in (notification_persist_failures_total, realtime_push_failures_total):
        metric._samples.clear()


@pytest.fixture()
def channels() -> dict[str, HubChannel]:
    return {
        name: HubChannel(name, push_timeout=0.1)
        for name in (CHAT_CHANNEL, NOTIFICATION_CHANNEL, POST_CHANNEL)
    }


def _direct_message(actor_id: int, recipient_ids: tuple[int, ...]) -> DomainEvent:
    return DomainEvent(
        kind=EventKind.NEW_MESSAGE,
        actor_id=actor_id,
        recipient_ids=recipient_ids,
        channel=CHAT_CHANNEL,
        client_event=ClientEvent.RECEIVE_MESSAGE,
        payload={"id": 10, "content": "hi"},
        notification=NotificationContent("New Message", "Bob: hi", {"message_id": 10}),
    )


@pytest.mark.anyio("asyncio")
async def test_direct_message_reaches_every_session_and_records_once(channels):
    store = DummyNotificationStore()
    router = EventRouter(channels, store)
    s1, s2 = DummyWebSocket(), DummyWebSocket()
    channels[CHAT_CHANNEL].attach(1, s1)
    channels[CHAT_CHANNEL].attach(1, s2)

    result = await router.route(_direct_message(actor_id=2, recipient_ids=(1, 2)))

    for socket in (s1, s2):
        assert socket.sent == [{"type": "ReceiveMessage", "payload": {"id": 10, "content": "hi"}}]
    assert [record.recipient_id for record in store.created] == [1]
    assert result.pushed == 2
    assert result.suppressed == 1
    assert len(result.notifications) == 1


@pytest.mark.anyio("asyncio")
async def test_offline_recipient_still_gets_a_record(channels):
    store = DummyNotificationStore()
    router = EventRouter(channels, store)
    actor = {"id": 2, "username": "bob", "display_name": "Bob"}
    comment = {"id": 5, "content": "nice shot"}

    result = await router.route(notifications.post_commented(actor, 1, 7, comment))

    assert result.pushed == 0
    assert result.failed == 0
    assert len(store.created) == 1
    record = store.created[0]
    assert record.kind == "post_comment"
    assert record.title == "New Comment"
    assert record.message == 'Bob commented on your post: "nice shot"'
    assert record.data == {"post_id": 7, "comment_id": 5}


@pytest.mark.anyio("asyncio")
async def test_actor_is_never_notified_about_own_action(channels):
    store = DummyNotificationStore()
    router = EventRouter(channels, store)
    own_socket = DummyWebSocket()
    channels[NOTIFICATION_CHANNEL].attach(1, own_socket)

    result = await router.route(notifications.post_liked({"id": 1, "username": "ann"}, 1, 7))

    assert result.suppressed == 1
    assert store.created == []
    assert own_socket.sent == []


@pytest.mark.anyio("asyncio")
async def test_stored_notification_is_pushed_to_notification_sessions(channels):
    store = DummyNotificationStore()
    router = EventRouter(channels, store)
    socket = DummyWebSocket()
    channels[NOTIFICATION_CHANNEL].attach(1, socket)

    await router.route(notifications.new_follower({"id": 2, "username": "bob"}, 1))

    assert len(socket.sent) == 1
    frame = socket.sent[0]
    assert frame["type"] == ClientEvent.RECEIVE_NOTIFICATION
    assert frame["payload"]["type"] == "new_follower"
    assert frame["payload"]["user_id"] == 1
    assert frame["payload"]["message"] == "bob started following you!"


@pytest.mark.anyio("asyncio")
async def test_ephemeral_kinds_are_pushed_but_never_recorded(channels):
    store = DummyNotificationStore()
    router = EventRouter(channels, store)
    socket = DummyWebSocket()
    channels[CHAT_CHANNEL].attach(1, socket)

    result = await router.route(
        DomainEvent(
            kind=EventKind.MESSAGE_READ,
            actor_id=2,
            recipient_ids=(1,),
            channel=CHAT_CHANNEL,
            client_event=ClientEvent.MESSAGE_READ,
            payload={"message_id": 3},
            notification=NotificationContent("ignored", "ignored"),
        )
    )

    assert result.pushed == 1
    assert store.created == []


@pytest.mark.anyio("asyncio")
async def test_room_broadcast_pushes_once_per_member_session(channels):
    router = EventRouter(channels, DummyNotificationStore())
    post_channel = channels[POST_CHANNEL]
    sockets = [DummyWebSocket() for _ in range(3)]
    sessions = [post_channel.attach(1, sockets[0])[0], post_channel.attach(1, sockets[1])[0]]
    sessions.append(post_channel.attach(2, sockets[2])[0])
    outsider = DummyWebSocket()
    post_channel.attach(3, outsider)
    for session in sessions:
        post_channel.join_room("post:7", session)

    result = await router.route(
        DomainEvent(
            kind=EventKind.COMMENT_TYPING,
            actor_id=2,
            room="post:7",
            channel=POST_CHANNEL,
            client_event=ClientEvent.USER_TYPING_COMMENT,
            payload={"user_id": 2, "post_id": 7, "is_typing": True},
            exclude_session=sessions[2].session_id,
        )
    )

    assert result.pushed == 2
    assert [len(socket.sent) for socket in sockets] == [1, 1, 0]
    assert outsider.sent == []


@pytest.mark.anyio("asyncio")
async def test_store_failure_is_logged_and_push_still_happens(channels, caplog):
    router = EventRouter(channels, DummyNotificationStore(fail=True))
    socket = DummyWebSocket()
    channels[CHAT_CHANNEL].attach(1, socket)

    with caplog.at_level(logging.WARNING, logger="huddle.realtime.router"):
        result = await router.route(_direct_message(actor_id=2, recipient_ids=(1,)))

    assert result.pushed == 1
    assert result.persist_failures == 1
    assert socket.sent[0]["type"] == ClientEvent.RECEIVE_MESSAGE
    assert any(
        record.levelno == logging.WARNING
        and "Failed to store new_message notification for user 1" in record.getMessage()
        for record in caplog.records
    )
    assert notification_persist_failures_total.value("new_message") == 1.0


@pytest.mark.anyio("asyncio")
async def test_hanging_session_does_not_block_others(channels):
    store = DummyNotificationStore()
    router = EventRouter(channels, store)
    healthy = DummyWebSocket()
    channels[CHAT_CHANNEL].attach(1, HangingWebSocket())
    channels[CHAT_CHANNEL].attach(1, healthy)

    result = await asyncio.wait_for(
        router.route(_direct_message(actor_id=2, recipient_ids=(1,))), timeout=2
    )

    assert len(healthy.sent) == 1
    assert result.pushed == 1
    assert result.failed == 1
    assert len(store.created) == 1
    assert realtime_push_failures_total.value(CHAT_CHANNEL, "timeout") == 1.0


@pytest.mark.anyio("asyncio")
async def test_broken_and_closed_sessions_are_counted_as_failures(channels):
    router = EventRouter(channels, DummyNotificationStore())
    closed = DummyWebSocket()
    closed.application_state = WebSocketState.DISCONNECTED
    healthy = DummyWebSocket()
    for socket in (ExplodingWebSocket(), closed, healthy):
        channels[CHAT_CHANNEL].attach(1, socket)

    result = await router.route(_direct_message(actor_id=2, recipient_ids=(1,)))

    assert result.pushed == 1
    assert result.failed == 2
    assert realtime_push_failures_total.value(CHAT_CHANNEL, "error") == 1.0
    assert realtime_push_failures_total.value(CHAT_CHANNEL, "closed") == 1.0


def test_unknown_channel_is_rejected(channels):
    router = EventRouter(channels, DummyNotificationStore())

    with pytest.raises(LookupError):
        router.channel("voice")


def test_event_targets_are_validated():
    with pytest.raises(ValueError):
        DomainEvent(kind=EventKind.USER_TYPING, actor_id=1, room="conversation:1")
    with pytest.raises(ValueError):
        DomainEvent(kind=EventKind.USER_TYPING, actor_id=1, channel=CHAT_CHANNEL)
    with pytest.raises(ValueError):
        DomainEvent(
            kind=EventKind.USER_TYPING,
            actor_id=1,
            recipient_ids=(2,),
            room="conversation:1",
            channel=CHAT_CHANNEL,
            client_event=ClientEvent.USER_TYPING,
        )
