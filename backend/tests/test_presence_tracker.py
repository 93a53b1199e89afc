from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

import pytest
from fastapi.websockets import WebSocketState

from app.monitoring.metrics import realtime_online_users
from huddle.realtime import CHAT_CHANNEL, ClientEvent, HubChannel, PresenceTracker


class DummyWebSocket:
    def __init__(self) -> None:
        self.application_state = WebSocketState.CONNECTED
        self.sent: list[dict[str, Any]] = []

    async def send_json(self, payload: dict[str, Any]) -> None:
        self.sent.append(payload)

    def events(self) -> list[str]:
        return [frame["type"] for frame in self.sent]


class DummyUserStore:
    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[tuple[int, bool, datetime | None]] = []

    async def set_online_status(
        self, user_id: int, is_online: bool, last_seen: datetime | None = None
    ) -> None:
        if self.fail:
            raise ConnectionError("database unavailable")
        self.calls.append((user_id, is_online, last_seen))

    async def get_public_user(self, user_id: int) -> dict[str, Any]:
        return {"id": user_id, "username": f"user{user_id}", "display_name": None}


@pytest.fixture()
def channel() -> HubChannel:
    return HubChannel(CHAT_CHANNEL, push_timeout=0.5)


@pytest.mark.anyio("asyncio")
async def test_only_first_session_announces_online(channel):
    users = DummyUserStore()
    tracker = PresenceTracker(channel, users)
    observer = DummyWebSocket()
    await tracker.connect(2, observer)

    first, second = DummyWebSocket(), DummyWebSocket()
    await tracker.connect(1, first)
    await tracker.connect(1, second)

    online = [frame for frame in observer.sent if frame["type"] == ClientEvent.USER_ONLINE]
    assert online == [{"type": "UserOnline", "payload": {"user_id": 1}}]
    # The connecting session itself is not told about its own arrival.
    assert ClientEvent.USER_ONLINE not in first.events()
    assert ClientEvent.USER_ONLINE not in second.events()
    assert [call[:2] for call in users.calls] == [(2, True), (1, True)]
    assert realtime_online_users.value() == 2


@pytest.mark.anyio("asyncio")
async def test_only_last_session_announces_offline(channel):
    users = DummyUserStore()
    tracker = PresenceTracker(channel, users)
    observer = DummyWebSocket()
    await tracker.connect(2, observer)
    first = await tracker.connect(1, DummyWebSocket())
    second = await tracker.connect(1, DummyWebSocket())

    assert await tracker.disconnect(first) is False
    assert ClientEvent.USER_OFFLINE not in observer.events()

    assert await tracker.disconnect(second) is True
    offline = observer.sent[-1]
    assert offline["type"] == ClientEvent.USER_OFFLINE
    assert offline["payload"]["user_id"] == 1
    assert datetime.fromisoformat(offline["payload"]["last_seen"]) == users.calls[-1][2]
    assert users.calls[-1][:2] == (1, False)
    assert 1 not in channel.registry


@pytest.mark.anyio("asyncio")
async def test_disconnecting_twice_is_silent(channel):
    users = DummyUserStore()
    tracker = PresenceTracker(channel, users)
    session = await tracker.connect(1, DummyWebSocket())

    assert await tracker.disconnect(session) is True
    assert await tracker.disconnect(session) is False
    assert [call[1] for call in users.calls] == [True, False]


@pytest.mark.anyio("asyncio")
async def test_status_store_failure_is_logged_and_connection_survives(channel, caplog):
    tracker = PresenceTracker(channel, DummyUserStore(fail=True))
    observer = DummyWebSocket()
    await tracker.connect(2, observer)

    with caplog.at_level(logging.WARNING, logger="huddle.realtime.presence"):
        session = await tracker.connect(1, DummyWebSocket())

    assert channel.get(session.session_id) is session
    assert ClientEvent.USER_ONLINE in observer.events()
    assert any("Failed to store presence for user 1" in record.getMessage() for record in caplog.records)
