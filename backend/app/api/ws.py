"""WebSocket endpoints for the chat, notification and post hubs."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any, Dict, Protocol, TypeVar

from fastapi import APIRouter, WebSocket, status
from fastapi.exceptions import HTTPException
from fastapi.websockets import WebSocketDisconnect, WebSocketState
from pydantic import TypeAdapter, ValidationError

from huddle.realtime import HubError
from huddle.realtime.channel import HubChannel, HubSession, SessionTransport, safe_send_json

from app.api.deps import get_user_from_token
from app.config import get_settings
from app.database import get_db_session
from app.monitoring.metrics import realtime_events_total
from app.services.realtime import get_realtime

router = APIRouter(prefix="/hubs", tags=["hubs"])

settings = get_settings()

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Hub(Protocol):
    commands: TypeAdapter[Any]
    channel: HubChannel

    async def on_connect(self, user_id: int, transport: SessionTransport) -> HubSession: ...

    async def on_disconnect(self, session: HubSession) -> None: ...

    async def handle(self, session: HubSession, command: Any) -> None: ...


async def iter_keepalive_messages(
    websocket: WebSocket,
    receiver: Callable[[], Awaitable[T]],
    *,
    timeout_seconds: float | int | None,
    ping_interval_seconds: float | int | None,
    ping_payload: Dict[str, Any] | None = None,
) -> AsyncIterator[T]:
    """Yield messages from *receiver*, pinging the client while it stays idle."""

    ping_payload = ping_payload or {"type": "ping"}
    timeout = float(timeout_seconds) if timeout_seconds else 0.0
    interval = float(ping_interval_seconds) if ping_interval_seconds else 0.0
    last_activity = time.monotonic()
    last_ping_sent: float | None = None

    while True:
        try:
            if timeout > 0:
                message = await asyncio.wait_for(receiver(), timeout=timeout)
            else:
                message = await receiver()
        except asyncio.TimeoutError:
            if websocket.application_state != WebSocketState.CONNECTED:
                break

            now = time.monotonic()
            idle_long_enough = interval <= 0 or (
                now - last_activity >= interval
                and (last_ping_sent is None or now - last_ping_sent >= interval)
            )
            if idle_long_enough:
                if not await safe_send_json(websocket, ping_payload):
                    break
                last_ping_sent = now
            continue
        except asyncio.CancelledError:  # pragma: no cover - cooperative cancellation
            raise
        except (RuntimeError, WebSocketDisconnect):
            break
        else:
            last_activity = time.monotonic()
            last_ping_sent = None
            yield message


def _extract_token(websocket: WebSocket) -> str | None:
    token = websocket.query_params.get("access_token") or websocket.query_params.get("token")
    if not token:
        auth_header = websocket.headers.get("Authorization")
        if auth_header and auth_header.startswith("Bearer "):
            token = auth_header.removeprefix("Bearer ").strip()
    return token or None


async def _resolve_user_id(websocket: WebSocket) -> int | None:
    token = _extract_token(websocket)
    if token is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="Missing token")
        return None

    try:
        with get_db_session() as db:
            return get_user_from_token(token, db).id
    except HTTPException:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="Invalid token")
        return None


async def _send_error(websocket: WebSocket, detail: str) -> None:
    await safe_send_json(websocket, {"type": "error", "detail": detail})


async def _dispatch(websocket: WebSocket, hub: Hub, session: HubSession, raw_message: str) -> None:
    if raw_message.strip().lower() == "ping":
        await safe_send_json(websocket, {"type": "pong"})
        return
    try:
        payload = json.loads(raw_message)
    except json.JSONDecodeError:
        await _send_error(websocket, "Invalid payload")
        return
    if not isinstance(payload, dict):
        await _send_error(websocket, "Message payload must be a JSON object")
        return
    if payload.get("type") == "ping":
        await safe_send_json(websocket, {"type": "pong"})
        return
    if payload.get("type") == "pong":
        return

    try:
        command = hub.commands.validate_python(payload)
    except ValidationError as exc:
        first = exc.errors()[0] if exc.errors() else {}
        location = ".".join(str(part) for part in first.get("loc", ()))
        detail = first.get("msg", "Invalid command")
        await _send_error(websocket, f"{location}: {detail}" if location else detail)
        return

    realtime_events_total.labels(session.channel, "in", command.type).inc()
    try:
        await hub.handle(session, command)
    except HubError as exc:
        await _send_error(websocket, exc.detail)
    except Exception:
        logger.exception(
            "Unhandled error while processing %s for user %s on %s",
            command.type,
            session.user_id,
            session.channel,
        )
        await _send_error(websocket, "Failed to process command")


async def _serve(websocket: WebSocket, hub_getter: Callable[[], Hub]) -> None:
    user_id = await _resolve_user_id(websocket)
    if user_id is None:
        return

    await websocket.accept()
    hub = hub_getter()
    try:
        session = await hub.on_connect(user_id, websocket)
    except Exception:
        logger.exception("Failed to open %s session for user %s", hub.channel.name, user_id)
        hub.channel.release(websocket)
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
        return
    logger.debug("User %s opened %s session %s", user_id, session.channel, session.session_id)
    try:
        async for raw_message in iter_keepalive_messages(
            websocket,
            websocket.receive_text,
            timeout_seconds=settings.websocket_keepalive_timeout_seconds,
            ping_interval_seconds=settings.websocket_keepalive_ping_interval_seconds,
        ):
            if not raw_message:
                continue
            await _dispatch(websocket, hub, session, raw_message)
    finally:
        await hub.on_disconnect(session)
        logger.debug("User %s closed %s session %s", user_id, session.channel, session.session_id)


@router.websocket("/chat")
async def chat_hub_endpoint(websocket: WebSocket) -> None:
    """Conversations, typing indicators, read receipts and presence."""

    await _serve(websocket, lambda: get_realtime().chat_hub)


@router.websocket("/notification")
async def notification_hub_endpoint(websocket: WebSocket) -> None:
    """Live notifications and the unread counter."""

    await _serve(websocket, lambda: get_realtime().notification_hub)


@router.websocket("/post")
async def post_hub_endpoint(websocket: WebSocket) -> None:
    """Comments, likes and comment typing for the posts a client is viewing."""

    await _serve(websocket, lambda: get_realtime().post_hub)
