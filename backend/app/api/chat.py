"""REST endpoints for conversations and message history."""

from fastapi import APIRouter, Depends, Query, status

from huddle.realtime import HubError

from app.api.deps import as_http_error, get_current_user
from app.models import User
from app.schemas import ConversationCreate, ConversationRead, MessageCreate, MessageRead
from app.services.realtime import Realtime, get_realtime

router = APIRouter(prefix="/chat", tags=["chat"])


@router.post(
    "/conversations",
    response_model=ConversationRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_conversation(
    payload: ConversationCreate,
    current_user: User = Depends(get_current_user),
    realtime: Realtime = Depends(get_realtime),
) -> dict:
    """Start a conversation, reusing an existing one-to-one thread when present."""

    try:
        return await realtime.chat_service.create_conversation(
            current_user.id, payload.participant_ids, payload.name
        )
    except HubError as exc:
        raise as_http_error(exc) from exc


@router.get("/conversations", response_model=list[ConversationRead])
async def list_conversations(
    current_user: User = Depends(get_current_user),
    realtime: Realtime = Depends(get_realtime),
) -> list[dict]:
    return await realtime.chat_service.list_conversations(current_user.id)


@router.get("/conversations/{conversation_id}", response_model=ConversationRead)
async def get_conversation(
    conversation_id: int,
    current_user: User = Depends(get_current_user),
    realtime: Realtime = Depends(get_realtime),
) -> dict:
    try:
        return await realtime.chat_service.get_conversation(current_user.id, conversation_id)
    except HubError as exc:
        raise as_http_error(exc) from exc


@router.get("/conversations/{conversation_id}/messages", response_model=list[MessageRead])
async def list_messages(
    conversation_id: int,
    before_id: int | None = Query(default=None, ge=1),
    limit: int | None = Query(default=None, ge=1),
    current_user: User = Depends(get_current_user),
    realtime: Realtime = Depends(get_realtime),
) -> list[dict]:
    """Return messages oldest first, paging backwards with ``before_id``."""

    try:
        return await realtime.chat_service.list_messages(
            current_user.id, conversation_id, before_id=before_id, limit=limit
        )
    except HubError as exc:
        raise as_http_error(exc) from exc


@router.post(
    "/conversations/{conversation_id}/messages",
    response_model=MessageRead,
    status_code=status.HTTP_201_CREATED,
)
async def send_message(
    conversation_id: int,
    payload: MessageCreate,
    current_user: User = Depends(get_current_user),
    realtime: Realtime = Depends(get_realtime),
) -> dict:
    """Store a message and fan it out exactly as the chat hub does."""

    try:
        message = await realtime.chat_service.send_message(
            current_user.id, conversation_id, payload.content, payload.type.value
        )
    except HubError as exc:
        raise as_http_error(exc) from exc
    await realtime.chat_hub.publish_message(message)
    return message
