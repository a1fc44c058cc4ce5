import asyncio
import logging

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect

from faculty_chat.core.dependencies import CurrentUser, get_current_user, user_from_token
from faculty_chat.core.errors import ChatError
from faculty_chat.core.realtime import WebSocketRelay, conversation_channel, event_bus
from faculty_chat.models.chat import ChatConversation
from faculty_chat.schemas.chat import (
    ChatArchiveUpdate,
    ChatConversationOut,
    ChatListEntryOut,
    ChatUnreadConversationCount,
    ChatUnreadSummaryOut,
)
from faculty_chat.services.chat_service import ChatService, get_chat_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/conversations", tags=["Conversations"])
ws_router = APIRouter(tags=["Conversations"])


def _conversation_out(conversation: ChatConversation) -> ChatConversationOut:
    return ChatConversationOut(
        id=conversation.id,
        participants=list(conversation.participants),
        chat_type=conversation.chat_type,
        is_archived=bool(conversation.is_archived),
        created_at=conversation.created_at,
        last_activity_at=conversation.last_activity_at,
    )


@router.get("", response_model=list[ChatListEntryOut])
def list_conversations(
    include_archived: bool = Query(default=False),
    service: ChatService = Depends(get_chat_service),
    current_user: CurrentUser = Depends(get_current_user),
):
    return [
        ChatListEntryOut(**vars(entry))
        for entry in service.chat_list(current_user, include_archived=include_archived)
    ]


@router.get("/unread-count", response_model=ChatUnreadSummaryOut)
def get_unread_count(
    service: ChatService = Depends(get_chat_service),
    current_user: CurrentUser = Depends(get_current_user),
):
    total, per_conversation = service.unread_summary(current_user)
    return ChatUnreadSummaryOut(
        total_unread=total,
        conversations=[
            ChatUnreadConversationCount(conversation_id=conversation_id, unread_count=count)
            for conversation_id, count in per_conversation
        ],
    )


@router.post("/{other_user_id}", response_model=ChatConversationOut)
def create_or_get_conversation(
    other_user_id: str,
    service: ChatService = Depends(get_chat_service),
    current_user: CurrentUser = Depends(get_current_user),
):
    return _conversation_out(service.start_conversation(current_user, other_user_id))


@router.get("/{conversation_id}", response_model=ChatConversationOut)
def get_conversation(
    conversation_id: str,
    service: ChatService = Depends(get_chat_service),
    current_user: CurrentUser = Depends(get_current_user),
):
    return _conversation_out(service.get_conversation(current_user, conversation_id))


@router.get("/{conversation_id}/unread-count", response_model=ChatUnreadConversationCount)
def get_conversation_unread_count(
    conversation_id: str,
    service: ChatService = Depends(get_chat_service),
    current_user: CurrentUser = Depends(get_current_user),
):
    return ChatUnreadConversationCount(
        conversation_id=conversation_id,
        unread_count=service.unread_count(current_user, conversation_id),
    )


@router.put("/{conversation_id}/read", response_model=ChatUnreadConversationCount)
def mark_conversation_read(
    conversation_id: str,
    service: ChatService = Depends(get_chat_service),
    current_user: CurrentUser = Depends(get_current_user),
):
    return ChatUnreadConversationCount(
        conversation_id=conversation_id,
        unread_count=service.mark_read(current_user, conversation_id),
    )


@router.patch("/{conversation_id}/archive", response_model=ChatConversationOut)
def archive_conversation(
    conversation_id: str,
    payload: ChatArchiveUpdate,
    service: ChatService = Depends(get_chat_service),
    current_user: CurrentUser = Depends(get_current_user),
):
    return _conversation_out(service.set_archived(current_user, conversation_id, payload.archived))


@ws_router.websocket("/ws/conversations/{conversation_id}")
async def conversation_socket(
    websocket: WebSocket,
    conversation_id: str,
    token: str | None = Query(default=None),
    service: ChatService = Depends(get_chat_service),
):
    user = user_from_token(token)
    if user is None:
        await websocket.close(code=4401)
        return

    try:
        service.get_conversation(user, conversation_id)
    except ChatError as exc:
        logger.warning("Refused stream of %s to %s: %s", conversation_id, user.id, exc.kind)
        await websocket.close(code=4403)
        return
    finally:
        # the socket may stay open for hours; don't pin a connection
        service.db.close()

    relay = WebSocketRelay(event_bus, conversation_channel(conversation_id))
    relay.open()
    await websocket.accept()
    logger.info("%s subscribed to %s", user.id, conversation_id)
    sender = asyncio.create_task(relay.pump(websocket))
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.info("%s unsubscribed from %s", user.id, conversation_id)
    finally:
        sender.cancel()
        relay.close()
