from fastapi import APIRouter, Depends, Response, status

from faculty_chat.core.dependencies import CurrentUser, get_current_user
from faculty_chat.schemas.chat import ChatMessageCreate, ChatMessageOut, ChatMessageUpdate
from faculty_chat.services.chat_service import ChatService, get_chat_service

router = APIRouter(prefix="/messages", tags=["Messages"])


@router.get("/{conversation_id}", response_model=list[ChatMessageOut])
def get_messages(
    conversation_id: str,
    service: ChatService = Depends(get_chat_service),
    current_user: CurrentUser = Depends(get_current_user),
):
    return [
        ChatMessageOut(**service.serialize(m))
        for m in service.list_messages(current_user, conversation_id)
    ]


@router.post("", response_model=ChatMessageOut)
def send_message(
    payload: ChatMessageCreate,
    service: ChatService = Depends(get_chat_service),
    current_user: CurrentUser = Depends(get_current_user),
):
    message = service.send_message(current_user, payload.conversation_id, payload.content)
    return ChatMessageOut(**service.serialize(message))


@router.put("/{message_id}", response_model=ChatMessageOut)
def edit_message(
    message_id: int,
    payload: ChatMessageUpdate,
    service: ChatService = Depends(get_chat_service),
    current_user: CurrentUser = Depends(get_current_user),
):
    message = service.edit_message(current_user, message_id, payload.content)
    return ChatMessageOut(**service.serialize(message))


@router.delete("/{message_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_message(
    message_id: int,
    service: ChatService = Depends(get_chat_service),
    current_user: CurrentUser = Depends(get_current_user),
):
    service.delete_message(current_user, message_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
