from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from faculty_chat.config import settings


class ChatMessageCreate(BaseModel):
    conversation_id: str = Field(alias="conversationId", min_length=1)
    content: str = Field(max_length=settings.MESSAGE_MAX_LENGTH)

    model_config = {"populate_by_name": True}


class ChatMessageUpdate(BaseModel):
    content: str = Field(max_length=settings.MESSAGE_MAX_LENGTH)


class ChatMessageOut(BaseModel):
    id: int
    conversation_id: str
    sender_id: str
    sender_name: str
    content: str
    state: str
    edited: bool = False
    created_at: datetime
    edited_at: Optional[datetime] = None


class ChatConversationOut(BaseModel):
    id: str
    participants: list[str]
    chat_type: str
    is_archived: bool = False
    created_at: datetime
    last_activity_at: datetime


class ChatListEntryOut(BaseModel):
    conversation_id: str
    other_participant_id: str
    other_participant_name: str
    preview_text: str
    last_activity_at: datetime
    chat_type: str = "direct"
    unread_count: int = 0


class ChatArchiveUpdate(BaseModel):
    archived: bool = True


class ChatUnreadConversationCount(BaseModel):
    conversation_id: str
    unread_count: int = 0


class ChatUnreadSummaryOut(BaseModel):
    total_unread: int = 0
    conversations: list[ChatUnreadConversationCount] = Field(default_factory=list)
