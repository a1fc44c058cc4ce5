import enum

from sqlalchemy import Boolean, Column, ForeignKey, Index, Integer, String, Text, UniqueConstraint

from faculty_chat.core.clock import utcnow
from faculty_chat.database.base import Base
from faculty_chat.database.types import UTCDateTime


class ChatType(str, enum.Enum):
    direct = "direct"
    support = "support"


class MessageState(str, enum.Enum):
    active = "active"
    deleted = "deleted"


class ChatConversation(Base):
    __tablename__ = "chat_conversations"

    # canonical key derived from the two participants
    id = Column(String(160), primary_key=True)
    participant_a = Column(String(64), nullable=False, index=True)
    participant_b = Column(String(64), nullable=False, index=True)
    chat_type = Column(String(20), nullable=False, default=ChatType.direct.value, index=True)
    is_archived = Column(Boolean, nullable=False, default=False)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    last_activity_at = Column(UTCDateTime, nullable=False, default=utcnow, index=True)

    @property
    def participants(self) -> tuple[str, str]:
        return self.participant_a, self.participant_b

    def other_participant(self, user_id: str) -> str:
        return self.participant_b if user_id == self.participant_a else self.participant_a


class ChatMessage(Base):
    __tablename__ = "chat_messages"
    __table_args__ = (
        Index("ix_chat_messages_conversation_id_id", "conversation_id", "id"),
        # ids are never reused, even for the highest row
        {"sqlite_autoincrement": True},
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    conversation_id = Column(String(160), ForeignKey("chat_conversations.id"), nullable=False, index=True)
    sender_id = Column(String(64), nullable=False, index=True)
    content = Column(Text, nullable=False)
    state = Column(String(20), nullable=False, default=MessageState.active.value)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    edited_at = Column(UTCDateTime, nullable=True)

    @property
    def is_active(self) -> bool:
        return self.state == MessageState.active.value


class ChatReadState(Base):
    __tablename__ = "chat_read_states"
    __table_args__ = (
        UniqueConstraint("user_id", "conversation_id", name="uq_chat_read_state"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    conversation_id = Column(String(160), ForeignKey("chat_conversations.id"), nullable=False, index=True)
    last_read_at = Column(UTCDateTime, nullable=True)
