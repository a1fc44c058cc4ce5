import logging

from sqlalchemy import asc
from sqlalchemy.orm import Session

from faculty_chat.core import clock
from faculty_chat.core.errors import Forbidden, NotFound
from faculty_chat.core.realtime import EventBus, conversation_channel, event_bus
from faculty_chat.core.validation import clean_message_text
from faculty_chat.models.chat import ChatConversation, ChatMessage, MessageState
from faculty_chat.services.conversation_service import recompute_last_activity
from faculty_chat.services.directory_service import DirectorySearch

logger = logging.getLogger(__name__)


def serialize_message(message: ChatMessage, directory: DirectorySearch | None = None) -> dict:
    return {
        "id": message.id,
        "conversation_id": message.conversation_id,
        "sender_id": message.sender_id,
        "sender_name": (directory or DirectorySearch()).resolve_name(message.sender_id),
        "content": message.content,
        "state": message.state,
        "edited": message.edited_at is not None,
        "created_at": message.created_at.isoformat(),
        "edited_at": message.edited_at.isoformat() if message.edited_at else None,
    }


def get_message(db: Session, message_id: int) -> ChatMessage:
    message = db.get(ChatMessage, message_id)
    if not message:
        raise NotFound("Message not found")
    return message


class MessageStore:
    """Ordered message log of one conversation.

    Messages are only ever soft-deleted, ids come from the table's
    autoincrement and are never reused, and every mutation is announced on
    the conversation's channel after it is committed.
    """

    def __init__(
        self,
        db: Session,
        conversation: ChatConversation,
        bus: EventBus = event_bus,
        directory: DirectorySearch | None = None,
    ):
        self.db = db
        self.conversation = conversation
        self.bus = bus
        self.directory = directory or DirectorySearch()

    @classmethod
    def open(cls, db: Session, conversation_id: str, **kwargs) -> "MessageStore":
        conversation = db.get(ChatConversation, conversation_id)
        if not conversation:
            raise NotFound("Conversation not found")
        return cls(db, conversation, **kwargs)

    @property
    def conversation_id(self) -> str:
        return self.conversation.id

    def _publish(self, event_type: str, message: ChatMessage) -> None:
        self.bus.publish(
            conversation_channel(self.conversation_id),
            {"type": event_type, "message": serialize_message(message, self.directory)},
        )

    def _get_active(self, message_id: int) -> ChatMessage:
        message = self.db.get(ChatMessage, message_id)
        if not message or message.conversation_id != self.conversation_id or not message.is_active:
            raise NotFound("Message not found")
        return message

    def append(self, sender_id: str, content) -> ChatMessage:
        if sender_id not in self.conversation.participants:
            raise Forbidden("Not allowed for this conversation")
        text = clean_message_text(content)

        message = ChatMessage(
            conversation_id=self.conversation_id,
            sender_id=sender_id,
            content=text,
            state=MessageState.active.value,
            created_at=clock.utcnow(),
        )
        self.db.add(message)
        self.db.flush()
        self.conversation.last_activity_at = message.created_at
        self.db.commit()
        self.db.refresh(message)

        logger.info("Message %s appended to %s by %s", message.id, self.conversation_id, sender_id)
        self._publish("message_created", message)
        return message

    def edit(self, message_id: int, requester_id: str, new_content) -> ChatMessage:
        message = self._get_active(message_id)
        if message.sender_id != requester_id:
            logger.warning("Edit of message %s by %s rejected: not the sender", message_id, requester_id)
            raise Forbidden("Only the sender can edit this message")
        text = clean_message_text(new_content)

        message.content = text
        message.edited_at = clock.utcnow()
        self.db.commit()
        self.db.refresh(message)

        logger.info("Message %s edited", message.id)
        self._publish("message_edited", message)
        return message

    def delete(self, message_id: int, requester_id: str) -> ChatMessage:
        message = self.db.get(ChatMessage, message_id)
        if not message or message.conversation_id != self.conversation_id:
            raise NotFound("Message not found")
        if message.sender_id != requester_id:
            logger.warning("Delete of message %s by %s rejected: not the sender", message_id, requester_id)
            raise Forbidden("Only the sender can delete this message")
        if not message.is_active:
            return message

        message.state = MessageState.deleted.value
        message.edited_at = None
        self.db.flush()
        recompute_last_activity(self.db, self.conversation)
        self.db.commit()
        self.db.refresh(message)

        logger.info("Message %s deleted from %s", message.id, self.conversation_id)
        self._publish("message_deleted", message)
        return message

    def list(self) -> list[ChatMessage]:
        return self.db.query(ChatMessage).filter(
            ChatMessage.conversation_id == self.conversation_id,
            ChatMessage.state == MessageState.active.value,
        ).order_by(asc(ChatMessage.id)).all()
