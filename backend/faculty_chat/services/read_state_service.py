import logging
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from faculty_chat.core import clock
from faculty_chat.core.errors import NotFound
from faculty_chat.core.realtime import EventBus, event_bus, user_channel
from faculty_chat.database.types import utc_epoch
from faculty_chat.models.chat import ChatConversation, ChatMessage, ChatReadState, MessageState

logger = logging.getLogger(__name__)


class NotificationCoordinator:
    """Per-(user, conversation) unread tracking.

    Only ``last_read_at`` is stored. Unread counts are always derived from
    the message log, so deleting a message can never leave a counter
    drifting.
    """

    def __init__(self, db: Session, bus: EventBus = event_bus):
        self.db = db
        self.bus = bus

    def _conversation(self, conversation_id: str) -> ChatConversation:
        conversation = self.db.get(ChatConversation, conversation_id)
        if not conversation:
            raise NotFound("Conversation not found")
        return conversation

    def _read_state(self, user_id: str, conversation_id: str) -> Optional[ChatReadState]:
        return self.db.query(ChatReadState).filter(
            ChatReadState.user_id == user_id,
            ChatReadState.conversation_id == conversation_id,
        ).first()

    def last_read_at(self, user_id: str, conversation_id: str) -> Optional[datetime]:
        state = self._read_state(user_id, conversation_id)
        return state.last_read_at if state else None

    def unread_count(self, user_id: str, conversation_id: str) -> int:
        conversation = self._conversation(conversation_id)
        last_read_at = self.last_read_at(user_id, conversation_id)
        if last_read_at is not None and last_read_at >= conversation.last_activity_at:
            return 0

        unread = self.db.query(func.count(ChatMessage.id)).filter(
            ChatMessage.conversation_id == conversation_id,
            ChatMessage.state == MessageState.active.value,
            ChatMessage.sender_id != user_id,
            ChatMessage.created_at > (last_read_at or utc_epoch()),
        ).scalar() or 0
        return int(unread)

    def unread_summary(self, user_id: str, conversation_ids: Iterable[str]) -> tuple[int, list[tuple[str, int]]]:
        per_conversation = [
            (conversation_id, self.unread_count(user_id, conversation_id))
            for conversation_id in conversation_ids
        ]
        return sum(count for _, count in per_conversation), per_conversation

    def _publish_unread(self, user_id: str, conversation_id: str) -> int:
        count = self.unread_count(user_id, conversation_id)
        self.bus.publish(user_channel(user_id), {
            "type": "unread_changed",
            "conversation_id": conversation_id,
            "unread_count": count,
        })
        return count

    def on_message_appended(self, message: ChatMessage) -> dict[str, int]:
        conversation = self._conversation(message.conversation_id)
        return {
            participant: self._publish_unread(participant, conversation.id)
            for participant in conversation.participants
            if participant != message.sender_id
        }

    def on_message_removed(self, message: ChatMessage) -> dict[str, int]:
        return self.on_message_appended(message)

    def _ensure_read_state(self, user_id: str, conversation_id: str) -> ChatReadState:
        state = self._read_state(user_id, conversation_id)
        if state:
            return state
        state = ChatReadState(user_id=user_id, conversation_id=conversation_id, last_read_at=None)
        try:
            with self.db.begin_nested():
                self.db.add(state)
                self.db.flush()
        except IntegrityError:
            state = self._read_state(user_id, conversation_id)
        return state

    def mark_read(self, user_id: str, conversation_id: str, at: datetime | None = None) -> datetime:
        """Advance ``last_read_at`` to ``at`` (default now); never moves it back."""
        self._conversation(conversation_id)
        at = at or clock.utcnow()
        self._ensure_read_state(user_id, conversation_id)

        updated = self.db.query(ChatReadState).filter(
            ChatReadState.user_id == user_id,
            ChatReadState.conversation_id == conversation_id,
            or_(ChatReadState.last_read_at == None, ChatReadState.last_read_at < at),  # noqa: E711
        ).update({"last_read_at": at}, synchronize_session=False)
        self.db.commit()

        if updated:
            logger.debug("%s read %s up to %s", user_id, conversation_id, at.isoformat())
            self._publish_unread(user_id, conversation_id)
        return self.last_read_at(user_id, conversation_id)
