import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy import desc, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from faculty_chat.config import settings
from faculty_chat.core import clock
from faculty_chat.core.dependencies import CurrentUser
from faculty_chat.core.errors import Forbidden, NotFound
from faculty_chat.core.identity import canonical_conversation_id, ordered_participants
from faculty_chat.core.validation import preview_of
from faculty_chat.models.chat import ChatConversation, ChatMessage, ChatType, MessageState
from faculty_chat.services.directory_service import DirectorySearch

logger = logging.getLogger(__name__)


@dataclass
class ChatListEntry:
    conversation_id: str
    other_participant_id: str
    other_participant_name: str
    preview_text: str
    last_activity_at: datetime
    chat_type: str = ChatType.direct.value
    unread_count: int = 0


def latest_active_message(db: Session, conversation_id: str) -> Optional[ChatMessage]:
    return db.query(ChatMessage).filter(
        ChatMessage.conversation_id == conversation_id,
        ChatMessage.state == MessageState.active.value,
    ).order_by(desc(ChatMessage.id)).first()


def recompute_last_activity(db: Session, conversation: ChatConversation) -> datetime:
    """Point ``last_activity_at`` at the newest active message, or back at
    ``created_at`` when none is left. Caller commits."""
    latest = latest_active_message(db, conversation.id)
    conversation.last_activity_at = latest.created_at if latest else conversation.created_at
    return conversation.last_activity_at


class ConversationRegistry:

    def __init__(self, db: Session, directory: DirectorySearch):
        self.db = db
        self.directory = directory

    def _find(self, conversation_id: str) -> Optional[ChatConversation]:
        return self.db.get(ChatConversation, conversation_id)

    def _chat_type_for(self, first: str, second: str, creator_role: str | None = None) -> str:
        roles = {self.directory.role_of(first), self.directory.role_of(second), creator_role}
        if settings.SUPPORT_ROLE in roles:
            return ChatType.support.value
        return ChatType.direct.value

    def ensure_conversation(
        self,
        a: str,
        b: str,
        chat_type: str | None = None,
        creator_role: str | None = None,
    ) -> ChatConversation:
        """Fetch or create the single conversation for the pair.

        Creation is an insert keyed on the canonical id; when a concurrent
        caller wins the insert the primary-key violation is absorbed and the
        winner's record is returned. ``creator_role`` is the token role of the
        caller asking for the conversation; it counts towards the support flag
        alongside the roster roles.
        """
        first, second = ordered_participants(a, b)
        key = canonical_conversation_id(first, second)

        existing = self._find(key)
        if existing:
            return existing

        now = clock.utcnow()
        conversation = ChatConversation(
            id=key,
            participant_a=first,
            participant_b=second,
            chat_type=chat_type or self._chat_type_for(first, second, creator_role),
            is_archived=False,
            created_at=now,
            last_activity_at=now,
        )
        try:
            with self.db.begin_nested():
                self.db.add(conversation)
                self.db.flush()
        except IntegrityError:
            logger.info("Conversation %s was created concurrently, reusing it", key)
            return self.db.query(ChatConversation).filter(ChatConversation.id == key).one()

        self.db.commit()
        logger.info("Created %s conversation %s", conversation.chat_type, key)
        return conversation

    def get(self, conversation_id: str) -> ChatConversation:
        conversation = self._find(conversation_id)
        if not conversation:
            raise NotFound("Conversation not found")
        return conversation

    def sees_support_conversations(self, user: CurrentUser) -> bool:
        return settings.SUPPORT_VISIBILITY_ENABLED and user.role == settings.SUPPORT_ROLE

    def can_view(self, conversation: ChatConversation, user: CurrentUser) -> bool:
        if user.id in conversation.participants:
            return True
        return self.sees_support_conversations(user) and conversation.chat_type == ChatType.support.value

    def require_visible(self, conversation_id: str, user: CurrentUser) -> ChatConversation:
        conversation = self.get(conversation_id)
        if not self.can_view(conversation, user):
            raise Forbidden("Not allowed for this conversation")
        return conversation

    def set_archived(self, conversation_id: str, user: CurrentUser, archived: bool) -> ChatConversation:
        conversation = self.get(conversation_id)
        if user.id not in conversation.participants:
            raise Forbidden("Not allowed for this conversation")
        if conversation.is_archived != archived:
            conversation.is_archived = archived
            self.db.commit()
        return conversation

    def _other_for_viewer(self, conversation: ChatConversation, user_id: str) -> str:
        if user_id in conversation.participants:
            return conversation.other_participant(user_id)
        # support staff looking at someone else's support chat
        for participant in conversation.participants:
            if self.directory.role_of(participant) != settings.SUPPORT_ROLE:
                return participant
        return conversation.participant_a

    def entry_for(self, conversation: ChatConversation, user_id: str) -> ChatListEntry:
        other_id = self._other_for_viewer(conversation, user_id)
        latest = latest_active_message(self.db, conversation.id)
        return ChatListEntry(
            conversation_id=conversation.id,
            other_participant_id=other_id,
            other_participant_name=self.directory.resolve_name(other_id),
            preview_text=preview_of(latest.content if latest else None),
            last_activity_at=conversation.last_activity_at,
            chat_type=conversation.chat_type,
        )

    def list_for_user(
        self,
        user: CurrentUser,
        include_archived: bool = False,
        unread_counter: Callable[[str], int] | None = None,
    ) -> list[ChatListEntry]:
        query = self.db.query(ChatConversation)
        own = or_(
            ChatConversation.participant_a == user.id,
            ChatConversation.participant_b == user.id,
        )
        if self.sees_support_conversations(user):
            query = query.filter(or_(own, ChatConversation.chat_type == ChatType.support.value))
        else:
            query = query.filter(own)
        if not include_archived:
            query = query.filter(ChatConversation.is_archived == False)  # noqa: E712

        entries = [self.entry_for(conversation, user.id) for conversation in query.all()]
        if unread_counter is not None:
            for entry in entries:
                entry.unread_count = unread_counter(entry.conversation_id)

        entries.sort(key=lambda entry: entry.conversation_id)
        entries.sort(key=lambda entry: entry.last_activity_at, reverse=True)
        return entries
