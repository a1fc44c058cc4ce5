from fastapi import Depends
from sqlalchemy.orm import Session

from faculty_chat.core.dependencies import CurrentUser
from faculty_chat.core.realtime import EventBus, event_bus
from faculty_chat.database.session import get_db
from faculty_chat.models.chat import ChatConversation, ChatMessage
from faculty_chat.services.conversation_service import ChatListEntry, ConversationRegistry
from faculty_chat.services.directory_service import DirectorySearch
from faculty_chat.services.message_service import MessageStore, get_message, serialize_message
from faculty_chat.services.notification_service import notify_new_message
from faculty_chat.services.read_state_service import NotificationCoordinator


class ChatService:
    """Entry point the REST and websocket layers call into.

    Every operation takes the caller explicitly; nothing here keeps a notion
    of a current user between calls.
    """

    def __init__(self, db: Session, directory: DirectorySearch | None = None, bus: EventBus = event_bus):
        self.db = db
        self.bus = bus
        self.directory = directory if directory is not None else DirectorySearch.from_db(db)
        self.registry = ConversationRegistry(db, self.directory)
        self.coordinator = NotificationCoordinator(db, bus)

    def _store(self, conversation: ChatConversation) -> MessageStore:
        return MessageStore(self.db, conversation, bus=self.bus, directory=self.directory)

    def serialize(self, message: ChatMessage) -> dict:
        return serialize_message(message, self.directory)

    def start_conversation(self, user: CurrentUser, other_user_id: str) -> ChatConversation:
        return self.registry.ensure_conversation(user.id, other_user_id, creator_role=user.role)

    def get_conversation(self, user: CurrentUser, conversation_id: str) -> ChatConversation:
        return self.registry.require_visible(conversation_id, user)

    def list_messages(self, user: CurrentUser, conversation_id: str) -> list[ChatMessage]:
        conversation = self.registry.require_visible(conversation_id, user)
        return self._store(conversation).list()

    def send_message(self, user: CurrentUser, conversation_id: str, content) -> ChatMessage:
        conversation = self.registry.get(conversation_id)
        message = self._store(conversation).append(user.id, content)

        self.coordinator.on_message_appended(message)
        recipients = [participant for participant in conversation.participants if participant != user.id]
        notify_new_message(
            self.db,
            recipient_ids=recipients,
            sender_name=self.directory.resolve_name(user.id),
            sender_id=user.id,
            conversation_id=conversation.id,
            bus=self.bus,
        )
        return message

    def edit_message(self, user: CurrentUser, message_id: int, content) -> ChatMessage:
        message = get_message(self.db, message_id)
        conversation = self.registry.get(message.conversation_id)
        return self._store(conversation).edit(message_id, user.id, content)

    def delete_message(self, user: CurrentUser, message_id: int) -> ChatMessage:
        message = get_message(self.db, message_id)
        conversation = self.registry.get(message.conversation_id)
        was_active = message.is_active
        message = self._store(conversation).delete(message_id, user.id)
        if was_active:
            self.coordinator.on_message_removed(message)
        return message

    def chat_list(self, user: CurrentUser, include_archived: bool = False) -> list[ChatListEntry]:
        return self.registry.list_for_user(
            user,
            include_archived=include_archived,
            unread_counter=lambda conversation_id: self.coordinator.unread_count(user.id, conversation_id),
        )

    def set_archived(self, user: CurrentUser, conversation_id: str, archived: bool) -> ChatConversation:
        return self.registry.set_archived(conversation_id, user, archived)

    def mark_read(self, user: CurrentUser, conversation_id: str) -> int:
        self.registry.require_visible(conversation_id, user)
        self.coordinator.mark_read(user.id, conversation_id)
        return self.coordinator.unread_count(user.id, conversation_id)

    def unread_count(self, user: CurrentUser, conversation_id: str) -> int:
        self.registry.require_visible(conversation_id, user)
        return self.coordinator.unread_count(user.id, conversation_id)

    def unread_summary(self, user: CurrentUser) -> tuple[int, list[tuple[str, int]]]:
        conversation_ids = [
            entry.conversation_id
            for entry in self.registry.list_for_user(user, include_archived=True)
        ]
        return self.coordinator.unread_summary(user.id, conversation_ids)


def get_chat_service(db: Session = Depends(get_db)) -> ChatService:
    return ChatService(db)
