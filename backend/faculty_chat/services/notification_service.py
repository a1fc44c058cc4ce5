from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from faculty_chat.core import clock
from faculty_chat.core.errors import NotFound
from faculty_chat.core.realtime import EventBus, event_bus, user_channel
from faculty_chat.models.notification import Notification


def notification_to_payload(notification: Notification) -> dict:
    return {
        "type": "notification_new",
        "notification": {
            "id": notification.id,
            "user_id": notification.user_id,
            "category": notification.category,
            "type": notification.type,
            "title": notification.title,
            "message": notification.message,
            "context": notification.context,
            "reference_type": notification.reference_type,
            "reference_id": notification.reference_id,
            "is_read": bool(notification.is_read),
            "is_muted": bool(notification.is_muted),
            "created_at": notification.created_at.isoformat() if notification.created_at else None,
        },
    }


def push_notifications(
    db: Session,
    *,
    user_ids: Iterable[str],
    title: str,
    message: str,
    category: Optional[str] = None,
    notification_type: Optional[str] = None,
    context: Optional[str] = None,
    reference_type: Optional[str] = None,
    reference_id: Optional[str] = None,
    created_by: Optional[str] = None,
    bus: EventBus = event_bus
) -> List[Notification]:
    normalized_ids = sorted({uid for uid in user_ids if uid})
    if not normalized_ids:
        return []

    now = clock.utcnow()
    notifications = [
        Notification(
            user_id=user_id,
            category=category,
            type=notification_type,
            title=title,
            message=message,
            context=context,
            reference_type=reference_type,
            reference_id=reference_id,
            created_by=created_by,
            is_read=False,
            is_muted=False,
            created_at=now,
        )
        for user_id in normalized_ids
    ]
    db.add_all(notifications)
    db.commit()

    for notification in notifications:
        db.refresh(notification)
        bus.publish(user_channel(notification.user_id), notification_to_payload(notification))

    return notifications


def notify_new_message(
    db: Session,
    *,
    recipient_ids: Iterable[str],
    sender_name: str,
    sender_id: str,
    conversation_id: str,
    bus: EventBus = event_bus
) -> List[Notification]:
    return push_notifications(
        db,
        user_ids=recipient_ids,
        title="New message",
        message=f"{sender_name} sent you a message",
        category="Messages",
        notification_type="new_message",
        context="Direct Message",
        reference_type="conversation",
        reference_id=conversation_id,
        created_by=sender_id,
        bus=bus,
    )


def list_notifications(db: Session, user_id: str, *, limit: int = 25, unread_only: bool = False) -> List[Notification]:
    query = db.query(Notification).filter(Notification.user_id == user_id)
    if unread_only:
        query = query.filter(Notification.is_read == False)  # noqa: E712
    return query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit).all()


def unread_notification_count(db: Session, user_id: str) -> int:
    return db.query(Notification).filter(
        Notification.user_id == user_id,
        Notification.is_read == False  # noqa: E712
    ).count()


def get_own_notification(db: Session, notification_id: int, user_id: str) -> Notification:
    notification = db.query(Notification).filter(
        Notification.id == notification_id,
        Notification.user_id == user_id
    ).first()
    if not notification:
        raise NotFound("Notification not found")
    return notification


def mark_notification_read(db: Session, notification_id: int, user_id: str) -> Notification:
    notification = get_own_notification(db, notification_id, user_id)
    if not notification.is_read:
        notification.is_read = True
        db.commit()
    return notification


def mark_all_notifications_read(db: Session, user_id: str) -> int:
    updated = db.query(Notification).filter(
        Notification.user_id == user_id,
        Notification.is_read == False  # noqa: E712
    ).update({"is_read": True}, synchronize_session=False)
    db.commit()
    return updated


def set_notification_muted(db: Session, notification_id: int, user_id: str, muted: bool) -> Notification:
    notification = get_own_notification(db, notification_id, user_id)
    if notification.is_muted != muted:
        notification.is_muted = muted
        db.commit()
    return notification


def delete_notification(db: Session, notification_id: int, user_id: str) -> None:
    notification = get_own_notification(db, notification_id, user_id)
    db.delete(notification)
    db.commit()


def clear_notifications(db: Session, user_id: str) -> int:
    removed = db.query(Notification).filter(Notification.user_id == user_id).delete(synchronize_session=False)
    db.commit()
    return removed
