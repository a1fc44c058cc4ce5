import asyncio
import logging

from fastapi import APIRouter, Depends, Query, Response, WebSocket, WebSocketDisconnect, status
from sqlalchemy.orm import Session

from faculty_chat.core.dependencies import CurrentUser, get_current_user, user_from_token
from faculty_chat.core.realtime import WebSocketRelay, event_bus, user_channel
from faculty_chat.database.session import get_db
from faculty_chat.schemas.notification import NotificationMuteUpdate, NotificationOut
from faculty_chat.services import notification_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["Notifications"])
ws_router = APIRouter(tags=["Notifications"])


@router.get("", response_model=list[NotificationOut])
def get_my_notifications(
    limit: int = Query(default=25, ge=1, le=100),
    unread_only: bool = Query(default=False),
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    return notification_service.list_notifications(db, current_user.id, limit=limit, unread_only=unread_only)


@router.get("/unread-count")
def get_unread_notification_count(
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    return {"unread_count": notification_service.unread_notification_count(db, current_user.id)}


@router.patch("/read-all")
def mark_all_notifications_read(
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    notification_service.mark_all_notifications_read(db, current_user.id)
    return {"message": "All notifications marked as read"}


@router.delete("/clear-all")
def clear_all_notifications(
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    notification_service.clear_notifications(db, current_user.id)
    return {"message": "All notifications removed"}


@router.patch("/{notification_id}/read", response_model=NotificationOut)
def mark_notification_read(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    return notification_service.mark_notification_read(db, notification_id, current_user.id)


@router.patch("/{notification_id}/mute", response_model=NotificationOut)
def mute_notification(
    notification_id: int,
    payload: NotificationMuteUpdate,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    return notification_service.set_notification_muted(db, notification_id, current_user.id, payload.muted)


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_notification(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    notification_service.delete_notification(db, notification_id, current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@ws_router.websocket("/ws/notifications")
async def notifications_socket(websocket: WebSocket, token: str | None = Query(default=None)):
    user = user_from_token(token)
    if user is None:
        await websocket.close(code=4401, reason="Invalid token")
        return

    relay = WebSocketRelay(event_bus, user_channel(user.id))
    relay.open()
    await websocket.accept()
    sender = asyncio.create_task(relay.pump(websocket))
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.info("Notification stream for %s closed", user.id)
    finally:
        sender.cancel()
        relay.close()
