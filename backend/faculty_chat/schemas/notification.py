from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class NotificationOut(BaseModel):
    id: int
    user_id: str
    category: Optional[str] = None
    type: Optional[str] = None
    title: str
    message: str
    context: Optional[str] = None
    reference_type: Optional[str] = None
    reference_id: Optional[str] = None
    is_read: bool
    is_muted: bool = False
    created_at: datetime

    class Config:
        from_attributes = True


class NotificationMuteUpdate(BaseModel):
    muted: bool = True
