from sqlalchemy import Column, Integer, String, Text, Boolean

from faculty_chat.core.clock import utcnow
from faculty_chat.database.base import Base
from faculty_chat.database.types import UTCDateTime


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    category = Column(String(50), nullable=True)  # Admin | Classes | Meetings | Submissions | Messages
    type = Column(String(50), nullable=True)  # meeting_invite | new_message | admin_announcement
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    context = Column(String(255), nullable=True)
    reference_type = Column(String(50), nullable=True)
    reference_id = Column(String(160), nullable=True)
    is_read = Column(Boolean, default=False, nullable=False)
    is_muted = Column(Boolean, default=False, nullable=False)
    created_by = Column(String(64), nullable=True)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
