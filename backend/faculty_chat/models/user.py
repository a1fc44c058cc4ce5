from sqlalchemy import Column, String, Boolean
from faculty_chat.database.base import Base
from faculty_chat.database.types import UTCDateTime
from faculty_chat.core.clock import utcnow


class DirectoryUser(Base):
    """Roster row owned by the directory collaborator; read-only to chat."""

    __tablename__ = "directory_users"

    id = Column(String(64), primary_key=True, index=True)
    name = Column(String(120), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=True)

    role = Column(String(20), nullable=False, index=True)  # admin | faculty | student

    department = Column(String(120), nullable=True)
    designation = Column(String(120), nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
