import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, Enum as SAEnum, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from thesisguide.db.base import Base, enum_values


class NotificationType(str, Enum):
    session_requested = "SESSION_REQUESTED"
    session_offered = "SESSION_OFFERED"
    session_approved = "SESSION_APPROVED"
    session_rejected = "SESSION_REJECTED"
    session_updated = "SESSION_UPDATED"
    session_cancelled = "SESSION_CANCELLED"
    session_accepted = "SESSION_ACCEPTED"
    session_declined = "SESSION_DECLINED"
    note_added = "NOTE_ADDED"
    guidance_insufficient = "GUIDANCE_INSUFFICIENT"


class Notification(Base):
    __tablename__ = "notifications"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    link: Mapped[str | None] = mapped_column(String(500), nullable=True)
    notification_type: Mapped[NotificationType] = mapped_column(
        SAEnum(NotificationType, name="notification_type", values_callable=enum_values),
        nullable=False,
    )
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
