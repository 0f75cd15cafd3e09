import uuid
from datetime import date, datetime
from enum import Enum

from sqlalchemy import JSON, Date, DateTime, Enum as SAEnum, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from thesisguide.db.base import Base, enum_values


class SessionStatus(str, Enum):
    pending = "PENDING"
    offered = "OFFERED"
    approved = "APPROVED"
    rejected = "REJECTED"
    declined = "DECLINED"
    completed = "COMPLETED"
    cancelled = "CANCELLED"


class SessionType(str, Enum):
    individual = "INDIVIDUAL"
    group = "GROUP"


class GuidanceSession(Base):
    __tablename__ = "guidance_sessions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    thesis_project_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    scheduled_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)
    location: Mapped[str] = mapped_column(String(200), nullable=False, default="TBD")
    session_type: Mapped[SessionType] = mapped_column(
        SAEnum(SessionType, name="session_type", values_callable=enum_values),
        nullable=False,
        default=SessionType.individual,
    )
    status: Mapped[SessionStatus] = mapped_column(
        SAEnum(SessionStatus, name="session_status", values_callable=enum_values),
        nullable=False,
        default=SessionStatus.pending,
        index=True,
    )
    created_by: Mapped[str] = mapped_column(String(36), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Rejection, decline or cancellation reason.
    status_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())


class GuidanceSessionParticipant(Base):
    __tablename__ = "guidance_session_participants"
    __table_args__ = (
        UniqueConstraint("session_id", "student_id", name="uq_guidance_session_participant"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    session_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    student_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)


class GuidanceNote(Base):
    __tablename__ = "guidance_notes"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    session_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    advisor_id: Mapped[str] = mapped_column(String(36), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    tasks: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
