import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, Enum as SAEnum, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from thesisguide.db.base import Base, enum_values


class ThesisType(str, Enum):
    ta1 = "TA1"
    ta2 = "TA2"


class ThesisStatus(str, Enum):
    active = "ACTIVE"
    completed = "COMPLETED"
    cancelled = "CANCELLED"


class ThesisProject(Base):
    __tablename__ = "thesis_projects"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    student_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    thesis_type: Mapped[ThesisType] = mapped_column(
        SAEnum(ThesisType, name="thesis_type", values_callable=enum_values),
        nullable=False,
    )
    status: Mapped[ThesisStatus] = mapped_column(
        SAEnum(ThesisStatus, name="thesis_status", values_callable=enum_values),
        nullable=False,
        default=ThesisStatus.active,
        index=True,
    )
    academic_period_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())


class ThesisSupervisor(Base):
    __tablename__ = "thesis_supervisors"
    __table_args__ = (
        UniqueConstraint("thesis_project_id", "advisor_id", name="uq_thesis_supervisor_advisor"),
        UniqueConstraint("thesis_project_id", "supervisor_order", name="uq_thesis_supervisor_order"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    thesis_project_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    advisor_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    # 1 = primary supervisor, 2 = co-supervisor
    supervisor_order: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
