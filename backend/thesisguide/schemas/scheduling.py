"""Typed records exchanged with the storage collaborator.

The scheduling core only ever sees these models; SQL rows are converted at the
store boundary so that no service branches on column presence.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, Field

from thesisguide.models.guidance_session import SessionStatus, SessionType
from thesisguide.models.thesis import ThesisStatus, ThesisType
from thesisguide.models.user import UserRole


class CommitmentKind(str, Enum):
    teaching = "teaching"
    course = "course"
    guidance = "guidance"
    unavailable = "unavailable"


class CommittedInterval(BaseModel):
    kind: CommitmentKind
    start_time: str
    end_time: str
    label: str | None = None
    reference_id: str | None = None
    session_status: SessionStatus | None = None
    location: str | None = None

    model_config = {"frozen": True}


class AvailabilityWindowRecord(BaseModel):
    id: str
    advisor_id: str
    start_time: str
    end_time: str
    is_recurring: bool = False
    day_of_week: int | None = None
    specific_date: date | None = None
    is_active: bool = True

    model_config = {"from_attributes": True}


class UserRecord(BaseModel):
    id: str
    name: str
    email: str
    role: UserRole
    identifier: str | None = None
    is_active: bool = True

    model_config = {"from_attributes": True}


class Caller(BaseModel):
    """Verified identity handed over by the authentication layer."""

    user_id: str
    role: UserRole


class ProjectRecord(BaseModel):
    id: str
    student_id: str
    title: str
    thesis_type: ThesisType
    status: ThesisStatus
    academic_period_id: str | None = None
    # Ordered by supervisor_order, primary first.
    supervisor_ids: list[str] = Field(default_factory=list)

    @property
    def primary_advisor_id(self) -> str | None:
        return self.supervisor_ids[0] if self.supervisor_ids else None


class PeriodRecord(BaseModel):
    id: str
    name: str
    start_date: date
    end_date: date
    checkpoint1_date: date
    checkpoint2_date: date
    is_active: bool = False

    model_config = {"from_attributes": True}


class SessionDraft(BaseModel):
    thesis_project_id: str
    scheduled_date: date
    start_time: str
    end_time: str
    location: str
    session_type: SessionType = SessionType.individual
    status: SessionStatus
    created_by: str
    notes: str | None = None
    participant_ids: list[str] = Field(default_factory=list)


class SessionPatch(BaseModel):
    """Partial update applied together with a status change; only set fields are written."""

    scheduled_date: date | None = None
    start_time: str | None = None
    end_time: str | None = None
    location: str | None = None
    notes: str | None = None
    status_reason: str | None = None

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


class SessionRecord(BaseModel):
    id: str
    thesis_project_id: str
    scheduled_date: date
    start_time: str
    end_time: str
    location: str
    session_type: SessionType
    status: SessionStatus
    created_by: str
    notes: str | None = None
    status_reason: str | None = None
    participant_ids: list[str] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None


class NoteDraft(BaseModel):
    advisor_id: str
    content: str
    tasks: list[str] = Field(default_factory=list)


class NoteRecord(BaseModel):
    id: str
    session_id: str
    advisor_id: str
    content: str
    tasks: list[str] = Field(default_factory=list)
    created_at: datetime | None = None

    model_config = {"from_attributes": True}
