from datetime import date, datetime

from pydantic import BaseModel, Field

from thesisguide.models.guidance_session import SessionType
from thesisguide.schemas.scheduling import NoteRecord, SessionRecord


class SessionRequestCreate(BaseModel):
    scheduled_date: date
    start_time: str = Field(max_length=5)
    end_time: str = Field(max_length=5)
    thesis_project_id: str | None = None
    location: str | None = Field(default=None, max_length=200)
    notes: str | None = None


class SessionOfferCreate(BaseModel):
    student_id: str = Field(min_length=1, max_length=36)
    scheduled_date: date
    start_time: str = Field(max_length=5)
    end_time: str = Field(max_length=5)
    location: str = Field(min_length=1, max_length=200)
    notes: str | None = None


class SessionScheduleCreate(BaseModel):
    thesis_project_id: str = Field(min_length=1, max_length=36)
    scheduled_date: date
    start_time: str = Field(max_length=5)
    end_time: str = Field(max_length=5)
    location: str = Field(min_length=1, max_length=200)
    session_type: SessionType = SessionType.individual
    additional_student_ids: list[str] = Field(default_factory=list)
    notes: str | None = None


class SessionUpdate(BaseModel):
    scheduled_date: date | None = None
    start_time: str | None = Field(default=None, max_length=5)
    end_time: str | None = Field(default=None, max_length=5)
    location: str | None = Field(default=None, max_length=200)
    notes: str | None = None


class SessionApprove(BaseModel):
    location: str | None = Field(default=None, max_length=200)


class SessionReason(BaseModel):
    reason: str | None = Field(default=None, max_length=500)


class SessionComplete(BaseModel):
    content: str = Field(min_length=1)
    tasks: list[str] = Field(default_factory=list)


class SessionCompletionOut(BaseModel):
    session: SessionRecord
    note: NoteRecord


class ActivityOut(BaseModel):
    id: str
    actor_id: str | None = None
    action: str
    entity_type: str
    entity_id: str | None = None
    details: dict = Field(default_factory=dict)
    created_at: datetime

    model_config = {"from_attributes": True}
