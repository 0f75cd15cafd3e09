from datetime import date

from pydantic import BaseModel, Field

from thesisguide.models.guidance_session import SessionStatus
from thesisguide.models.user import UserRole
from thesisguide.schemas.availability import FreeRange
from thesisguide.schemas.scheduling import CommitmentKind


class ConflictDetail(BaseModel):
    kind: CommitmentKind
    role: UserRole
    actor_id: str
    start_time: str
    end_time: str
    description: str
    label: str | None = None
    session_id: str | None = None
    session_status: SessionStatus | None = None
    location: str | None = None


class ConflictReport(BaseModel):
    conflicts: list[ConflictDetail] = Field(default_factory=list)
    suggested_slots: list[FreeRange] = Field(default_factory=list)

    @property
    def has_conflict(self) -> bool:
        return bool(self.conflicts)

    @property
    def kinds(self) -> list[CommitmentKind]:
        return list(dict.fromkeys(item.kind for item in self.conflicts))


class ConflictCheckRequest(BaseModel):
    actor_id: str = Field(min_length=1, max_length=36)
    role: UserRole
    on_date: date
    start_time: str = Field(max_length=5)
    end_time: str = Field(max_length=5)
    exclude_session_id: str | None = None
