from datetime import date

from pydantic import BaseModel, Field

from thesisguide.schemas.scheduling import SessionRecord


class ScheduleStatistics(BaseModel):
    total: int = 0
    by_status: dict[str, int] = Field(default_factory=dict)
    # Keyed by the primary advisor of the session's project.
    by_advisor: dict[str, int] = Field(default_factory=dict)
    # Keyed by YYYY-MM.
    by_month: dict[str, int] = Field(default_factory=dict)
    average_duration_minutes: float = 0.0


class ScheduleReport(BaseModel):
    start_date: date
    end_date: date
    sessions: list[SessionRecord] = Field(default_factory=list)
    statistics: ScheduleStatistics
