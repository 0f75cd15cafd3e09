from datetime import date

from pydantic import BaseModel, Field

from thesisguide.models.thesis import ThesisType
from thesisguide.schemas.scheduling import UserRecord


class GuidanceCounts(BaseModel):
    before_checkpoint1: int
    # Sessions on or after checkpoint 1 and before checkpoint 2.
    before_checkpoint2: int
    # Secondary dashboard figure: every session before checkpoint 2.
    cumulative_before_checkpoint2: int
    total: int


class RequiredCounts(BaseModel):
    before_checkpoint1: int
    before_checkpoint2: int
    total: int


class RequirementBreakdown(BaseModel):
    checkpoint1_met: bool
    checkpoint2_met: bool
    total_met: bool


class RequirementReport(BaseModel):
    student_id: str
    thesis_project_id: str
    thesis_type: ThesisType
    period_id: str
    checkpoint1_date: date
    checkpoint2_date: date
    counts: GuidanceCounts
    required: RequiredCounts
    breakdown: RequirementBreakdown
    meets_requirement: bool


class InsufficientGuidanceEntry(BaseModel):
    student: UserRecord
    thesis_project_id: str
    thesis_title: str
    thesis_type: ThesisType
    supervisors: list[UserRecord] = Field(default_factory=list)
    report: RequirementReport
