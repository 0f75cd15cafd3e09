from datetime import date, datetime

from pydantic import BaseModel, Field


class WeeklyScheduleCreate(BaseModel):
    day_of_week: int = Field(ge=0, le=6)
    start_time: str = Field(max_length=5)
    end_time: str = Field(max_length=5)
    course_name: str = Field(min_length=1, max_length=200)
    room: str | None = Field(default=None, max_length=100)


class WeeklyScheduleUpdate(BaseModel):
    day_of_week: int | None = Field(default=None, ge=0, le=6)
    start_time: str | None = Field(default=None, max_length=5)
    end_time: str | None = Field(default=None, max_length=5)
    course_name: str | None = Field(default=None, min_length=1, max_length=200)
    room: str | None = Field(default=None, max_length=100)


class WeeklyScheduleOut(BaseModel):
    id: str
    owner_id: str
    day_of_week: int
    start_time: str
    end_time: str
    course_name: str
    room: str | None = None
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class AvailabilityWindowCreate(BaseModel):
    start_time: str = Field(max_length=5)
    end_time: str = Field(max_length=5)
    is_recurring: bool = False
    day_of_week: int | None = Field(default=None, ge=0, le=6)
    specific_date: date | None = None


class AvailabilityWindowUpdate(BaseModel):
    start_time: str | None = Field(default=None, max_length=5)
    end_time: str | None = Field(default=None, max_length=5)
    is_recurring: bool | None = None
    day_of_week: int | None = Field(default=None, ge=0, le=6)
    specific_date: date | None = None


class AvailabilityToggle(BaseModel):
    is_active: bool


class UnavailabilityBlockCreate(BaseModel):
    block_date: date
    start_time: str = Field(max_length=5)
    end_time: str = Field(max_length=5)
    reason: str | None = Field(default=None, max_length=500)


class UnavailabilityBlockOut(BaseModel):
    id: str
    user_id: str
    block_date: date
    start_time: str
    end_time: str
    reason: str | None = None

    model_config = {"from_attributes": True}


class AcademicPeriodCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    start_date: date
    end_date: date
    checkpoint1_date: date
    checkpoint2_date: date
    is_active: bool = False


class AcademicPeriodUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    start_date: date | None = None
    end_date: date | None = None
    checkpoint1_date: date | None = None
    checkpoint2_date: date | None = None
