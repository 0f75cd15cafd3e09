from pydantic import BaseModel


class AvailableSlot(BaseModel):
    start_time: str
    end_time: str
    available: bool
    window_id: str | None = None


class FreeRange(BaseModel):
    start_time: str
    end_time: str
    duration_minutes: int
    window_id: str | None = None
