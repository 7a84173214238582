from pydantic import BaseModel, Field
from datetime import datetime, date
from uuid import UUID

from app.models.schedule import SessionType, WeeklySchedule


class ScheduleSlotIn(BaseModel):
    """One working interval as sent by the doctor."""
    start_time: str = Field(..., description="Start time (HH:MM, 24-hour)")
    end_time: str = Field(..., description="End time (HH:MM, 24-hour)")
    session_type: SessionType
    description: str | None = Field(None, max_length=200)
    is_available: bool = True


class WeekScheduleUpdate(BaseModel):
    """Replace a whole week. Keys are day names, ``monday`` .. ``sunday``."""
    week_start_date: date
    weekly_schedule: dict[str, list[ScheduleSlotIn]]


class DayScheduleUpdate(BaseModel):
    """Replace a single day of a week."""
    week_start_date: date
    slots: list[ScheduleSlotIn]


class ScheduleSlotResponse(BaseModel):
    id: str | None = None
    start_time: str
    end_time: str
    session_type: str
    description: str | None = None
    is_available: bool = True
    start_time_12: str
    end_time_12: str
    time_range_12: str


class ScheduleResponse(BaseModel):
    """Schema for a weekly schedule with 12-hour display fields."""
    id: UUID | None = None
    doctor_id: UUID
    week_start_date: date
    week_end_date: date
    week_range: str
    weekly_schedule: dict[str, list[ScheduleSlotResponse]]
    total_hours: float
    status: str
    updated_at: datetime | None = None

    @classmethod
    def from_schedule(cls, schedule: WeeklySchedule) -> "ScheduleResponse":
        return cls(
            id=schedule.id,
            doctor_id=schedule.doctor_id,
            week_start_date=schedule.week_start_date,
            week_end_date=schedule.week_end_date,
            week_range=schedule.week_range,
            weekly_schedule=schedule.formatted_schedule(),
            total_hours=schedule.total_hours or 0.0,
            status=schedule.status,
            updated_at=schedule.updated_at,
        )


class ScheduleSummary(BaseModel):
    """Schedule row without slot detail, for history listings."""
    id: UUID
    week_start_date: date
    week_end_date: date
    week_range: str
    total_hours: float
    status: str
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


class Pagination(BaseModel):
    current: int
    pages: int
    total: int
    has_next: bool
    has_prev: bool


class ScheduleHistoryResponse(BaseModel):
    schedules: list[ScheduleSummary]
    pagination: Pagination
