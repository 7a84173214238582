import uuid
from datetime import datetime, date
from enum import Enum
from sqlalchemy import String, DateTime, Date, ForeignKey, Float, JSON, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.database import Base
from app.utils.timeutils import (
    Weekday,
    format_time_range,
    format_week_range,
    minutes_since_midnight,
    to_12_hour,
)


class SessionType(str, Enum):
    """Kind of clinical activity a schedule slot represents."""
    MORNING_CONSULTATIONS = "Morning Consultations"
    AFTERNOON_PROCEDURES = "Afternoon Procedures"
    EVENING_CONSULTATIONS = "Evening Consultations"
    SURGERY = "Surgery"
    EMERGENCY = "Emergency"
    FULL_DAY_CLINIC = "Full Day Clinic"
    MORNING_SESSION = "Morning Session"
    EXTENDED_AFTERNOON = "Extended Afternoon"
    SHORT_AFTERNOON = "Short Afternoon"
    HALF_DAY = "Half Day"
    WEEKEND_MORNING = "Weekend Morning"
    DAY_OFF = "Day Off"


class ScheduleStatus(str, Enum):
    """Weekly schedule status enum."""
    DRAFT = "draft"
    ACTIVE = "active"
    ARCHIVED = "archived"


def empty_week() -> list[list[dict]]:
    return [[] for _ in Weekday]


class WeeklySchedule(Base):
    """One doctor's recurring availability for a Monday-Sunday week.

    ``weekly_schedule`` is a seven element list indexed by ``Weekday``; each
    element is the ordered list of slot dicts for that day::

        {"id": "...", "start_time": "09:00", "end_time": "12:00",
         "session_type": "Morning Consultations", "description": None,
         "is_available": True}

    Always assign a new list through :meth:`set_day` so the JSON change is
    picked up by the unit of work.
    """

    __tablename__ = "weekly_schedules"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )
    doctor_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("doctors.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    week_start_date: Mapped[date] = mapped_column(Date, nullable=False)
    week_end_date: Mapped[date] = mapped_column(Date, nullable=False)
    weekly_schedule: Mapped[list] = mapped_column(
        JSON,
        nullable=False,
        default=empty_week,
    )
    total_hours: Mapped[float] = mapped_column(Float, default=0.0)
    status: Mapped[str] = mapped_column(
        String(20),
        default=ScheduleStatus.ACTIVE.value,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    # Relationship
    doctor: Mapped["Doctor"] = relationship("Doctor", back_populates="schedules")

    __table_args__ = (
        Index("ix_weekly_schedules_doctor_week", "doctor_id", "week_start_date"),
        Index("ix_weekly_schedules_doctor_status", "doctor_id", "status"),
    )

    def slots_for(self, weekday: Weekday) -> list[dict]:
        days = self.weekly_schedule or empty_week()
        return list(days[weekday])

    def set_day(self, weekday: Weekday, slots: list[dict]) -> None:
        days = [list(day) for day in (self.weekly_schedule or empty_week())]
        days[weekday] = [dict(slot) for slot in slots]
        self.weekly_schedule = days
        self.calculate_total_hours()

    def covers(self, day: date) -> bool:
        return self.week_start_date <= day <= self.week_end_date

    def calculate_total_hours(self) -> float:
        """Recompute and cache the working hours of the week."""
        total_minutes = 0
        for day_slots in self.weekly_schedule or empty_week():
            for slot in day_slots:
                if slot.get("session_type") == SessionType.DAY_OFF.value:
                    continue
                if not slot.get("is_available", True):
                    continue
                total_minutes += (
                    minutes_since_midnight(slot["end_time"])
                    - minutes_since_midnight(slot["start_time"])
                )

        self.total_hours = round(total_minutes / 60, 2)
        return self.total_hours

    @property
    def week_range(self) -> str:
        return format_week_range(self.week_start_date, self.week_end_date)

    def formatted_schedule(self) -> dict[str, list[dict]]:
        """Slots keyed by day name, with 12-hour display fields added."""
        formatted = {}
        for weekday in Weekday:
            formatted[weekday.label] = [
                {
                    **slot,
                    "start_time_12": to_12_hour(slot["start_time"]),
                    "end_time_12": to_12_hour(slot["end_time"]),
                    "time_range_12": format_time_range(slot["start_time"], slot["end_time"]),
                }
                for slot in self.slots_for(weekday)
            ]
        return formatted

    def __repr__(self) -> str:
        return f"<WeeklySchedule {self.doctor_id} {self.week_start_date}>"
