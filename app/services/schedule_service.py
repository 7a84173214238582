"""Schedule service - Doctors' recurring weekly availability."""

import logging
import math
import uuid
from collections.abc import Callable
from datetime import date, datetime, timedelta
from uuid import UUID

import logfire
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.exceptions import NotFoundError, TooLateError, ValidationError
from app.models.schedule import ScheduleStatus, SessionType, WeeklySchedule, empty_week
from app.schemas.schedule import ScheduleSlotIn
from app.utils.timeutils import (
    Weekday,
    clinic_now,
    is_valid_hhmm,
    minutes_since_midnight,
    to_12_hour,
    to_24_hour,
    week_bounds,
)

logger = logging.getLogger(__name__)


class ScheduleService:
    """Service class for weekly schedule operations."""

    def __init__(self, db: AsyncSession, now: Callable[[], datetime] = clinic_now):
        self.db = db
        self.now = now

    async def find_active_schedules_for_doctor(self, doctor_id: UUID) -> list[WeeklySchedule]:
        """All active schedules of a doctor, most recently created first."""
        result = await self.db.execute(
            select(WeeklySchedule)
            .where(
                WeeklySchedule.doctor_id == doctor_id,
                WeeklySchedule.status == ScheduleStatus.ACTIVE.value,
            )
            .order_by(WeeklySchedule.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_week(self, doctor_id: UUID, day: date) -> WeeklySchedule:
        """Active schedule for the week containing ``day``.

        When the doctor has not set that week yet an unsaved, empty draft is
        returned so callers always get the same shape back.
        """
        week_start, week_end = week_bounds(day)
        schedule = await self._find_active_for_week(doctor_id, week_start)
        if schedule:
            return schedule

        return WeeklySchedule(
            doctor_id=doctor_id,
            week_start_date=week_start,
            week_end_date=week_end,
            weekly_schedule=empty_week(),
            total_hours=0.0,
            status=ScheduleStatus.DRAFT.value,
        )

    async def get_current_week(self, doctor_id: UUID) -> WeeklySchedule:
        return await self.get_week(doctor_id, self.now().date())

    async def save_week(
        self,
        doctor_id: UUID,
        week_start: date,
        weekly_schedule: dict[str, list[ScheduleSlotIn]],
    ) -> WeeklySchedule:
        """Create or update a week's schedule from slots keyed by day name.

        Days missing from ``weekly_schedule`` keep their current slots.
        """
        week_start, week_end = week_bounds(week_start)
        now = self.now()
        current_week_start, _ = week_bounds(now.date())

        if week_start < current_week_start:
            raise TooLateError("Cannot edit schedules for past weeks.")

        days: dict[Weekday, list[ScheduleSlotIn]] = {}
        for day_name, slots in weekly_schedule.items():
            try:
                days[Weekday.from_name(day_name)] = slots
            except ValueError as exc:
                raise ValidationError(str(exc), field="weekly_schedule") from None

        if week_start == current_week_start:
            today = Weekday(now.weekday())
            for weekday, slots in days.items():
                if weekday < today:
                    raise TooLateError(
                        f"Cannot edit {weekday.label}'s schedule as it is in the past."
                    )
                if weekday == today and slots and self._past_cutoff(now):
                    raise TooLateError(
                        f"Cannot edit today's schedule after {self._cutoff_label()}."
                    )

        normalized = {
            weekday: self._validate_slots(weekday, slots) for weekday, slots in days.items()
        }

        schedule = await self._find_active_for_week(doctor_id, week_start)
        if not schedule:
            schedule = WeeklySchedule(
                doctor_id=doctor_id,
                week_start_date=week_start,
                week_end_date=week_end,
                weekly_schedule=empty_week(),
                status=ScheduleStatus.ACTIVE.value,
            )
            self.db.add(schedule)

        for weekday, slots in normalized.items():
            schedule.set_day(weekday, slots)
        schedule.calculate_total_hours()

        await self.db.flush()
        await self.db.refresh(schedule)

        logfire.info(
            "schedule_saved",
            doctor_id=str(doctor_id),
            week_start=str(week_start),
            total_hours=schedule.total_hours,
        )
        return schedule

    async def save_day(
        self,
        doctor_id: UUID,
        week_start: date,
        weekday: Weekday,
        slots: list[ScheduleSlotIn],
    ) -> WeeklySchedule:
        """Replace one day's slots, creating the week if needed."""
        week_start, week_end = week_bounds(week_start)
        specific_date = week_start + timedelta(days=int(weekday))
        now = self.now()

        if specific_date < now.date():
            raise TooLateError("Cannot edit past schedules. Please select a future date.")
        if specific_date == now.date() and self._past_cutoff(now):
            raise TooLateError(
                f"Cannot edit today's schedule after {self._cutoff_label()}. "
                "Please schedule for tomorrow or later."
            )

        normalized = self._validate_slots(weekday, slots)

        schedule = await self._find_active_for_week(doctor_id, week_start)
        if not schedule:
            schedule = WeeklySchedule(
                doctor_id=doctor_id,
                week_start_date=week_start,
                week_end_date=week_end,
                weekly_schedule=empty_week(),
                status=ScheduleStatus.ACTIVE.value,
            )
            self.db.add(schedule)

        schedule.set_day(weekday, normalized)

        await self.db.flush()
        await self.db.refresh(schedule)

        logfire.info(
            "schedule_day_saved",
            doctor_id=str(doctor_id),
            week_start=str(week_start),
            day=weekday.label,
        )
        return schedule

    async def delete_slot(self, doctor_id: UUID, weekday: Weekday, slot_id: str) -> WeeklySchedule:
        """Remove one slot from the current week's schedule."""
        week_start, _ = week_bounds(self.now().date())
        schedule = await self._find_active_for_week(doctor_id, week_start)
        if not schedule:
            raise NotFoundError("No schedule found for current week")

        slots = schedule.slots_for(weekday)
        remaining = [slot for slot in slots if slot.get("id") != slot_id]
        if len(remaining) == len(slots):
            raise NotFoundError("Time slot not found")

        schedule.set_day(weekday, remaining)
        await self.db.flush()
        await self.db.refresh(schedule)

        logger.info(f"Deleted slot {slot_id} from {weekday.label}")
        return schedule

    async def history(
        self, doctor_id: UUID, page: int = 1, limit: int = 10
    ) -> tuple[list[WeeklySchedule], dict]:
        """All schedules of a doctor, newest week first, with pagination info."""
        page = max(page, 1)
        limit = max(limit, 1)

        total = await self.db.scalar(
            select(func.count()).select_from(WeeklySchedule).where(
                WeeklySchedule.doctor_id == doctor_id
            )
        )
        result = await self.db.execute(
            select(WeeklySchedule)
            .where(WeeklySchedule.doctor_id == doctor_id)
            .order_by(WeeklySchedule.week_start_date.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )

        pages = math.ceil(total / limit)
        pagination = {
            "current": page,
            "pages": pages,
            "total": total,
            "has_next": page < pages,
            "has_prev": page > 1,
        }
        return list(result.scalars().all()), pagination

    async def archive(self, doctor_id: UUID, schedule_id: UUID) -> WeeklySchedule:
        """Archive instead of deleting, so past weeks stay on record."""
        result = await self.db.execute(
            select(WeeklySchedule).where(
                WeeklySchedule.id == schedule_id,
                WeeklySchedule.doctor_id == doctor_id,
            )
        )
        schedule = result.scalar_one_or_none()
        if not schedule:
            raise NotFoundError("Schedule not found")

        schedule.status = ScheduleStatus.ARCHIVED.value
        await self.db.flush()
        await self.db.refresh(schedule)

        logfire.info("schedule_archived", doctor_id=str(doctor_id), schedule_id=str(schedule_id))
        return schedule

    async def _find_active_for_week(self, doctor_id: UUID, week_start: date) -> WeeklySchedule | None:
        week_end = week_start + timedelta(days=6)
        result = await self.db.execute(
            select(WeeklySchedule)
            .where(
                WeeklySchedule.doctor_id == doctor_id,
                WeeklySchedule.status == ScheduleStatus.ACTIVE.value,
                WeeklySchedule.week_start_date <= week_start,
                WeeklySchedule.week_end_date >= week_end,
            )
            .order_by(WeeklySchedule.created_at.desc())
            .limit(1)
        )
        return result.scalars().first()

    def _validate_slots(self, weekday: Weekday, slots: list[ScheduleSlotIn]) -> list[dict]:
        day = weekday.label
        normalized = []
        for slot in slots:
            start_time = to_24_hour(slot.start_time)
            end_time = to_24_hour(slot.end_time)

            if not is_valid_hhmm(start_time) or not is_valid_hhmm(end_time):
                raise ValidationError(
                    f"Invalid time format for {day}. Use HH:MM format.",
                    field="start_time" if not is_valid_hhmm(start_time) else "end_time",
                )

            # Day Off entries carry no working time, so their span is not checked
            if (
                slot.session_type != SessionType.DAY_OFF
                and minutes_since_midnight(start_time) >= minutes_since_midnight(end_time)
            ):
                raise ValidationError(
                    f"Start time must be before end time for {day}", field="end_time"
                )

            normalized.append({
                "id": uuid.uuid4().hex,
                "start_time": start_time,
                "end_time": end_time,
                "session_type": slot.session_type.value,
                "description": slot.description,
                "is_available": slot.is_available,
            })
        return normalized

    def _past_cutoff(self, now: datetime) -> bool:
        return now.hour >= settings.schedule_edit_cutoff_hour

    def _cutoff_label(self) -> str:
        return to_12_hour(f"{settings.schedule_edit_cutoff_hour:02d}:00")
