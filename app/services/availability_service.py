"""Availability service - Which of a doctor's schedule slots are still free on a date."""

import logging
from collections.abc import Callable
from datetime import date, datetime
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import ValidationError
from app.models.schedule import SessionType, WeeklySchedule
from app.schemas.appointment import AvailabilityResponse, DoctorOpenSlots, SlotAvailability
from app.services.appointment_service import AppointmentService
from app.services.schedule_service import ScheduleService
from app.utils.timeutils import clinic_now, format_time_range, to_24_hour, weekday_of

logger = logging.getLogger(__name__)

NOT_SCHEDULED_MESSAGE = "Time slots not scheduled by the doctor"


class AvailabilityService:
    """Resolves a doctor's weekly schedule against booked appointments."""

    def __init__(self, db: AsyncSession, now: Callable[[], datetime] = clinic_now):
        self.db = db
        self.now = now
        self.schedules = ScheduleService(db, now=now)
        self.appointments = AppointmentService(db, now=now)

    async def find_schedule_for_date(self, doctor_id: UUID, day: date) -> WeeklySchedule | None:
        """Most recently created active schedule whose week contains ``day``."""
        for schedule in await self.schedules.find_active_schedules_for_doctor(doctor_id):
            if schedule.covers(day):
                return schedule
        return None

    async def resolve_availability(self, doctor_id: UUID, day: date) -> AvailabilityResponse:
        """List the day's schedule slots in schedule order, marking booked ones.

        Slots are reported exactly as the doctor defined them: overlapping or
        unordered entries are neither merged nor sorted.
        """
        if day < self.now().date():
            raise ValidationError("Cannot book appointments for past dates", field="date")

        weekday = weekday_of(day)
        schedule = await self.find_schedule_for_date(doctor_id, day)
        day_slots = schedule.slots_for(weekday) if schedule else []

        if not day_slots:
            logger.info(
                f"No schedule for doctor {doctor_id} on {weekday.label} {day} "
                f"(schedule exists: {schedule is not None})"
            )
            return AvailabilityResponse(
                scheduled=False,
                doctor_id=doctor_id,
                date=day,
                message=NOT_SCHEDULED_MESSAGE,
            )

        booked = {
            (appointment.start_time, appointment.end_time)
            for appointment in await self.appointments.get_doctor_appointments(doctor_id, day)
        }

        slots = []
        for slot in day_slots:
            if slot.get("session_type") == SessionType.DAY_OFF.value:
                continue

            start_time_24 = to_24_hour(slot["start_time"])
            end_time_24 = to_24_hour(slot["end_time"])
            is_booked = (start_time_24, end_time_24) in booked

            slots.append(
                SlotAvailability(
                    id=f"{weekday.label}_{start_time_24}_{end_time_24}",
                    start_time=slot["start_time"],
                    end_time=slot["end_time"],
                    start_time_24=start_time_24,
                    end_time_24=end_time_24,
                    session_type=slot["session_type"],
                    is_available=not is_booked,
                    status="booked" if is_booked else "available",
                )
            )

        return AvailabilityResponse(
            scheduled=True,
            doctor_id=doctor_id,
            date=day,
            available_slots=slots,
            total_slots=len(slots),
            available_count=sum(1 for slot in slots if slot.is_available),
        )

    async def doctor_open_slots(self, doctor_id: UUID, day: date) -> DoctorOpenSlots:
        """Free ``"9:00 AM - 10:00 AM"`` ranges of the doctor's own schedule.

        Unlike :meth:`resolve_availability` this honours the slot's manual
        ``is_available`` switch and leaves booked ranges out entirely.
        """
        weekday = weekday_of(day)
        schedule = await self.find_schedule_for_date(doctor_id, day)
        if not schedule:
            return DoctorOpenSlots(
                date=day, available_slots=[], message="No schedule found for this day"
            )

        day_slots = schedule.slots_for(weekday)
        if not day_slots:
            return DoctorOpenSlots(
                date=day,
                available_slots=[],
                message=f"Doctor is not working on {weekday.label}",
            )

        booked = {
            (appointment.start_time, appointment.end_time)
            for appointment in await self.appointments.get_doctor_appointments(doctor_id, day)
        }

        open_ranges = []
        for slot in day_slots:
            if slot.get("session_type") == SessionType.DAY_OFF.value:
                continue
            if not slot.get("is_available", True):
                continue
            start_time_24 = to_24_hour(slot["start_time"])
            end_time_24 = to_24_hour(slot["end_time"])
            if (start_time_24, end_time_24) in booked:
                continue
            open_ranges.append(format_time_range(start_time_24, end_time_24))

        return DoctorOpenSlots(date=day, available_slots=open_ranges)
