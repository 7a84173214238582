"""Schedule routes - Doctors managing their weekly availability."""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Query

from app.api.deps import Clock, CurrentDoctor, DBSession
from app.exceptions import ValidationError
from app.schemas.schedule import (
    DayScheduleUpdate,
    Pagination,
    ScheduleHistoryResponse,
    ScheduleResponse,
    ScheduleSummary,
    WeekScheduleUpdate,
)
from app.services.schedule_service import ScheduleService
from app.utils.timeutils import Weekday

router = APIRouter()


def parse_day(day: str) -> Weekday:
    try:
        return Weekday.from_name(day)
    except ValueError as exc:
        raise ValidationError(str(exc), field="day") from None


@router.get("/current-week", response_model=ScheduleResponse)
async def get_current_week(doctor: CurrentDoctor, db: DBSession, clock: Clock):
    """Current week's schedule, or an empty draft if none is set."""
    service = ScheduleService(db, now=clock)
    schedule = await service.get_current_week(doctor.id)
    return ScheduleResponse.from_schedule(schedule)


@router.get("/week/{start_date}", response_model=ScheduleResponse)
async def get_week(start_date: date, doctor: CurrentDoctor, db: DBSession, clock: Clock):
    """Schedule for the week containing ``start_date``."""
    service = ScheduleService(db, now=clock)
    schedule = await service.get_week(doctor.id, start_date)
    return ScheduleResponse.from_schedule(schedule)


@router.put("/week", response_model=ScheduleResponse)
async def save_week(schedule_data: WeekScheduleUpdate, doctor: CurrentDoctor, db: DBSession, clock: Clock):
    """Create or update a week's schedule."""
    service = ScheduleService(db, now=clock)
    schedule = await service.save_week(
        doctor.id,
        schedule_data.week_start_date,
        schedule_data.weekly_schedule,
    )
    return ScheduleResponse.from_schedule(schedule)


@router.put("/day/{day}", response_model=ScheduleResponse)
async def save_day(day: str, day_data: DayScheduleUpdate, doctor: CurrentDoctor, db: DBSession, clock: Clock):
    """Replace one day of a week's schedule."""
    service = ScheduleService(db, now=clock)
    schedule = await service.save_day(
        doctor.id,
        day_data.week_start_date,
        parse_day(day),
        day_data.slots,
    )
    return ScheduleResponse.from_schedule(schedule)


@router.get("/history", response_model=ScheduleHistoryResponse)
async def get_history(
    doctor: CurrentDoctor,
    db: DBSession,
    clock: Clock,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
):
    """All of the doctor's schedules, newest week first."""
    service = ScheduleService(db, now=clock)
    schedules, pagination = await service.history(doctor.id, page, limit)
    return ScheduleHistoryResponse(
        schedules=[ScheduleSummary.model_validate(schedule) for schedule in schedules],
        pagination=Pagination(**pagination),
    )


@router.delete("/slot/{day}/{slot_id}", response_model=ScheduleResponse)
async def delete_slot(day: str, slot_id: str, doctor: CurrentDoctor, db: DBSession, clock: Clock):
    """Remove one slot from this week's schedule."""
    service = ScheduleService(db, now=clock)
    schedule = await service.delete_slot(doctor.id, parse_day(day), slot_id)
    return ScheduleResponse.from_schedule(schedule)


@router.delete("/{schedule_id}", response_model=ScheduleResponse)
async def archive_schedule(schedule_id: UUID, doctor: CurrentDoctor, db: DBSession, clock: Clock):
    """Archive a schedule; it stays in history but no longer offers slots."""
    service = ScheduleService(db, now=clock)
    schedule = await service.archive(doctor.id, schedule_id)
    return ScheduleResponse.from_schedule(schedule)
