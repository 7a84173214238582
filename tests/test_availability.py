# tests/test_availability.py
from datetime import date, datetime

import pytest

from app.exceptions import ValidationError
from app.models.appointment import Appointment, AppointmentStatus
from app.models.schedule import WeeklySchedule, empty_week
from app.services.availability_service import NOT_SCHEDULED_MESSAGE, AvailabilityService
from app.services.booking_service import BookingService
from app.services.schedule_service import ScheduleService
from app.utils.timeutils import Weekday
from conftest import NEXT_MONDAY, slot


def add_appointment(db, doctor, patient, day, start, end, status=AppointmentStatus.SCHEDULED):
    appointment = Appointment(
        patient_id=patient.id,
        doctor_id=doctor.id,
        appointment_date=day,
        start_time=start,
        end_time=end,
        session_type="Morning Consultations",
        status=status.value,
    )
    db.add(appointment)
    return appointment


async def test_marks_booked_slots(db, doctor, patient, clock, next_week, notifier):
    await BookingService(db, notifier=notifier, now=clock).book_appointment(
        patient.id, doctor.id, NEXT_MONDAY, "10:00", "11:00"
    )

    result = await AvailabilityService(db, now=clock).resolve_availability(doctor.id, NEXT_MONDAY)

    assert result.scheduled is True
    assert [(s.start_time_24, s.is_available, s.status) for s in result.available_slots] == [
        ("09:00", True, "available"),
        ("10:00", False, "booked"),
        ("14:00", True, "available"),
    ]
    assert result.total_slots == 3
    assert result.available_count == 2
    assert result.available_slots[0].id == "monday_09:00_10:00"


async def test_cancelled_appointment_frees_slot(db, doctor, patient, clock, next_week):
    add_appointment(db, doctor, patient, NEXT_MONDAY, "09:00", "10:00", AppointmentStatus.CANCELLED)
    await db.flush()

    result = await AvailabilityService(db, now=clock).resolve_availability(doctor.id, NEXT_MONDAY)

    assert result.available_slots[0].is_available is True


async def test_booked_only_on_exact_range(db, doctor, patient, clock, next_week):
    # Overlapping but not identical ranges do not block a slot
    add_appointment(db, doctor, patient, NEXT_MONDAY, "09:30", "10:30")
    await db.flush()

    result = await AvailabilityService(db, now=clock).resolve_availability(doctor.id, NEXT_MONDAY)

    assert result.available_count == 3


async def test_not_scheduled_is_not_an_error(db, doctor, clock, next_week):
    tuesday = date(2030, 3, 12)

    result = await AvailabilityService(db, now=clock).resolve_availability(doctor.id, tuesday)

    assert result.scheduled is False
    assert result.message == NOT_SCHEDULED_MESSAGE
    assert result.available_slots == []


async def test_no_schedule_for_week(db, doctor, clock):
    result = await AvailabilityService(db, now=clock).resolve_availability(doctor.id, date(2030, 4, 1))

    assert result.scheduled is False
    assert result.message == NOT_SCHEDULED_MESSAGE


async def test_past_date_rejected(db, doctor, clock):
    with pytest.raises(ValidationError):
        await AvailabilityService(db, now=clock).resolve_availability(doctor.id, date(2030, 3, 3))


async def test_today_is_allowed(db, doctor, clock):
    await ScheduleService(db, now=clock).save_day(
        doctor.id, date(2030, 3, 4), Weekday.MONDAY, [slot("15:00", "16:00", "Extended Afternoon")]
    )

    result = await AvailabilityService(db, now=clock).resolve_availability(doctor.id, date(2030, 3, 4))

    assert result.scheduled is True
    assert result.total_slots == 1


async def test_slot_order_and_format_preserved(db, doctor, clock):
    # Stored as-is: unordered, overlapping, 12-hour, with a day off marker
    schedule = WeeklySchedule(
        doctor_id=doctor.id,
        week_start_date=NEXT_MONDAY,
        week_end_date=date(2030, 3, 17),
        weekly_schedule=empty_week(),
    )
    schedule.set_day(Weekday.MONDAY, [
        {"start_time": "2:00 PM", "end_time": "3:00 PM", "session_type": "Afternoon Procedures"},
        {"start_time": "09:00", "end_time": "11:00", "session_type": "Morning Consultations"},
        {"start_time": "10:00", "end_time": "11:00", "session_type": "Morning Consultations",
         "is_available": False},
        {"start_time": "12:00", "end_time": "12:00", "session_type": "Day Off"},
    ])
    db.add(schedule)
    await db.flush()

    result = await AvailabilityService(db, now=clock).resolve_availability(doctor.id, NEXT_MONDAY)

    assert [(s.start_time, s.start_time_24) for s in result.available_slots] == [
        ("2:00 PM", "14:00"),
        ("09:00", "09:00"),
        ("10:00", "10:00"),
    ]
    # The doctor's manual switch does not hide a slot from patients
    assert all(s.is_available for s in result.available_slots)


async def test_newest_overlapping_schedule_wins(db, doctor, clock):
    older = WeeklySchedule(
        doctor_id=doctor.id,
        week_start_date=NEXT_MONDAY,
        week_end_date=date(2030, 3, 17),
        weekly_schedule=empty_week(),
        created_at=datetime(2030, 3, 1, 8, 0),
    )
    older.set_day(Weekday.MONDAY, [
        {"start_time": "08:00", "end_time": "09:00", "session_type": "Morning Session"},
    ])
    newer = WeeklySchedule(
        doctor_id=doctor.id,
        week_start_date=NEXT_MONDAY,
        week_end_date=date(2030, 3, 17),
        weekly_schedule=empty_week(),
        created_at=datetime(2030, 3, 2, 8, 0),
    )
    newer.set_day(Weekday.MONDAY, [
        {"start_time": "16:00", "end_time": "17:00", "session_type": "Extended Afternoon"},
    ])
    db.add_all([older, newer])
    await db.flush()

    result = await AvailabilityService(db, now=clock).resolve_availability(doctor.id, NEXT_MONDAY)

    assert [s.start_time_24 for s in result.available_slots] == ["16:00"]


async def test_archived_schedule_offers_nothing(db, doctor, clock, next_week):
    await ScheduleService(db, now=clock).archive(doctor.id, next_week.id)

    result = await AvailabilityService(db, now=clock).resolve_availability(doctor.id, NEXT_MONDAY)

    assert result.scheduled is False


async def test_doctor_open_slots(db, doctor, patient, clock, next_week):
    add_appointment(db, doctor, patient, NEXT_MONDAY, "09:00", "10:00")
    await db.flush()

    result = await AvailabilityService(db, now=clock).doctor_open_slots(doctor.id, NEXT_MONDAY)

    assert result.available_slots == ["10:00 AM - 11:00 AM", "2:00 PM - 3:00 PM"]


async def test_doctor_open_slots_without_schedule(db, doctor, clock, next_week):
    service = AvailabilityService(db, now=clock)

    no_week = await service.doctor_open_slots(doctor.id, date(2030, 4, 1))
    day_off = await service.doctor_open_slots(doctor.id, date(2030, 3, 12))

    assert no_week.available_slots == [] and no_week.message == "No schedule found for this day"
    assert day_off.message == "Doctor is not working on tuesday"
