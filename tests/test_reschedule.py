# tests/test_reschedule.py
import uuid
from datetime import date, datetime

import pytest

from app.exceptions import ConflictError, NotFoundError, TooLateError, ValidationError
from app.models.appointment import AppointmentStatus
from app.models.person import Role
from app.services.appointment_service import AppointmentService
from app.services.availability_service import AvailabilityService
from app.services.booking_service import BookingService
from app.services.reschedule_service import DOCTOR_RESCHEDULE_REASON, RescheduleService
from conftest import NEXT_MONDAY, FailingNotifier

NEXT_TUESDAY = date(2030, 3, 12)


@pytest.fixture
async def booked(db, doctor, patient, clock, notifier, next_week):
    return await BookingService(db, notifier=notifier, now=clock).book_appointment(
        patient.id, doctor.id, NEXT_MONDAY, "09:00", "10:00"
    )


@pytest.fixture
def service(db, clock, notifier):
    return RescheduleService(db, notifier=notifier, now=clock)


async def test_cancel_frees_the_slot(db, service, booked, patient, doctor, clock, notifier):
    cancelled = await service.cancel_appointment(booked.id, patient.id)

    assert cancelled.status == AppointmentStatus.CANCELLED.value
    assert notifier.sent[-1] == ("cancelled", booked.id, patient.email)

    availability = await AvailabilityService(db, now=clock).resolve_availability(doctor.id, NEXT_MONDAY)
    assert availability.available_slots[0].is_available is True


@pytest.mark.parametrize("now, allowed", [
    (datetime(2030, 3, 11, 7, 1), False),   # 1h59m before
    (datetime(2030, 3, 11, 7, 0), True),    # exactly the lead time
    (datetime(2030, 3, 11, 6, 59), True),   # 2h01m before
])
async def test_cancel_lead_time(service, booked, patient, clock, now, allowed):
    clock.set(now)

    if allowed:
        cancelled = await service.cancel_appointment(booked.id, patient.id)
        assert cancelled.status == AppointmentStatus.CANCELLED.value
    else:
        with pytest.raises(TooLateError, match="at least 2 hours in advance"):
            await service.cancel_appointment(booked.id, patient.id)


async def test_cancel_requires_ownership(service, booked, other_patient):
    with pytest.raises(NotFoundError):
        await service.cancel_appointment(booked.id, other_patient.id)

    with pytest.raises(NotFoundError):
        await service.cancel_appointment(uuid.uuid4(), other_patient.id)


async def test_cancel_twice_is_not_found(service, booked, patient):
    await service.cancel_appointment(booked.id, patient.id)

    with pytest.raises(NotFoundError, match="cannot be cancelled"):
        await service.cancel_appointment(booked.id, patient.id)


async def test_cancel_notification_failure_is_swallowed(db, booked, patient, clock):
    service = RescheduleService(db, notifier=FailingNotifier(), now=clock)

    cancelled = await service.cancel_appointment(booked.id, patient.id)

    assert cancelled.status == AppointmentStatus.CANCELLED.value


async def test_patient_reschedule_moves_in_place(db, service, booked, patient, doctor, clock, notifier):
    moved = await service.reschedule_appointment(
        booked.id, patient.id, Role.PATIENT, NEXT_MONDAY, "14:00", "15:00", reason="Work clash"
    )

    assert moved.id == booked.id
    assert (moved.start_time, moved.end_time) == ("14:00", "15:00")
    assert moved.session_type == "Afternoon Procedures"
    assert moved.status == AppointmentStatus.SCHEDULED.value
    assert moved.reschedule_reason == "Work clash"
    assert moved.rescheduled_at is not None

    kind, appointment_id, previous = notifier.sent[-1]
    assert kind == "rescheduled"
    assert (previous.start_time, previous.end_time) == ("09:00", "10:00")

    slots = await AvailabilityService(db, now=clock).resolve_availability(doctor.id, NEXT_MONDAY)
    assert [s.status for s in slots.available_slots] == ["available", "available", "booked"]


async def test_reschedule_to_own_slot_is_allowed(service, booked, patient):
    moved = await service.reschedule_appointment(
        booked.id, patient.id, Role.PATIENT, NEXT_MONDAY, "09:00", "10:00"
    )

    assert (moved.start_time, moved.end_time) == ("09:00", "10:00")


async def test_reschedule_into_taken_slot(db, service, booked, patient, other_patient, doctor, clock, notifier):
    await BookingService(db, notifier=notifier, now=clock).book_appointment(
        other_patient.id, doctor.id, NEXT_MONDAY, "10:00", "11:00"
    )

    with pytest.raises(ConflictError, match="New time slot not available"):
        await service.reschedule_appointment(
            booked.id, patient.id, Role.PATIENT, NEXT_MONDAY, "10:00", "11:00"
        )


async def test_patient_reschedule_lead_time_uses_original_slot(service, booked, patient, clock):
    clock.set(datetime(2030, 3, 11, 8, 0))

    with pytest.raises(TooLateError, match="rescheduled"):
        await service.reschedule_appointment(
            booked.id, patient.id, Role.PATIENT, NEXT_TUESDAY, "09:00", "10:00"
        )


async def test_patient_reschedule_validation(service, booked, patient):
    with pytest.raises(ValidationError):
        await service.reschedule_appointment(
            booked.id, patient.id, Role.PATIENT, date(2030, 3, 1), "09:00", "10:00"
        )

    with pytest.raises(ValidationError):
        await service.reschedule_appointment(
            booked.id, patient.id, Role.PATIENT, NEXT_TUESDAY, "11:00", "10:00"
        )


async def test_other_patient_cannot_reschedule(service, booked, other_patient):
    with pytest.raises(NotFoundError):
        await service.reschedule_appointment(
            booked.id, other_patient.id, Role.PATIENT, NEXT_TUESDAY, "09:00", "10:00"
        )


async def test_doctor_reschedule(service, booked, doctor, clock):
    # Inside the patient lead time, which does not bind the doctor
    clock.set(datetime(2030, 3, 11, 8, 30))

    moved = await service.reschedule_appointment(
        booked.id, doctor.id, Role.DOCTOR, NEXT_TUESDAY, "3:00 PM", "4:00 PM"
    )

    assert (moved.appointment_date, moved.start_time, moved.end_time) == (NEXT_TUESDAY, "15:00", "16:00")
    assert moved.session_type == "Extended Afternoon"
    assert moved.status == AppointmentStatus.CONFIRMED.value
    assert moved.reschedule_reason == DOCTOR_RESCHEDULE_REASON


async def test_other_doctor_cannot_reschedule(service, booked):
    with pytest.raises(NotFoundError):
        await service.reschedule_appointment(
            booked.id, uuid.uuid4(), Role.DOCTOR, NEXT_TUESDAY, "09:00", "10:00"
        )


async def test_admin_may_reschedule_any_appointment(service, booked):
    moved = await service.reschedule_appointment(
        booked.id, uuid.uuid4(), Role.ADMIN, NEXT_TUESDAY, "19:00", "20:00", reason="Clinic closure"
    )

    assert moved.session_type == "Evening Consultations"
    assert moved.reschedule_reason == "Clinic closure"


async def test_terminal_appointments_cannot_move(db, service, booked, doctor, patient, clock):
    await AppointmentService(db, now=clock).complete_visit(booked.id, doctor.id, notes="All good")

    with pytest.raises(NotFoundError):
        await service.reschedule_appointment(
            booked.id, patient.id, Role.PATIENT, NEXT_TUESDAY, "09:00", "10:00"
        )
    with pytest.raises(NotFoundError):
        await service.reschedule_appointment(
            booked.id, doctor.id, Role.DOCTOR, NEXT_TUESDAY, "09:00", "10:00"
        )


async def test_visit_lifecycle(db, booked, doctor, clock):
    service = AppointmentService(db, now=clock)

    started = await service.start_visit(booked.id, doctor.id)
    assert started.status == AppointmentStatus.CONFIRMED.value

    updated = await service.update_details(booked.id, doctor.id, is_emergency=True)
    assert updated.is_emergency is True

    completed = await service.complete_visit(booked.id, doctor.id, notes="Follow up in a month")
    assert completed.status == AppointmentStatus.COMPLETED.value
    assert completed.notes == "Follow up in a month"

    with pytest.raises(NotFoundError):
        await service.start_visit(booked.id, doctor.id)


async def test_doctor_dashboard_filters(db, booked, doctor, clock):
    service = AppointmentService(db, now=clock)

    assert [a.id for a in await service.get_doctor_dashboard(doctor.id, status="pending")] == [booked.id]
    assert await service.get_doctor_dashboard(doctor.id, status="pending", window="past") == []
    assert await service.get_doctor_dashboard(doctor.id, status="completed") == []
    assert await service.get_doctor_dashboard(doctor.id, appointment_date=NEXT_TUESDAY) == []
