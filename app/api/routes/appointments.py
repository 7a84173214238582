"""Appointment routes - API endpoints for availability, booking and visits."""

from datetime import date
from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Query

from app.api.deps import Clock, CurrentActor, CurrentDoctor, CurrentPatient, DBSession, Notifier
from app.exceptions import ValidationError
from app.models.appointment import AppointmentStatus
from app.schemas.appointment import (
    AppointmentBook,
    AppointmentDetailsUpdate,
    AppointmentResponse,
    AvailabilityResponse,
    DoctorOpenSlots,
    DoctorReschedule,
    PatientReschedule,
    VisitComplete,
)
from app.services.appointment_service import AppointmentService
from app.services.availability_service import AvailabilityService
from app.services.booking_service import BookingService
from app.services.reschedule_service import RescheduleService
from app.utils.timeutils import parse_time_range

router = APIRouter()

StatusFilter = Literal["all", "scheduled", "confirmed", "completed", "cancelled"]
DashboardStatusFilter = Literal["all", "pending", "scheduled", "confirmed", "completed", "cancelled"]


@router.get("/doctor/{doctor_id}/slots/{slot_date}", response_model=AvailabilityResponse)
async def get_doctor_slots(doctor_id: UUID, slot_date: date, actor: CurrentActor, db: DBSession, clock: Clock):
    """A doctor's schedule slots for a date, each marked booked or available."""
    service = AvailabilityService(db, now=clock)
    return await service.resolve_availability(doctor_id, slot_date)


@router.post("/book", response_model=AppointmentResponse, status_code=201)
async def book_appointment(
    booking: AppointmentBook,
    patient: CurrentPatient,
    db: DBSession,
    clock: Clock,
    notifier: Notifier,
):
    """Book a slot for the calling patient."""
    service = BookingService(db, notifier=notifier, now=clock)
    return await service.book_appointment(
        patient_id=patient.id,
        doctor_id=booking.doctor_id,
        appointment_date=booking.appointment_date,
        start_time=booking.start_time,
        end_time=booking.end_time,
        session_type=booking.session_type,
        symptoms=booking.symptoms,
    )


@router.get("/my-appointments", response_model=list[AppointmentResponse])
async def get_my_appointments(
    patient: CurrentPatient,
    db: DBSession,
    clock: Clock,
    status: StatusFilter = "all",
    limit: int = Query(10, ge=1, le=100),
):
    """The calling patient's appointments; cancelled ones only on request."""
    service = AppointmentService(db, now=clock)
    return await service.get_patient_appointments(
        patient.id,
        status=None if status == "all" else AppointmentStatus(status),
        limit=limit,
    )


@router.patch("/cancel/{appointment_id}", response_model=AppointmentResponse)
async def cancel_appointment(
    appointment_id: UUID,
    patient: CurrentPatient,
    db: DBSession,
    clock: Clock,
    notifier: Notifier,
):
    """Cancel (soft delete) one of the patient's appointments."""
    service = RescheduleService(db, notifier=notifier, now=clock)
    return await service.cancel_appointment(appointment_id, patient.id)


@router.patch("/reschedule/{appointment_id}", response_model=AppointmentResponse)
async def reschedule_appointment(
    appointment_id: UUID,
    reschedule: PatientReschedule,
    patient: CurrentPatient,
    db: DBSession,
    clock: Clock,
    notifier: Notifier,
):
    """Move one of the patient's appointments to another slot."""
    service = RescheduleService(db, notifier=notifier, now=clock)
    return await service.reschedule_appointment(
        appointment_id,
        actor_id=patient.id,
        actor_role=patient.role,
        new_date=reschedule.new_date,
        new_start_time=reschedule.new_start_time,
        new_end_time=reschedule.new_end_time,
        reason=reschedule.reason,
        session_type=reschedule.new_session_type,
    )


@router.get("/doctor/my-appointments", response_model=list[AppointmentResponse])
async def get_doctor_appointments(
    doctor: CurrentDoctor,
    db: DBSession,
    clock: Clock,
    status: DashboardStatusFilter = "all",
    appointment_date: date | None = Query(None, alias="date"),
    appointment_type: Literal["upcoming", "past", "all"] = Query("upcoming", alias="appointmentType"),
    limit: int = Query(20, ge=1, le=100),
):
    """The doctor's appointment dashboard."""
    service = AppointmentService(db, now=clock)
    return await service.get_doctor_dashboard(
        doctor.id,
        status=status,
        appointment_date=appointment_date,
        window=appointment_type,
        limit=limit,
    )


@router.get("/doctor/available-slots", response_model=DoctorOpenSlots)
async def get_doctor_open_slots(
    doctor: CurrentDoctor,
    db: DBSession,
    clock: Clock,
    slot_date: date = Query(..., alias="date"),
):
    """Free time ranges on the doctor's own schedule, for rescheduling."""
    service = AvailabilityService(db, now=clock)
    return await service.doctor_open_slots(doctor.id, slot_date)


@router.patch("/doctor/start/{appointment_id}", response_model=AppointmentResponse)
async def start_appointment(appointment_id: UUID, doctor: CurrentDoctor, db: DBSession, clock: Clock):
    """Mark the visit as started (confirmed)."""
    service = AppointmentService(db, now=clock)
    return await service.start_visit(appointment_id, doctor.id)


@router.patch("/doctor/complete/{appointment_id}", response_model=AppointmentResponse)
async def complete_appointment(
    appointment_id: UUID,
    visit: VisitComplete,
    doctor: CurrentDoctor,
    db: DBSession,
    clock: Clock,
):
    """Mark the visit as completed, optionally with notes."""
    service = AppointmentService(db, now=clock)
    return await service.complete_visit(appointment_id, doctor.id, notes=visit.notes)


@router.patch("/doctor/update/{appointment_id}", response_model=AppointmentResponse)
async def update_appointment(
    appointment_id: UUID,
    details: AppointmentDetailsUpdate,
    doctor: CurrentDoctor,
    db: DBSession,
    clock: Clock,
):
    """Update notes, symptoms or the emergency flag."""
    service = AppointmentService(db, now=clock)
    return await service.update_details(
        appointment_id,
        doctor.id,
        notes=details.notes,
        symptoms=details.symptoms,
        is_emergency=details.is_emergency,
    )


@router.patch("/doctor/reschedule/{appointment_id}", response_model=AppointmentResponse)
async def doctor_reschedule_appointment(
    appointment_id: UUID,
    reschedule: DoctorReschedule,
    doctor: CurrentDoctor,
    db: DBSession,
    clock: Clock,
    notifier: Notifier,
):
    """Doctor (or admin) moves an appointment; no lead time applies."""
    if reschedule.new_time_slot:
        try:
            new_start_time, new_end_time = parse_time_range(reschedule.new_time_slot)
        except ValueError as exc:
            raise ValidationError(str(exc), field="new_time_slot") from None
    else:
        new_start_time, new_end_time = reschedule.new_start_time, reschedule.new_end_time

    service = RescheduleService(db, notifier=notifier, now=clock)
    return await service.reschedule_appointment(
        appointment_id,
        actor_id=doctor.id,
        actor_role=doctor.role,
        new_date=reschedule.new_date,
        new_start_time=new_start_time,
        new_end_time=new_end_time,
        reason=reschedule.reason,
    )
