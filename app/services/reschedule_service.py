"""Reschedule service - Cancelling and moving existing appointments."""

import logging
from collections.abc import Callable
from datetime import date, datetime, timedelta
from uuid import UUID

import logfire
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.exceptions import ConflictError, NotFoundError, TooLateError
from app.models.appointment import Appointment, AppointmentStatus, is_terminal
from app.models.person import Role
from app.services.appointment_service import AppointmentService
from app.services.booking_service import (
    resolve_session_type,
    session_type_for_clinic_hours,
    validate_slot_request,
)
from app.services.directory_service import DirectoryService
from app.services.notification_service import (
    AppointmentSnapshot,
    NotificationService,
    notification_service,
)
from app.utils.timeutils import clinic_now, combine_local, to_24_hour

logger = logging.getLogger(__name__)

NEW_SLOT_TAKEN_MESSAGE = "New time slot not available. Another patient may have booked it."
DOCTOR_RESCHEDULE_REASON = "Rescheduled by doctor"


class RescheduleService:
    """Service class for cancel and reschedule operations."""

    def __init__(
        self,
        db: AsyncSession,
        notifier: NotificationService = notification_service,
        now: Callable[[], datetime] = clinic_now,
    ):
        self.db = db
        self.notifier = notifier
        self.now = now
        self.appointments = AppointmentService(db, now=now)
        self.directory = DirectoryService(db)

    async def cancel_appointment(self, appointment_id: UUID, patient_id: UUID) -> Appointment:
        """Patient cancels their own appointment (soft delete)."""
        appointment = await self.appointments.get_appointment_by_id(appointment_id)
        if (
            not appointment
            or appointment.patient_id != patient_id
            or is_terminal(appointment.status)
        ):
            raise NotFoundError("Appointment not found or cannot be cancelled")

        self._check_lead_time(appointment, "cancelled")

        appointment.status = AppointmentStatus.CANCELLED.value
        await self.db.flush()
        await self.db.refresh(appointment)

        logfire.info("appointment_cancelled", appointment_id=str(appointment_id))

        await self._notify(lambda patient, doctor: self.notifier.notify_cancelled(
            appointment, patient, doctor
        ), appointment)
        return appointment

    async def reschedule_appointment(
        self,
        appointment_id: UUID,
        actor_id: UUID,
        actor_role: Role,
        new_date: date,
        new_start_time: str,
        new_end_time: str,
        reason: str | None = None,
        session_type: str | None = None,
    ) -> Appointment:
        """Move an appointment to a new date and time range, in place.

        Patients must respect the lead time on the original slot and the
        appointment goes back to ``scheduled``. Doctors (and admins) have no
        lead time, may pass 12-hour times, and the appointment is
        ``confirmed`` with a session type picked from clinic hours.
        """
        actor_role = Role(actor_role)
        by_patient = actor_role == Role.PATIENT
        by_doctor = actor_role in (Role.DOCTOR, Role.ADMIN)

        appointment = await self.appointments.get_appointment_by_id(appointment_id)
        if not appointment or not self._may_reschedule(appointment, actor_id, actor_role):
            raise NotFoundError("Appointment not found or cannot be rescheduled")

        if by_patient:
            self._check_lead_time(appointment, "rescheduled")

        if by_doctor:
            new_start_time = to_24_hour(new_start_time)
            new_end_time = to_24_hour(new_end_time)

        new_start_time, new_end_time = validate_slot_request(
            new_date, new_start_time, new_end_time, self.now().date()
        )

        if not await self.appointments.is_slot_available(
            appointment.doctor_id,
            new_date,
            new_start_time,
            new_end_time,
            exclude_id=appointment.id,
        ):
            logfire.info("appointment_conflict", appointment_id=str(appointment_id), layer="pre-check")
            raise ConflictError(NEW_SLOT_TAKEN_MESSAGE)

        if by_doctor:
            new_session_type = session_type_for_clinic_hours(new_start_time)
        else:
            new_session_type = resolve_session_type(session_type, new_start_time)

        previous = AppointmentSnapshot.of(appointment)

        appointment.appointment_date = new_date
        appointment.start_time = new_start_time
        appointment.end_time = new_end_time
        appointment.session_type = new_session_type
        if by_doctor:
            appointment.status = AppointmentStatus.CONFIRMED.value
            appointment.reschedule_reason = reason or DOCTOR_RESCHEDULE_REASON
        else:
            appointment.status = AppointmentStatus.SCHEDULED.value
            appointment.reschedule_reason = reason
        appointment.rescheduled_at = datetime.utcnow()

        try:
            await self.db.flush()
        except IntegrityError:
            await self.db.rollback()
            logfire.info("appointment_conflict", appointment_id=str(appointment_id), layer="unique index")
            raise ConflictError(NEW_SLOT_TAKEN_MESSAGE) from None

        await self.db.refresh(appointment)

        logger.info(
            f"Appointment {appointment_id} moved from {previous.appointment_date} "
            f"{previous.start_time}-{previous.end_time} to {new_date} {new_start_time}-{new_end_time}"
        )
        logfire.info(
            "appointment_rescheduled",
            appointment_id=str(appointment_id),
            actor_role=actor_role.value,
            new_date=str(new_date),
            start_time=new_start_time,
            end_time=new_end_time,
        )

        await self._notify(lambda patient, doctor: self.notifier.notify_rescheduled(
            previous, appointment, patient, doctor
        ), appointment)
        return appointment

    def _may_reschedule(self, appointment: Appointment, actor_id: UUID, actor_role: Role) -> bool:
        if is_terminal(appointment.status):
            return False
        if actor_role == Role.PATIENT:
            return appointment.patient_id == actor_id
        if actor_role == Role.DOCTOR:
            return appointment.doctor_id == actor_id
        return actor_role == Role.ADMIN

    def _check_lead_time(self, appointment: Appointment, action: str) -> None:
        lead_hours = settings.cancellation_lead_hours
        starts_at = combine_local(appointment.appointment_date, appointment.start_time)
        if starts_at < self.now() + timedelta(hours=lead_hours):
            raise TooLateError(
                f"Appointments can only be {action} at least {lead_hours} hours in advance"
            )

    async def _notify(self, send, appointment: Appointment) -> None:
        """Best effort: a failed notification never fails the change itself."""
        try:
            patient = await self.directory.get_patient(appointment.patient_id)
            doctor = await self.directory.get_doctor(appointment.doctor_id)
            if patient and doctor:
                send(patient, doctor)
        except Exception as e:
            logger.error(f"❌ Could not queue notification for appointment {appointment.id}: {e}")
