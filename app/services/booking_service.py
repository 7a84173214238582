"""Booking service - Validates and records new appointments.

Double booking is closed in two layers: a re-check of the slot right before
the insert, and the partial unique index on live appointments, whose
``IntegrityError`` is reported as the same conflict.
"""

import logging
from collections.abc import Callable
from datetime import date, datetime
from uuid import UUID

import logfire
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import ConflictError, ValidationError
from app.models.appointment import Appointment, AppointmentStatus
from app.models.schedule import SessionType
from app.services.appointment_service import AppointmentService
from app.services.directory_service import DirectoryService
from app.services.notification_service import NotificationService, notification_service
from app.utils.timeutils import clinic_now, is_valid_hhmm, minutes_since_midnight, to_24_hour

logger = logging.getLogger(__name__)

PLACEHOLDER_SESSION_TYPE = "Available"
SLOT_TAKEN_MESSAGE = "Time slot not available. Another patient may have booked it."


def session_type_for_booking(start_time: str) -> str:
    """Session type for a generic "Available" slot, from the start hour."""
    hour = minutes_since_midnight(start_time) // 60
    if hour < 12:
        return SessionType.MORNING_CONSULTATIONS.value
    if hour < 17:
        return SessionType.AFTERNOON_PROCEDURES.value
    return SessionType.EVENING_CONSULTATIONS.value


def session_type_for_clinic_hours(start_time: str) -> str:
    """Session type by clinic hours (9 AM - 8 PM); anything outside is Emergency."""
    hour = minutes_since_midnight(start_time) // 60
    if 9 <= hour < 12:
        return SessionType.MORNING_CONSULTATIONS.value
    if 12 <= hour < 15:
        return SessionType.AFTERNOON_PROCEDURES.value
    if 15 <= hour < 17:
        return SessionType.EXTENDED_AFTERNOON.value
    if 17 <= hour < 20:
        return SessionType.EVENING_CONSULTATIONS.value
    return SessionType.EMERGENCY.value


def resolve_session_type(session_type: str | None, start_time: str) -> str:
    """Concrete session type for an appointment starting at ``start_time``."""
    if not session_type or session_type == PLACEHOLDER_SESSION_TYPE:
        return session_type_for_booking(start_time)

    try:
        resolved = SessionType(session_type)
    except ValueError:
        raise ValidationError(f"Invalid session type '{session_type}'", field="session_type") from None
    if resolved is SessionType.DAY_OFF:
        raise ValidationError("Cannot book an appointment on a day off", field="session_type")
    return resolved.value


def validate_slot_request(
    appointment_date: date, start_time: str, end_time: str, today: date
) -> tuple[str, str]:
    """Check date, time format and ordering; return zero padded times."""
    if appointment_date < today:
        raise ValidationError("Cannot book appointments for past dates", field="appointment_date")

    if not is_valid_hhmm(start_time):
        raise ValidationError("Valid start time is required (HH:MM format)", field="start_time")
    if not is_valid_hhmm(end_time):
        raise ValidationError("Valid end time is required (HH:MM format)", field="end_time")

    start_time = to_24_hour(start_time)
    end_time = to_24_hour(end_time)

    if minutes_since_midnight(start_time) >= minutes_since_midnight(end_time):
        raise ValidationError(
            "Invalid time range. Start time must be before end time.", field="end_time"
        )
    return start_time, end_time


class BookingService:
    """Service class for booking appointments."""

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

    async def book_appointment(
        self,
        patient_id: UUID,
        doctor_id: UUID,
        appointment_date: date,
        start_time: str,
        end_time: str,
        session_type: str | None = PLACEHOLDER_SESSION_TYPE,
        symptoms: str | None = None,
    ) -> Appointment:
        """Book a slot for a patient, raising ConflictError if it is taken."""
        start_time, end_time = validate_slot_request(
            appointment_date, start_time, end_time, self.now().date()
        )
        resolved_type = resolve_session_type(session_type, start_time)

        patient = await self.directory.require_patient(patient_id)
        doctor = await self.directory.require_doctor(doctor_id)
        if not doctor.is_active:
            raise ValidationError("Doctor is not accepting appointments", field="doctor_id")

        # Re-check right before the insert; availability may be stale
        if not await self.appointments.is_slot_available(
            doctor_id, appointment_date, start_time, end_time
        ):
            self._log_conflict(doctor_id, appointment_date, start_time, end_time, "pre-check")
            raise ConflictError(SLOT_TAKEN_MESSAGE)

        appointment = Appointment(
            patient_id=patient_id,
            doctor_id=doctor_id,
            appointment_date=appointment_date,
            start_time=start_time,
            end_time=end_time,
            session_type=resolved_type,
            symptoms=symptoms or "",
            status=AppointmentStatus.SCHEDULED.value,
        )
        self.db.add(appointment)

        try:
            await self.db.flush()
        except IntegrityError:
            await self.db.rollback()
            if await self.appointments.is_slot_available(
                doctor_id, appointment_date, start_time, end_time
            ):
                raise
            self._log_conflict(doctor_id, appointment_date, start_time, end_time, "unique index")
            raise ConflictError(SLOT_TAKEN_MESSAGE) from None

        await self.db.refresh(appointment)

        logger.info(f"Appointment {appointment.id} booked for patient {patient_id}")
        logfire.info(
            "appointment_booked",
            appointment_id=str(appointment.id),
            doctor_id=str(doctor_id),
            date=str(appointment_date),
            start_time=start_time,
            end_time=end_time,
        )

        try:
            self.notifier.notify_booked(appointment, patient, doctor)
        except Exception as e:
            logger.error(f"❌ Could not queue booking confirmation: {e}")

        return appointment

    def _log_conflict(
        self, doctor_id: UUID, appointment_date: date, start_time: str, end_time: str, layer: str
    ) -> None:
        logger.info(f"Slot {appointment_date} {start_time}-{end_time} taken ({layer})")
        logfire.info(
            "appointment_conflict",
            doctor_id=str(doctor_id),
            date=str(appointment_date),
            start_time=start_time,
            end_time=end_time,
            layer=layer,
        )
