"""Appointment service - Appointment records and the doctor's visit lifecycle."""

import logging
from collections.abc import Callable
from datetime import date, datetime
from uuid import UUID

import logfire
from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import NotFoundError
from app.models.appointment import Appointment, AppointmentStatus, OPEN_STATUSES, is_terminal
from app.utils.timeutils import clinic_now

logger = logging.getLogger(__name__)


class AppointmentService:
    """Service class for appointment records."""

    def __init__(self, db: AsyncSession, now: Callable[[], datetime] = clinic_now):
        self.db = db
        self.now = now

    async def get_appointment_by_id(self, appointment_id: UUID) -> Appointment | None:
        """Get an appointment by ID."""
        return await self.db.get(Appointment, appointment_id)

    async def is_slot_available(
        self,
        doctor_id: UUID,
        appointment_date: date,
        start_time: str,
        end_time: str,
        exclude_id: UUID | None = None,
    ) -> bool:
        """Check that no live appointment holds this exact time range."""
        query = select(Appointment.id).where(
            and_(
                Appointment.doctor_id == doctor_id,
                Appointment.appointment_date == appointment_date,
                Appointment.start_time == start_time,
                Appointment.end_time == end_time,
                Appointment.status != AppointmentStatus.CANCELLED.value,
            )
        )

        if exclude_id:
            query = query.where(Appointment.id != exclude_id)

        result = await self.db.execute(query.limit(1))
        return result.first() is None

    async def get_doctor_appointments(self, doctor_id: UUID, appointment_date: date) -> list[Appointment]:
        """Non-cancelled appointments of a doctor on one day, by start time."""
        result = await self.db.execute(
            select(Appointment)
            .where(
                Appointment.doctor_id == doctor_id,
                Appointment.appointment_date == appointment_date,
                Appointment.status != AppointmentStatus.CANCELLED.value,
            )
            .order_by(Appointment.start_time)
        )
        return list(result.scalars().all())

    async def get_patient_appointments(
        self,
        patient_id: UUID,
        status: AppointmentStatus | None = None,
        limit: int = 10,
    ) -> list[Appointment]:
        """Get a patient's appointments; cancelled ones only when asked for."""
        query = select(Appointment).where(Appointment.patient_id == patient_id)

        if status:
            query = query.where(Appointment.status == status.value)
        else:
            query = query.where(Appointment.status != AppointmentStatus.CANCELLED.value)

        query = query.order_by(Appointment.appointment_date, Appointment.start_time).limit(limit)

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_doctor_dashboard(
        self,
        doctor_id: UUID,
        status: str = "all",
        appointment_date: date | None = None,
        window: str = "upcoming",
        limit: int = 20,
    ) -> list[Appointment]:
        """Doctor's appointment listing.

        ``status="pending"`` means scheduled or confirmed, narrowed by
        ``window`` to ``upcoming`` (today onwards) or ``past``.
        """
        query = select(Appointment).where(Appointment.doctor_id == doctor_id)
        today = self.now().date()

        if status == "pending":
            query = query.where(Appointment.status.in_(OPEN_STATUSES))
            if window == "upcoming":
                query = query.where(Appointment.appointment_date >= today)
            elif window == "past":
                query = query.where(Appointment.appointment_date < today)
        elif status != "all":
            query = query.where(Appointment.status == AppointmentStatus(status).value)

        if appointment_date:
            query = query.where(Appointment.appointment_date == appointment_date)

        query = query.order_by(Appointment.appointment_date, Appointment.start_time).limit(limit)

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_for_doctor(self, appointment_id: UUID, doctor_id: UUID) -> Appointment:
        """Fetch an appointment owned by the doctor, else NotFoundError."""
        appointment = await self.get_appointment_by_id(appointment_id)
        if not appointment or appointment.doctor_id != doctor_id:
            raise NotFoundError("Appointment not found")
        return appointment

    async def get_open_for_doctor(self, appointment_id: UUID, doctor_id: UUID, action: str) -> Appointment:
        appointment = await self.get_appointment_by_id(appointment_id)
        if not appointment or appointment.doctor_id != doctor_id or is_terminal(appointment.status):
            raise NotFoundError(f"Appointment not found or cannot be {action}")
        return appointment

    async def start_visit(self, appointment_id: UUID, doctor_id: UUID) -> Appointment:
        """Doctor starts the visit: scheduled/confirmed -> confirmed."""
        appointment = await self.get_open_for_doctor(appointment_id, doctor_id, "started")

        appointment.status = AppointmentStatus.CONFIRMED.value
        await self.db.flush()
        await self.db.refresh(appointment)

        logfire.info("appointment_started", appointment_id=str(appointment_id))
        return appointment

    async def complete_visit(
        self, appointment_id: UUID, doctor_id: UUID, notes: str | None = None
    ) -> Appointment:
        """Doctor finishes the visit: scheduled/confirmed -> completed."""
        appointment = await self.get_open_for_doctor(appointment_id, doctor_id, "completed")

        appointment.status = AppointmentStatus.COMPLETED.value
        if notes:
            appointment.notes = notes
        await self.db.flush()
        await self.db.refresh(appointment)

        logfire.info("appointment_completed", appointment_id=str(appointment_id))
        return appointment

    async def update_details(
        self,
        appointment_id: UUID,
        doctor_id: UUID,
        notes: str | None = None,
        symptoms: str | None = None,
        is_emergency: bool | None = None,
    ) -> Appointment:
        """Update notes, symptoms or the emergency flag."""
        appointment = await self.get_for_doctor(appointment_id, doctor_id)

        if notes is not None:
            appointment.notes = notes
        if symptoms is not None:
            appointment.symptoms = symptoms
        if is_emergency is not None:
            appointment.is_emergency = is_emergency

        await self.db.flush()
        await self.db.refresh(appointment)
        return appointment
