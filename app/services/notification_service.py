"""Notification service - Appointment emails sent outside the request.

Every ``notify_*`` call renders the message right away, schedules delivery on
the running event loop and returns. Delivery problems are logged and never
reach the caller.
"""

import asyncio
import logging
import smtplib
import ssl
from dataclasses import dataclass
from datetime import date
from email.message import EmailMessage

import logfire

from app.config import Settings, settings as default_settings
from app.models.appointment import Appointment
from app.models.person import Doctor, Patient
from app.utils.timeutils import format_long_date, format_time_range

logger = logging.getLogger(__name__)

# Strong references so pending deliveries are not garbage collected
_background_tasks: set[asyncio.Task] = set()


@dataclass(frozen=True)
class AppointmentSnapshot:
    """Date and times of an appointment before it was moved."""
    appointment_date: date
    start_time: str
    end_time: str

    @classmethod
    def of(cls, appointment: Appointment) -> "AppointmentSnapshot":
        return cls(appointment.appointment_date, appointment.start_time, appointment.end_time)

    @property
    def time_range(self) -> str:
        return format_time_range(self.start_time, self.end_time)

    @property
    def formatted_date(self) -> str:
        return format_long_date(self.appointment_date)


@dataclass(frozen=True)
class EmailPayload:
    kind: str
    to: str
    subject: str
    body: str


class NotificationService:
    """Sends appointment booking, cancellation and reschedule emails."""

    def __init__(self, config: Settings | None = None):
        self.config = config or default_settings

    def notify_booked(self, appointment: Appointment, patient: Patient, doctor: Doctor) -> None:
        body = "\n".join([
            f"Dear {patient.full_name},",
            "",
            f"Your appointment with {doctor.display_name} is booked.",
            "",
            f"Date: {appointment.formatted_date}",
            f"Time: {appointment.time_range}",
            f"Session: {appointment.session_type}",
            f"Specialization: {doctor.specialization or 'General'}",
        ])
        if appointment.symptoms:
            body += f"\nSymptoms: {appointment.symptoms}"
        self._dispatch(EmailPayload(
            kind="booking_confirmation",
            to=patient.email,
            subject=f"Appointment confirmed - {appointment.formatted_date}",
            body=body,
        ))

    def notify_cancelled(self, appointment: Appointment, patient: Patient, doctor: Doctor) -> None:
        body = "\n".join([
            f"Dear {patient.full_name},",
            "",
            f"Your appointment with {doctor.display_name} has been cancelled.",
            "",
            f"Date: {appointment.formatted_date}",
            f"Time: {appointment.time_range}",
            f"Session: {appointment.session_type}",
        ])
        self._dispatch(EmailPayload(
            kind="cancellation",
            to=patient.email,
            subject=f"Appointment cancelled - {appointment.formatted_date}",
            body=body,
        ))

    def notify_rescheduled(
        self,
        previous: AppointmentSnapshot,
        appointment: Appointment,
        patient: Patient,
        doctor: Doctor,
    ) -> None:
        lines = [
            f"Dear {patient.full_name},",
            "",
            f"Your appointment with {doctor.display_name} has been rescheduled.",
            "",
            f"Previous: {previous.formatted_date}, {previous.time_range}",
            f"New: {appointment.formatted_date}, {appointment.time_range}",
            f"Session: {appointment.session_type}",
        ]
        if appointment.reschedule_reason:
            lines.append(f"Reason: {appointment.reschedule_reason}")
        self._dispatch(EmailPayload(
            kind="reschedule",
            to=patient.email,
            subject=f"Appointment rescheduled - {appointment.formatted_date}",
            body="\n".join(lines),
        ))

    def _dispatch(self, payload: EmailPayload) -> None:
        if not self.config.notifications_enabled:
            logger.debug(f"Notifications disabled, skipping {payload.kind} email to {payload.to}")
            return

        task = asyncio.get_running_loop().create_task(self._deliver(payload))
        _background_tasks.add(task)
        task.add_done_callback(_background_tasks.discard)

    async def _deliver(self, payload: EmailPayload) -> None:
        try:
            if self.config.smtp_host:
                await asyncio.to_thread(self._send_smtp, payload)
                logger.info(f"📧 {payload.kind} email sent to {payload.to}")
            else:
                logger.info(
                    f"SMTP not configured, {payload.kind} email to {payload.to}:\n{payload.body}"
                )
            logfire.info("notification_sent", kind=payload.kind, to=payload.to)
        except Exception as e:
            logger.error(f"❌ Failed to send {payload.kind} email to {payload.to}: {e}")
            logfire.error("notification_failed", kind=payload.kind, error=str(e))

    def _send_smtp(self, payload: EmailPayload) -> None:
        message = EmailMessage()
        message["From"] = self.config.email_from
        message["To"] = payload.to
        message["Subject"] = payload.subject
        message.set_content(payload.body)

        with smtplib.SMTP(self.config.smtp_host, self.config.smtp_port, timeout=30) as server:
            server.starttls(context=ssl.create_default_context())
            if self.config.smtp_username:
                server.login(self.config.smtp_username, self.config.smtp_password)
            server.send_message(message)


async def drain_notifications() -> None:
    """Wait for in-flight deliveries, used on shutdown."""
    if _background_tasks:
        await asyncio.gather(*list(_background_tasks), return_exceptions=True)


notification_service = NotificationService()
