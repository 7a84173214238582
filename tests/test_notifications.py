# tests/test_notifications.py
from datetime import date

from app.config import Settings
from app.models.appointment import Appointment
from app.models.person import Doctor, Patient
from app.services import notification_service as notifications
from app.services.notification_service import AppointmentSnapshot, NotificationService, drain_notifications


def make_people():
    patient = Patient(first_name="Sam", last_name="Okafor", email="sam@example.test")
    doctor = Doctor(first_name="Meera", last_name="Iyer", email="meera@clinic.test", specialization="Cardiology")
    appointment = Appointment(
        appointment_date=date(2030, 3, 11),
        start_time="09:00",
        end_time="10:00",
        session_type="Morning Consultations",
        symptoms="Chest pain",
    )
    return appointment, patient, doctor


class FakeSMTP:
    sent = []

    def __init__(self, host, port, timeout=None):
        self.host = host

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self, context=None):
        pass

    def login(self, username, password):
        pass

    def send_message(self, message):
        FakeSMTP.sent.append(message)


async def test_booking_email_sent_over_smtp(monkeypatch):
    FakeSMTP.sent = []
    monkeypatch.setattr(notifications.smtplib, "SMTP", FakeSMTP)
    service = NotificationService(Settings(notifications_enabled=True, smtp_host="smtp.test"))
    appointment, patient, doctor = make_people()

    service.notify_booked(appointment, patient, doctor)
    await drain_notifications()

    assert len(FakeSMTP.sent) == 1
    message = FakeSMTP.sent[0]
    assert message["To"] == "sam@example.test"
    assert message["Subject"] == "Appointment confirmed - Monday, March 11, 2030"
    assert "9:00 AM - 10:00 AM" in message.get_content()
    assert "Dr. Meera Iyer" in message.get_content()


async def test_reschedule_email_mentions_both_slots(monkeypatch):
    FakeSMTP.sent = []
    monkeypatch.setattr(notifications.smtplib, "SMTP", FakeSMTP)
    service = NotificationService(Settings(notifications_enabled=True, smtp_host="smtp.test"))
    appointment, patient, doctor = make_people()
    previous = AppointmentSnapshot.of(appointment)
    appointment.start_time, appointment.end_time = "14:00", "15:00"
    appointment.reschedule_reason = "Rescheduled by doctor"

    service.notify_rescheduled(previous, appointment, patient, doctor)
    await drain_notifications()

    body = FakeSMTP.sent[0].get_content()
    assert "Previous: Monday, March 11, 2030, 9:00 AM - 10:00 AM" in body
    assert "New: Monday, March 11, 2030, 2:00 PM - 3:00 PM" in body
    assert "Reason: Rescheduled by doctor" in body


async def test_delivery_failure_is_logged_not_raised(monkeypatch, caplog):
    def broken_smtp(*args, **kwargs):
        raise ConnectionRefusedError("no route to mail server")

    monkeypatch.setattr(notifications.smtplib, "SMTP", broken_smtp)
    service = NotificationService(Settings(notifications_enabled=True, smtp_host="smtp.test"))
    appointment, patient, doctor = make_people()

    service.notify_cancelled(appointment, patient, doctor)
    await drain_notifications()

    assert "Failed to send cancellation email" in caplog.text


async def test_disabled_notifications_schedule_nothing(monkeypatch):
    FakeSMTP.sent = []
    monkeypatch.setattr(notifications.smtplib, "SMTP", FakeSMTP)
    service = NotificationService(Settings(notifications_enabled=False, smtp_host="smtp.test"))
    appointment, patient, doctor = make_people()

    service.notify_booked(appointment, patient, doctor)
    await drain_notifications()

    assert FakeSMTP.sent == []
