from app.models.person import Patient, Doctor, Role
from app.models.schedule import WeeklySchedule, SessionType, ScheduleStatus
from app.models.appointment import Appointment, AppointmentStatus, is_terminal

__all__ = [
    "Patient",
    "Doctor",
    "Role",
    "WeeklySchedule",
    "SessionType",
    "ScheduleStatus",
    "Appointment",
    "AppointmentStatus",
    "is_terminal",
]
