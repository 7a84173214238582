"""Services package - Business logic layer."""

from app.services.directory_service import DirectoryService
from app.services.schedule_service import ScheduleService
from app.services.appointment_service import AppointmentService
from app.services.availability_service import AvailabilityService
from app.services.booking_service import BookingService
from app.services.reschedule_service import RescheduleService
from app.services.notification_service import NotificationService

__all__ = [
    "DirectoryService",
    "ScheduleService",
    "AppointmentService",
    "AvailabilityService",
    "BookingService",
    "RescheduleService",
    "NotificationService",
]
