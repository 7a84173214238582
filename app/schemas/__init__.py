from app.schemas.person import (
    PatientCreate,
    PatientResponse,
    DoctorCreate,
    DoctorResponse,
)
from app.schemas.schedule import (
    ScheduleSlotIn,
    WeekScheduleUpdate,
    DayScheduleUpdate,
    ScheduleResponse,
    ScheduleHistoryResponse,
)
from app.schemas.appointment import (
    AppointmentBook,
    PatientReschedule,
    DoctorReschedule,
    VisitComplete,
    AppointmentDetailsUpdate,
    AppointmentResponse,
    SlotAvailability,
    AvailabilityResponse,
    DoctorOpenSlots,
)

__all__ = [
    "PatientCreate",
    "PatientResponse",
    "DoctorCreate",
    "DoctorResponse",
    "ScheduleSlotIn",
    "WeekScheduleUpdate",
    "DayScheduleUpdate",
    "ScheduleResponse",
    "ScheduleHistoryResponse",
    "AppointmentBook",
    "PatientReschedule",
    "DoctorReschedule",
    "VisitComplete",
    "AppointmentDetailsUpdate",
    "AppointmentResponse",
    "SlotAvailability",
    "AvailabilityResponse",
    "DoctorOpenSlots",
]
