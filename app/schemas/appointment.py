from pydantic import BaseModel, Field, model_validator
from datetime import datetime, date
from uuid import UUID


class AppointmentBook(BaseModel):
    """Schema for booking an appointment."""
    doctor_id: UUID = Field(..., description="Doctor ID")
    appointment_date: date = Field(..., description="Appointment date (YYYY-MM-DD)")
    start_time: str = Field(..., description="Start time (HH:MM, 24-hour)")
    end_time: str = Field(..., description="End time (HH:MM, 24-hour)")
    session_type: str = Field("Available", description="Slot session type, or 'Available'")
    symptoms: str | None = Field(None, max_length=500)


class PatientReschedule(BaseModel):
    """Schema for a patient moving their own appointment."""
    new_date: date
    new_start_time: str
    new_end_time: str
    new_session_type: str | None = None
    reason: str | None = Field(None, max_length=500)


class DoctorReschedule(BaseModel):
    """Schema for a doctor moving an appointment.

    Either ``new_time_slot`` (``"9:00 AM - 10:00 AM"``) or both start and end
    times must be given.
    """
    new_date: date
    new_time_slot: str | None = None
    new_start_time: str | None = None
    new_end_time: str | None = None
    reason: str | None = Field(None, max_length=500)

    @model_validator(mode="after")
    def check_time_given(self):
        if not self.new_time_slot and not (self.new_start_time and self.new_end_time):
            raise ValueError("Provide new_time_slot or both new_start_time and new_end_time")
        return self


class VisitComplete(BaseModel):
    notes: str | None = Field(None, max_length=1000)


class AppointmentDetailsUpdate(BaseModel):
    """Doctor-editable details of an appointment."""
    notes: str | None = Field(None, max_length=1000)
    symptoms: str | None = Field(None, max_length=500)
    is_emergency: bool | None = None


class AppointmentResponse(BaseModel):
    """Schema for appointment response."""
    id: UUID
    patient_id: UUID
    doctor_id: UUID
    appointment_date: date
    start_time: str
    end_time: str
    time_range: str
    formatted_date: str
    session_type: str
    status: str
    symptoms: str | None = None
    notes: str | None = None
    is_emergency: bool = False
    booking_date: datetime | None = None
    reschedule_reason: str | None = None
    rescheduled_at: datetime | None = None

    class Config:
        from_attributes = True


class SlotAvailability(BaseModel):
    """One schedule slot and whether it can still be booked."""
    id: str
    start_time: str = Field(..., description="Time as stored in the schedule")
    end_time: str
    start_time_24: str
    end_time_24: str
    session_type: str
    is_available: bool
    status: str = Field(..., description="'available' or 'booked'")


class AvailabilityResponse(BaseModel):
    """Result of resolving a doctor's slots for a date.

    ``scheduled`` is False when the doctor has no schedule for that day,
    which is different from a scheduled day with every slot booked.
    """
    scheduled: bool
    doctor_id: UUID
    date: date
    message: str | None = None
    available_slots: list[SlotAvailability] = []
    total_slots: int = 0
    available_count: int = 0


class DoctorOpenSlots(BaseModel):
    """Free time ranges of the doctor's own schedule for a date."""
    date: date
    available_slots: list[str]
    message: str | None = None
