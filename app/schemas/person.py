from pydantic import BaseModel, Field
from datetime import datetime
from uuid import UUID


class PatientBase(BaseModel):
    """Base patient schema."""
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., max_length=255, description="Patient email, used for notifications")
    phone: str | None = Field(None, max_length=20)


class PatientCreate(PatientBase):
    """Schema for creating a patient record."""
    pass


class PatientResponse(PatientBase):
    """Schema for patient response."""
    id: UUID
    created_at: datetime

    class Config:
        from_attributes = True


class DoctorBase(BaseModel):
    """Base doctor schema."""
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., max_length=255)
    specialization: str | None = Field(None, max_length=100)


class DoctorCreate(DoctorBase):
    """Schema for creating a doctor record."""
    is_active: bool = True


class DoctorResponse(DoctorBase):
    """Schema for doctor response."""
    id: UUID
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True
