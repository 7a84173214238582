"""Directory service - Patient and doctor record lookups."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from uuid import UUID

from app.exceptions import NotFoundError
from app.models.person import Patient, Doctor
from app.schemas.person import PatientCreate, DoctorCreate


class DirectoryService:
    """Service class for patient and doctor records."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_patient(self, patient_data: PatientCreate) -> Patient:
        """Create a new patient record."""
        patient = Patient(**patient_data.model_dump())
        self.db.add(patient)
        await self.db.flush()
        await self.db.refresh(patient)
        return patient

    async def create_doctor(self, doctor_data: DoctorCreate) -> Doctor:
        """Create a new doctor record."""
        doctor = Doctor(**doctor_data.model_dump())
        self.db.add(doctor)
        await self.db.flush()
        await self.db.refresh(doctor)
        return doctor

    async def get_patient(self, patient_id: UUID) -> Patient | None:
        return await self.db.get(Patient, patient_id)

    async def get_doctor(self, doctor_id: UUID) -> Doctor | None:
        return await self.db.get(Doctor, doctor_id)

    async def require_patient(self, patient_id: UUID) -> Patient:
        patient = await self.get_patient(patient_id)
        if not patient:
            raise NotFoundError("Patient not found")
        return patient

    async def require_doctor(self, doctor_id: UUID) -> Doctor:
        doctor = await self.get_doctor(doctor_id)
        if not doctor:
            raise NotFoundError("Doctor not found")
        return doctor

    async def email_taken(self, email: str) -> bool:
        """Check whether any patient or doctor already uses this email."""
        for model in (Patient, Doctor):
            result = await self.db.execute(select(model.id).where(model.email == email))
            if result.first():
                return True
        return False
