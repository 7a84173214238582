"""Doctor routes - Minimal doctor directory endpoints."""

from fastapi import APIRouter, HTTPException
from uuid import UUID

from app.api.deps import DBSession
from app.schemas.person import DoctorCreate, DoctorResponse
from app.services.directory_service import DirectoryService

router = APIRouter()


@router.post("/", response_model=DoctorResponse, status_code=201)
async def create_doctor(doctor_data: DoctorCreate, db: DBSession):
    """Create a doctor record."""
    service = DirectoryService(db)

    if await service.email_taken(doctor_data.email):
        raise HTTPException(status_code=400, detail="An account with this email already exists")

    return await service.create_doctor(doctor_data)


@router.get("/{doctor_id}", response_model=DoctorResponse)
async def get_doctor(doctor_id: UUID, db: DBSession):
    """Get a doctor by ID."""
    service = DirectoryService(db)
    doctor = await service.get_doctor(doctor_id)

    if not doctor:
        raise HTTPException(status_code=404, detail="Doctor not found")

    return doctor
