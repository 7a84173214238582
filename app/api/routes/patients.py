"""Patient routes - Minimal patient directory endpoints."""

from fastapi import APIRouter, HTTPException
from uuid import UUID

from app.api.deps import DBSession
from app.schemas.person import PatientCreate, PatientResponse
from app.services.directory_service import DirectoryService

router = APIRouter()


@router.post("/", response_model=PatientResponse, status_code=201)
async def create_patient(patient_data: PatientCreate, db: DBSession):
    """Create a patient record."""
    service = DirectoryService(db)

    if await service.email_taken(patient_data.email):
        raise HTTPException(status_code=400, detail="An account with this email already exists")

    return await service.create_patient(patient_data)


@router.get("/{patient_id}", response_model=PatientResponse)
async def get_patient(patient_id: UUID, db: DBSession):
    """Get a patient by ID."""
    service = DirectoryService(db)
    patient = await service.get_patient(patient_id)

    if not patient:
        raise HTTPException(status_code=404, detail="Patient not found")

    return patient
