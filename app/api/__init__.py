from fastapi import APIRouter
from app.api.routes import patients, doctors, schedules, appointments

api_router = APIRouter()

api_router.include_router(patients.router, prefix="/patients", tags=["Patients"])
api_router.include_router(doctors.router, prefix="/doctors", tags=["Doctors"])
api_router.include_router(schedules.router, prefix="/schedules", tags=["Schedules"])
api_router.include_router(appointments.router, prefix="/appointments", tags=["Appointments"])
