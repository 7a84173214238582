import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logfire

from app.config import settings
from app.database import init_db, close_db
from app.api import api_router
from app.exceptions import ClinicError
from app.services.notification_service import drain_notifications

logging.basicConfig(level=logging.DEBUG if settings.debug else logging.INFO)
logger = logging.getLogger(__name__)

# Initialize Logfire - auto-instruments FastAPI
if settings.logfire_token:
    logfire.configure(
        token=settings.logfire_token,
        service_name="clinic-scheduling",
        environment=settings.app_env,
        console=False,  # Disable console logging (too verbose)
    )
    logger.info("✅ Logfire initialized")
else:
    # Keep logfire calls local when there is nowhere to send them
    logfire.configure(send_to_logfire=False, console=False)
    logger.info("⚠️ Logfire token not set - observability disabled")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    logger.info("🚀 Starting Clinic Scheduling API...")
    await init_db()
    logger.info("✅ Database initialized")

    yield

    # Shutdown
    logger.info("👋 Shutting down...")
    await drain_notifications()
    await close_db()
    logger.info("✅ Database connections closed")


app = FastAPI(
    title=settings.app_name,
    description="Doctor schedules, appointment availability and booking",
    version="1.0.0",
    lifespan=lifespan,
)

# Instrument FastAPI with Logfire
if settings.logfire_token:
    logfire.instrument_fastapi(app)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ClinicError)
async def clinic_error_handler(request: Request, exc: ClinicError):
    """Render domain errors; conflicts and rule rejections are normal outcomes."""
    logger.info(f"{request.method} {request.url.path} -> {exc.code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Include API routes
app.include_router(api_router, prefix="/api")


@app.get("/")
async def root():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "app": settings.app_name,
        "version": "1.0.0",
    }


@app.get("/health")
async def health_check():
    """Detailed health check."""
    return {
        "status": "healthy",
        "database": "connected",
        "notifications": "smtp" if settings.smtp_host else "log_only",
    }
