# tests/conftest.py
import os

# Settings are read at import time, so point them at SQLite first
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["NOTIFICATIONS_ENABLED"] = "false"
os.environ["LOGFIRE_TOKEN"] = ""

from datetime import date, datetime

import logfire
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import app.models  # noqa: F401  registers every model with Base
from app.api.deps import get_clock, get_notifier
from app.database import Base, get_db
from app.models.person import Doctor, Patient
from app.schemas.schedule import ScheduleSlotIn
from app.services.notification_service import NotificationService
from app.services.schedule_service import ScheduleService

logfire.configure(send_to_logfire=False, console=False)

# Monday; the current week runs 2030-03-04 .. 2030-03-10
NOW = datetime(2030, 3, 4, 10, 0)
NEXT_MONDAY = date(2030, 3, 11)


class FrozenClock:
    """Callable clock the services read "now" from."""

    def __init__(self, now: datetime = NOW):
        self.current = now

    def __call__(self) -> datetime:
        return self.current

    def set(self, now: datetime) -> None:
        self.current = now


class RecordingNotifier(NotificationService):
    """Keeps notify calls instead of sending email."""

    def __init__(self):
        super().__init__()
        self.sent = []

    def notify_booked(self, appointment, patient, doctor):
        self.sent.append(("booked", appointment.id, patient.email))

    def notify_cancelled(self, appointment, patient, doctor):
        self.sent.append(("cancelled", appointment.id, patient.email))

    def notify_rescheduled(self, previous, appointment, patient, doctor):
        self.sent.append(("rescheduled", appointment.id, previous))


class FailingNotifier(NotificationService):
    def notify_booked(self, appointment, patient, doctor):
        raise RuntimeError("mail server down")

    def notify_cancelled(self, appointment, patient, doctor):
        raise RuntimeError("mail server down")

    def notify_rescheduled(self, previous, appointment, patient, doctor):
        raise RuntimeError("mail server down")


def slot(start, end, session_type="Morning Consultations", **kwargs) -> ScheduleSlotIn:
    return ScheduleSlotIn(start_time=start, end_time=end, session_type=session_type, **kwargs)


@pytest.fixture
async def engine(tmp_path):
    """File backed so separate sessions see each other's commits."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
async def doctor(db):
    doctor = Doctor(
        first_name="Meera",
        last_name="Iyer",
        email="meera.iyer@clinic.test",
        specialization="Cardiology",
    )
    db.add(doctor)
    await db.commit()
    return doctor


@pytest.fixture
async def patient(db):
    patient = Patient(first_name="Sam", last_name="Okafor", email="sam@example.test")
    db.add(patient)
    await db.commit()
    return patient


@pytest.fixture
async def other_patient(db):
    patient = Patient(first_name="Lena", last_name="Vogel", email="lena@example.test")
    db.add(patient)
    await db.commit()
    return patient


@pytest.fixture
async def next_week(db, doctor, clock):
    """Doctor works two morning slots and one afternoon slot next Monday."""
    schedule = await ScheduleService(db, now=clock).save_week(
        doctor.id,
        NEXT_MONDAY,
        {
            "monday": [
                slot("09:00", "10:00"),
                slot("10:00", "11:00"),
                slot("14:00", "15:00", "Afternoon Procedures"),
            ],
        },
    )
    await db.commit()
    return schedule


@pytest.fixture
async def client(session_factory, clock, notifier):
    from app.main import app

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_notifier] = lambda: notifier

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


def patient_headers(patient) -> dict:
    return {"X-Actor-Id": str(patient.id), "X-Actor-Role": "patient"}


def doctor_headers(doctor) -> dict:
    return {"X-Actor-Id": str(doctor.id), "X-Actor-Role": "doctor"}
