import uuid
from datetime import datetime, date
from enum import Enum
from sqlalchemy import String, DateTime, Date, ForeignKey, Text, Boolean, Index, text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.database import Base
from app.utils.timeutils import format_long_date, format_time_range


class AppointmentStatus(str, Enum):
    """Appointment status enum."""
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = frozenset({AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED})
OPEN_STATUSES = (AppointmentStatus.SCHEDULED.value, AppointmentStatus.CONFIRMED.value)


def is_terminal(status: str | AppointmentStatus) -> bool:
    """Completed and cancelled appointments can no longer change."""
    return AppointmentStatus(status) in TERMINAL_STATUSES


class Appointment(Base):
    """Appointment model."""

    __tablename__ = "appointments"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )
    patient_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("patients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    doctor_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("doctors.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    appointment_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)
    session_type: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        default=AppointmentStatus.SCHEDULED.value,
    )
    symptoms: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_emergency: Mapped[bool] = mapped_column(Boolean, default=False)
    booking_date: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
    )
    reschedule_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    rescheduled_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    # Relationships
    patient: Mapped["Patient"] = relationship("Patient", back_populates="appointments")
    doctor: Mapped["Doctor"] = relationship("Doctor", back_populates="appointments")

    # Prevent double-booking: one live appointment per doctor, date and time range.
    # Cancelled rows stay for history and do not hold the slot.
    __table_args__ = (
        Index(
            "uq_appointments_active_slot",
            "doctor_id",
            "appointment_date",
            "start_time",
            "end_time",
            unique=True,
            postgresql_where=text("status <> 'cancelled'"),
            sqlite_where=text("status <> 'cancelled'"),
        ),
        Index("ix_appointments_patient_date", "patient_id", "appointment_date"),
        Index("ix_appointments_date_status", "appointment_date", "status"),
    )

    @property
    def time_range(self) -> str:
        return format_time_range(self.start_time, self.end_time)

    @property
    def formatted_date(self) -> str:
        return format_long_date(self.appointment_date)

    def __repr__(self) -> str:
        return f"<Appointment {self.appointment_date} {self.start_time}-{self.end_time}>"
