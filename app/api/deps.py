"""Shared route dependencies: database session and the calling actor."""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.models.person import Role
from app.services.notification_service import NotificationService, notification_service
from app.utils.timeutils import clinic_now

DBSession = Annotated[AsyncSession, Depends(get_db)]


def get_notifier() -> NotificationService:
    """Notification service dependency, overridable in tests."""
    return notification_service


Notifier = Annotated[NotificationService, Depends(get_notifier)]


def get_clock() -> Callable[[], datetime]:
    """Clinic wall clock dependency, overridable in tests."""
    return clinic_now


Clock = Annotated[Callable[[], datetime], Depends(get_clock)]


@dataclass(frozen=True)
class Actor:
    """Authenticated caller, as forwarded by the auth gateway."""
    id: UUID
    role: Role


async def get_actor(
    x_actor_id: Annotated[str | None, Header()] = None,
    x_actor_role: Annotated[str | None, Header()] = None,
) -> Actor:
    if not x_actor_id or not x_actor_role:
        raise HTTPException(status_code=401, detail="Authentication required")
    try:
        return Actor(id=UUID(x_actor_id), role=Role(x_actor_role.lower()))
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid actor credentials")


async def get_patient_actor(actor: Annotated[Actor, Depends(get_actor)]) -> Actor:
    if actor.role != Role.PATIENT:
        raise HTTPException(status_code=403, detail="Access denied. Patient authentication required.")
    return actor


async def get_doctor_actor(actor: Annotated[Actor, Depends(get_actor)]) -> Actor:
    if actor.role not in (Role.DOCTOR, Role.ADMIN):
        raise HTTPException(status_code=403, detail="Access denied. Doctor authentication required.")
    return actor


CurrentActor = Annotated[Actor, Depends(get_actor)]
CurrentPatient = Annotated[Actor, Depends(get_patient_actor)]
CurrentDoctor = Annotated[Actor, Depends(get_doctor_actor)]
