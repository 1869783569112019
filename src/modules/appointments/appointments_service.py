# src/modules/appointments/appointments_service.py
"""Appointments service: scheduling, conflict detection and the status lifecycle."""

import logging
from datetime import date, datetime
from typing import Dict, List, Optional, Set, Tuple
from uuid import UUID

from fastapi import Request
from sqlalchemy import and_, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from src.auth.schemas import AuthUser
from src.common.audit.audit_service import log_action
from src.common.exceptions.exceptions import (
    BadRequestException,
    ConflictException,
    NotFoundException,
    ValidationException,
)
from src.common.schemas import PaginationMeta
from src.common.utils.global_functions import as_utc, date_range_bounds, day_bounds, utcnow
from src.common.utils.pagination import PaginationParams, paginate
from src.models.models import Appointment, AppointmentStatus, AuditAction, Patient, Room, User
from src.modules.appointments import schemas

logger = logging.getLogger(__name__)

# Statuses that no longer hold the professional's time
FREE_STATUSES = [AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW]

TRANSITIONS: Dict[AppointmentStatus, Set[AppointmentStatus]] = {
    AppointmentStatus.SCHEDULED: {
        AppointmentStatus.CONFIRMED,
        AppointmentStatus.WAITING,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.NO_SHOW,
    },
    AppointmentStatus.CONFIRMED: {
        AppointmentStatus.WAITING,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.NO_SHOW,
    },
    AppointmentStatus.WAITING: {
        AppointmentStatus.IN_PROGRESS,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.NO_SHOW,
    },
    AppointmentStatus.IN_PROGRESS: {
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED,
    },
    AppointmentStatus.COMPLETED: set(),
    AppointmentStatus.CANCELLED: set(),
    AppointmentStatus.NO_SHOW: set(),
}

TIMESTAMP_FIELDS = {
    AppointmentStatus.CONFIRMED: "confirmed_at",
    AppointmentStatus.WAITING: "checked_in_at",
    AppointmentStatus.IN_PROGRESS: "started_at",
    AppointmentStatus.COMPLETED: "completed_at",
}


# ============================================================================
# STATE MACHINE
# ============================================================================

def can_transition(current: AppointmentStatus, target: AppointmentStatus) -> bool:
    return target in TRANSITIONS[current]


def ensure_transition(current: AppointmentStatus, target: AppointmentStatus) -> None:
    if target == AppointmentStatus.CANCELLED and current == AppointmentStatus.COMPLETED:
        raise BadRequestException("Cannot cancel a completed appointment", "CANNOT_CANCEL")
    if not can_transition(current, target):
        raise BadRequestException(
            f"Cannot change appointment status from {current.value} to {target.value}",
            "INVALID_STATUS_TRANSITION",
            details={"from": current.value, "to": target.value},
        )


def apply_status(appointment: Appointment, target: AppointmentStatus, reason: Optional[str] = None) -> None:
    ensure_transition(appointment.status, target)
    appointment.status = target
    stamp = TIMESTAMP_FIELDS.get(target)
    if stamp:
        setattr(appointment, stamp, utcnow())
    if target == AppointmentStatus.CANCELLED:
        appointment.cancellation_reason = reason


# ============================================================================
# LOOKUPS
# ============================================================================

async def get_appointment(db: AsyncSession, tenant_id: UUID, appointment_id: UUID) -> Appointment:
    result = await db.execute(
        select(Appointment).where(Appointment.id == appointment_id, Appointment.tenant_id == tenant_id)
    )
    appointment = result.scalars().first()
    if appointment is None:
        raise NotFoundException("Appointment not found", "APPOINTMENT_NOT_FOUND")
    return appointment


async def ensure_patient(db: AsyncSession, tenant_id: UUID, patient_id: UUID) -> Patient:
    result = await db.execute(select(Patient).where(Patient.id == patient_id, Patient.tenant_id == tenant_id))
    patient = result.scalars().first()
    if patient is None:
        raise NotFoundException("Patient not found", "PATIENT_NOT_FOUND")
    return patient


async def ensure_professional(db: AsyncSession, tenant_id: UUID, professional_id: UUID) -> User:
    result = await db.execute(select(User).where(User.id == professional_id, User.tenant_id == tenant_id))
    professional = result.scalars().first()
    if professional is None:
        raise NotFoundException("Professional not found", "PROFESSIONAL_NOT_FOUND")
    return professional


async def ensure_room(db: AsyncSession, tenant_id: UUID, room_id: UUID) -> Room:
    result = await db.execute(select(Room).where(Room.id == room_id, Room.tenant_id == tenant_id))
    room = result.scalars().first()
    if room is None:
        raise NotFoundException("Room not found", "ROOM_NOT_FOUND")
    return room


def overlap_clause(start_time: datetime, end_time: datetime):
    """
    Half-open [start, end) overlap with an existing appointment: the new start
    falls inside it, the new end falls inside it, or the new slot covers it.
    Touching intervals (back-to-back bookings) do not overlap.
    """
    return or_(
        and_(Appointment.start_time <= start_time, Appointment.end_time > start_time),
        and_(Appointment.start_time < end_time, Appointment.end_time >= end_time),
        and_(Appointment.start_time >= start_time, Appointment.end_time <= end_time),
    )


async def find_conflict(
    db: AsyncSession,
    tenant_id: UUID,
    professional_id: UUID,
    start_time: datetime,
    end_time: datetime,
    exclude_id: Optional[UUID] = None,
) -> Optional[Appointment]:
    query = select(Appointment).where(
        Appointment.tenant_id == tenant_id,
        Appointment.professional_id == professional_id,
        Appointment.status.notin_(FREE_STATUSES),
        overlap_clause(start_time, end_time),
    )
    if exclude_id is not None:
        query = query.where(Appointment.id != exclude_id)
    result = await db.execute(query.limit(1))
    return result.scalars().first()


async def ensure_no_conflict(
    db: AsyncSession,
    tenant_id: UUID,
    professional_id: UUID,
    start_time: datetime,
    end_time: datetime,
    exclude_id: Optional[UUID] = None,
) -> None:
    conflict = await find_conflict(db, tenant_id, professional_id, start_time, end_time, exclude_id)
    if conflict is not None:
        raise ConflictException(
            "Professional already has an appointment at this time",
            "APPOINTMENT_CONFLICT",
            details={"conflictingAppointmentId": str(conflict.id)},
        )


# ============================================================================
# QUERIES
# ============================================================================

async def list_appointments(
    db: AsyncSession,
    tenant_id: UUID,
    params: PaginationParams,
    professional_id: Optional[UUID] = None,
    patient_id: Optional[UUID] = None,
    status: Optional[AppointmentStatus] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> Tuple[List[Appointment], PaginationMeta]:
    query = select(Appointment).where(Appointment.tenant_id == tenant_id)
    if professional_id is not None:
        query = query.where(Appointment.professional_id == professional_id)
    if patient_id is not None:
        query = query.where(Appointment.patient_id == patient_id)
    if status is not None:
        query = query.where(Appointment.status == status)
    if start_date is not None:
        query = query.where(Appointment.start_time >= day_bounds(start_date)[0])
    if end_date is not None:
        query = query.where(Appointment.start_time < day_bounds(end_date)[1])

    return await paginate(
        db,
        query,
        params,
        sort_columns={
            "startTime": Appointment.start_time,
            "createdAt": Appointment.created_at,
            "status": Appointment.status,
        },
        default_order=[Appointment.start_time.asc()],
    )


async def list_today(
    db: AsyncSession,
    tenant_id: UUID,
    professional_id: Optional[UUID] = None,
) -> List[Appointment]:
    start, end = day_bounds(utcnow().date())
    query = select(Appointment).where(
        Appointment.tenant_id == tenant_id,
        Appointment.start_time >= start,
        Appointment.start_time < end,
    )
    if professional_id is not None:
        query = query.where(Appointment.professional_id == professional_id)
    result = await db.execute(query.order_by(Appointment.start_time.asc()))
    return list(result.scalars().all())


async def get_availability(
    db: AsyncSession,
    tenant_id: UUID,
    professional_id: UUID,
    day: date,
) -> schemas.AvailabilityResponse:
    """Busy intervals of a professional on ``day``; free slots are left to the client."""
    await ensure_professional(db, tenant_id, professional_id)
    start, end = day_bounds(day)
    result = await db.execute(
        select(Appointment)
        .where(
            Appointment.tenant_id == tenant_id,
            Appointment.professional_id == professional_id,
            Appointment.status.notin_(FREE_STATUSES),
            Appointment.start_time >= start,
            Appointment.start_time < end,
        )
        .order_by(Appointment.start_time.asc())
    )
    return schemas.AvailabilityResponse(
        date=day,
        professional_id=professional_id,
        busy_slots=[schemas.BusySlot.model_validate(a) for a in result.scalars().all()],
    )


# ============================================================================
# COMMANDS
# ============================================================================

async def create_appointment(
    db: AsyncSession,
    tenant_id: UUID,
    data: schemas.AppointmentCreateRequest,
    current_user: AuthUser,
    request: Optional[Request] = None,
) -> Appointment:
    await ensure_patient(db, tenant_id, data.patient_id)
    await ensure_professional(db, tenant_id, data.professional_id)
    if data.room_id is not None:
        await ensure_room(db, tenant_id, data.room_id)

    await ensure_no_conflict(db, tenant_id, data.professional_id, data.start_time, data.end_time)

    appointment = Appointment(
        tenant_id=tenant_id,
        patient_id=data.patient_id,
        professional_id=data.professional_id,
        room_id=data.room_id,
        start_time=data.start_time,
        end_time=data.end_time,
        type=data.type,
        notes=data.notes,
        status=AppointmentStatus.SCHEDULED,
    )
    db.add(appointment)
    await db.flush()
    await log_action(
        db,
        tenant_id=tenant_id,
        user_id=current_user.id,
        action=AuditAction.CREATE,
        resource="appointment",
        resource_id=appointment.id,
        request=request,
    )
    await db.commit()
    await db.refresh(appointment)

    logger.info(
        "Appointment created",
        extra={"appointmentId": str(appointment.id), "professionalId": str(data.professional_id)},
    )
    return appointment


async def update_appointment(
    db: AsyncSession,
    tenant_id: UUID,
    appointment_id: UUID,
    data: schemas.AppointmentUpdateRequest,
    current_user: AuthUser,
    request: Optional[Request] = None,
) -> Appointment:
    appointment = await get_appointment(db, tenant_id, appointment_id)
    changes = data.model_dump(exclude_unset=True)

    start_time = data.start_time or as_utc(appointment.start_time)
    end_time = data.end_time or as_utc(appointment.end_time)
    if "start_time" in changes or "end_time" in changes:
        if end_time <= start_time:
            raise ValidationException(
                [{"field": "endTime", "message": "End time must be after start time", "code": "custom"}]
            )
        await ensure_no_conflict(
            db, tenant_id, appointment.professional_id, start_time, end_time, exclude_id=appointment.id
        )
        appointment.start_time = start_time
        appointment.end_time = end_time

    if data.room_id is not None:
        await ensure_room(db, tenant_id, data.room_id)
        appointment.room_id = data.room_id
    if data.type is not None:
        appointment.type = data.type
    if "notes" in changes:
        appointment.notes = data.notes
    if data.status is not None and data.status != appointment.status:
        apply_status(appointment, data.status)

    await log_action(
        db,
        tenant_id=tenant_id,
        user_id=current_user.id,
        action=AuditAction.UPDATE,
        resource="appointment",
        resource_id=appointment.id,
        new_value={"fields": sorted(changes)},
        request=request,
    )
    await db.commit()
    await db.refresh(appointment)
    return appointment


async def change_status(
    db: AsyncSession,
    tenant_id: UUID,
    appointment_id: UUID,
    target: AppointmentStatus,
    current_user: AuthUser,
    request: Optional[Request] = None,
    reason: Optional[str] = None,
) -> Appointment:
    """Move an appointment along its lifecycle, stamping the matching timestamp."""
    appointment = await get_appointment(db, tenant_id, appointment_id)
    previous = appointment.status
    apply_status(appointment, target, reason)

    await log_action(
        db,
        tenant_id=tenant_id,
        user_id=current_user.id,
        action=AuditAction.UPDATE,
        resource="appointment",
        resource_id=appointment.id,
        old_value={"status": previous.value},
        new_value={"status": target.value},
        request=request,
    )
    await db.commit()
    await db.refresh(appointment)

    logger.info(
        "Appointment status changed",
        extra={"appointmentId": str(appointment.id), "from": previous.value, "to": target.value},
    )
    return appointment
