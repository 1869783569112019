# src/modules/appointments/schemas.py
"""Appointments module Pydantic schemas."""

from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import Field, field_validator

from src.common.schemas import CamelModel
from src.common.utils.global_functions import as_utc
from src.models.models import AppointmentStatus, AppointmentType, UserRole
from src.modules.patients.schemas import PatientSummary


# ============================================================================
# REQUEST SCHEMAS
# ============================================================================

class AppointmentCreateRequest(CamelModel):
    patient_id: UUID
    professional_id: UUID
    start_time: datetime
    end_time: datetime
    type: AppointmentType
    notes: Optional[str] = None
    room_id: Optional[UUID] = None

    @field_validator("start_time")
    def start_utc(cls, value):
        return as_utc(value)

    @field_validator("end_time")
    def end_after_start(cls, value, info):
        value = as_utc(value)
        start = info.data.get("start_time")
        if start is not None and value <= start:
            raise ValueError("End time must be after start time")
        return value


class AppointmentUpdateRequest(CamelModel):
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    type: Optional[AppointmentType] = None
    status: Optional[AppointmentStatus] = None
    notes: Optional[str] = None
    room_id: Optional[UUID] = None

    @field_validator("start_time")
    def start_utc(cls, value):
        return as_utc(value)

    @field_validator("end_time")
    def end_after_start(cls, value, info):
        value = as_utc(value)
        start = info.data.get("start_time")
        if value is not None and start is not None and value <= start:
            raise ValueError("End time must be after start time")
        return value


class CancelAppointmentRequest(CamelModel):
    reason: Optional[str] = Field(default=None, max_length=1000)


# ============================================================================
# RESPONSE SCHEMAS
# ============================================================================

class AppointmentProfessional(CamelModel):
    id: UUID
    name: str
    role: UserRole
    professional_id: Optional[str] = None
    specialties: List[str] = []


class RoomSummary(CamelModel):
    id: UUID
    name: str


class AppointmentResponse(CamelModel):
    id: UUID
    tenant_id: UUID
    patient_id: UUID
    professional_id: UUID
    room_id: Optional[UUID] = None
    start_time: datetime
    end_time: datetime
    type: AppointmentType
    status: AppointmentStatus
    notes: Optional[str] = None
    cancellation_reason: Optional[str] = None
    confirmed_at: Optional[datetime] = None
    checked_in_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    patient: Optional[PatientSummary] = None
    professional: Optional[AppointmentProfessional] = None
    room: Optional[RoomSummary] = None


class BusySlot(CamelModel):
    id: UUID
    start_time: datetime
    end_time: datetime
    status: AppointmentStatus


class AvailabilityResponse(CamelModel):
    date: date
    professional_id: UUID
    busy_slots: List[BusySlot]
