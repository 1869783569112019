# src/modules/tenants/schemas.py
"""Tenants module Pydantic schemas."""

from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import EmailStr, Field, field_validator

from src.common.schemas import CamelModel
from src.common.utils.validators import validate_cnpj, validate_hour_minute, validate_subdomain
from src.models.models import TenantStatus


# ============================================================================
# SETTINGS
# ============================================================================

class WorkingHours(CamelModel):
    start: str = "08:00"
    end: str = "18:00"

    @field_validator("start", "end")
    def hour_minute(cls, value):
        return validate_hour_minute(value)


class TenantFeatures(CamelModel):
    telemedicine: bool = False
    billing: bool = True
    inventory: bool = True
    multi_location: bool = False


class TenantSettings(CamelModel):
    """Clinic-wide preferences stored on the tenant row."""
    timezone: str = "America/Sao_Paulo"
    currency: str = "BRL"
    language: str = "pt-BR"
    working_hours: WorkingHours = Field(default_factory=WorkingHours)
    appointment_duration: int = Field(default=30, ge=5, le=480)
    features: TenantFeatures = Field(default_factory=TenantFeatures)
    integrations: Dict[str, Dict[str, Any]] = Field(default_factory=dict)


class WorkingHoursUpdate(CamelModel):
    start: Optional[str] = None
    end: Optional[str] = None

    @field_validator("start", "end")
    def hour_minute(cls, value):
        return validate_hour_minute(value) if value is not None else value


class TenantFeaturesUpdate(CamelModel):
    telemedicine: Optional[bool] = None
    billing: Optional[bool] = None
    inventory: Optional[bool] = None
    multi_location: Optional[bool] = None


class TenantSettingsUpdate(CamelModel):
    timezone: Optional[str] = None
    currency: Optional[str] = None
    language: Optional[str] = None
    working_hours: Optional[WorkingHoursUpdate] = None
    appointment_duration: Optional[int] = Field(default=None, ge=5, le=480)
    features: Optional[TenantFeaturesUpdate] = None


# ============================================================================
# REQUEST SCHEMAS
# ============================================================================

class TenantAdminCreate(CamelModel):
    """Optional first administrator created together with the tenant."""
    name: str = Field(min_length=2)
    email: EmailStr
    password: str = Field(min_length=8)


class TenantCreateRequest(CamelModel):
    name: str = Field(min_length=2)
    document: str
    subdomain: str = Field(min_length=3, max_length=30)
    plan_id: Optional[UUID] = None
    status: TenantStatus = TenantStatus.TRIAL
    settings: Optional[TenantSettings] = None
    admin: Optional[TenantAdminCreate] = None

    @field_validator("document")
    def cnpj(cls, value):
        return validate_cnpj(value)

    @field_validator("subdomain")
    def subdomain_format(cls, value):
        return validate_subdomain(value)


class TenantUpdateRequest(CamelModel):
    name: Optional[str] = Field(default=None, min_length=2)
    status: Optional[TenantStatus] = None
    plan_id: Optional[UUID] = None
    settings: Optional[TenantSettingsUpdate] = None


# ============================================================================
# RESPONSE SCHEMAS
# ============================================================================

class PlanSummary(CamelModel):
    id: UUID
    name: str
    max_users: int
    max_patients: int


class TenantCounts(CamelModel):
    users: int = 0
    patients: int = 0
    appointments: int = 0


class TenantResponse(CamelModel):
    id: UUID
    name: str
    document: str
    subdomain: str
    status: TenantStatus
    settings: Dict[str, Any]
    plan: Optional[PlanSummary] = None
    counts: Optional[TenantCounts] = None
    created_at: datetime
    updated_at: datetime


class TenantPublicResponse(CamelModel):
    """What anonymous callers learn about a clinic from its subdomain."""
    id: UUID
    name: str
    subdomain: str
    status: TenantStatus
    settings: Optional[Dict[str, Any]] = None
