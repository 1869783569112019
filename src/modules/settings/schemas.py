# src/modules/settings/schemas.py
"""Pydantic schemas for settings module."""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from pydantic import Field, field_validator

from src.common.schemas import CamelModel
from src.common.utils.validators import validate_phone
from src.models.models import AuditAction, TenantStatus, UserRole


# ============================================================================
# PROFILE
# ============================================================================

class ProfileUpdateRequest(CamelModel):
    name: Optional[str] = Field(default=None, min_length=2)
    phone: Optional[str] = None
    avatar: Optional[str] = None
    professional_id: Optional[str] = None
    specialties: Optional[List[str]] = None

    @field_validator("phone")
    def phone_format(cls, value):
        return validate_phone(value) if value is not None else value


class MfaDisableRequest(CamelModel):
    password: str = Field(min_length=1)


class MfaEnableResponse(CamelModel):
    secret: str
    message: str


# ============================================================================
# NOTIFICATIONS
# ============================================================================

class EmailNotifications(CamelModel):
    appointments: bool = True
    reminders: bool = True
    marketing: bool = False
    reports: bool = True


class SmsNotifications(CamelModel):
    appointments: bool = True
    reminders: bool = True


class PushNotifications(CamelModel):
    appointments: bool = True
    reminders: bool = True
    alerts: bool = True


class NotificationPreferences(CamelModel):
    email: EmailNotifications = Field(default_factory=EmailNotifications)
    sms: SmsNotifications = Field(default_factory=SmsNotifications)
    push: PushNotifications = Field(default_factory=PushNotifications)


class EmailNotificationsUpdate(CamelModel):
    appointments: Optional[bool] = None
    reminders: Optional[bool] = None
    marketing: Optional[bool] = None
    reports: Optional[bool] = None


class SmsNotificationsUpdate(CamelModel):
    appointments: Optional[bool] = None
    reminders: Optional[bool] = None


class PushNotificationsUpdate(CamelModel):
    appointments: Optional[bool] = None
    reminders: Optional[bool] = None
    alerts: Optional[bool] = None


class NotificationPreferencesUpdate(CamelModel):
    email: Optional[EmailNotificationsUpdate] = None
    sms: Optional[SmsNotificationsUpdate] = None
    push: Optional[PushNotificationsUpdate] = None


# ============================================================================
# TEAM
# ============================================================================

class UserStatusRequest(CamelModel):
    is_active: bool


class UserRoleRequest(CamelModel):
    role: UserRole


class TeamMember(CamelModel):
    id: UUID
    email: str
    name: str
    role: UserRole
    professional_id: Optional[str] = None
    specialties: List[str] = []
    phone: Optional[str] = None
    is_active: bool
    mfa_enabled: bool
    last_login_at: Optional[datetime] = None
    created_at: datetime


# ============================================================================
# AUDIT LOG
# ============================================================================

class AuditLogEntry(CamelModel):
    id: UUID
    action: AuditAction
    resource: str
    resource_id: Optional[str] = None
    user_id: Optional[UUID] = None
    user_name: str
    old_value: Optional[Any] = None
    new_value: Optional[Any] = None
    ip_address: str
    user_agent: str
    created_at: datetime


class AuditLogPage(CamelModel):
    logs: List[AuditLogEntry]
    total: int


# ============================================================================
# SYSTEM / EXPORT / INTEGRATIONS
# ============================================================================

class UsageCounter(CamelModel):
    current: int
    limit: Optional[int] = None
    percentage: Optional[float] = None


class SystemUsage(CamelModel):
    users: UsageCounter
    patients: UsageCounter
    appointments: int
    medical_records: int
    invoices: int
    products: int


class SystemTenant(CamelModel):
    id: UUID
    name: str
    status: TenantStatus
    plan_name: Optional[str] = None
    created_at: datetime


class SystemInfo(CamelModel):
    tenant: SystemTenant
    usage: SystemUsage
    version: str
    environment: str


ExportType = Literal["full", "patients", "appointments", "medical-records"]


class ExportRequest(CamelModel):
    type: ExportType = "full"


class ExportResponse(CamelModel):
    id: UUID
    type: ExportType
    status: str
    estimated_time: str
    requested_at: datetime


class IntegrationUpdateRequest(CamelModel):
    enabled: bool
    config: Dict[str, Any] = {}


class IntegrationResponse(CamelModel):
    id: str
    name: str
    description: str
    enabled: bool
    status: str
    configured_keys: List[str] = []
