# src/modules/settings/settings_service.py
"""Service layer for settings business logic."""

import logging
import secrets
import uuid
from datetime import date
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import Request
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from src.auth.auth_service import get_user_by_id, verify_password
from src.auth.schemas import AuthUser
from src.common.audit.audit_service import log_action
from src.common.config import settings
from src.common.exceptions.exceptions import BadRequestException, ConflictException, NotFoundException
from src.common.utils.global_functions import day_bounds, deep_merge, utcnow
from src.models.models import (
    Appointment,
    AuditAction,
    AuditLog,
    Invoice,
    MedicalRecord,
    Patient,
    Product,
    User,
    UserRole,
)
from src.modules.settings import schemas
from src.modules.tenants import tenants_service
from src.modules.users.users_service import get_user

logger = logging.getLogger(__name__)

EXPORT_ESTIMATED_TIME = "30 minutes"

INTEGRATIONS = {
    "whatsapp": ("WhatsApp Business", "Envio de confirmacoes e lembretes via WhatsApp"),
    "email": ("Email (SMTP)", "Configuracao de servidor de email para notificacoes"),
    "payment": ("Gateway de Pagamento", "Integracao com Stripe, PagSeguro ou Mercado Pago"),
    "calendar": ("Google Calendar", "Sincronizacao de agenda com Google Calendar"),
    "tiss": ("TISS/ANS", "Integracao com operadoras de saude"),
}


# ============================================================================
# PROFILE
# ============================================================================

async def update_profile(db: AsyncSession, current_user: AuthUser, data: schemas.ProfileUpdateRequest) -> User:
    user = await get_user_by_id(db, current_user.id)
    for field, value in data.model_dump(exclude_unset=True).items():
        if value is None and field in ("name", "specialties"):
            continue
        setattr(user, field, value)
    await db.commit()
    await db.refresh(user)
    logger.info("Profile updated", extra={"userId": str(user.id)})
    return user


async def enable_mfa(db: AsyncSession, current_user: AuthUser, request: Optional[Request] = None) -> schemas.MfaEnableResponse:
    user = await get_user_by_id(db, current_user.id)
    secret = secrets.token_hex(20)
    user.mfa_enabled = True
    user.mfa_secret = secret
    await log_action(
        db,
        tenant_id=user.tenant_id,
        user_id=user.id,
        action=AuditAction.UPDATE,
        resource="user_mfa",
        resource_id=user.id,
        new_value={"mfaEnabled": True},
        request=request,
    )
    await db.commit()
    return schemas.MfaEnableResponse(
        secret=secret,
        message="MFA enabled successfully. Save this secret in your authenticator app.",
    )


async def disable_mfa(
    db: AsyncSession,
    current_user: AuthUser,
    password: str,
    request: Optional[Request] = None,
) -> None:
    """The account password is required to turn MFA off."""
    user = await get_user_by_id(db, current_user.id)
    if not verify_password(password, user.password_hash):
        raise BadRequestException("Password is incorrect", "INVALID_PASSWORD")

    user.mfa_enabled = False
    user.mfa_secret = None
    await log_action(
        db,
        tenant_id=user.tenant_id,
        user_id=user.id,
        action=AuditAction.UPDATE,
        resource="user_mfa",
        resource_id=user.id,
        new_value={"mfaEnabled": False},
        request=request,
    )
    await db.commit()


# ============================================================================
# NOTIFICATIONS
# ============================================================================

def notification_preferences(user: User) -> schemas.NotificationPreferences:
    """Stored preferences over the defaults."""
    defaults = schemas.NotificationPreferences().model_dump(by_alias=True)
    stored = (user.preferences or {}).get("notifications") or {}
    return schemas.NotificationPreferences.model_validate(deep_merge(defaults, stored))


async def get_notifications(db: AsyncSession, current_user: AuthUser) -> schemas.NotificationPreferences:
    return notification_preferences(await get_user_by_id(db, current_user.id))


async def update_notifications(
    db: AsyncSession,
    current_user: AuthUser,
    data: schemas.NotificationPreferencesUpdate,
) -> schemas.NotificationPreferences:
    user = await get_user_by_id(db, current_user.id)
    current = notification_preferences(user).model_dump(by_alias=True)
    patch = data.model_dump(by_alias=True, exclude_none=True)
    preferences = dict(user.preferences or {})
    preferences["notifications"] = deep_merge(current, patch)
    user.preferences = preferences
    await db.commit()
    await db.refresh(user)
    return notification_preferences(user)


# ============================================================================
# TEAM
# ============================================================================

async def list_team(db: AsyncSession, tenant_id: UUID) -> List[User]:
    result = await db.execute(select(User).where(User.tenant_id == tenant_id).order_by(User.name.asc()))
    return list(result.scalars().all())


async def update_user_status(
    db: AsyncSession,
    tenant_id: UUID,
    user_id: UUID,
    is_active: bool,
    current_user: AuthUser,
    request: Optional[Request] = None,
) -> User:
    if user_id == current_user.id:
        raise ConflictException("You cannot change the status of your own account", "SELF_DEACTIVATION")

    user = await get_user(db, tenant_id, user_id)
    previous = user.is_active
    user.is_active = is_active
    await log_action(
        db,
        tenant_id=tenant_id,
        user_id=current_user.id,
        action=AuditAction.UPDATE,
        resource="user",
        resource_id=user.id,
        old_value={"isActive": previous},
        new_value={"isActive": is_active},
        request=request,
    )
    await db.commit()
    await db.refresh(user)

    logger.info("User status changed", extra={"userId": str(user.id), "isActive": is_active})
    return user


async def update_user_role(
    db: AsyncSession,
    tenant_id: UUID,
    user_id: UUID,
    role: UserRole,
    current_user: AuthUser,
    request: Optional[Request] = None,
) -> User:
    if role == UserRole.SUPER_ADMIN:
        raise BadRequestException("Invalid role", "INVALID_ROLE")

    user = await get_user(db, tenant_id, user_id)
    previous = user.role
    user.role = role
    await log_action(
        db,
        tenant_id=tenant_id,
        user_id=current_user.id,
        action=AuditAction.UPDATE,
        resource="user",
        resource_id=user.id,
        old_value={"role": previous.value},
        new_value={"role": role.value},
        request=request,
    )
    await db.commit()
    await db.refresh(user)

    logger.info("User role changed", extra={"userId": str(user.id), "role": role.value})
    return user


# ============================================================================
# AUDIT LOG
# ============================================================================

async def get_audit_log(
    db: AsyncSession,
    tenant_id: UUID,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    user_id: Optional[UUID] = None,
    action: Optional[AuditAction] = None,
    limit: int = 50,
    offset: int = 0,
) -> schemas.AuditLogPage:
    conditions = [AuditLog.tenant_id == tenant_id]
    if start_date is not None:
        conditions.append(AuditLog.created_at >= day_bounds(start_date)[0])
    if end_date is not None:
        conditions.append(AuditLog.created_at < day_bounds(end_date)[1])
    if user_id is not None:
        conditions.append(AuditLog.user_id == user_id)
    if action is not None:
        conditions.append(AuditLog.action == action)

    total = await db.execute(select(func.count(AuditLog.id)).where(*conditions))
    result = await db.execute(
        select(AuditLog, User.name)
        .outerjoin(User, User.id == AuditLog.user_id)
        .where(*conditions)
        .order_by(AuditLog.created_at.desc())
        .offset(offset)
        .limit(limit)
    )

    logs = [
        schemas.AuditLogEntry(
            id=entry.id,
            action=entry.action,
            resource=entry.resource,
            resource_id=entry.resource_id,
            user_id=entry.user_id,
            user_name=user_name or "Unknown",
            old_value=entry.old_value,
            new_value=entry.new_value,
            ip_address=entry.ip_address,
            user_agent=entry.user_agent,
            created_at=entry.created_at,
        )
        for entry, user_name in result.all()
    ]
    return schemas.AuditLogPage(logs=logs, total=total.scalar() or 0)


# ============================================================================
# SYSTEM / EXPORT
# ============================================================================

async def count_rows(db: AsyncSession, model, tenant_id: UUID) -> int:
    result = await db.execute(select(func.count(model.id)).where(model.tenant_id == tenant_id))
    return result.scalar() or 0


def usage(current: int, limit: Optional[int]) -> schemas.UsageCounter:
    return schemas.UsageCounter(
        current=current,
        limit=limit,
        percentage=round(current / limit * 100, 2) if limit else None,
    )


async def get_system_info(db: AsyncSession, tenant_id: UUID) -> schemas.SystemInfo:
    tenant = await tenants_service.get_tenant(db, tenant_id)
    plan = tenant.plan

    return schemas.SystemInfo(
        tenant=schemas.SystemTenant(
            id=tenant.id,
            name=tenant.name,
            status=tenant.status,
            plan_name=plan.name if plan else None,
            created_at=tenant.created_at,
        ),
        usage=schemas.SystemUsage(
            users=usage(await count_rows(db, User, tenant_id), plan.max_users if plan else None),
            patients=usage(await count_rows(db, Patient, tenant_id), plan.max_patients if plan else None),
            appointments=await count_rows(db, Appointment, tenant_id),
            medical_records=await count_rows(db, MedicalRecord, tenant_id),
            invoices=await count_rows(db, Invoice, tenant_id),
            products=await count_rows(db, Product, tenant_id),
        ),
        version=settings.APP_VERSION,
        environment=settings.APP_ENV,
    )


async def request_export(
    db: AsyncSession,
    tenant_id: UUID,
    export_type: str,
    current_user: AuthUser,
    request: Optional[Request] = None,
) -> schemas.ExportResponse:
    """
    Accept a data export request.

    The export itself is produced out of band; only the request is recorded.
    """
    export = schemas.ExportResponse(
        id=uuid.uuid4(),
        type=export_type,
        status="pending",
        estimated_time=EXPORT_ESTIMATED_TIME,
        requested_at=utcnow(),
    )
    await log_action(
        db,
        tenant_id=tenant_id,
        user_id=current_user.id,
        action=AuditAction.EXPORT,
        resource="data_export",
        resource_id=export.id,
        new_value={"type": export_type},
        request=request,
    )
    await db.commit()

    logger.info("Data export requested", extra={"exportId": str(export.id), "type": export_type})
    return export


# ============================================================================
# INTEGRATIONS
# ============================================================================

def integration_views(tenant_settings: Dict[str, Any]) -> List[schemas.IntegrationResponse]:
    stored = tenant_settings.get("integrations") or {}
    views = []
    for key, (name, description) in INTEGRATIONS.items():
        entry = stored.get(key) or {}
        config = entry.get("config") or {}
        views.append(schemas.IntegrationResponse(
            id=key,
            name=name,
            description=description,
            enabled=bool(entry.get("enabled")),
            status="configured" if config else "not_configured",
            configured_keys=sorted(config),
        ))
    return views


async def list_integrations(db: AsyncSession, tenant_id: UUID) -> List[schemas.IntegrationResponse]:
    tenant = await tenants_service.get_tenant(db, tenant_id)
    return integration_views(tenants_service.build_settings(tenant.settings))


async def update_integration(
    db: AsyncSession,
    tenant_id: UUID,
    name: str,
    data: schemas.IntegrationUpdateRequest,
    current_user: AuthUser,
    request: Optional[Request] = None,
) -> schemas.IntegrationResponse:
    if name not in INTEGRATIONS:
        raise NotFoundException("Integration not found", "INTEGRATION_NOT_FOUND")

    tenant = await tenants_service.get_tenant(db, tenant_id)
    tenant_settings = tenants_service.build_settings(tenant.settings)
    integrations = dict(tenant_settings.get("integrations") or {})
    integrations[name] = {"enabled": data.enabled, "config": data.config}
    tenant.settings = {**tenant_settings, "integrations": integrations}

    await log_action(
        db,
        tenant_id=tenant_id,
        user_id=current_user.id,
        action=AuditAction.UPDATE,
        resource="integration",
        resource_id=name,
        new_value={"enabled": data.enabled, "configKeys": sorted(data.config)},
        request=request,
    )
    await db.commit()
    await db.refresh(tenant)

    logger.info("Integration updated", extra={"integration": name, "enabled": data.enabled})
    return next(view for view in integration_views(tenant.settings) if view.id == name)
