# src/modules/tenants/tenants_service.py

import logging
from typing import Any, Dict, Optional, Tuple
from uuid import UUID

from fastapi import Request
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from src.auth.auth_service import hash_password
from src.auth.schemas import AuthUser
from src.common.audit.audit_service import log_action
from src.common.exceptions.exceptions import ConflictException, ForbiddenException, NotFoundException
from src.common.schemas import PaginationMeta
from src.common.utils.global_functions import deep_merge
from src.common.utils.pagination import PaginationParams, paginate
from src.models.models import Appointment, AuditAction, Patient, Plan, Tenant, User, UserRole
from src.modules.tenants import schemas

logger = logging.getLogger(__name__)


def default_settings() -> Dict[str, Any]:
    return schemas.TenantSettings().model_dump(by_alias=True)


def build_settings(stored: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Stored settings laid over the defaults, so older rows gain newly introduced keys."""
    return deep_merge(default_settings(), stored or {})


async def count_tenant_rows(db: AsyncSession, tenant_id: UUID) -> schemas.TenantCounts:
    counts = {}
    for key, model in (("users", User), ("patients", Patient), ("appointments", Appointment)):
        result = await db.execute(select(func.count(model.id)).where(model.tenant_id == tenant_id))
        counts[key] = result.scalar() or 0
    return schemas.TenantCounts(**counts)


async def to_response(db: AsyncSession, tenant: Tenant, with_counts: bool = True) -> schemas.TenantResponse:
    response = schemas.TenantResponse.model_validate(tenant)
    response.settings = build_settings(tenant.settings)
    if with_counts:
        response.counts = await count_tenant_rows(db, tenant.id)
    return response


async def get_tenant(db: AsyncSession, tenant_id: UUID) -> Tenant:
    tenant = await db.get(Tenant, tenant_id)
    if tenant is None:
        raise NotFoundException("Tenant not found", "TENANT_NOT_FOUND")
    return tenant


async def get_visible_tenant(db: AsyncSession, tenant_id: UUID, current_user: AuthUser) -> Tenant:
    """Non-super-admins only ever see their own clinic; anything else looks missing."""
    if not current_user.is_super_admin and current_user.tenant_id != tenant_id:
        raise NotFoundException("Tenant not found", "TENANT_NOT_FOUND")
    return await get_tenant(db, tenant_id)


async def list_tenants(db: AsyncSession, params: PaginationParams) -> Tuple[list, PaginationMeta]:
    query = select(Tenant)
    tenants, meta = await paginate(
        db,
        query,
        params,
        sort_columns={"name": Tenant.name, "createdAt": Tenant.created_at, "subdomain": Tenant.subdomain},
        default_order=[Tenant.created_at.desc()],
    )
    return [await to_response(db, tenant) for tenant in tenants], meta


async def get_tenant_by_subdomain(
    db: AsyncSession,
    subdomain: str,
    current_user: Optional[AuthUser] = None,
) -> schemas.TenantPublicResponse:
    result = await db.execute(select(Tenant).where(Tenant.subdomain == subdomain.lower()))
    tenant = result.scalars().first()
    if tenant is None:
        raise NotFoundException("Tenant not found", "TENANT_NOT_FOUND")

    response = schemas.TenantPublicResponse.model_validate(tenant)
    response.settings = None
    if current_user is not None and (current_user.is_super_admin or current_user.tenant_id == tenant.id):
        response.settings = build_settings(tenant.settings)
    return response


async def create_tenant(
    db: AsyncSession,
    data: schemas.TenantCreateRequest,
    current_user: AuthUser,
    request: Optional[Request] = None,
) -> schemas.TenantResponse:
    result = await db.execute(select(Tenant).where(Tenant.subdomain == data.subdomain))
    if result.scalars().first():
        raise ConflictException("Subdomain already in use", "SUBDOMAIN_TAKEN")

    result = await db.execute(select(Tenant).where(Tenant.document == data.document))
    if result.scalars().first():
        raise ConflictException("Document already registered", "DOCUMENT_TAKEN")

    if data.plan_id is not None and await db.get(Plan, data.plan_id) is None:
        raise NotFoundException("Plan not found", "PLAN_NOT_FOUND")

    settings = (data.settings or schemas.TenantSettings()).model_dump(by_alias=True)
    tenant = Tenant(
        name=data.name,
        document=data.document,
        subdomain=data.subdomain,
        plan_id=data.plan_id,
        status=data.status,
        settings=settings,
    )
    db.add(tenant)
    await db.flush()

    if data.admin is not None:
        db.add(User(
            tenant_id=tenant.id,
            email=data.admin.email,
            password_hash=hash_password(data.admin.password),
            name=data.admin.name,
            role=UserRole.TENANT_ADMIN,
            is_active=True,
        ))

    await log_action(
        db,
        tenant_id=tenant.id,
        user_id=current_user.id,
        action=AuditAction.CREATE,
        resource="tenant",
        resource_id=str(tenant.id),
        new_value={"name": tenant.name, "subdomain": tenant.subdomain},
        request=request,
    )
    await db.commit()
    await db.refresh(tenant)

    logger.info("Tenant created", extra={"tenantId": str(tenant.id), "subdomain": tenant.subdomain})
    return await to_response(db, tenant)


async def update_tenant(
    db: AsyncSession,
    tenant_id: UUID,
    data: schemas.TenantUpdateRequest,
    current_user: AuthUser,
    request: Optional[Request] = None,
) -> schemas.TenantResponse:
    tenant = await get_visible_tenant(db, tenant_id, current_user)
    changes = data.model_dump(exclude_unset=True)

    if ("status" in changes or "plan_id" in changes) and not current_user.is_super_admin:
        raise ForbiddenException("Only super admins can change status or plan", "INSUFFICIENT_PERMISSIONS")

    old_value = {"name": tenant.name, "status": tenant.status.value, "settings": tenant.settings}

    if data.name is not None:
        tenant.name = data.name
    if data.status is not None:
        tenant.status = data.status
    if "plan_id" in changes:
        if data.plan_id is not None and await db.get(Plan, data.plan_id) is None:
            raise NotFoundException("Plan not found", "PLAN_NOT_FOUND")
        tenant.plan_id = data.plan_id
    if data.settings is not None:
        patch = data.settings.model_dump(by_alias=True, exclude_unset=True)
        tenant.settings = deep_merge(build_settings(tenant.settings), patch)

    await log_action(
        db,
        tenant_id=tenant.id,
        user_id=current_user.id,
        action=AuditAction.UPDATE,
        resource="tenant",
        resource_id=str(tenant.id),
        old_value=old_value,
        new_value={"name": tenant.name, "status": tenant.status.value, "settings": tenant.settings},
        request=request,
    )
    await db.commit()
    await db.refresh(tenant)

    logger.info("Tenant updated", extra={"tenantId": str(tenant.id)})
    return await to_response(db, tenant)
