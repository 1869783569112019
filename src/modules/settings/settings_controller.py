# src/modules/settings/settings_controller.py
"""Settings controller with API routes."""

from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.auth import auth_service
from src.auth.dependencies import get_current_user
from src.auth.guards import get_tenant_id, tenant_admin_guard
from src.auth.schemas import AuthUser, ChangePasswordRequest, ProfileResponse
from src.common.database.database import get_db_session
from src.common.schemas import ApiResponse, MessageResponse
from src.models.models import AuditAction
from src.modules.settings import schemas
from src.modules.settings import settings_service as service
from src.modules.tenants import tenants_service
from src.modules.tenants.schemas import TenantResponse, TenantUpdateRequest

router = APIRouter(prefix="/settings", tags=["Settings"])


# ============================================================================
# PROFILE
# ============================================================================

@router.get("/profile", response_model=ApiResponse[ProfileResponse])
async def get_profile(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    user = await auth_service.get_user_by_id(db, current_user.id)
    return ApiResponse(data=ProfileResponse.model_validate(user))


@router.patch("/profile", response_model=ApiResponse[ProfileResponse])
async def update_profile(
    data: schemas.ProfileUpdateRequest,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    user = await service.update_profile(db, current_user, data)
    return ApiResponse(data=ProfileResponse.model_validate(user))


@router.post("/profile/change-password", response_model=MessageResponse)
async def change_password(
    data: ChangePasswordRequest,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    await auth_service.change_password(current_user.id, data.current_password, data.new_password, db)
    return MessageResponse(message="Password changed successfully")


@router.post("/security/mfa/enable", response_model=ApiResponse[schemas.MfaEnableResponse])
async def enable_mfa(
    request: Request,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    return ApiResponse(data=await service.enable_mfa(db, current_user, request))


@router.post("/security/mfa/disable", response_model=MessageResponse)
async def disable_mfa(
    data: schemas.MfaDisableRequest,
    request: Request,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    await service.disable_mfa(db, current_user, data.password, request)
    return MessageResponse(message="MFA disabled successfully")


# ============================================================================
# NOTIFICATIONS
# ============================================================================

@router.get("/notifications", response_model=ApiResponse[schemas.NotificationPreferences])
async def get_notifications(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    return ApiResponse(data=await service.get_notifications(db, current_user))


@router.patch("/notifications", response_model=ApiResponse[schemas.NotificationPreferences])
async def update_notifications(
    data: schemas.NotificationPreferencesUpdate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Only the channels and flags sent are changed."""
    return ApiResponse(data=await service.update_notifications(db, current_user, data))


# ============================================================================
# CLINIC
# ============================================================================

@router.get("/tenant", response_model=ApiResponse[TenantResponse])
async def get_tenant_settings(
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    tenant = await tenants_service.get_tenant(db, tenant_id)
    return ApiResponse(data=await tenants_service.to_response(db, tenant))


@router.patch("/tenant", response_model=ApiResponse[TenantResponse])
async def update_tenant_settings(
    data: TenantUpdateRequest,
    request: Request,
    current_user: AuthUser = Depends(tenant_admin_guard),
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    """Settings are merged into the stored ones."""
    tenant = await tenants_service.update_tenant(db, tenant_id, data, current_user, request)
    return ApiResponse(data=tenant)


@router.get("/system", response_model=ApiResponse[schemas.SystemInfo])
async def get_system_info(
    current_user: AuthUser = Depends(tenant_admin_guard),
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    return ApiResponse(data=await service.get_system_info(db, tenant_id))


@router.post("/export", response_model=ApiResponse[schemas.ExportResponse], status_code=status.HTTP_202_ACCEPTED)
async def request_export(
    data: schemas.ExportRequest,
    request: Request,
    current_user: AuthUser = Depends(tenant_admin_guard),
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    export = await service.request_export(db, tenant_id, data.type, current_user, request)
    return ApiResponse(data=export)


@router.get("/integrations", response_model=ApiResponse[List[schemas.IntegrationResponse]])
async def list_integrations(
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    return ApiResponse(data=await service.list_integrations(db, tenant_id))


@router.patch("/integrations/{name}", response_model=ApiResponse[schemas.IntegrationResponse])
async def update_integration(
    name: str,
    data: schemas.IntegrationUpdateRequest,
    request: Request,
    current_user: AuthUser = Depends(tenant_admin_guard),
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    integration = await service.update_integration(db, tenant_id, name, data, current_user, request)
    return ApiResponse(data=integration)


# ============================================================================
# TEAM
# ============================================================================

@router.get("/users", response_model=ApiResponse[List[schemas.TeamMember]])
async def list_team(
    current_user: AuthUser = Depends(tenant_admin_guard),
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    return ApiResponse(data=await service.list_team(db, tenant_id))


@router.patch("/users/{user_id}/status", response_model=ApiResponse[schemas.TeamMember])
async def update_user_status(
    user_id: UUID,
    data: schemas.UserStatusRequest,
    request: Request,
    current_user: AuthUser = Depends(tenant_admin_guard),
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    user = await service.update_user_status(db, tenant_id, user_id, data.is_active, current_user, request)
    return ApiResponse(data=user)


@router.patch("/users/{user_id}/role", response_model=ApiResponse[schemas.TeamMember])
async def update_user_role(
    user_id: UUID,
    data: schemas.UserRoleRequest,
    request: Request,
    current_user: AuthUser = Depends(tenant_admin_guard),
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    user = await service.update_user_role(db, tenant_id, user_id, data.role, current_user, request)
    return ApiResponse(data=user)


@router.get("/audit-log", response_model=ApiResponse[schemas.AuditLogPage])
async def get_audit_log(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    user_id: Optional[UUID] = Query(None, alias="userId"),
    action: Optional[AuditAction] = Query(None),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    current_user: AuthUser = Depends(tenant_admin_guard),
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    page = await service.get_audit_log(db, tenant_id, start_date, end_date, user_id, action, limit, offset)
    return ApiResponse(data=page)
