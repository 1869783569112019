# src/modules/tenants/tenants_controller.py

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.auth.dependencies import get_current_user, get_optional_user
from src.auth.guards import super_admin_guard, tenant_admin_guard
from src.auth.schemas import AuthUser
from src.common.database.database import get_db_session
from src.common.schemas import ApiResponse
from src.common.utils.pagination import PaginationParams
from src.modules.tenants import tenants_service as service
from src.modules.tenants import schemas

router = APIRouter(prefix="/tenants", tags=["Tenants"])


@router.get("", response_model=ApiResponse[List[schemas.TenantResponse]])
async def list_tenants(
    params: PaginationParams = Depends(),
    current_user: AuthUser = Depends(super_admin_guard),
    db: AsyncSession = Depends(get_db_session),
):
    """List every clinic on the platform (super admin only)."""
    tenants, meta = await service.list_tenants(db, params)
    return ApiResponse(data=tenants, meta=meta)


@router.get("/by-subdomain/{subdomain}", response_model=ApiResponse[schemas.TenantPublicResponse])
async def get_by_subdomain(
    subdomain: str,
    current_user: Optional[AuthUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db_session),
):
    """
    Public lookup used by the login page to brand itself.

    Settings are only disclosed to members of the clinic.
    """
    tenant = await service.get_tenant_by_subdomain(db, subdomain, current_user)
    return ApiResponse(data=tenant)


@router.get("/{tenant_id}", response_model=ApiResponse[schemas.TenantResponse])
async def get_tenant(
    tenant_id: UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    tenant = await service.get_visible_tenant(db, tenant_id, current_user)
    return ApiResponse(data=await service.to_response(db, tenant))


@router.post("", response_model=ApiResponse[schemas.TenantResponse], status_code=status.HTTP_201_CREATED)
async def create_tenant(
    data: schemas.TenantCreateRequest,
    request: Request,
    current_user: AuthUser = Depends(super_admin_guard),
    db: AsyncSession = Depends(get_db_session),
):
    """
    Register a new clinic.

    - **settings**: optional; defaults to the standard clinic settings
    - **admin**: optional first tenant administrator
    """
    tenant = await service.create_tenant(db, data, current_user, request)
    return ApiResponse(data=tenant)


@router.patch("/{tenant_id}", response_model=ApiResponse[schemas.TenantResponse])
async def update_tenant(
    tenant_id: UUID,
    data: schemas.TenantUpdateRequest,
    request: Request,
    current_user: AuthUser = Depends(tenant_admin_guard),
    db: AsyncSession = Depends(get_db_session),
):
    """Partial update; settings are merged into the stored ones."""
    tenant = await service.update_tenant(db, tenant_id, data, current_user, request)
    return ApiResponse(data=tenant)
