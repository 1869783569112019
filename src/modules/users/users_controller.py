# src/modules/users/users_controller.py

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.auth.guards import get_tenant_id, tenant_admin_guard
from src.auth.schemas import AuthUser
from src.common.database.database import get_db_session
from src.common.schemas import ApiResponse, MessageResponse
from src.common.utils.pagination import PaginationParams
from src.models.models import UserRole
from src.modules.users import users_service as service
from src.modules.users import schemas

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("", response_model=ApiResponse[List[schemas.UserResponse]])
async def list_users(
    params: PaginationParams = Depends(),
    role: Optional[UserRole] = Query(None),
    is_active: Optional[bool] = Query(None, alias="isActive"),
    search: Optional[str] = Query(None),
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    users, meta = await service.list_users(db, tenant_id, params, role, is_active, search)
    return ApiResponse(data=users, meta=meta)


@router.get("/list/professionals", response_model=ApiResponse[List[schemas.ProfessionalResponse]])
async def list_professionals(
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    """Active doctors and nurses, for scheduling pickers."""
    return ApiResponse(data=await service.list_professionals(db, tenant_id))


@router.get("/{user_id}", response_model=ApiResponse[schemas.UserResponse])
async def get_user(
    user_id: UUID,
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    return ApiResponse(data=await service.get_user(db, tenant_id, user_id))


@router.post("", response_model=ApiResponse[schemas.UserResponse], status_code=status.HTTP_201_CREATED)
async def create_user(
    data: schemas.UserCreateRequest,
    request: Request,
    current_user: AuthUser = Depends(tenant_admin_guard),
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    user = await service.create_user(db, tenant_id, data, current_user, request)
    return ApiResponse(data=user)


@router.patch("/{user_id}", response_model=ApiResponse[schemas.UserResponse])
async def update_user(
    user_id: UUID,
    data: schemas.UserUpdateRequest,
    request: Request,
    current_user: AuthUser = Depends(tenant_admin_guard),
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    user = await service.update_user(db, tenant_id, user_id, data, current_user, request)
    return ApiResponse(data=user)


@router.delete("/{user_id}", response_model=MessageResponse)
async def deactivate_user(
    user_id: UUID,
    request: Request,
    current_user: AuthUser = Depends(tenant_admin_guard),
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    await service.deactivate_user(db, tenant_id, user_id, current_user, request)
    return MessageResponse(message="User deactivated successfully")
