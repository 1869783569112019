# src/modules/users/users_service.py

import logging
from typing import List, Optional, Tuple
from uuid import UUID

from fastapi import Request
from sqlalchemy import or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from src.auth.auth_service import hash_password
from src.auth.schemas import AuthUser
from src.common.audit.audit_service import log_action
from src.common.exceptions.exceptions import ConflictException, ForbiddenException, NotFoundException
from src.common.schemas import PaginationMeta
from src.common.utils.pagination import PaginationParams, paginate
from src.models.models import AuditAction, User, UserRole
from src.modules.users import schemas

logger = logging.getLogger(__name__)

PROFESSIONAL_ROLES = [UserRole.DOCTOR, UserRole.NURSE]


async def get_user(db: AsyncSession, tenant_id: UUID, user_id: UUID) -> User:
    result = await db.execute(select(User).where(User.id == user_id, User.tenant_id == tenant_id))
    user = result.scalars().first()
    if user is None:
        raise NotFoundException("User not found", "USER_NOT_FOUND")
    return user


async def ensure_email_available(
    db: AsyncSession,
    tenant_id: UUID,
    email: str,
    exclude_id: Optional[UUID] = None,
) -> None:
    query = select(User.id).where(User.tenant_id == tenant_id, User.email == email)
    if exclude_id is not None:
        query = query.where(User.id != exclude_id)
    result = await db.execute(query)
    if result.first():
        raise ConflictException("Email already in use", "EMAIL_TAKEN")


def ensure_assignable_role(current_user: AuthUser, role: Optional[UserRole]) -> None:
    if role == UserRole.SUPER_ADMIN and not current_user.is_super_admin:
        raise ForbiddenException(
            "Insufficient permissions",
            "INSUFFICIENT_PERMISSIONS",
            details={"requiredRoles": [UserRole.SUPER_ADMIN.value], "userRole": current_user.role.value},
        )


async def list_users(
    db: AsyncSession,
    tenant_id: UUID,
    params: PaginationParams,
    role: Optional[UserRole] = None,
    is_active: Optional[bool] = None,
    search: Optional[str] = None,
) -> Tuple[List[User], PaginationMeta]:
    query = select(User).where(User.tenant_id == tenant_id)
    if role is not None:
        query = query.where(User.role == role)
    if is_active is not None:
        query = query.where(User.is_active == is_active)
    if search:
        pattern = f"%{search}%"
        query = query.where(or_(User.name.ilike(pattern), User.email.ilike(pattern)))

    return await paginate(
        db,
        query,
        params,
        sort_columns={"name": User.name, "email": User.email, "role": User.role, "createdAt": User.created_at},
        default_order=[User.name.asc()],
    )


async def list_professionals(db: AsyncSession, tenant_id: UUID) -> List[User]:
    result = await db.execute(
        select(User)
        .where(User.tenant_id == tenant_id, User.is_active.is_(True), User.role.in_(PROFESSIONAL_ROLES))
        .order_by(User.name.asc())
    )
    return list(result.scalars().all())


async def create_user(
    db: AsyncSession,
    tenant_id: UUID,
    data: schemas.UserCreateRequest,
    current_user: AuthUser,
    request: Optional[Request] = None,
) -> User:
    ensure_assignable_role(current_user, data.role)
    await ensure_email_available(db, tenant_id, data.email)

    user = User(
        tenant_id=tenant_id,
        email=data.email,
        password_hash=hash_password(data.password),
        name=data.name,
        role=data.role,
        professional_id=data.professional_id,
        specialties=data.specialties,
        phone=data.phone,
        is_active=True,
    )
    db.add(user)
    await db.flush()
    await log_action(
        db,
        tenant_id=tenant_id,
        user_id=current_user.id,
        action=AuditAction.CREATE,
        resource="user",
        resource_id=user.id,
        new_value={"email": user.email, "role": user.role.value},
        request=request,
    )
    await db.commit()
    await db.refresh(user)

    logger.info("User created", extra={"userId": str(user.id), "tenantId": str(tenant_id)})
    return user


async def update_user(
    db: AsyncSession,
    tenant_id: UUID,
    user_id: UUID,
    data: schemas.UserUpdateRequest,
    current_user: AuthUser,
    request: Optional[Request] = None,
) -> User:
    user = await get_user(db, tenant_id, user_id)
    changes = data.model_dump(exclude_unset=True)

    if changes.get("email") and changes["email"] != user.email:
        await ensure_email_available(db, tenant_id, changes["email"], exclude_id=user.id)
    if "role" in changes:
        ensure_assignable_role(current_user, changes["role"])

    old_value = {"role": user.role.value, "isActive": user.is_active}
    for field, value in changes.items():
        if value is None and field in ("email", "name", "role", "specialties", "is_active"):
            continue
        setattr(user, field, value)

    if old_value != {"role": user.role.value, "isActive": user.is_active}:
        await log_action(
            db,
            tenant_id=tenant_id,
            user_id=current_user.id,
            action=AuditAction.UPDATE,
            resource="user",
            resource_id=user.id,
            old_value=old_value,
            new_value={"role": user.role.value, "isActive": user.is_active},
            request=request,
        )
    await db.commit()
    await db.refresh(user)
    return user


async def deactivate_user(
    db: AsyncSession,
    tenant_id: UUID,
    user_id: UUID,
    current_user: AuthUser,
    request: Optional[Request] = None,
) -> None:
    """Users are never hard deleted; their history stays attributable."""
    if user_id == current_user.id:
        raise ConflictException("You cannot deactivate your own account", "SELF_DEACTIVATION")

    user = await get_user(db, tenant_id, user_id)
    user.is_active = False
    await log_action(
        db,
        tenant_id=tenant_id,
        user_id=current_user.id,
        action=AuditAction.DELETE,
        resource="user",
        resource_id=user.id,
        old_value={"isActive": True},
        new_value={"isActive": False},
        request=request,
    )
    await db.commit()
    logger.info("User deactivated", extra={"userId": str(user_id), "tenantId": str(tenant_id)})
