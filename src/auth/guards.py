# src/auth/guards.py
"""
Role and tenant guards.

Role guards are callable dependency classes parameterised by the allowed roles;
tenant guards resolve the tenant a request acts on and refuse cross-tenant
access for everyone but super admins.
"""

from typing import Callable, Iterable, List, Optional
from uuid import UUID

from fastapi import Depends, Request

from src.auth.dependencies import get_current_user, get_optional_user
from src.auth.schemas import AuthUser
from src.common.exceptions.exceptions import (
    BadRequestException,
    ForbiddenException,
    UnauthorizedException,
)
from src.models.models import UserRole

TENANT_HEADER = "X-Tenant-Id"


# ============================================================================
# ROLE GUARDS
# ============================================================================

def check_role(user: Optional[AuthUser], allowed_roles: Iterable[UserRole]) -> AuthUser:
    allowed = list(allowed_roles)
    if user is None:
        raise UnauthorizedException("Not authenticated", "NOT_AUTHENTICATED")
    if user.role not in allowed:
        raise ForbiddenException(
            "Insufficient permissions",
            "INSUFFICIENT_PERMISSIONS",
            details={
                "requiredRoles": [role.value for role in allowed],
                "userRole": user.role.value,
            },
        )
    return user


class RequireRole:
    """Dependency that admits only identities holding one of ``roles``."""

    def __init__(self, roles: List[UserRole]):
        self.roles = roles

    async def __call__(self, current_user: AuthUser = Depends(get_current_user)) -> AuthUser:
        return check_role(current_user, self.roles)


SUPER_ADMIN_ROLES = [UserRole.SUPER_ADMIN]
TENANT_ADMIN_ROLES = SUPER_ADMIN_ROLES + [UserRole.TENANT_ADMIN]
DOCTOR_ROLES = TENANT_ADMIN_ROLES + [UserRole.DOCTOR]
NURSE_ROLES = DOCTOR_ROLES + [UserRole.NURSE]
RECEPTIONIST_ROLES = NURSE_ROLES + [UserRole.RECEPTIONIST]
BILLING_ROLES = TENANT_ADMIN_ROLES + [UserRole.BILLING_ADMIN]

super_admin_guard = RequireRole(SUPER_ADMIN_ROLES)
tenant_admin_guard = RequireRole(TENANT_ADMIN_ROLES)
admin_guard = tenant_admin_guard
doctor_guard = RequireRole(DOCTOR_ROLES)
nurse_guard = RequireRole(NURSE_ROLES)
receptionist_guard = RequireRole(RECEPTIONIST_ROLES)
billing_guard = RequireRole(BILLING_ROLES)


# ============================================================================
# TENANT GUARDS
# ============================================================================

def parse_tenant_id(value) -> UUID:
    try:
        return value if isinstance(value, UUID) else UUID(str(value))
    except (TypeError, ValueError):
        raise BadRequestException("Invalid tenant id", "INVALID_TENANT_ID")


def check_tenant_access(user: Optional[AuthUser], tenant_id: Optional[UUID]) -> UUID:
    if tenant_id is None:
        raise ForbiddenException("No tenant context", "NO_TENANT_CONTEXT")
    if user is not None and not user.is_super_admin and user.tenant_id != tenant_id:
        raise ForbiddenException("Access denied to this tenant", "TENANT_ACCESS_DENIED")
    return tenant_id


async def get_tenant_id(
    request: Request,
    current_user: AuthUser = Depends(get_current_user),
) -> UUID:
    """
    Tenant the request acts on: the ``X-Tenant-Id`` header when sent,
    otherwise the caller's own tenant.
    """
    header_value = request.headers.get(TENANT_HEADER)
    tenant_id = parse_tenant_id(header_value) if header_value else current_user.tenant_id
    tenant_id = check_tenant_access(current_user, tenant_id)
    request.state.tenant_id = tenant_id
    return tenant_id


def require_tenant_id(param: str = "tenantId") -> Callable:
    """
    Build a dependency that reads the tenant id from the path, the query string
    or the JSON body field ``param``; used by flows without an identity yet.
    """

    async def dependency(
        request: Request,
        current_user: Optional[AuthUser] = Depends(get_optional_user),
    ) -> UUID:
        value = request.path_params.get(param) or request.query_params.get(param)
        if value is None and request.method in ("POST", "PUT", "PATCH"):
            try:
                body = await request.json()
            except ValueError:
                body = None
            if isinstance(body, dict):
                value = body.get(param)

        if not value:
            raise BadRequestException("Tenant id is required", "TENANT_ID_REQUIRED")

        tenant_id = check_tenant_access(current_user, parse_tenant_id(value))
        request.state.tenant_id = tenant_id
        return tenant_id

    return dependency
