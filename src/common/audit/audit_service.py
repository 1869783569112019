# src/common/audit/audit_service.py
"""Append-only audit trail."""

import logging
from typing import Any, Optional
from uuid import UUID

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.models import AuditAction, AuditLog

logger = logging.getLogger(__name__)


def client_ip(request: Optional[Request]) -> str:
    if request is None:
        return ""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else ""


async def log_action(
    session: AsyncSession,
    *,
    tenant_id: UUID,
    user_id: Optional[UUID],
    action: AuditAction,
    resource: str,
    resource_id: Optional[Any] = None,
    old_value: Optional[dict] = None,
    new_value: Optional[dict] = None,
    request: Optional[Request] = None,
    commit: bool = False,
) -> AuditLog:
    """
    Add an audit entry to the session.

    The caller's transaction normally commits it together with the change being
    audited; pass ``commit=True`` for standalone entries such as logout.
    """
    entry = AuditLog(
        tenant_id=tenant_id,
        user_id=user_id,
        action=action,
        resource=resource,
        resource_id=str(resource_id) if resource_id is not None else None,
        old_value=old_value,
        new_value=new_value,
        ip_address=client_ip(request),
        user_agent=(request.headers.get("user-agent", "") if request else "")[:500],
    )
    session.add(entry)
    if commit:
        await session.commit()
    logger.debug("Audit %s %s %s", action.value, resource, entry.resource_id)
    return entry
