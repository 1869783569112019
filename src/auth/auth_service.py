# src/auth/auth_service.py

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple
from uuid import UUID

import jwt
from fastapi import Request
from passlib.context import CryptContext
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from src.auth.schemas import TokenPair
from src.common.audit.audit_service import log_action
from src.common.config import settings
from src.common.exceptions.exceptions import (
    BadRequestException,
    ConflictException,
    NotFoundException,
    UnauthorizedException,
)
from src.models.models import AuditAction, Tenant, User, UserRole

logger = logging.getLogger(__name__)

# Initialize the password context (bcrypt)
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.BCRYPT_ROUNDS)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify that the provided password matches the hashed password."""
    return pwd_context.verify(plain_password, hashed_password)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(user: User, expires_delta: Optional[timedelta] = None) -> str:
    """Access token carrying the identity the guards need: subject, tenant, email, name and role."""
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta if expires_delta is not None else timedelta(minutes=settings.JWT_EXPIRATION_MINUTES))
    payload = {
        "sub": str(user.id),
        "tenantId": str(user.tenant_id),
        "email": user.email,
        "name": user.name,
        "role": user.role.value,
        "iat": now,
        "exp": expire,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def create_refresh_token(user: User, expires_delta: Optional[timedelta] = None) -> str:
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta if expires_delta is not None else timedelta(days=settings.JWT_REFRESH_EXPIRATION_DAYS))
    payload = {"sub": str(user.id), "iat": now, "exp": expire}
    return jwt.encode(payload, settings.JWT_REFRESH_SECRET, algorithm=settings.JWT_ALGORITHM)


def generate_tokens(user: User) -> TokenPair:
    return TokenPair(
        access_token=create_access_token(user),
        refresh_token=create_refresh_token(user),
        expires_in=settings.JWT_EXPIRATION_MINUTES * 60,
    )


async def get_user_by_id(db: AsyncSession, user_id: UUID) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalars().first()
    if user is None:
        raise NotFoundException("User not found", "USER_NOT_FOUND")
    return user


async def login_user(
    email: str,
    password: str,
    tenant_subdomain: Optional[str],
    db: AsyncSession,
    request: Optional[Request] = None,
) -> Tuple[User, TokenPair]:
    """Authenticate by email and password, scoped to a tenant when a subdomain is known."""
    logger.info("Login attempt", extra={"email": email, "subdomain": tenant_subdomain})

    query = select(User).where(User.email == email)
    if tenant_subdomain:
        result = await db.execute(select(Tenant).where(Tenant.subdomain == tenant_subdomain))
        tenant = result.scalars().first()
        if tenant is None:
            raise NotFoundException("Tenant not found", "TENANT_NOT_FOUND")
        query = query.where(User.tenant_id == tenant.id)

    result = await db.execute(query)
    user = result.scalars().first()
    if user is None:
        raise UnauthorizedException("Invalid credentials", "INVALID_CREDENTIALS")

    if not user.is_active:
        raise UnauthorizedException("Account is disabled", "ACCOUNT_DISABLED")

    if not verify_password(password, user.password_hash):
        raise UnauthorizedException("Invalid credentials", "INVALID_CREDENTIALS")

    user.last_login_at = datetime.now(timezone.utc)
    await log_action(
        db,
        tenant_id=user.tenant_id,
        user_id=user.id,
        action=AuditAction.LOGIN,
        resource="auth",
        request=request,
    )
    await db.commit()

    logger.info("Login successful", extra={"userId": str(user.id), "tenantId": str(user.tenant_id)})
    return user, generate_tokens(user)


async def register_user(
    email: str,
    password: str,
    name: str,
    tenant_id: UUID,
    db: AsyncSession,
) -> Tuple[User, TokenPair]:
    """Self sign-up into an existing tenant; new accounts start as receptionists."""
    tenant = await db.get(Tenant, tenant_id)
    if tenant is None:
        raise NotFoundException("Tenant not found", "TENANT_NOT_FOUND")

    result = await db.execute(
        select(User).where(User.email == email, User.tenant_id == tenant_id)
    )
    if result.scalars().first():
        raise ConflictException("User already exists", "USER_EXISTS")

    user = User(
        tenant_id=tenant_id,
        email=email,
        password_hash=hash_password(password),
        name=name,
        role=UserRole.RECEPTIONIST,
        is_active=True,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)

    logger.info("User registered", extra={"userId": str(user.id), "tenantId": str(tenant_id)})
    return user, generate_tokens(user)


async def refresh_tokens(refresh_token: str, db: AsyncSession) -> TokenPair:
    try:
        payload = jwt.decode(refresh_token, settings.JWT_REFRESH_SECRET, algorithms=[settings.JWT_ALGORITHM])
        user_id = UUID(payload["sub"])
    except jwt.ExpiredSignatureError:
        raise UnauthorizedException("Refresh token expired", "REFRESH_TOKEN_EXPIRED")
    except (jwt.InvalidTokenError, KeyError, ValueError):
        raise UnauthorizedException("Invalid refresh token", "INVALID_REFRESH_TOKEN")

    user = await db.get(User, user_id)
    if user is None or not user.is_active:
        raise UnauthorizedException("Invalid refresh token", "INVALID_REFRESH_TOKEN")

    return generate_tokens(user)


async def change_password(
    user_id: UUID,
    current_password: str,
    new_password: str,
    db: AsyncSession,
) -> None:
    user = await get_user_by_id(db, user_id)
    if not verify_password(current_password, user.password_hash):
        raise BadRequestException("Current password is incorrect", "INVALID_PASSWORD")

    user.password_hash = hash_password(new_password)
    await db.commit()
    logger.info("Password changed", extra={"userId": str(user_id)})


async def logout_user(
    user_id: UUID,
    tenant_id: UUID,
    db: AsyncSession,
    request: Optional[Request] = None,
) -> None:
    """Tokens are stateless; logging out only leaves an audit trail."""
    await log_action(
        db,
        tenant_id=tenant_id,
        user_id=user_id,
        action=AuditAction.LOGOUT,
        resource="auth",
        request=request,
        commit=True,
    )
