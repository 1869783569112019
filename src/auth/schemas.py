# src/auth/schemas.py

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import EmailStr, Field, field_validator

from src.common.schemas import CamelModel
from src.common.utils.validators import validate_strong_password
from src.models.models import TenantStatus, UserRole


class AuthUser(CamelModel):
    """Identity decoded from an access token."""
    id: UUID = Field(alias="sub")
    tenant_id: UUID
    email: str
    name: str
    role: UserRole

    @property
    def is_super_admin(self) -> bool:
        return self.role == UserRole.SUPER_ADMIN


# ============================================================================
# REQUEST SCHEMAS
# ============================================================================

class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=8)
    tenant_subdomain: Optional[str] = None


class RegisterRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=8)
    confirm_password: str
    name: str = Field(min_length=2)
    tenant_id: UUID

    @field_validator("password")
    def strong_password(cls, value):
        return validate_strong_password(value)

    @field_validator("confirm_password")
    def passwords_match(cls, value, info):
        if "password" in info.data and value != info.data["password"]:
            raise ValueError("Passwords do not match")
        return value


class RefreshTokenRequest(CamelModel):
    refresh_token: str = Field(min_length=1)


class ChangePasswordRequest(CamelModel):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=8)


# ============================================================================
# RESPONSE SCHEMAS
# ============================================================================

class TenantSummary(CamelModel):
    id: UUID
    name: str
    subdomain: str
    status: TenantStatus


class UserResponse(CamelModel):
    id: UUID
    tenant_id: UUID
    email: str
    name: str
    role: UserRole
    professional_id: Optional[str] = None
    specialties: List[str] = []
    phone: Optional[str] = None
    avatar: Optional[str] = None
    is_active: bool
    mfa_enabled: bool = False
    last_login_at: Optional[datetime] = None
    created_at: datetime


class ProfileResponse(UserResponse):
    tenant: Optional[TenantSummary] = None


class TokenPair(CamelModel):
    access_token: str
    refresh_token: str
    expires_in: int


class AuthResponse(TokenPair):
    user: UserResponse
