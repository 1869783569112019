# src/modules/users/schemas.py

from typing import List, Optional
from uuid import UUID

from pydantic import EmailStr, Field, field_validator

from src.auth.schemas import UserResponse
from src.common.schemas import CamelModel
from src.common.utils.validators import validate_phone
from src.models.models import UserRole


class UserCreateRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=8)
    name: str = Field(min_length=2)
    role: UserRole
    professional_id: Optional[str] = None
    specialties: List[str] = []
    phone: Optional[str] = None

    @field_validator("phone")
    def phone_format(cls, value):
        return validate_phone(value)


class UserUpdateRequest(CamelModel):
    email: Optional[EmailStr] = None
    name: Optional[str] = Field(default=None, min_length=2)
    role: Optional[UserRole] = None
    professional_id: Optional[str] = None
    specialties: Optional[List[str]] = None
    phone: Optional[str] = None
    avatar: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("phone")
    def phone_format(cls, value):
        return validate_phone(value)


class ProfessionalResponse(CamelModel):
    id: UUID
    name: str
    role: UserRole
    professional_id: Optional[str] = None
    specialties: List[str] = []


__all__ = [
    "UserCreateRequest",
    "UserUpdateRequest",
    "UserResponse",
    "ProfessionalResponse",
]
