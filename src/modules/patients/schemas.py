# src/modules/patients/schemas.py

from datetime import date, datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import EmailStr, Field, field_validator

from src.common.schemas import CamelModel
from src.common.utils.validators import ZIP_CODE_REGEX, validate_cpf, validate_phone
from src.models.models import AppointmentStatus, AppointmentType, Gender, RecordType


class Address(CamelModel):
    street: str = Field(min_length=1)
    number: str = Field(min_length=1)
    complement: Optional[str] = None
    neighborhood: str = Field(min_length=1)
    city: str = Field(min_length=1)
    state: str = Field(min_length=2, max_length=2)
    zip_code: str
    country: str = "Brasil"

    @field_validator("zip_code")
    def zip_code_format(cls, value):
        if not ZIP_CODE_REGEX.match(value):
            raise ValueError("Invalid ZIP code")
        return value


class EmergencyContact(CamelModel):
    name: str = Field(min_length=1)
    relationship: str = Field(min_length=1)
    phone: str

    @field_validator("phone")
    def phone_format(cls, value):
        return validate_phone(value)


# ============================================================================
# REQUEST SCHEMAS
# ============================================================================

class PatientCreateRequest(CamelModel):
    full_name: str = Field(min_length=2)
    document: str
    birth_date: date
    gender: Gender
    phone: Optional[str] = None
    email: Optional[EmailStr] = None
    address: Optional[Address] = None
    health_plan: Optional[str] = None
    health_plan_number: Optional[str] = None
    emergency_contact: Optional[EmergencyContact] = None
    allergies: List[str] = []
    blood_type: Optional[str] = Field(default=None, max_length=5)
    observations: Optional[str] = None

    @field_validator("document")
    def cpf(cls, value):
        return validate_cpf(value)

    @field_validator("phone")
    def phone_format(cls, value):
        return validate_phone(value)


class PatientUpdateRequest(CamelModel):
    full_name: Optional[str] = Field(default=None, min_length=2)
    document: Optional[str] = None
    birth_date: Optional[date] = None
    gender: Optional[Gender] = None
    phone: Optional[str] = None
    email: Optional[EmailStr] = None
    address: Optional[Address] = None
    health_plan: Optional[str] = None
    health_plan_number: Optional[str] = None
    emergency_contact: Optional[EmergencyContact] = None
    allergies: Optional[List[str]] = None
    blood_type: Optional[str] = Field(default=None, max_length=5)
    observations: Optional[str] = None

    @field_validator("document")
    def cpf(cls, value):
        return validate_cpf(value) if value is not None else value

    @field_validator("phone")
    def phone_format(cls, value):
        return validate_phone(value)


# ============================================================================
# RESPONSE SCHEMAS
# ============================================================================

class PatientResponse(CamelModel):
    id: UUID
    tenant_id: UUID
    full_name: str
    document: str
    birth_date: date
    gender: Gender
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[Dict[str, Any]] = None
    health_plan: Optional[str] = None
    health_plan_number: Optional[str] = None
    emergency_contact: Optional[Dict[str, Any]] = None
    allergies: List[str] = []
    blood_type: Optional[str] = None
    observations: Optional[str] = None
    consent_given: bool
    consent_date: Optional[datetime] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class PatientCounts(CamelModel):
    appointments: int = 0
    medical_records: int = 0
    invoices: int = 0


class PatientDetailResponse(PatientResponse):
    counts: Optional[PatientCounts] = None


class PatientSummary(CamelModel):
    id: UUID
    full_name: str
    document: str
    phone: Optional[str] = None


class ProfessionalSummary(CamelModel):
    id: UUID
    name: str
    professional_id: Optional[str] = None


class HistoryAppointment(CamelModel):
    id: UUID
    start_time: datetime
    end_time: datetime
    type: AppointmentType
    status: AppointmentStatus
    notes: Optional[str] = None
    professional: Optional[ProfessionalSummary] = None


class HistoryRecord(CamelModel):
    id: UUID
    type: RecordType
    content: Dict[str, Any]
    icd_codes: List[str] = []
    signed_at: Optional[datetime] = None
    created_at: datetime
    professional: Optional[ProfessionalSummary] = None


class PatientHistoryResponse(CamelModel):
    appointments: List[HistoryAppointment]
    medical_records: List[HistoryRecord]
