# src/modules/medical_records/schemas.py
"""
Medical records module Pydantic schemas.

Record content is typed per record type: the create body is a union
discriminated by ``type`` and every member carries its own content model.
"""

from datetime import date, datetime
from typing import Any, Dict, List, Literal, Optional, Union
from uuid import UUID

from pydantic import ConfigDict, Field, HttpUrl
from pydantic.alias_generators import to_camel

from src.common.schemas import CamelModel
from src.models.models import AppointmentStatus, AppointmentType, Gender, RecordType


# ============================================================================
# CONTENT
# ============================================================================

class RecordContent(CamelModel):
    """Base for content documents; unknown keys are kept as written."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")


class VitalSigns(RecordContent):
    blood_pressure: Optional[str] = None
    heart_rate: Optional[float] = Field(default=None, ge=0, le=300)
    temperature: Optional[float] = Field(default=None, ge=30, le=45)
    respiratory_rate: Optional[float] = Field(default=None, ge=0, le=100)
    oxygen_saturation: Optional[float] = Field(default=None, ge=0, le=100)
    weight: Optional[float] = Field(default=None, ge=0, le=500)
    height: Optional[float] = Field(default=None, ge=0, le=300)


class PrescriptionItem(RecordContent):
    medication: str = Field(min_length=1)
    dosage: str = Field(min_length=1)
    frequency: str = Field(min_length=1)
    duration: str = Field(min_length=1)
    route: str = "oral"
    instructions: Optional[str] = None


class AnamnesisContent(RecordContent):
    chief_complaint: Optional[str] = None
    history_of_present_illness: Optional[str] = None
    past_medical_history: Optional[str] = None
    family_history: Optional[str] = None
    social_history: Optional[str] = None
    allergies: List[str] = []
    medications: List[str] = []
    review_of_systems: Optional[Dict[str, str]] = None
    physical_examination: Optional[str] = None
    vital_signs: Optional[VitalSigns] = None


class EvolutionContent(RecordContent):
    subjective: Optional[str] = None
    objective: Optional[str] = None
    vital_signs: Optional[VitalSigns] = None
    physical_examination: Optional[str] = None
    assessment: Optional[str] = None
    plan: Optional[str] = None


class PrescriptionContent(RecordContent):
    prescriptions: List[PrescriptionItem] = []
    general_instructions: Optional[str] = None


class ExamRequestContent(RecordContent):
    exams: List[str] = []
    clinical_indication: Optional[str] = None
    urgency: Literal["routine", "urgent", "emergency"] = "routine"
    observations: Optional[str] = None


class CertificateContent(RecordContent):
    certificate_type: str = "medical_leave"
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    days_off: Optional[int] = Field(default=None, ge=0)
    cid: Optional[str] = None
    description: Optional[str] = None


class ReferralContent(RecordContent):
    specialty: Optional[str] = None
    reason: Optional[str] = None
    clinical_summary: Optional[str] = None
    urgency: Literal["routine", "urgent", "emergency"] = "routine"
    exams_attached: List[str] = []


CONTENT_MODELS = {
    RecordType.ANAMNESIS: AnamnesisContent,
    RecordType.EVOLUTION: EvolutionContent,
    RecordType.PRESCRIPTION: PrescriptionContent,
    RecordType.EXAM_REQUEST: ExamRequestContent,
    RecordType.CERTIFICATE: CertificateContent,
    RecordType.REFERRAL: ReferralContent,
}


# ============================================================================
# REQUEST SCHEMAS
# ============================================================================

class RecordCreateBase(CamelModel):
    patient_id: UUID
    appointment_id: Optional[UUID] = None
    icd_codes: List[str] = []
    attachments: List[HttpUrl] = []


class AnamnesisCreate(RecordCreateBase):
    type: Literal["ANAMNESIS"]
    content: AnamnesisContent


class EvolutionCreate(RecordCreateBase):
    type: Literal["EVOLUTION"]
    content: EvolutionContent


class PrescriptionCreate(RecordCreateBase):
    type: Literal["PRESCRIPTION"]
    content: PrescriptionContent


class ExamRequestCreate(RecordCreateBase):
    type: Literal["EXAM_REQUEST"]
    content: ExamRequestContent


class CertificateCreate(RecordCreateBase):
    type: Literal["CERTIFICATE"]
    content: CertificateContent


class ReferralCreate(RecordCreateBase):
    type: Literal["REFERRAL"]
    content: ReferralContent


# Discriminated by ``type`` (see the create route)
MedicalRecordCreateRequest = Union[
    AnamnesisCreate,
    EvolutionCreate,
    PrescriptionCreate,
    ExamRequestCreate,
    CertificateCreate,
    ReferralCreate,
]


class MedicalRecordUpdateRequest(CamelModel):
    """Content is checked against the stored record's type by the service."""
    content: Optional[Dict[str, Any]] = None
    icd_codes: Optional[List[str]] = None
    attachments: Optional[List[HttpUrl]] = None


class SignRecordRequest(CamelModel):
    signature: str = Field(min_length=1)


# ============================================================================
# RESPONSE SCHEMAS
# ============================================================================

class RecordPatient(CamelModel):
    id: UUID
    full_name: str
    birth_date: Optional[date] = None
    gender: Optional[Gender] = None


class RecordProfessional(CamelModel):
    id: UUID
    name: str
    professional_id: Optional[str] = None
    specialties: List[str] = []


class MedicalRecordResponse(CamelModel):
    id: UUID
    tenant_id: UUID
    patient_id: UUID
    professional_id: UUID
    appointment_id: Optional[UUID] = None
    type: RecordType
    content: Dict[str, Any]
    icd_codes: List[str] = []
    attachments: List[str] = []
    signature: Optional[str] = None
    signed_at: Optional[datetime] = None
    version: int
    created_at: datetime
    updated_at: datetime
    patient: Optional[RecordPatient] = None
    professional: Optional[RecordProfessional] = None


class RecordTemplate(CamelModel):
    name: str
    type: RecordType
    content: Dict[str, Any]


class TimelineAppointment(CamelModel):
    id: UUID
    start_time: datetime
    end_time: datetime
    type: AppointmentType
    status: AppointmentStatus
    notes: Optional[str] = None
    professional: Optional[RecordProfessional] = None


class TimelineEntry(CamelModel):
    kind: Literal["medical_record", "appointment"]
    subtype: str
    date: datetime
    data: Dict[str, Any]

