# src/modules/medical_records/medical_records_service.py

import logging
from datetime import date
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from fastapi import Request
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from src.auth.schemas import AuthUser
from src.common.audit.audit_service import log_action
from src.common.exceptions.exceptions import (
    BadRequestException,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from src.common.exceptions.handlers import format_validation_errors
from src.common.schemas import PaginationMeta
from src.common.utils.global_functions import as_utc, day_bounds, utcnow
from src.common.utils.pagination import PaginationParams, paginate
from src.models.models import Appointment, AuditAction, MedicalRecord, Patient, RecordType
from src.modules.medical_records import schemas

logger = logging.getLogger(__name__)

TIMELINE_LIMIT = 50


# ============================================================================
# CONTENT RULES
# ============================================================================

def validate_content(record_type: RecordType, content: Any) -> None:
    """Clinical minimums per record type, on top of the content model's shape."""
    if record_type == RecordType.ANAMNESIS:
        if not content.chief_complaint and not content.history_of_present_illness:
            raise BadRequestException("Anamnesis requires chief complaint or history", "INVALID_ANAMNESIS")
    elif record_type == RecordType.EVOLUTION:
        if not content.assessment and not content.plan:
            raise BadRequestException("Evolution requires assessment or plan", "INVALID_EVOLUTION")
    elif record_type == RecordType.PRESCRIPTION:
        if not content.prescriptions:
            raise BadRequestException("Prescription requires at least one medication", "INVALID_PRESCRIPTION")
    elif record_type == RecordType.EXAM_REQUEST:
        if not content.exams:
            raise BadRequestException("Exam request requires at least one exam", "INVALID_EXAM_REQUEST")
    elif record_type == RecordType.CERTIFICATE:
        if content.days_off is None and not content.description:
            raise BadRequestException("Certificate requires days off or a description", "INVALID_CERTIFICATE")


def parse_content(record_type: RecordType, raw: Dict[str, Any]):
    """Validate an untyped content document against the model of ``record_type``."""
    try:
        content = schemas.CONTENT_MODELS[record_type].model_validate(raw)
    except ValidationError as exc:
        errors = format_validation_errors(exc)
        for error in errors:
            error["field"] = f"content.{error['field']}" if error["field"] else "content"
        raise ValidationException(errors)
    validate_content(record_type, content)
    return content


def dump_content(content) -> Dict[str, Any]:
    return content.model_dump(mode="json", by_alias=True, exclude_none=True)


# ============================================================================
# LOOKUPS
# ============================================================================

async def get_record(db: AsyncSession, tenant_id: UUID, record_id: UUID) -> MedicalRecord:
    result = await db.execute(
        select(MedicalRecord).where(MedicalRecord.id == record_id, MedicalRecord.tenant_id == tenant_id)
    )
    record = result.scalars().first()
    if record is None:
        raise NotFoundException("Medical record not found", "RECORD_NOT_FOUND")
    return record


async def ensure_patient(db: AsyncSession, tenant_id: UUID, patient_id: UUID) -> Patient:
    result = await db.execute(select(Patient).where(Patient.id == patient_id, Patient.tenant_id == tenant_id))
    patient = result.scalars().first()
    if patient is None:
        raise NotFoundException("Patient not found", "PATIENT_NOT_FOUND")
    return patient


def ensure_author(record: MedicalRecord, current_user: AuthUser, action: str = "edit") -> None:
    if record.professional_id != current_user.id:
        raise ForbiddenException(f"Only the original author can {action} this record", "NOT_RECORD_AUTHOR")


def filtered_query(
    tenant_id: UUID,
    patient_id: Optional[UUID] = None,
    professional_id: Optional[UUID] = None,
    record_type: Optional[RecordType] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
):
    query = select(MedicalRecord).where(MedicalRecord.tenant_id == tenant_id)
    if patient_id is not None:
        query = query.where(MedicalRecord.patient_id == patient_id)
    if professional_id is not None:
        query = query.where(MedicalRecord.professional_id == professional_id)
    if record_type is not None:
        query = query.where(MedicalRecord.type == record_type)
    if start_date is not None:
        query = query.where(MedicalRecord.created_at >= day_bounds(start_date)[0])
    if end_date is not None:
        query = query.where(MedicalRecord.created_at < day_bounds(end_date)[1])
    return query


# ============================================================================
# QUERIES
# ============================================================================

async def list_records(
    db: AsyncSession,
    tenant_id: UUID,
    params: PaginationParams,
    patient_id: Optional[UUID] = None,
    professional_id: Optional[UUID] = None,
    record_type: Optional[RecordType] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> Tuple[List[MedicalRecord], PaginationMeta]:
    query = filtered_query(tenant_id, patient_id, professional_id, record_type, start_date, end_date)
    return await paginate(
        db,
        query,
        params,
        sort_columns={"createdAt": MedicalRecord.created_at, "type": MedicalRecord.type},
        default_order=[MedicalRecord.created_at.desc()],
    )


async def list_patient_records(
    db: AsyncSession,
    tenant_id: UUID,
    patient_id: UUID,
    params: PaginationParams,
    record_type: Optional[RecordType] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> Tuple[List[MedicalRecord], PaginationMeta]:
    await ensure_patient(db, tenant_id, patient_id)
    return await list_records(
        db, tenant_id, params, patient_id=patient_id, record_type=record_type,
        start_date=start_date, end_date=end_date,
    )


async def get_patient_timeline(db: AsyncSession, tenant_id: UUID, patient_id: UUID) -> List[schemas.TimelineEntry]:
    """Records and appointments of a patient merged into one newest-first stream."""
    await ensure_patient(db, tenant_id, patient_id)

    records = await db.execute(
        select(MedicalRecord)
        .where(MedicalRecord.tenant_id == tenant_id, MedicalRecord.patient_id == patient_id)
        .order_by(MedicalRecord.created_at.desc())
        .limit(TIMELINE_LIMIT)
    )
    appointments = await db.execute(
        select(Appointment)
        .where(Appointment.tenant_id == tenant_id, Appointment.patient_id == patient_id)
        .order_by(Appointment.start_time.desc())
        .limit(TIMELINE_LIMIT)
    )

    timeline = [
        schemas.TimelineEntry(
            kind="medical_record",
            subtype=record.type.value,
            date=as_utc(record.created_at),
            data=schemas.MedicalRecordResponse.model_validate(record).model_dump(mode="json", by_alias=True),
        )
        for record in records.scalars().all()
    ]
    timeline += [
        schemas.TimelineEntry(
            kind="appointment",
            subtype=appointment.type.value,
            date=as_utc(appointment.start_time),
            data=schemas.TimelineAppointment.model_validate(appointment).model_dump(mode="json", by_alias=True),
        )
        for appointment in appointments.scalars().all()
    ]
    timeline.sort(key=lambda entry: entry.date, reverse=True)
    return timeline


# ============================================================================
# COMMANDS
# ============================================================================

async def create_record(
    db: AsyncSession,
    tenant_id: UUID,
    data: schemas.MedicalRecordCreateRequest,
    current_user: AuthUser,
    request: Optional[Request] = None,
) -> MedicalRecord:
    record_type = RecordType(data.type)
    await ensure_patient(db, tenant_id, data.patient_id)

    if data.appointment_id is not None:
        result = await db.execute(
            select(Appointment.id).where(
                Appointment.id == data.appointment_id,
                Appointment.tenant_id == tenant_id,
                Appointment.patient_id == data.patient_id,
            )
        )
        if result.first() is None:
            raise NotFoundException("Appointment not found", "APPOINTMENT_NOT_FOUND")

    validate_content(record_type, data.content)

    record = MedicalRecord(
        tenant_id=tenant_id,
        patient_id=data.patient_id,
        professional_id=current_user.id,
        appointment_id=data.appointment_id,
        type=record_type,
        content=dump_content(data.content),
        icd_codes=data.icd_codes,
        attachments=[str(url) for url in data.attachments],
        version=1,
    )
    db.add(record)
    await db.flush()
    await log_action(
        db,
        tenant_id=tenant_id,
        user_id=current_user.id,
        action=AuditAction.CREATE,
        resource="medical_record",
        resource_id=record.id,
        new_value={"type": record_type.value, "patientId": str(data.patient_id)},
        request=request,
    )
    await db.commit()
    await db.refresh(record)

    logger.info(
        "Medical record created",
        extra={"recordId": str(record.id), "patientId": str(data.patient_id), "type": record_type.value},
    )
    return record


async def update_record(
    db: AsyncSession,
    tenant_id: UUID,
    record_id: UUID,
    data: schemas.MedicalRecordUpdateRequest,
    current_user: AuthUser,
    request: Optional[Request] = None,
) -> MedicalRecord:
    record = await get_record(db, tenant_id, record_id)
    ensure_author(record, current_user)
    if record.signed_at is not None or record.signature:
        raise BadRequestException("Signed records cannot be edited", "RECORD_SIGNED")

    if data.content is not None:
        record.content = dump_content(parse_content(record.type, data.content))
    if data.icd_codes is not None:
        record.icd_codes = data.icd_codes
    if data.attachments is not None:
        record.attachments = [str(url) for url in data.attachments]

    previous_version = record.version
    record.version = previous_version + 1

    await log_action(
        db,
        tenant_id=tenant_id,
        user_id=current_user.id,
        action=AuditAction.UPDATE,
        resource="medical_record",
        resource_id=record.id,
        old_value={"version": previous_version},
        new_value={"version": record.version},
        request=request,
    )
    await db.commit()
    await db.refresh(record)

    logger.info("Medical record updated", extra={"recordId": str(record.id), "version": record.version})
    return record


async def sign_record(
    db: AsyncSession,
    tenant_id: UUID,
    record_id: UUID,
    signature: str,
    current_user: AuthUser,
    request: Optional[Request] = None,
) -> MedicalRecord:
    record = await get_record(db, tenant_id, record_id)
    ensure_author(record, current_user, action="sign")
    if record.signature:
        raise BadRequestException("Record already signed", "ALREADY_SIGNED")

    record.signature = signature
    record.signed_at = utcnow()
    await log_action(
        db,
        tenant_id=tenant_id,
        user_id=current_user.id,
        action=AuditAction.UPDATE,
        resource="medical_record",
        resource_id=record.id,
        new_value={"signed": True},
        request=request,
    )
    await db.commit()
    await db.refresh(record)

    logger.info("Medical record signed", extra={"recordId": str(record.id)})
    return record
