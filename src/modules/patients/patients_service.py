# src/modules/patients/patients_service.py

import logging
from typing import List, Optional, Tuple
from uuid import UUID

from fastapi import Request
from sqlalchemy import func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from src.auth.schemas import AuthUser
from src.common.audit.audit_service import log_action
from src.common.exceptions.exceptions import ConflictException, NotFoundException
from src.common.schemas import PaginationMeta
from src.common.utils.global_functions import utcnow
from src.common.utils.pagination import PaginationParams, paginate
from src.models.models import Appointment, AuditAction, Invoice, MedicalRecord, Patient
from src.modules.patients import schemas

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 50


async def get_patient(db: AsyncSession, tenant_id: UUID, patient_id: UUID) -> Patient:
    result = await db.execute(
        select(Patient).where(Patient.id == patient_id, Patient.tenant_id == tenant_id)
    )
    patient = result.scalars().first()
    if patient is None:
        raise NotFoundException("Patient not found", "PATIENT_NOT_FOUND")
    return patient


async def ensure_document_available(
    db: AsyncSession,
    tenant_id: UUID,
    document: str,
    exclude_id: Optional[UUID] = None,
) -> None:
    query = select(Patient.id).where(Patient.tenant_id == tenant_id, Patient.document == document)
    if exclude_id is not None:
        query = query.where(Patient.id != exclude_id)
    result = await db.execute(query)
    if result.first():
        raise ConflictException("Patient with this CPF already exists", "PATIENT_EXISTS")


def patient_values(data, exclude_unset: bool = False) -> dict:
    """Column values from a request; nested JSON documents keep their camelCase keys."""
    values = data.model_dump(exclude_unset=exclude_unset)
    for field in ("address", "emergency_contact"):
        nested = getattr(data, field)
        if field in values:
            values[field] = nested.model_dump(by_alias=True) if nested is not None else None
    return values


async def count_patient_rows(db: AsyncSession, patient_id: UUID) -> schemas.PatientCounts:
    counts = {}
    for key, model in (("appointments", Appointment), ("medical_records", MedicalRecord), ("invoices", Invoice)):
        result = await db.execute(select(func.count(model.id)).where(model.patient_id == patient_id))
        counts[key] = result.scalar() or 0
    return schemas.PatientCounts(**counts)


async def list_patients(
    db: AsyncSession,
    tenant_id: UUID,
    params: PaginationParams,
    search: Optional[str] = None,
) -> Tuple[List[Patient], PaginationMeta]:
    query = select(Patient).where(Patient.tenant_id == tenant_id, Patient.is_active.is_(True))
    if search:
        pattern = f"%{search}%"
        query = query.where(
            or_(
                Patient.full_name.ilike(pattern),
                Patient.email.ilike(pattern),
                Patient.phone.ilike(pattern),
                Patient.document.ilike(pattern),
            )
        )

    return await paginate(
        db,
        query,
        params,
        sort_columns={
            "fullName": Patient.full_name,
            "birthDate": Patient.birth_date,
            "createdAt": Patient.created_at,
            "updatedAt": Patient.updated_at,
        },
        default_order=[Patient.created_at.desc()],
    )


async def get_patient_detail(db: AsyncSession, tenant_id: UUID, patient_id: UUID) -> schemas.PatientDetailResponse:
    patient = await get_patient(db, tenant_id, patient_id)
    detail = schemas.PatientDetailResponse.model_validate(patient)
    detail.counts = await count_patient_rows(db, patient.id)
    return detail


async def create_patient(
    db: AsyncSession,
    tenant_id: UUID,
    data: schemas.PatientCreateRequest,
    current_user: AuthUser,
    request: Optional[Request] = None,
) -> Patient:
    await ensure_document_available(db, tenant_id, data.document)

    patient = Patient(
        tenant_id=tenant_id,
        created_by_id=current_user.id,
        **patient_values(data),
    )
    db.add(patient)
    await db.flush()
    await log_action(
        db,
        tenant_id=tenant_id,
        user_id=current_user.id,
        action=AuditAction.CREATE,
        resource="patient",
        resource_id=patient.id,
        request=request,
    )
    await db.commit()
    await db.refresh(patient)

    logger.info("Patient created", extra={"patientId": str(patient.id), "tenantId": str(tenant_id)})
    return patient


async def update_patient(
    db: AsyncSession,
    tenant_id: UUID,
    patient_id: UUID,
    data: schemas.PatientUpdateRequest,
    current_user: AuthUser,
    request: Optional[Request] = None,
) -> Patient:
    patient = await get_patient(db, tenant_id, patient_id)
    changes = patient_values(data, exclude_unset=True)

    if changes.get("document") and changes["document"] != patient.document:
        await ensure_document_available(db, tenant_id, changes["document"], exclude_id=patient.id)

    for field, value in changes.items():
        if value is None and field in ("full_name", "document", "birth_date", "gender", "allergies"):
            continue
        setattr(patient, field, value)

    await log_action(
        db,
        tenant_id=tenant_id,
        user_id=current_user.id,
        action=AuditAction.UPDATE,
        resource="patient",
        resource_id=patient.id,
        new_value={"fields": sorted(changes)},
        request=request,
    )
    await db.commit()
    await db.refresh(patient)
    return patient


async def deactivate_patient(
    db: AsyncSession,
    tenant_id: UUID,
    patient_id: UUID,
    current_user: AuthUser,
    request: Optional[Request] = None,
) -> None:
    patient = await get_patient(db, tenant_id, patient_id)
    patient.is_active = False
    await log_action(
        db,
        tenant_id=tenant_id,
        user_id=current_user.id,
        action=AuditAction.DELETE,
        resource="patient",
        resource_id=patient.id,
        request=request,
    )
    await db.commit()
    logger.info("Patient deactivated", extra={"patientId": str(patient_id), "tenantId": str(tenant_id)})


async def get_patient_history(db: AsyncSession, tenant_id: UUID, patient_id: UUID) -> schemas.PatientHistoryResponse:
    """Most recent appointments and medical records of a patient, newest first."""
    await get_patient(db, tenant_id, patient_id)

    appointments = await db.execute(
        select(Appointment)
        .where(Appointment.tenant_id == tenant_id, Appointment.patient_id == patient_id)
        .order_by(Appointment.start_time.desc())
        .limit(HISTORY_LIMIT)
    )
    records = await db.execute(
        select(MedicalRecord)
        .where(MedicalRecord.tenant_id == tenant_id, MedicalRecord.patient_id == patient_id)
        .order_by(MedicalRecord.created_at.desc())
        .limit(HISTORY_LIMIT)
    )
    return schemas.PatientHistoryResponse(
        appointments=[schemas.HistoryAppointment.model_validate(a) for a in appointments.scalars().all()],
        medical_records=[schemas.HistoryRecord.model_validate(r) for r in records.scalars().all()],
    )


async def record_consent(
    db: AsyncSession,
    tenant_id: UUID,
    patient_id: UUID,
    current_user: AuthUser,
    request: Optional[Request] = None,
) -> Patient:
    """Register the patient's LGPD consent."""
    patient = await get_patient(db, tenant_id, patient_id)
    patient.consent_given = True
    patient.consent_date = utcnow()
    await log_action(
        db,
        tenant_id=tenant_id,
        user_id=current_user.id,
        action=AuditAction.UPDATE,
        resource="patient_consent",
        resource_id=patient.id,
        new_value={"consentGiven": True},
        request=request,
    )
    await db.commit()
    await db.refresh(patient)
    return patient
