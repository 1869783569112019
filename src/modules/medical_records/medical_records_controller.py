# src/modules/medical_records/medical_records_controller.py

from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.auth.guards import doctor_guard, get_tenant_id, nurse_guard
from src.auth.schemas import AuthUser
from src.common.database.database import get_db_session
from src.common.schemas import ApiResponse
from src.common.utils.pagination import PaginationParams
from src.models.models import RecordType
from src.modules.medical_records import medical_records_service as service
from src.modules.medical_records import schemas
from src.modules.medical_records.templates import get_templates

router = APIRouter(prefix="/medical-records", tags=["Medical Records"])


@router.get("", response_model=ApiResponse[List[schemas.MedicalRecordResponse]])
async def list_records(
    params: PaginationParams = Depends(),
    patient_id: Optional[UUID] = Query(None, alias="patientId"),
    professional_id: Optional[UUID] = Query(None, alias="professionalId"),
    record_type: Optional[RecordType] = Query(None, alias="type"),
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    current_user: AuthUser = Depends(nurse_guard),
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    records, meta = await service.list_records(
        db, tenant_id, params, patient_id, professional_id, record_type, start_date, end_date
    )
    return ApiResponse(data=records, meta=meta)


@router.get("/templates", response_model=ApiResponse[List[schemas.RecordTemplate]])
async def list_templates(
    record_type: Optional[RecordType] = Query(None, alias="type"),
    current_user: AuthUser = Depends(nurse_guard),
):
    """Blank content skeletons for the record editor."""
    return ApiResponse(data=get_templates(record_type))


@router.get("/patient/{patient_id}", response_model=ApiResponse[List[schemas.MedicalRecordResponse]])
async def list_patient_records(
    patient_id: UUID,
    params: PaginationParams = Depends(),
    record_type: Optional[RecordType] = Query(None, alias="type"),
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    current_user: AuthUser = Depends(nurse_guard),
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    records, meta = await service.list_patient_records(
        db, tenant_id, patient_id, params, record_type, start_date, end_date
    )
    return ApiResponse(data=records, meta=meta)


@router.get("/patient/{patient_id}/timeline", response_model=ApiResponse[List[schemas.TimelineEntry]])
async def get_patient_timeline(
    patient_id: UUID,
    current_user: AuthUser = Depends(nurse_guard),
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    """Records and appointments of the patient, newest first."""
    return ApiResponse(data=await service.get_patient_timeline(db, tenant_id, patient_id))


@router.get("/{record_id}", response_model=ApiResponse[schemas.MedicalRecordResponse])
async def get_record(
    record_id: UUID,
    current_user: AuthUser = Depends(nurse_guard),
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    return ApiResponse(data=await service.get_record(db, tenant_id, record_id))


@router.post("", response_model=ApiResponse[schemas.MedicalRecordResponse], status_code=status.HTTP_201_CREATED)
async def create_record(
    request: Request,
    data: schemas.MedicalRecordCreateRequest = Body(..., discriminator="type"),
    current_user: AuthUser = Depends(doctor_guard),
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    """
    Write a medical record authored by the caller.

    The shape of **content** depends on **type**.
    """
    record = await service.create_record(db, tenant_id, data, current_user, request)
    return ApiResponse(data=record)


@router.patch("/{record_id}", response_model=ApiResponse[schemas.MedicalRecordResponse])
async def update_record(
    record_id: UUID,
    data: schemas.MedicalRecordUpdateRequest,
    request: Request,
    current_user: AuthUser = Depends(doctor_guard),
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    """Only the author may edit, and only until the record is signed."""
    record = await service.update_record(db, tenant_id, record_id, data, current_user, request)
    return ApiResponse(data=record)


@router.post("/{record_id}/sign", response_model=ApiResponse[schemas.MedicalRecordResponse])
async def sign_record(
    record_id: UUID,
    data: schemas.SignRecordRequest,
    request: Request,
    current_user: AuthUser = Depends(doctor_guard),
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    record = await service.sign_record(db, tenant_id, record_id, data.signature, current_user, request)
    return ApiResponse(data=record)
