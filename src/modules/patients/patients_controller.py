# src/modules/patients/patients_controller.py

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.auth.dependencies import get_current_user
from src.auth.guards import get_tenant_id, receptionist_guard, tenant_admin_guard
from src.auth.schemas import AuthUser
from src.common.database.database import get_db_session
from src.common.schemas import ApiResponse, MessageResponse
from src.common.utils.pagination import PaginationParams
from src.modules.patients import patients_service as service
from src.modules.patients import schemas

router = APIRouter(prefix="/patients", tags=["Patients"])


@router.get("", response_model=ApiResponse[List[schemas.PatientResponse]])
async def list_patients(
    params: PaginationParams = Depends(),
    search: Optional[str] = Query(None, description="Matches name, email, phone or CPF"),
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    patients, meta = await service.list_patients(db, tenant_id, params, search)
    return ApiResponse(data=patients, meta=meta)


@router.get("/{patient_id}", response_model=ApiResponse[schemas.PatientDetailResponse])
async def get_patient(
    patient_id: UUID,
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    return ApiResponse(data=await service.get_patient_detail(db, tenant_id, patient_id))


@router.post("", response_model=ApiResponse[schemas.PatientResponse], status_code=status.HTTP_201_CREATED)
async def create_patient(
    data: schemas.PatientCreateRequest,
    request: Request,
    current_user: AuthUser = Depends(receptionist_guard),
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    """
    Register a patient.

    The CPF (**document**) is unique within the clinic.
    """
    patient = await service.create_patient(db, tenant_id, data, current_user, request)
    return ApiResponse(data=patient)


@router.patch("/{patient_id}", response_model=ApiResponse[schemas.PatientResponse])
async def update_patient(
    patient_id: UUID,
    data: schemas.PatientUpdateRequest,
    request: Request,
    current_user: AuthUser = Depends(receptionist_guard),
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    patient = await service.update_patient(db, tenant_id, patient_id, data, current_user, request)
    return ApiResponse(data=patient)


@router.delete("/{patient_id}", response_model=MessageResponse)
async def deactivate_patient(
    patient_id: UUID,
    request: Request,
    current_user: AuthUser = Depends(tenant_admin_guard),
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    await service.deactivate_patient(db, tenant_id, patient_id, current_user, request)
    return MessageResponse(message="Patient deactivated successfully")


@router.get("/{patient_id}/history", response_model=ApiResponse[schemas.PatientHistoryResponse])
async def get_patient_history(
    patient_id: UUID,
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    """Last 50 appointments and medical records, newest first."""
    return ApiResponse(data=await service.get_patient_history(db, tenant_id, patient_id))


@router.post("/{patient_id}/consent", response_model=ApiResponse[schemas.PatientResponse])
async def record_consent(
    patient_id: UUID,
    request: Request,
    current_user: AuthUser = Depends(get_current_user),
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    """Record the patient's LGPD consent."""
    patient = await service.record_consent(db, tenant_id, patient_id, current_user, request)
    return ApiResponse(data=patient)
