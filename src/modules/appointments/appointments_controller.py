# src/modules/appointments/appointments_controller.py

from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.auth.guards import doctor_guard, get_tenant_id, nurse_guard, receptionist_guard
from src.auth.schemas import AuthUser
from src.common.database.database import get_db_session
from src.common.schemas import ApiResponse
from src.common.utils.pagination import PaginationParams
from src.models.models import AppointmentStatus
from src.modules.appointments import appointments_service as service
from src.modules.appointments import schemas

router = APIRouter(prefix="/appointments", tags=["Appointments"])


@router.get("", response_model=ApiResponse[List[schemas.AppointmentResponse]])
async def list_appointments(
    params: PaginationParams = Depends(),
    professional_id: Optional[UUID] = Query(None, alias="professionalId"),
    patient_id: Optional[UUID] = Query(None, alias="patientId"),
    appointment_status: Optional[AppointmentStatus] = Query(None, alias="status"),
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    appointments, meta = await service.list_appointments(
        db, tenant_id, params, professional_id, patient_id, appointment_status, start_date, end_date
    )
    return ApiResponse(data=appointments, meta=meta)


@router.get("/today", response_model=ApiResponse[List[schemas.AppointmentResponse]])
async def list_today(
    professional_id: Optional[UUID] = Query(None, alias="professionalId"),
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    """Today's agenda ordered by start time."""
    return ApiResponse(data=await service.list_today(db, tenant_id, professional_id))


@router.get("/professional/{professional_id}/availability", response_model=ApiResponse[schemas.AvailabilityResponse])
async def get_availability(
    professional_id: UUID,
    day: date = Query(..., alias="date"),
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    """Busy intervals of a professional on a given day."""
    return ApiResponse(data=await service.get_availability(db, tenant_id, professional_id, day))


@router.get("/{appointment_id}", response_model=ApiResponse[schemas.AppointmentResponse])
async def get_appointment(
    appointment_id: UUID,
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    return ApiResponse(data=await service.get_appointment(db, tenant_id, appointment_id))


@router.post("", response_model=ApiResponse[schemas.AppointmentResponse], status_code=status.HTTP_201_CREATED)
async def create_appointment(
    data: schemas.AppointmentCreateRequest,
    request: Request,
    current_user: AuthUser = Depends(receptionist_guard),
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    """
    Book an appointment.

    Fails with **APPOINTMENT_CONFLICT** when the professional already holds an
    overlapping, non-cancelled appointment.
    """
    appointment = await service.create_appointment(db, tenant_id, data, current_user, request)
    return ApiResponse(data=appointment)


@router.patch("/{appointment_id}", response_model=ApiResponse[schemas.AppointmentResponse])
async def update_appointment(
    appointment_id: UUID,
    data: schemas.AppointmentUpdateRequest,
    request: Request,
    current_user: AuthUser = Depends(receptionist_guard),
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    appointment = await service.update_appointment(db, tenant_id, appointment_id, data, current_user, request)
    return ApiResponse(data=appointment)


# ============================================================================
# LIFECYCLE
# ============================================================================

@router.post("/{appointment_id}/confirm", response_model=ApiResponse[schemas.AppointmentResponse])
async def confirm_appointment(
    appointment_id: UUID,
    request: Request,
    current_user: AuthUser = Depends(receptionist_guard),
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    appointment = await service.change_status(
        db, tenant_id, appointment_id, AppointmentStatus.CONFIRMED, current_user, request
    )
    return ApiResponse(data=appointment)


@router.post("/{appointment_id}/checkin", response_model=ApiResponse[schemas.AppointmentResponse])
async def check_in_appointment(
    appointment_id: UUID,
    request: Request,
    current_user: AuthUser = Depends(receptionist_guard),
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    """Patient arrived; moves the appointment to the waiting room."""
    appointment = await service.change_status(
        db, tenant_id, appointment_id, AppointmentStatus.WAITING, current_user, request
    )
    return ApiResponse(data=appointment)


@router.post("/{appointment_id}/start", response_model=ApiResponse[schemas.AppointmentResponse])
async def start_appointment(
    appointment_id: UUID,
    request: Request,
    current_user: AuthUser = Depends(nurse_guard),
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    appointment = await service.change_status(
        db, tenant_id, appointment_id, AppointmentStatus.IN_PROGRESS, current_user, request
    )
    return ApiResponse(data=appointment)


@router.post("/{appointment_id}/complete", response_model=ApiResponse[schemas.AppointmentResponse])
async def complete_appointment(
    appointment_id: UUID,
    request: Request,
    current_user: AuthUser = Depends(doctor_guard),
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    appointment = await service.change_status(
        db, tenant_id, appointment_id, AppointmentStatus.COMPLETED, current_user, request
    )
    return ApiResponse(data=appointment)


@router.post("/{appointment_id}/no-show", response_model=ApiResponse[schemas.AppointmentResponse])
async def mark_no_show(
    appointment_id: UUID,
    request: Request,
    current_user: AuthUser = Depends(receptionist_guard),
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    appointment = await service.change_status(
        db, tenant_id, appointment_id, AppointmentStatus.NO_SHOW, current_user, request
    )
    return ApiResponse(data=appointment)


@router.post("/{appointment_id}/cancel", response_model=ApiResponse[schemas.AppointmentResponse])
async def cancel_appointment(
    appointment_id: UUID,
    request: Request,
    data: Optional[schemas.CancelAppointmentRequest] = Body(None),
    current_user: AuthUser = Depends(receptionist_guard),
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    """Cancel with an optional **reason**; completed appointments cannot be cancelled."""
    appointment = await service.change_status(
        db,
        tenant_id,
        appointment_id,
        AppointmentStatus.CANCELLED,
        current_user,
        request,
        reason=data.reason if data else None,
    )
    return ApiResponse(data=appointment)
