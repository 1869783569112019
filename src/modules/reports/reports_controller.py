# src/modules/reports/reports_controller.py

from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.auth.guards import admin_guard, get_tenant_id
from src.auth.schemas import AuthUser
from src.common.database.database import get_db_session
from src.common.schemas import ApiResponse
from src.modules.reports import reports_service as service
from src.modules.reports import schemas

router = APIRouter(prefix="/reports", tags=["Reports"])


class ReportRange:
    """``startDate``/``endDate`` query pair; both default to the current month."""

    def __init__(
        self,
        start_date: Optional[date] = Query(None, alias="startDate"),
        end_date: Optional[date] = Query(None, alias="endDate"),
    ):
        self.start_date = start_date
        self.end_date = end_date


@router.get("/dashboard", response_model=ApiResponse[schemas.DashboardMetrics])
async def get_dashboard(
    period: ReportRange = Depends(),
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    return ApiResponse(data=await service.get_dashboard(db, tenant_id, period.start_date, period.end_date))


@router.get("/appointments", response_model=ApiResponse[schemas.AppointmentStats])
async def get_appointment_stats(
    period: ReportRange = Depends(),
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    return ApiResponse(data=await service.get_appointment_stats(db, tenant_id, period.start_date, period.end_date))


@router.get("/patients", response_model=ApiResponse[schemas.PatientStats])
async def get_patient_stats(
    period: ReportRange = Depends(),
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    return ApiResponse(data=await service.get_patient_stats(db, tenant_id, period.start_date, period.end_date))


@router.get("/revenue", response_model=ApiResponse[schemas.RevenueStats])
async def get_revenue_stats(
    period: ReportRange = Depends(),
    current_user: AuthUser = Depends(admin_guard),
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    return ApiResponse(data=await service.get_revenue_stats(db, tenant_id, period.start_date, period.end_date))


@router.get("/productivity", response_model=ApiResponse[schemas.ProductivityStats])
async def get_productivity_stats(
    period: ReportRange = Depends(),
    current_user: AuthUser = Depends(admin_guard),
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    stats = await service.get_productivity_stats(db, tenant_id, period.start_date, period.end_date)
    return ApiResponse(data=stats)


@router.get("/top-patients", response_model=ApiResponse[schemas.TopPatients])
async def get_top_patients(
    period: ReportRange = Depends(),
    limit: int = Query(10, ge=1, le=50),
    current_user: AuthUser = Depends(admin_guard),
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    """Patients ranked by amount paid and by completed visits."""
    stats = await service.get_top_patients(db, tenant_id, period.start_date, period.end_date, limit)
    return ApiResponse(data=stats)


@router.get("/medical-records", response_model=ApiResponse[schemas.MedicalRecordStats])
async def get_medical_record_stats(
    period: ReportRange = Depends(),
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    stats = await service.get_medical_record_stats(db, tenant_id, period.start_date, period.end_date)
    return ApiResponse(data=stats)
