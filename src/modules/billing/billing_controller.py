# src/modules/billing/billing_controller.py

from datetime import date
from typing import Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.auth.dependencies import get_current_user
from src.auth.guards import billing_guard, get_tenant_id, receptionist_guard
from src.auth.schemas import AuthUser
from src.common.database.database import get_db_session
from src.common.schemas import ApiResponse
from src.common.utils.global_functions import utcnow
from src.common.utils.pagination import PaginationParams
from src.models.models import PaymentStatus
from src.modules.billing import billing_service as service
from src.modules.billing import procedures, schemas

router = APIRouter(prefix="/billing", tags=["Billing"])


# ============================================================================
# PROCEDURE CATALOGUE
# ============================================================================

@router.get("/procedures", response_model=ApiResponse[List[schemas.Procedure]])
async def list_procedures(
    search: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    current_user: AuthUser = Depends(get_current_user),
):
    """Search the TUSS catalogue by code or description."""
    return ApiResponse(data=procedures.find_procedures(search, category))


@router.get("/procedures/categories", response_model=ApiResponse[List[str]])
async def list_procedure_categories(current_user: AuthUser = Depends(get_current_user)):
    return ApiResponse(data=procedures.get_categories())


@router.get("/procedures/grouped", response_model=ApiResponse[Dict[str, List[schemas.Procedure]]])
async def list_procedures_grouped(current_user: AuthUser = Depends(get_current_user)):
    return ApiResponse(data=procedures.group_by_category())


@router.get("/procedures/{code}", response_model=ApiResponse[schemas.Procedure])
async def get_procedure(code: str, current_user: AuthUser = Depends(get_current_user)):
    return ApiResponse(data=procedures.get_procedure(code))


# ============================================================================
# INVOICES
# ============================================================================

@router.get("/invoices", response_model=ApiResponse[List[schemas.InvoiceResponse]])
async def list_invoices(
    params: PaginationParams = Depends(),
    invoice_status: Optional[PaymentStatus] = Query(None, alias="status"),
    patient_id: Optional[UUID] = Query(None, alias="patientId"),
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    invoices, meta = await service.list_invoices(
        db, tenant_id, params, invoice_status, patient_id, start_date, end_date
    )
    return ApiResponse(data=invoices, meta=meta)


@router.get("/invoices/overdue", response_model=ApiResponse[List[schemas.InvoiceResponse]])
async def list_overdue_invoices(
    current_user: AuthUser = Depends(billing_guard),
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    """Pending or partially paid invoices past their due date, oldest first."""
    return ApiResponse(data=await service.list_overdue(db, tenant_id))


@router.get("/invoices/{invoice_id}", response_model=ApiResponse[schemas.InvoiceResponse])
async def get_invoice(
    invoice_id: UUID,
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    return ApiResponse(data=await service.get_invoice(db, tenant_id, invoice_id))


@router.post("/invoices", response_model=ApiResponse[schemas.InvoiceResponse], status_code=status.HTTP_201_CREATED)
async def create_invoice(
    data: schemas.InvoiceCreateRequest,
    request: Request,
    current_user: AuthUser = Depends(receptionist_guard),
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    """
    Issue an invoice.

    Item totals, subtotal and total are computed server-side; a discount larger
    than the subtotal fails with **INVALID_DISCOUNT**.
    """
    invoice = await service.create_invoice(db, tenant_id, data, current_user, request)
    return ApiResponse(data=invoice)


@router.patch("/invoices/{invoice_id}", response_model=ApiResponse[schemas.InvoiceResponse])
async def update_invoice(
    invoice_id: UUID,
    data: schemas.InvoiceUpdateRequest,
    request: Request,
    current_user: AuthUser = Depends(billing_guard),
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    invoice = await service.update_invoice(db, tenant_id, invoice_id, data, current_user, request)
    return ApiResponse(data=invoice)


@router.post("/invoices/{invoice_id}/pay", response_model=ApiResponse[schemas.InvoiceResponse])
async def pay_invoice(
    invoice_id: UUID,
    data: schemas.PaymentRequest,
    request: Request,
    current_user: AuthUser = Depends(receptionist_guard),
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    invoice = await service.register_payment(db, tenant_id, invoice_id, data, current_user, request)
    return ApiResponse(data=invoice)


@router.post("/invoices/{invoice_id}/cancel", response_model=ApiResponse[schemas.InvoiceResponse])
async def cancel_invoice(
    invoice_id: UUID,
    request: Request,
    data: Optional[schemas.CancelInvoiceRequest] = Body(None),
    current_user: AuthUser = Depends(billing_guard),
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    reason = data.reason if data else None
    invoice = await service.cancel_invoice(db, tenant_id, invoice_id, reason, current_user, request)
    return ApiResponse(data=invoice)


@router.get("/patient/{patient_id}", response_model=ApiResponse[List[schemas.InvoiceResponse]])
async def list_patient_invoices(
    patient_id: UUID,
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    return ApiResponse(data=await service.list_patient_invoices(db, tenant_id, patient_id))


# ============================================================================
# SUMMARIES
# ============================================================================

@router.get("/summary", response_model=ApiResponse[schemas.FinancialSummary])
async def get_financial_summary(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    current_user: AuthUser = Depends(billing_guard),
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    """Invoice counts and revenue for a period; defaults to the current month."""
    return ApiResponse(data=await service.get_financial_summary(db, tenant_id, start_date, end_date))


@router.get("/daily", response_model=ApiResponse[schemas.DailySummary])
async def get_daily_summary(
    day: Optional[date] = Query(None, alias="date"),
    current_user: AuthUser = Depends(billing_guard),
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    return ApiResponse(data=await service.get_daily_summary(db, tenant_id, day or utcnow().date()))
