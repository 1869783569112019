# src/modules/billing/schemas.py

from datetime import date, datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import Field, field_validator

from src.common.schemas import CamelModel
from src.common.utils.global_functions import as_utc
from src.models.models import PaymentMethod, PaymentStatus


class InvoiceItem(CamelModel):
    description: str = Field(min_length=1)
    procedure_code: Optional[str] = None
    quantity: int = Field(ge=1)
    unit_price: float = Field(ge=0)
    total: Optional[float] = Field(default=None, ge=0)


class HealthPlanInfo(CamelModel):
    plan_name: str
    plan_code: str
    authorization_number: Optional[str] = None
    guide_number: Optional[str] = None


# ============================================================================
# REQUEST SCHEMAS
# ============================================================================

class InvoiceCreateRequest(CamelModel):
    patient_id: UUID
    appointment_id: Optional[UUID] = None
    items: List[InvoiceItem] = Field(min_length=1)
    discount: float = Field(default=0, ge=0)
    due_date: datetime
    payment_method: Optional[PaymentMethod] = None
    health_plan_info: Optional[HealthPlanInfo] = None
    notes: Optional[str] = None

    @field_validator("due_date")
    def due_date_utc(cls, value):
        return as_utc(value)


class InvoiceUpdateRequest(CamelModel):
    items: Optional[List[InvoiceItem]] = Field(default=None, min_length=1)
    discount: Optional[float] = Field(default=None, ge=0)
    due_date: Optional[datetime] = None
    payment_method: Optional[PaymentMethod] = None
    health_plan_info: Optional[HealthPlanInfo] = None
    notes: Optional[str] = None

    @field_validator("due_date")
    def due_date_utc(cls, value):
        return as_utc(value)


class PaymentRequest(CamelModel):
    payment_method: PaymentMethod
    amount: Optional[float] = Field(default=None, gt=0)
    transaction_id: Optional[str] = None
    notes: Optional[str] = None


class CancelInvoiceRequest(CamelModel):
    reason: Optional[str] = None


# ============================================================================
# RESPONSE SCHEMAS
# ============================================================================

class InvoicePatient(CamelModel):
    id: UUID
    full_name: str
    phone: Optional[str] = None
    email: Optional[str] = None


class InvoiceResponse(CamelModel):
    id: UUID
    tenant_id: UUID
    patient_id: UUID
    appointment_id: Optional[UUID] = None
    invoice_number: str
    items: List[Dict[str, Any]]
    subtotal: float
    discount: float
    total: float
    amount_paid: float
    status: PaymentStatus
    payment_method: Optional[PaymentMethod] = None
    transaction_id: Optional[str] = None
    health_plan_info: Optional[Dict[str, Any]] = None
    due_date: datetime
    paid_at: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    patient: Optional[InvoicePatient] = None


class MethodTotal(CamelModel):
    method: Optional[PaymentMethod] = None
    total: float
    count: int


class SummaryPeriod(CamelModel):
    start_date: date
    end_date: date


class InvoiceCounts(CamelModel):
    total: int
    paid: int
    pending: int
    partial: int
    cancelled: int
    overdue: int


class RevenueSummary(CamelModel):
    total: float
    pending: float
    by_payment_method: List[MethodTotal]


class FinancialSummary(CamelModel):
    period: SummaryPeriod
    invoices: InvoiceCounts
    revenue: RevenueSummary


class DailySummary(CamelModel):
    date: date
    total_revenue: float
    invoice_count: int
    by_payment_method: List[MethodTotal]
    invoices: List[InvoiceResponse]


class Procedure(CamelModel):
    code: str
    description: str
    category: str
    default_price: float
