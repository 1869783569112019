# src/modules/billing/billing_service.py

import logging
from datetime import date, timedelta
from decimal import Decimal
from typing import List, Optional, Tuple
from uuid import UUID

from fastapi import Request
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from src.auth.schemas import AuthUser
from src.common.audit.audit_service import log_action
from src.common.exceptions.exceptions import BadRequestException, NotFoundException
from src.common.schemas import PaginationMeta
from src.common.utils.global_functions import date_range_bounds, day_bounds, month_bounds, to_float, utcnow
from src.common.utils.pagination import PaginationParams, paginate
from src.models.models import Appointment, AuditAction, Invoice, Patient, PaymentStatus
from src.modules.billing import schemas

logger = logging.getLogger(__name__)

OPEN_STATUSES = [PaymentStatus.PENDING, PaymentStatus.PARTIAL]
CENT = Decimal("0.01")


def money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENT)


def price_items(items: List[schemas.InvoiceItem]) -> Tuple[list, Decimal]:
    """Item totals are always quantity x unit price; client-sent totals are ignored."""
    priced = []
    subtotal = Decimal("0")
    for item in items:
        total = money(item.unit_price) * item.quantity
        subtotal += total
        priced.append({
            "description": item.description,
            "procedureCode": item.procedure_code,
            "quantity": item.quantity,
            "unitPrice": float(money(item.unit_price)),
            "total": float(total),
        })
    return priced, subtotal


def compute_total(subtotal: Decimal, discount: Decimal) -> Decimal:
    total = subtotal - discount
    if total < 0:
        raise BadRequestException("Discount cannot exceed subtotal", "INVALID_DISCOUNT")
    return total


async def generate_invoice_number(db: AsyncSession, tenant_id: UUID) -> str:
    """``{YYYY}{MM}-{sequence}`` where the sequence restarts every month."""
    start, end = month_bounds()
    result = await db.execute(
        select(func.count(Invoice.id)).where(
            Invoice.tenant_id == tenant_id,
            Invoice.created_at >= start,
            Invoice.created_at < end,
        )
    )
    count = result.scalar() or 0
    return f"{start.year}{start.month:02d}-{count + 1:05d}"


# ============================================================================
# LOOKUPS
# ============================================================================

async def get_invoice(db: AsyncSession, tenant_id: UUID, invoice_id: UUID) -> Invoice:
    result = await db.execute(select(Invoice).where(Invoice.id == invoice_id, Invoice.tenant_id == tenant_id))
    invoice = result.scalars().first()
    if invoice is None:
        raise NotFoundException("Invoice not found", "INVOICE_NOT_FOUND")
    return invoice


async def ensure_patient(db: AsyncSession, tenant_id: UUID, patient_id: UUID) -> None:
    result = await db.execute(select(Patient.id).where(Patient.id == patient_id, Patient.tenant_id == tenant_id))
    if result.first() is None:
        raise NotFoundException("Patient not found", "PATIENT_NOT_FOUND")


def ensure_open(invoice: Invoice) -> None:
    if invoice.status == PaymentStatus.PAID:
        raise BadRequestException("Invoice already paid", "INVOICE_ALREADY_PAID")
    if invoice.status == PaymentStatus.CANCELLED:
        raise BadRequestException("Invoice is cancelled", "INVOICE_CANCELLED")


# ============================================================================
# QUERIES
# ============================================================================

async def list_invoices(
    db: AsyncSession,
    tenant_id: UUID,
    params: PaginationParams,
    status: Optional[PaymentStatus] = None,
    patient_id: Optional[UUID] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> Tuple[List[Invoice], PaginationMeta]:
    query = select(Invoice).where(Invoice.tenant_id == tenant_id)
    if status is not None:
        query = query.where(Invoice.status == status)
    if patient_id is not None:
        query = query.where(Invoice.patient_id == patient_id)
    if start_date is not None:
        query = query.where(Invoice.created_at >= day_bounds(start_date)[0])
    if end_date is not None:
        query = query.where(Invoice.created_at < day_bounds(end_date)[1])

    return await paginate(
        db,
        query,
        params,
        sort_columns={
            "createdAt": Invoice.created_at,
            "dueDate": Invoice.due_date,
            "total": Invoice.total,
            "invoiceNumber": Invoice.invoice_number,
        },
        default_order=[Invoice.created_at.desc()],
    )


async def list_patient_invoices(db: AsyncSession, tenant_id: UUID, patient_id: UUID) -> List[Invoice]:
    await ensure_patient(db, tenant_id, patient_id)
    result = await db.execute(
        select(Invoice)
        .where(Invoice.tenant_id == tenant_id, Invoice.patient_id == patient_id)
        .order_by(Invoice.created_at.desc())
    )
    return list(result.scalars().all())


async def list_overdue(db: AsyncSession, tenant_id: UUID) -> List[Invoice]:
    result = await db.execute(
        select(Invoice)
        .where(
            Invoice.tenant_id == tenant_id,
            Invoice.status.in_(OPEN_STATUSES),
            Invoice.due_date < utcnow(),
        )
        .order_by(Invoice.due_date.asc())
    )
    return list(result.scalars().all())


async def revenue_by_method(db: AsyncSession, *conditions) -> List[schemas.MethodTotal]:
    result = await db.execute(
        select(Invoice.payment_method, func.sum(Invoice.total), func.count(Invoice.id))
        .where(*conditions)
        .group_by(Invoice.payment_method)
    )
    return [
        schemas.MethodTotal(method=method, total=to_float(total), count=count)
        for method, total, count in result.all()
    ]


async def get_financial_summary(
    db: AsyncSession,
    tenant_id: UUID,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> schemas.FinancialSummary:
    start, end = date_range_bounds(start_date, end_date)
    in_period = [Invoice.tenant_id == tenant_id, Invoice.created_at >= start, Invoice.created_at < end]

    result = await db.execute(
        select(Invoice.status, func.count(Invoice.id), func.sum(Invoice.total), func.sum(Invoice.amount_paid))
        .where(*in_period)
        .group_by(Invoice.status)
    )
    counts = {status: 0 for status in PaymentStatus}
    totals = {status: Decimal("0") for status in PaymentStatus}
    paid_amounts = {status: Decimal("0") for status in PaymentStatus}
    for status, count, total, amount_paid in result.all():
        counts[status] = count
        totals[status] = Decimal(str(total or 0))
        paid_amounts[status] = Decimal(str(amount_paid or 0))

    overdue = await db.execute(
        select(func.count(Invoice.id)).where(
            *in_period,
            Invoice.status.in_(OPEN_STATUSES),
            Invoice.due_date < utcnow(),
        )
    )

    pending = (
        totals[PaymentStatus.PENDING]
        + totals[PaymentStatus.PARTIAL]
        - paid_amounts[PaymentStatus.PARTIAL]
    )
    return schemas.FinancialSummary(
        period=schemas.SummaryPeriod(start_date=start.date(), end_date=(end - timedelta(days=1)).date()),
        invoices=schemas.InvoiceCounts(
            total=sum(counts.values()),
            paid=counts[PaymentStatus.PAID],
            pending=counts[PaymentStatus.PENDING],
            partial=counts[PaymentStatus.PARTIAL],
            cancelled=counts[PaymentStatus.CANCELLED],
            overdue=overdue.scalar() or 0,
        ),
        revenue=schemas.RevenueSummary(
            total=to_float(totals[PaymentStatus.PAID]),
            pending=to_float(pending),
            by_payment_method=await revenue_by_method(db, *in_period, Invoice.status == PaymentStatus.PAID),
        ),
    )


async def get_daily_summary(db: AsyncSession, tenant_id: UUID, day: date) -> schemas.DailySummary:
    """Invoices settled on ``day``."""
    start, end = day_bounds(day)
    paid_that_day = [
        Invoice.tenant_id == tenant_id,
        Invoice.status == PaymentStatus.PAID,
        Invoice.paid_at >= start,
        Invoice.paid_at < end,
    ]
    result = await db.execute(select(Invoice).where(*paid_that_day).order_by(Invoice.paid_at.asc()))
    invoices = list(result.scalars().all())

    return schemas.DailySummary(
        date=day,
        total_revenue=to_float(sum((Decimal(str(i.total)) for i in invoices), Decimal("0"))),
        invoice_count=len(invoices),
        by_payment_method=await revenue_by_method(db, *paid_that_day),
        invoices=[schemas.InvoiceResponse.model_validate(i) for i in invoices],
    )


# ============================================================================
# COMMANDS
# ============================================================================

async def create_invoice(
    db: AsyncSession,
    tenant_id: UUID,
    data: schemas.InvoiceCreateRequest,
    current_user: AuthUser,
    request: Optional[Request] = None,
) -> Invoice:
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

    items, subtotal = price_items(data.items)
    discount = money(data.discount)
    total = compute_total(subtotal, discount)

    invoice = Invoice(
        tenant_id=tenant_id,
        patient_id=data.patient_id,
        appointment_id=data.appointment_id,
        invoice_number=await generate_invoice_number(db, tenant_id),
        items=items,
        subtotal=subtotal,
        discount=discount,
        total=total,
        amount_paid=Decimal("0"),
        status=PaymentStatus.PENDING,
        payment_method=data.payment_method,
        health_plan_info=data.health_plan_info.model_dump(by_alias=True) if data.health_plan_info else None,
        due_date=data.due_date,
        notes=data.notes,
    )
    db.add(invoice)
    await db.flush()
    await log_action(
        db,
        tenant_id=tenant_id,
        user_id=current_user.id,
        action=AuditAction.CREATE,
        resource="invoice",
        resource_id=invoice.id,
        new_value={"invoiceNumber": invoice.invoice_number, "total": float(total)},
        request=request,
    )
    await db.commit()
    await db.refresh(invoice)

    logger.info(
        "Invoice created",
        extra={"invoiceId": str(invoice.id), "invoiceNumber": invoice.invoice_number, "total": float(total)},
    )
    return invoice


async def update_invoice(
    db: AsyncSession,
    tenant_id: UUID,
    invoice_id: UUID,
    data: schemas.InvoiceUpdateRequest,
    current_user: AuthUser,
    request: Optional[Request] = None,
) -> Invoice:
    invoice = await get_invoice(db, tenant_id, invoice_id)
    ensure_open(invoice)
    changes = data.model_dump(exclude_unset=True)

    if data.items is not None or data.discount is not None:
        if data.items is not None:
            items, subtotal = price_items(data.items)
        else:
            subtotal = money(invoice.subtotal)
        discount = money(data.discount) if data.discount is not None else money(invoice.discount)
        total = compute_total(subtotal, discount)
        amount_paid = money(invoice.amount_paid or 0)
        if total < amount_paid:
            raise BadRequestException(
                "Invoice total cannot be lower than the amount already paid",
                "INVALID_TOTAL",
                {"total": float(total), "amountPaid": float(amount_paid)},
            )
        if data.items is not None:
            invoice.items = items
        invoice.total = total
        invoice.subtotal = subtotal
        invoice.discount = discount

    if data.due_date is not None:
        invoice.due_date = data.due_date
    if "payment_method" in changes:
        invoice.payment_method = data.payment_method
    if "health_plan_info" in changes:
        invoice.health_plan_info = data.health_plan_info.model_dump(by_alias=True) if data.health_plan_info else None
    if "notes" in changes:
        invoice.notes = data.notes

    await log_action(
        db,
        tenant_id=tenant_id,
        user_id=current_user.id,
        action=AuditAction.UPDATE,
        resource="invoice",
        resource_id=invoice.id,
        new_value={"fields": sorted(changes)},
        request=request,
    )
    await db.commit()
    await db.refresh(invoice)

    logger.info("Invoice updated", extra={"invoiceId": str(invoice.id)})
    return invoice


async def register_payment(
    db: AsyncSession,
    tenant_id: UUID,
    invoice_id: UUID,
    data: schemas.PaymentRequest,
    current_user: AuthUser,
    request: Optional[Request] = None,
) -> Invoice:
    """
    Register a payment; amounts accumulate until the invoice total is covered.

    Omitting **amount** settles the remaining balance.
    """
    invoice = await get_invoice(db, tenant_id, invoice_id)
    ensure_open(invoice)

    total = money(invoice.total)
    already_paid = money(invoice.amount_paid or 0)
    amount = money(data.amount) if data.amount is not None else total - already_paid
    amount_paid = already_paid + amount
    previous_status = invoice.status

    invoice.amount_paid = amount_paid
    invoice.payment_method = data.payment_method
    if data.transaction_id:
        invoice.transaction_id = data.transaction_id
    if amount_paid < total:
        invoice.status = PaymentStatus.PARTIAL
    else:
        invoice.status = PaymentStatus.PAID
        invoice.paid_at = utcnow()
    if data.notes:
        invoice.notes = f"{invoice.notes or ''}\n{data.notes}"

    await log_action(
        db,
        tenant_id=tenant_id,
        user_id=current_user.id,
        action=AuditAction.UPDATE,
        resource="invoice",
        resource_id=invoice.id,
        old_value={"status": previous_status.value},
        new_value={
            "status": invoice.status.value,
            "amount": float(amount),
            "paymentMethod": data.payment_method.value,
        },
        request=request,
    )
    await db.commit()
    await db.refresh(invoice)

    logger.info(
        "Payment registered",
        extra={"invoiceId": str(invoice.id), "amount": float(amount), "status": invoice.status.value},
    )
    return invoice


async def cancel_invoice(
    db: AsyncSession,
    tenant_id: UUID,
    invoice_id: UUID,
    reason: Optional[str],
    current_user: AuthUser,
    request: Optional[Request] = None,
) -> Invoice:
    invoice = await get_invoice(db, tenant_id, invoice_id)
    if invoice.status == PaymentStatus.PAID:
        raise BadRequestException("Cannot cancel a paid invoice", "INVOICE_ALREADY_PAID")

    previous_status = invoice.status
    invoice.status = PaymentStatus.CANCELLED
    if reason:
        invoice.notes = f"{invoice.notes or ''}\nCancelamento: {reason}"

    await log_action(
        db,
        tenant_id=tenant_id,
        user_id=current_user.id,
        action=AuditAction.UPDATE,
        resource="invoice",
        resource_id=invoice.id,
        old_value={"status": previous_status.value},
        new_value={"status": PaymentStatus.CANCELLED.value, "reason": reason},
        request=request,
    )
    await db.commit()
    await db.refresh(invoice)

    logger.info("Invoice cancelled", extra={"invoiceId": str(invoice.id), "reason": reason})
    return invoice
