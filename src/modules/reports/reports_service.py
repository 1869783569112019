# src/modules/reports/reports_service.py
"""Read-only aggregates over a tenant's operational data."""

from collections import Counter, defaultdict
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from src.common.utils.global_functions import as_utc, date_range_bounds, day_bounds, to_float, utcnow
from src.models.models import (
    Appointment,
    AppointmentStatus,
    Invoice,
    MedicalRecord,
    Patient,
    PaymentStatus,
    User,
    UserRole,
)
from src.modules.inventory import inventory_service
from src.modules.reports import schemas

SLOTS_PER_WORKING_DAY = 16
TOP_PROCEDURES_LIMIT = 10
AGE_GROUPS = [(17, "0-17"), (29, "18-29"), (44, "30-44"), (59, "45-59"), (74, "60-74")]
OLDEST_AGE_GROUP = "75+"
OPEN_INVOICE_STATUSES = [PaymentStatus.PENDING, PaymentStatus.PARTIAL]


def resolve_period(start_date: Optional[date], end_date: Optional[date]) -> Tuple[datetime, datetime, schemas.ReportPeriod]:
    start, end = date_range_bounds(start_date, end_date)
    period = schemas.ReportPeriod(start_date=start.date(), end_date=(end - timedelta(days=1)).date())
    return start, end, period


def rate(part: int, whole: int) -> float:
    return round(part / whole * 100, 2) if whole else 0.0


def age_on(birth_date: date, today: date) -> int:
    years = today.year - birth_date.year
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        years -= 1
    return years


def age_group(age: int) -> str:
    for upper, label in AGE_GROUPS:
        if age <= upper:
            return label
    return OLDEST_AGE_GROUP


def working_days(start: date, end: date) -> int:
    """Monday to Friday days in [start, end)."""
    days = 0
    current = start
    while current < end:
        if current.weekday() < 5:
            days += 1
        current += timedelta(days=1)
    return days


def minutes_between(start: datetime, end: datetime) -> float:
    return (as_utc(end) - as_utc(start)).total_seconds() / 60


async def appointments_between(
    db: AsyncSession,
    tenant_id: UUID,
    start: datetime,
    end: datetime,
) -> List[Appointment]:
    query = select(Appointment).where(
        Appointment.tenant_id == tenant_id,
        Appointment.start_time >= start,
        Appointment.start_time < end,
    )
    result = await db.execute(query.order_by(Appointment.start_time.asc()))
    return list(result.scalars().all())


async def paid_invoices_between(db: AsyncSession, tenant_id: UUID, start: datetime, end: datetime) -> List[Invoice]:
    result = await db.execute(
        select(Invoice).where(
            Invoice.tenant_id == tenant_id,
            Invoice.status == PaymentStatus.PAID,
            Invoice.paid_at >= start,
            Invoice.paid_at < end,
        )
    )
    return list(result.scalars().all())


async def open_balance(db: AsyncSession, tenant_id: UUID, start: datetime, end: datetime) -> Tuple[Decimal, int]:
    """Outstanding amount and count of pending or partially paid invoices issued in the period."""
    result = await db.execute(
        select(func.sum(Invoice.total - Invoice.amount_paid), func.count(Invoice.id)).where(
            Invoice.tenant_id == tenant_id,
            Invoice.status.in_(OPEN_INVOICE_STATUSES),
            Invoice.created_at >= start,
            Invoice.created_at < end,
        )
    )
    amount, count = result.one()
    return Decimal(str(amount or 0)), count or 0


async def count_where(db: AsyncSession, column, *conditions) -> int:
    result = await db.execute(select(func.count(column)).where(*conditions))
    return result.scalar() or 0


# ============================================================================
# REPORTS
# ============================================================================

async def get_dashboard(
    db: AsyncSession,
    tenant_id: UUID,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> schemas.DashboardMetrics:
    start, end, period = resolve_period(start_date, end_date)
    today_start, today_end = day_bounds(utcnow().date())

    today_count = await count_where(
        db, Appointment.id,
        Appointment.tenant_id == tenant_id,
        Appointment.start_time >= today_start,
        Appointment.start_time < today_end,
    )
    result = await db.execute(
        select(Appointment.status, func.count(Appointment.id))
        .where(Appointment.tenant_id == tenant_id, Appointment.start_time >= start, Appointment.start_time < end)
        .group_by(Appointment.status)
    )
    by_status = dict(result.all())
    period_total = sum(by_status.values())
    completed = by_status.get(AppointmentStatus.COMPLETED, 0)

    active_patients = await db.execute(
        select(func.count(func.distinct(Appointment.patient_id))).where(
            Appointment.tenant_id == tenant_id,
            Appointment.status == AppointmentStatus.COMPLETED,
            Appointment.start_time >= start,
            Appointment.start_time < end,
        )
    )
    received = await db.execute(
        select(func.sum(Invoice.total)).where(
            Invoice.tenant_id == tenant_id,
            Invoice.status == PaymentStatus.PAID,
            Invoice.paid_at >= start,
            Invoice.paid_at < end,
        )
    )
    pending, pending_count = await open_balance(db, tenant_id, start, end)

    return schemas.DashboardMetrics(
        period=period,
        appointments=schemas.DashboardAppointments(
            today=today_count,
            period=period_total,
            completed=completed,
            cancelled=by_status.get(AppointmentStatus.CANCELLED, 0),
            no_show=by_status.get(AppointmentStatus.NO_SHOW, 0),
            completion_rate=rate(completed, period_total),
        ),
        patients=schemas.DashboardPatients(
            total=await count_where(db, Patient.id, Patient.tenant_id == tenant_id, Patient.is_active.is_(True)),
            active=active_patients.scalar() or 0,
            new_in_period=await count_where(
                db, Patient.id,
                Patient.tenant_id == tenant_id,
                Patient.created_at >= start,
                Patient.created_at < end,
            ),
        ),
        revenue=schemas.DashboardRevenue(
            received=to_float(received.scalar()),
            pending=to_float(pending),
            pending_invoices=pending_count,
        ),
        inventory=schemas.DashboardInventory(
            low_stock_count=len(await inventory_service.list_low_stock(db, tenant_id)),
            expiring_soon_count=len(await inventory_service.list_expiring(db, tenant_id, 30)),
        ),
    )


async def get_appointment_stats(
    db: AsyncSession,
    tenant_id: UUID,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> schemas.AppointmentStats:
    start, end, period = resolve_period(start_date, end_date)
    appointments = await appointments_between(db, tenant_id, start, end)

    statuses = Counter(a.status for a in appointments)
    types = Counter(a.type for a in appointments)
    days = Counter(as_utc(a.start_time).date() for a in appointments)
    hours = Counter(as_utc(a.start_time).hour for a in appointments)
    professionals: Dict[UUID, schemas.ProfessionalCount] = {}
    for appointment in appointments:
        entry = professionals.get(appointment.professional_id)
        if entry is None:
            entry = professionals[appointment.professional_id] = schemas.ProfessionalCount(
                professional_id=appointment.professional_id,
                professional_name=appointment.professional.name if appointment.professional else "",
                count=0,
            )
        entry.count += 1

    total = len(appointments)
    durations = [minutes_between(a.start_time, a.end_time) for a in appointments]

    return schemas.AppointmentStats(
        period=period,
        total=total,
        by_status=[schemas.StatusCount(status=s, count=statuses[s]) for s in AppointmentStatus if statuses[s]],
        by_type=[schemas.TypeCount(type=t, count=c) for t, c in types.most_common()],
        by_professional=sorted(professionals.values(), key=lambda p: p.count, reverse=True),
        by_day=[schemas.DayCount(date=d, count=days[d]) for d in sorted(days)],
        by_hour=[schemas.HourCount(hour=h, count=hours[h]) for h in sorted(hours)],
        average_duration=round(sum(durations) / len(durations), 2) if durations else 0.0,
        completion_rate=rate(statuses[AppointmentStatus.COMPLETED], total),
        cancellation_rate=rate(statuses[AppointmentStatus.CANCELLED], total),
        no_show_rate=rate(statuses[AppointmentStatus.NO_SHOW], total),
    )


async def get_patient_stats(
    db: AsyncSession,
    tenant_id: UUID,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> schemas.PatientStats:
    start, end, period = resolve_period(start_date, end_date)
    result = await db.execute(select(Patient).where(Patient.tenant_id == tenant_id))
    patients = list(result.scalars().all())
    today = utcnow().date()

    genders = Counter(p.gender for p in patients)
    ages = Counter(age_group(age_on(p.birth_date, today)) for p in patients)
    plans = Counter(p.health_plan or None for p in patients)
    new_in_period = sum(1 for p in patients if start <= as_utc(p.created_at) < end)

    visits = await db.execute(
        select(Appointment.patient_id, func.count(Appointment.id))
        .where(Appointment.tenant_id == tenant_id)
        .group_by(Appointment.patient_id)
    )
    visit_counts = [count for _, count in visits.all()]
    returning = sum(1 for count in visit_counts if count > 1)

    age_labels = [label for _, label in AGE_GROUPS] + [OLDEST_AGE_GROUP]
    return schemas.PatientStats(
        period=period,
        total=len(patients),
        new_in_period=new_in_period,
        by_gender=[schemas.GenderCount(gender=g, count=c) for g, c in genders.most_common()],
        by_age_group=[schemas.AgeGroupCount(age_group=label, count=ages[label]) for label in age_labels],
        by_health_plan=[schemas.HealthPlanCount(health_plan=p, count=c) for p, c in plans.most_common()],
        retention_rate=rate(returning, len(visit_counts)),
    )


async def get_revenue_stats(
    db: AsyncSession,
    tenant_id: UUID,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> schemas.RevenueStats:
    start, end, period = resolve_period(start_date, end_date)
    invoices = await paid_invoices_between(db, tenant_id, start, end)
    pending, _ = await open_balance(db, tenant_id, start, end)

    methods: Dict[object, List] = defaultdict(lambda: [Decimal("0"), 0])
    days: Dict[date, List] = defaultdict(lambda: [Decimal("0"), 0])
    procedures: Dict[str, List] = defaultdict(lambda: [0, Decimal("0")])
    total = Decimal("0")
    for invoice in invoices:
        amount = Decimal(str(invoice.total))
        total += amount
        methods[invoice.payment_method][0] += amount
        methods[invoice.payment_method][1] += 1
        day = as_utc(invoice.paid_at).date()
        days[day][0] += amount
        days[day][1] += 1
        for item in invoice.items or []:
            procedures[item.get("description", "")][0] += 1
            procedures[item.get("description", "")][1] += Decimal(str(item.get("total") or 0))

    top_procedures = sorted(procedures.items(), key=lambda entry: entry[1][1], reverse=True)[:TOP_PROCEDURES_LIMIT]
    return schemas.RevenueStats(
        period=period,
        total=to_float(total),
        pending=to_float(pending),
        invoice_count=len(invoices),
        average_ticket=round(to_float(total) / len(invoices), 2) if invoices else 0.0,
        by_payment_method=sorted(
            (schemas.MethodRevenue(method=m, total=to_float(t), count=c) for m, (t, c) in methods.items()),
            key=lambda entry: entry.total,
            reverse=True,
        ),
        by_day=[schemas.DayRevenue(date=d, total=to_float(days[d][0]), count=days[d][1]) for d in sorted(days)],
        top_procedures=[
            schemas.ProcedureRevenue(procedure=name, count=count, total=to_float(amount))
            for name, (count, amount) in top_procedures
        ],
    )


async def get_productivity_stats(
    db: AsyncSession,
    tenant_id: UUID,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> schemas.ProductivityStats:
    """
    Appointments, completions and records per professional.

    Occupancy is measured against 16 thirty-minute slots per working day
    (Monday to Friday) and capped at 100%.
    """
    start, end, period = resolve_period(start_date, end_date)
    result = await db.execute(
        select(User)
        .where(User.tenant_id == tenant_id, User.role.in_([UserRole.DOCTOR, UserRole.NURSE]))
        .order_by(User.name.asc())
    )
    professionals = list(result.scalars().all())
    appointments = await appointments_between(db, tenant_id, start, end)
    records = await db.execute(
        select(MedicalRecord.professional_id, func.count(MedicalRecord.id))
        .where(
            MedicalRecord.tenant_id == tenant_id,
            MedicalRecord.created_at >= start,
            MedicalRecord.created_at < end,
        )
        .group_by(MedicalRecord.professional_id)
    )
    records_by_professional = dict(records.all())

    by_professional: Dict[UUID, List[Appointment]] = defaultdict(list)
    for appointment in appointments:
        by_professional[appointment.professional_id].append(appointment)

    days = working_days(start.date(), end.date())
    slots = days * SLOTS_PER_WORKING_DAY
    rows = []
    for professional in professionals:
        own = by_professional.get(professional.id, [])
        completed = [a for a in own if a.status == AppointmentStatus.COMPLETED]
        durations = [minutes_between(a.start_time, a.end_time) for a in completed]
        rows.append(schemas.ProfessionalProductivity(
            id=professional.id,
            name=professional.name,
            appointments=len(own),
            completed_appointments=len(completed),
            medical_records=records_by_professional.get(professional.id, 0),
            average_appointment_duration=round(sum(durations) / len(durations), 2) if durations else 0.0,
            occupancy_rate=min(rate(len(own), slots), 100.0),
        ))

    rows.sort(key=lambda row: row.appointments, reverse=True)
    return schemas.ProductivityStats(
        period=period,
        professionals=rows,
        overall=schemas.ProductivityOverall(
            total_appointments=sum(row.appointments for row in rows),
            total_completed=sum(row.completed_appointments for row in rows),
            average_occupancy=round(sum(row.occupancy_rate for row in rows) / len(rows), 2) if rows else 0.0,
            working_days=days,
        ),
    )


async def get_top_patients(
    db: AsyncSession,
    tenant_id: UUID,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    limit: int = 10,
) -> schemas.TopPatients:
    start, end, period = resolve_period(start_date, end_date)

    spent = func.sum(Invoice.total)
    by_revenue = await db.execute(
        select(Invoice.patient_id, spent, func.count(Invoice.id))
        .where(
            Invoice.tenant_id == tenant_id,
            Invoice.status == PaymentStatus.PAID,
            Invoice.paid_at >= start,
            Invoice.paid_at < end,
        )
        .group_by(Invoice.patient_id)
        .order_by(spent.desc())
        .limit(limit)
    )
    revenue_rows = by_revenue.all()

    visits = func.count(Appointment.id)
    by_visits = await db.execute(
        select(Appointment.patient_id, visits)
        .where(
            Appointment.tenant_id == tenant_id,
            Appointment.status == AppointmentStatus.COMPLETED,
            Appointment.start_time >= start,
            Appointment.start_time < end,
        )
        .group_by(Appointment.patient_id)
        .order_by(visits.desc())
        .limit(limit)
    )
    visit_rows = by_visits.all()

    patient_ids = {row[0] for row in revenue_rows} | {row[0] for row in visit_rows}
    patients = {}
    if patient_ids:
        result = await db.execute(select(Patient).where(Patient.tenant_id == tenant_id, Patient.id.in_(patient_ids)))
        patients = {p.id: schemas.TopPatientInfo.model_validate(p) for p in result.scalars().all()}

    return schemas.TopPatients(
        period=period,
        by_revenue=[
            schemas.TopPatientByRevenue(patient=patients[pid], total_spent=to_float(total), invoice_count=count)
            for pid, total, count in revenue_rows
            if pid in patients
        ],
        by_visits=[
            schemas.TopPatientByVisits(patient=patients[pid], visit_count=count)
            for pid, count in visit_rows
            if pid in patients
        ],
    )


async def get_medical_record_stats(
    db: AsyncSession,
    tenant_id: UUID,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> schemas.MedicalRecordStats:
    start, end, period = resolve_period(start_date, end_date)
    in_period = [
        MedicalRecord.tenant_id == tenant_id,
        MedicalRecord.created_at >= start,
        MedicalRecord.created_at < end,
    ]

    by_type = await db.execute(
        select(MedicalRecord.type, func.count(MedicalRecord.id)).where(*in_period).group_by(MedicalRecord.type)
    )
    type_rows = by_type.all()
    by_professional = await db.execute(
        select(MedicalRecord.professional_id, User.name, func.count(MedicalRecord.id))
        .join(User, User.id == MedicalRecord.professional_id)
        .where(*in_period)
        .group_by(MedicalRecord.professional_id, User.name)
    )
    signed = await count_where(db, MedicalRecord.id, *in_period, MedicalRecord.signed_at.is_not(None))
    total = sum(count for _, count in type_rows)

    return schemas.MedicalRecordStats(
        period=period,
        total=total,
        signed=signed,
        signed_ratio=rate(signed, total),
        by_type=[schemas.RecordTypeCount(type=t, count=c) for t, c in type_rows],
        by_professional=sorted(
            (
                schemas.RecordProfessionalCount(professional_id=pid, professional_name=name, count=count)
                for pid, name, count in by_professional.all()
            ),
            key=lambda entry: entry.count,
            reverse=True,
        ),
    )
