# src/modules/reports/schemas.py

from datetime import date
from typing import List, Optional
from uuid import UUID

from src.common.schemas import CamelModel
from src.models.models import AppointmentStatus, AppointmentType, Gender, PaymentMethod, RecordType


class ReportPeriod(CamelModel):
    start_date: date
    end_date: date


# ============================================================================
# DASHBOARD
# ============================================================================

class DashboardAppointments(CamelModel):
    today: int
    period: int
    completed: int
    cancelled: int
    no_show: int
    completion_rate: float


class DashboardPatients(CamelModel):
    total: int
    active: int
    new_in_period: int


class DashboardRevenue(CamelModel):
    received: float
    pending: float
    pending_invoices: int


class DashboardInventory(CamelModel):
    low_stock_count: int
    expiring_soon_count: int


class DashboardMetrics(CamelModel):
    period: ReportPeriod
    appointments: DashboardAppointments
    patients: DashboardPatients
    revenue: DashboardRevenue
    inventory: DashboardInventory


# ============================================================================
# APPOINTMENTS
# ============================================================================

class StatusCount(CamelModel):
    status: AppointmentStatus
    count: int


class TypeCount(CamelModel):
    type: AppointmentType
    count: int


class ProfessionalCount(CamelModel):
    professional_id: UUID
    professional_name: str
    count: int


class DayCount(CamelModel):
    date: date
    count: int


class HourCount(CamelModel):
    hour: int
    count: int


class AppointmentStats(CamelModel):
    period: ReportPeriod
    total: int
    by_status: List[StatusCount]
    by_type: List[TypeCount]
    by_professional: List[ProfessionalCount]
    by_day: List[DayCount]
    by_hour: List[HourCount]
    average_duration: float
    completion_rate: float
    cancellation_rate: float
    no_show_rate: float


# ============================================================================
# PATIENTS
# ============================================================================

class GenderCount(CamelModel):
    gender: Gender
    count: int


class AgeGroupCount(CamelModel):
    age_group: str
    count: int


class HealthPlanCount(CamelModel):
    health_plan: Optional[str] = None
    count: int


class PatientStats(CamelModel):
    period: ReportPeriod
    total: int
    new_in_period: int
    by_gender: List[GenderCount]
    by_age_group: List[AgeGroupCount]
    by_health_plan: List[HealthPlanCount]
    retention_rate: float


# ============================================================================
# REVENUE
# ============================================================================

class MethodRevenue(CamelModel):
    method: Optional[PaymentMethod] = None
    total: float
    count: int


class DayRevenue(CamelModel):
    date: date
    total: float
    count: int


class ProcedureRevenue(CamelModel):
    procedure: str
    count: int
    total: float


class RevenueStats(CamelModel):
    period: ReportPeriod
    total: float
    pending: float
    invoice_count: int
    average_ticket: float
    by_payment_method: List[MethodRevenue]
    by_day: List[DayRevenue]
    top_procedures: List[ProcedureRevenue]


# ============================================================================
# PRODUCTIVITY
# ============================================================================

class ProfessionalProductivity(CamelModel):
    id: UUID
    name: str
    appointments: int
    completed_appointments: int
    medical_records: int
    average_appointment_duration: float
    occupancy_rate: float


class ProductivityOverall(CamelModel):
    total_appointments: int
    total_completed: int
    average_occupancy: float
    working_days: int


class ProductivityStats(CamelModel):
    period: ReportPeriod
    professionals: List[ProfessionalProductivity]
    overall: ProductivityOverall


# ============================================================================
# TOP PATIENTS / MEDICAL RECORDS
# ============================================================================

class TopPatientInfo(CamelModel):
    id: UUID
    full_name: str
    phone: Optional[str] = None
    email: Optional[str] = None


class TopPatientByRevenue(CamelModel):
    patient: TopPatientInfo
    total_spent: float
    invoice_count: int


class TopPatientByVisits(CamelModel):
    patient: TopPatientInfo
    visit_count: int


class TopPatients(CamelModel):
    period: ReportPeriod
    by_revenue: List[TopPatientByRevenue]
    by_visits: List[TopPatientByVisits]


class RecordTypeCount(CamelModel):
    type: RecordType
    count: int


class RecordProfessionalCount(CamelModel):
    professional_id: UUID
    professional_name: str
    count: int


class MedicalRecordStats(CamelModel):
    period: ReportPeriod
    total: int
    signed: int
    signed_ratio: float
    by_type: List[RecordTypeCount]
    by_professional: List[RecordProfessionalCount]
