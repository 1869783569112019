# src/models/models.py

from datetime import datetime, timezone
import uuid
import enum

from sqlalchemy import (
    JSON, Boolean, Column, Date, ForeignKey, Index, Integer, Numeric,
    String, Text, DateTime, Uuid,
    Enum as SAEnum, UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

# JSONB on PostgreSQL, plain JSON elsewhere (tests run on SQLite)
JSONType = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# ENUMS
# ============================================================================

class TenantStatus(enum.Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    SUSPENDED = "SUSPENDED"
    TRIAL = "TRIAL"


class UserRole(enum.Enum):
    SUPER_ADMIN = "SUPER_ADMIN"
    TENANT_ADMIN = "TENANT_ADMIN"
    DOCTOR = "DOCTOR"
    NURSE = "NURSE"
    RECEPTIONIST = "RECEPTIONIST"
    BILLING_ADMIN = "BILLING_ADMIN"


class Gender(enum.Enum):
    MALE = "MALE"
    FEMALE = "FEMALE"
    OTHER = "OTHER"
    PREFER_NOT_TO_SAY = "PREFER_NOT_TO_SAY"


class AppointmentType(enum.Enum):
    CONSULTATION = "CONSULTATION"
    RETURN = "RETURN"
    PROCEDURE = "PROCEDURE"
    EXAM = "EXAM"
    TELEMEDICINE = "TELEMEDICINE"


class AppointmentStatus(enum.Enum):
    SCHEDULED = "SCHEDULED"
    CONFIRMED = "CONFIRMED"
    WAITING = "WAITING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"


class RecordType(enum.Enum):
    ANAMNESIS = "ANAMNESIS"
    EVOLUTION = "EVOLUTION"
    PRESCRIPTION = "PRESCRIPTION"
    EXAM_REQUEST = "EXAM_REQUEST"
    CERTIFICATE = "CERTIFICATE"
    REFERRAL = "REFERRAL"


class PaymentStatus(enum.Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    PARTIAL = "PARTIAL"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"


class PaymentMethod(enum.Enum):
    CASH = "CASH"
    CREDIT_CARD = "CREDIT_CARD"
    DEBIT_CARD = "DEBIT_CARD"
    PIX = "PIX"
    BANK_TRANSFER = "BANK_TRANSFER"
    HEALTH_PLAN = "HEALTH_PLAN"


class ProductCategory(enum.Enum):
    MEDICATION = "MEDICATION"
    MEDICAL_SUPPLY = "MEDICAL_SUPPLY"
    EQUIPMENT = "EQUIPMENT"
    CONSUMABLE = "CONSUMABLE"
    OTHER = "OTHER"


class MovementType(enum.Enum):
    IN = "IN"
    OUT = "OUT"
    ADJUSTMENT = "ADJUSTMENT"
    EXPIRED = "EXPIRED"
    TRANSFER = "TRANSFER"


class AuditAction(enum.Enum):
    CREATE = "CREATE"
    READ = "READ"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"
    EXPORT = "EXPORT"


# ============================================================================
# TENANT MODELS
# ============================================================================

class Plan(Base):
    __tablename__ = "plans"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, nullable=False)
    name = Column(String(100), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    features = Column(JSONType, nullable=False, default=dict)
    max_users = Column(Integer, nullable=False, default=5)
    max_patients = Column(Integer, nullable=False, default=1000)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<Plan(id={self.id}, name={self.name})>"


class Tenant(Base):
    __tablename__ = "tenants"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, nullable=False)
    name = Column(String(255), nullable=False)
    document = Column(String(20), unique=True, nullable=False)  # CNPJ
    subdomain = Column(String(30), unique=True, nullable=False, index=True)
    settings = Column(JSONType, nullable=False, default=dict)
    plan_id = Column(Uuid, ForeignKey("plans.id", ondelete="SET NULL"), nullable=True)
    status = Column(SAEnum(TenantStatus), nullable=False, default=TenantStatus.ACTIVE, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    plan = relationship("Plan", lazy="selectin")

    def __repr__(self):
        return f"<Tenant(id={self.id}, subdomain={self.subdomain}, status={self.status.value})>"


# ============================================================================
# USER MODELS
# ============================================================================

class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("tenant_id", "email", name="uq_users_tenant_email"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, nullable=False)
    tenant_id = Column(Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    email = Column(String(255), nullable=False)
    password_hash = Column(String(255), nullable=False)
    name = Column(String(200), nullable=False)
    role = Column(SAEnum(UserRole), nullable=False, index=True)
    professional_id = Column(String(50), nullable=True)  # CRM / COREN
    specialties = Column(JSONType, nullable=False, default=list)
    phone = Column(String(20), nullable=True)
    avatar = Column(String(500), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    mfa_enabled = Column(Boolean, default=False, nullable=False)
    mfa_secret = Column(String(255), nullable=True)
    preferences = Column(JSONType, nullable=True)
    last_login_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    tenant = relationship("Tenant", lazy="selectin")

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email}, role={self.role.value})>"


# ============================================================================
# CLINICAL MODELS
# ============================================================================

class Patient(Base):
    __tablename__ = "patients"
    __table_args__ = (
        UniqueConstraint("tenant_id", "document", name="uq_patients_tenant_document"),
        Index("ix_patients_tenant_full_name", "tenant_id", "full_name"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, nullable=False)
    tenant_id = Column(Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    full_name = Column(String(200), nullable=False)
    document = Column(String(14), nullable=False)  # CPF
    birth_date = Column(Date, nullable=False)
    gender = Column(SAEnum(Gender), nullable=False)
    phone = Column(String(20), nullable=True)
    email = Column(String(255), nullable=True)
    address = Column(JSONType, nullable=True)
    health_plan = Column(String(100), nullable=True)
    health_plan_number = Column(String(50), nullable=True)
    emergency_contact = Column(JSONType, nullable=True)
    allergies = Column(JSONType, nullable=False, default=list)
    blood_type = Column(String(5), nullable=True)
    observations = Column(Text, nullable=True)
    consent_given = Column(Boolean, default=False, nullable=False)
    consent_date = Column(DateTime(timezone=True), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_by_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<Patient(id={self.id}, full_name={self.full_name})>"


class Room(Base):
    __tablename__ = "rooms"
    __table_args__ = (
        UniqueConstraint("tenant_id", "name", name="uq_rooms_tenant_name"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, nullable=False)
    tenant_id = Column(Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)


class Appointment(Base):
    __tablename__ = "appointments"
    __table_args__ = (
        Index("ix_appointments_tenant_professional_start", "tenant_id", "professional_id", "start_time"),
        Index("ix_appointments_tenant_patient", "tenant_id", "patient_id"),
        Index("ix_appointments_tenant_status", "tenant_id", "status"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, nullable=False)
    tenant_id = Column(Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)
    patient_id = Column(Uuid, ForeignKey("patients.id", ondelete="CASCADE"), nullable=False)
    professional_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    room_id = Column(Uuid, ForeignKey("rooms.id", ondelete="SET NULL"), nullable=True)
    start_time = Column(DateTime(timezone=True), nullable=False, index=True)
    end_time = Column(DateTime(timezone=True), nullable=False)
    type = Column(SAEnum(AppointmentType), nullable=False)
    status = Column(SAEnum(AppointmentStatus), nullable=False, default=AppointmentStatus.SCHEDULED)
    notes = Column(Text, nullable=True)
    cancellation_reason = Column(Text, nullable=True)
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    checked_in_at = Column(DateTime(timezone=True), nullable=True)
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    patient = relationship("Patient", lazy="selectin")
    professional = relationship("User", lazy="selectin")
    room = relationship("Room", lazy="selectin")

    def __repr__(self):
        return f"<Appointment(id={self.id}, status={self.status.value}, start_time={self.start_time})>"


class MedicalRecord(Base):
    __tablename__ = "medical_records"
    __table_args__ = (
        Index("ix_medical_records_tenant_patient", "tenant_id", "patient_id"),
        Index("ix_medical_records_tenant_professional", "tenant_id", "professional_id"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, nullable=False)
    tenant_id = Column(Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)
    patient_id = Column(Uuid, ForeignKey("patients.id", ondelete="CASCADE"), nullable=False)
    professional_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    appointment_id = Column(Uuid, ForeignKey("appointments.id", ondelete="SET NULL"), nullable=True)
    type = Column(SAEnum(RecordType), nullable=False)
    content = Column(JSONType, nullable=False)
    icd_codes = Column(JSONType, nullable=False, default=list)
    attachments = Column(JSONType, nullable=False, default=list)
    signature = Column(Text, nullable=True)
    signed_at = Column(DateTime(timezone=True), nullable=True)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    patient = relationship("Patient", lazy="selectin")
    professional = relationship("User", lazy="selectin")

    def __repr__(self):
        return f"<MedicalRecord(id={self.id}, type={self.type.value}, version={self.version})>"


# ============================================================================
# BILLING MODELS
# ============================================================================

class Invoice(Base):
    __tablename__ = "invoices"
    __table_args__ = (
        UniqueConstraint("tenant_id", "invoice_number", name="uq_invoices_tenant_number"),
        Index("ix_invoices_tenant_patient", "tenant_id", "patient_id"),
        Index("ix_invoices_tenant_status", "tenant_id", "status"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, nullable=False)
    tenant_id = Column(Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)
    patient_id = Column(Uuid, ForeignKey("patients.id", ondelete="CASCADE"), nullable=False)
    appointment_id = Column(Uuid, ForeignKey("appointments.id", ondelete="SET NULL"), nullable=True)
    invoice_number = Column(String(20), nullable=False)
    items = Column(JSONType, nullable=False)
    subtotal = Column(Numeric(10, 2), nullable=False)
    discount = Column(Numeric(10, 2), nullable=False, default=0)
    total = Column(Numeric(10, 2), nullable=False)
    amount_paid = Column(Numeric(10, 2), nullable=False, default=0)
    status = Column(SAEnum(PaymentStatus), nullable=False, default=PaymentStatus.PENDING)
    payment_method = Column(SAEnum(PaymentMethod), nullable=True)
    transaction_id = Column(String(100), nullable=True)
    health_plan_info = Column(JSONType, nullable=True)
    due_date = Column(DateTime(timezone=True), nullable=False, index=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    patient = relationship("Patient", lazy="selectin")

    def __repr__(self):
        return f"<Invoice(id={self.id}, number={self.invoice_number}, status={self.status.value})>"


# ============================================================================
# INVENTORY MODELS
# ============================================================================

class Product(Base):
    __tablename__ = "products"
    __table_args__ = (
        UniqueConstraint("tenant_id", "sku", name="uq_products_tenant_sku"),
        UniqueConstraint("tenant_id", "barcode", name="uq_products_tenant_barcode"),
        Index("ix_products_tenant_category", "tenant_id", "category"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, nullable=False)
    tenant_id = Column(Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    sku = Column(String(50), nullable=False)
    barcode = Column(String(50), nullable=True)
    category = Column(SAEnum(ProductCategory), nullable=False, default=ProductCategory.OTHER)
    unit = Column(String(20), nullable=False)
    min_stock = Column(Integer, nullable=False, default=0)
    max_stock = Column(Integer, nullable=True)
    current_stock = Column(Integer, nullable=False, default=0)
    cost_price = Column(Numeric(10, 2), nullable=True)
    sale_price = Column(Numeric(10, 2), nullable=True)
    manufacturer = Column(String(200), nullable=True)
    supplier = Column(String(200), nullable=True)
    location = Column(String(100), nullable=True)
    requires_prescription = Column(Boolean, default=False, nullable=False)
    controlled_substance = Column(Boolean, default=False, nullable=False)
    anvisa_registry = Column(String(50), nullable=True)
    expiration_alert_days = Column(Integer, nullable=False, default=30)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<Product(id={self.id}, sku={self.sku}, current_stock={self.current_stock})>"


class InventoryMovement(Base):
    __tablename__ = "inventory_movements"
    __table_args__ = (
        Index("ix_inventory_movements_tenant_product", "tenant_id", "product_id"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, nullable=False)
    tenant_id = Column(Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(Uuid, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    type = Column(SAEnum(MovementType), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_cost = Column(Numeric(10, 2), nullable=True)
    batch_number = Column(String(50), nullable=True)
    expiration_date = Column(Date, nullable=True)
    reason = Column(Text, nullable=True)
    reference_id = Column(String(100), nullable=True)
    reference_type = Column(String(50), nullable=True)
    previous_stock = Column(Integer, nullable=False)
    new_stock = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    product = relationship("Product", lazy="selectin")
    user = relationship("User", lazy="selectin")

    def __repr__(self):
        return f"<InventoryMovement(id={self.id}, type={self.type.value}, quantity={self.quantity})>"


# ============================================================================
# AUDIT MODELS
# ============================================================================

class AuditLog(Base):
    __tablename__ = "audit_logs"
    __table_args__ = (
        Index("ix_audit_logs_tenant_user", "tenant_id", "user_id"),
        Index("ix_audit_logs_tenant_resource", "tenant_id", "resource"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, nullable=False)
    tenant_id = Column(Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Uuid, nullable=True)
    action = Column(SAEnum(AuditAction), nullable=False)
    resource = Column(String(50), nullable=False)
    resource_id = Column(String(100), nullable=True)
    old_value = Column(JSONType, nullable=True)
    new_value = Column(JSONType, nullable=True)
    ip_address = Column(String(64), nullable=False, default="")
    user_agent = Column(String(500), nullable=False, default="")
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    def __repr__(self):
        return f"<AuditLog(id={self.id}, action={self.action.value}, resource={self.resource})>"
