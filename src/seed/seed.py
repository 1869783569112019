"""
Database seed script for the clinic platform
Creates a default plan, a demo clinic, its staff, a room and sample patients.
Safe to run more than once: existing rows are reused.

    python -m src.seed.seed
"""

import asyncio
from datetime import date
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.auth.auth_service import hash_password
from src.common.database.database import async_session, engine
from src.common.utils.global_functions import utcnow
from src.models.models import (
    Gender, Patient, Plan, Product, ProductCategory, Room, Tenant, TenantStatus, User, UserRole,
)

DEMO_SUBDOMAIN = "demo"

PLAN = {
    "name": "Professional",
    "description": "Plano profissional para clinicas de medio porte",
    "price": 299.90,
    "max_users": 10,
    "max_patients": 5000,
    "features": {
        "telemedicine": True,
        "billing": True,
        "inventory": True,
        "multiLocation": False,
        "customReports": True,
        "apiAccess": False,
    },
}

TENANT_SETTINGS = {
    "timezone": "America/Sao_Paulo",
    "currency": "BRL",
    "language": "pt-BR",
    "workingHours": {"start": "08:00", "end": "18:00"},
    "appointmentDuration": 30,
    "features": {"telemedicine": False, "billing": True, "inventory": True, "multiLocation": False},
}

STAFF = [
    {
        "email": "admin@demo.clinica.app",
        "password": "Admin@123",
        "name": "Administrador",
        "role": UserRole.TENANT_ADMIN,
    },
    {
        "email": "medico@demo.clinica.app",
        "password": "Doctor@123",
        "name": "Dr. Carlos Silva",
        "role": UserRole.DOCTOR,
        "professional_id": "CRM-SP 123456",
        "specialties": ["Clinica Geral", "Cardiologia"],
    },
    {
        "email": "enfermagem@demo.clinica.app",
        "password": "Nurse@123",
        "name": "Paula Ribeiro",
        "role": UserRole.NURSE,
        "professional_id": "COREN-SP 654321",
    },
    {
        "email": "recepcao@demo.clinica.app",
        "password": "Recep@123",
        "name": "Maria Santos",
        "role": UserRole.RECEPTIONIST,
    },
    {
        "email": "financeiro@demo.clinica.app",
        "password": "Billing@123",
        "name": "Jorge Almeida",
        "role": UserRole.BILLING_ADMIN,
    },
]

PATIENTS = [
    {
        "full_name": "Joao Pedro Oliveira",
        "document": "12345678909",
        "birth_date": date(1985, 3, 15),
        "gender": Gender.MALE,
        "phone": "11999998888",
        "email": "joao@email.com",
        "health_plan": "Unimed",
    },
    {
        "full_name": "Ana Maria Costa",
        "document": "98765432100",
        "birth_date": date(1990, 7, 22),
        "gender": Gender.FEMALE,
        "phone": "11988887777",
        "email": "ana@email.com",
    },
    {
        "full_name": "Roberto Carlos Souza",
        "document": "52998224725",
        "birth_date": date(1978, 11, 30),
        "gender": Gender.MALE,
        "phone": "11977776666",
        "health_plan": "Bradesco Saude",
    },
]

PRODUCTS = [
    {"name": "Dipirona 500mg", "sku": "MED-0001", "category": ProductCategory.MEDICATION, "unit": "caixa", "min_stock": 10},
    {"name": "Luva de procedimento M", "sku": "SUP-0001", "category": ProductCategory.MEDICAL_SUPPLY, "unit": "caixa", "min_stock": 5},
    {"name": "Seringa 5ml", "sku": "CON-0001", "category": ProductCategory.CONSUMABLE, "unit": "unidade", "min_stock": 50},
]


class DatabaseSeeder:
    def __init__(self):
        self.plan: Optional[Plan] = None
        self.tenant: Optional[Tenant] = None
        self.admin: Optional[User] = None

    async def first(self, session: AsyncSession, query):
        result = await session.execute(query)
        return result.scalars().first()

    async def seed_plan(self, session: AsyncSession):
        self.plan = await self.first(session, select(Plan).where(Plan.name == PLAN["name"]))
        if not self.plan:
            self.plan = Plan(**PLAN)
            session.add(self.plan)
            await session.flush()
        print(f"Plan: {self.plan.name}")

    async def seed_tenant(self, session: AsyncSession):
        self.tenant = await self.first(session, select(Tenant).where(Tenant.subdomain == DEMO_SUBDOMAIN))
        if not self.tenant:
            self.tenant = Tenant(
                name="Clinica Demo",
                document="12345678000190",
                subdomain=DEMO_SUBDOMAIN,
                plan_id=self.plan.id,
                status=TenantStatus.ACTIVE,
                settings=TENANT_SETTINGS,
            )
            session.add(self.tenant)
            await session.flush()
        print(f"Tenant: {self.tenant.name}")

    async def seed_staff(self, session: AsyncSession):
        for member in STAFF:
            data = dict(member)
            password = data.pop("password")
            user = await self.first(
                session,
                select(User).where(User.tenant_id == self.tenant.id, User.email == data["email"]),
            )
            if not user:
                user = User(tenant_id=self.tenant.id, password_hash=hash_password(password), **data)
                session.add(user)
                await session.flush()
            if user.role == UserRole.TENANT_ADMIN:
                self.admin = user
            print(f"User: {user.email} ({user.role.value})")

    async def seed_room(self, session: AsyncSession):
        room = await self.first(
            session,
            select(Room).where(Room.tenant_id == self.tenant.id, Room.name == "Consultorio 1"),
        )
        if not room:
            session.add(Room(tenant_id=self.tenant.id, name="Consultorio 1", description="Consultorio principal"))
        print("Room: Consultorio 1")

    async def seed_patients(self, session: AsyncSession):
        for data in PATIENTS:
            patient = await self.first(
                session,
                select(Patient).where(Patient.tenant_id == self.tenant.id, Patient.document == data["document"]),
            )
            if not patient:
                session.add(Patient(
                    tenant_id=self.tenant.id,
                    consent_given=True,
                    consent_date=utcnow(),
                    created_by_id=self.admin.id,
                    **data,
                ))
            print(f"Patient: {data['full_name']}")

    async def seed_products(self, session: AsyncSession):
        for data in PRODUCTS:
            product = await self.first(
                session,
                select(Product).where(Product.tenant_id == self.tenant.id, Product.sku == data["sku"]),
            )
            if not product:
                session.add(Product(tenant_id=self.tenant.id, **data))
            print(f"Product: {data['sku']}")

    async def run_all(self, session: AsyncSession):
        await self.seed_plan(session)
        await self.seed_tenant(session)
        await self.seed_staff(session)
        await self.seed_room(session)
        await self.seed_patients(session)
        await self.seed_products(session)
        await session.commit()

        print("Seed completed. Log in at subdomain 'demo':")
        for member in STAFF:
            print(f"  {member['role'].value:<14} {member['email']} / {member['password']}")


async def main():
    seeder = DatabaseSeeder()

    async with async_session() as session:
        try:
            await seeder.run_all(session)
        except Exception:
            await session.rollback()
            raise
        finally:
            await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
