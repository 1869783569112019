"""
Pytest configuration and fixtures
"""
import os

# Settings are read at import time; point them at the test setup first
os.environ["APP_ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["RATE_LIMIT_MAX_REQUESTS"] = "100000"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["LOG_LEVEL"] = "warning"

from datetime import date, datetime, timedelta, timezone
from typing import AsyncGenerator, Dict

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from src.auth.auth_service import create_access_token, hash_password
from src.common.database.database import get_db_session
from src.main import app
from src.models.models import (
    Base, Gender, Patient, Plan, Product, ProductCategory, Tenant, TenantStatus, User, UserRole,
)

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
PASSWORD = "Senha@123"


class Clinic:
    """A tenant with one user per role and helpers to act as any of them."""

    def __init__(self, tenant: Tenant, users: Dict[UserRole, User]):
        self.tenant = tenant
        self.users = users

    @property
    def id(self):
        return self.tenant.id

    def user(self, role: UserRole) -> User:
        return self.users[role]

    def headers(self, role: UserRole = UserRole.TENANT_ADMIN) -> dict:
        return {"Authorization": f"Bearer {create_access_token(self.users[role])}"}


@pytest.fixture
async def session_maker():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as session:
        yield session


@pytest.fixture
async def client(session_maker) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to the app; every request gets its own session on the test database."""

    async def override_get_db_session():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_get_db_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client
    app.dependency_overrides.clear()


@pytest.fixture
async def plan(db_session) -> Plan:
    plan = Plan(name="Professional", price=299.90, max_users=10, max_patients=5000, features={"billing": True})
    db_session.add(plan)
    await db_session.commit()
    return plan


async def build_clinic(db_session: AsyncSession, plan: Plan, subdomain: str, document: str) -> Clinic:
    tenant = Tenant(
        name=f"Clinica {subdomain}",
        document=document,
        subdomain=subdomain,
        plan_id=plan.id,
        status=TenantStatus.ACTIVE,
        settings={},
    )
    db_session.add(tenant)
    await db_session.flush()

    password_hash = hash_password(PASSWORD)
    users = {}
    for role in UserRole:
        user = User(
            tenant_id=tenant.id,
            email=f"{role.value.lower()}@{subdomain}.com.br",
            password_hash=password_hash,
            name=f"{role.value.title()} {subdomain}",
            role=role,
            specialties=[],
            is_active=True,
        )
        db_session.add(user)
        users[role] = user

    await db_session.commit()
    return Clinic(tenant, users)


@pytest.fixture
async def clinic(db_session, plan) -> Clinic:
    return await build_clinic(db_session, plan, "clinica-a", "11222333000181")


@pytest.fixture
async def other_clinic(db_session, plan) -> Clinic:
    return await build_clinic(db_session, plan, "clinica-b", "44555666000199")


@pytest.fixture
def make_patient(db_session):
    """Insert a patient directly; keyword arguments override the defaults."""
    counter = {"value": 0}

    async def factory(clinic: Clinic, **overrides) -> Patient:
        counter["value"] += 1
        values = {
            "full_name": f"Paciente {counter['value']}",
            "document": f"{counter['value']:011d}",
            "birth_date": date(1990, 5, 20),
            "gender": Gender.FEMALE,
            "allergies": [],
        }
        values.update(overrides)
        patient = Patient(tenant_id=clinic.id, **values)
        db_session.add(patient)
        await db_session.commit()
        return patient

    return factory


@pytest.fixture
def make_product(db_session):
    counter = {"value": 0}

    async def factory(clinic: Clinic, **overrides) -> Product:
        counter["value"] += 1
        values = {
            "name": f"Produto {counter['value']}",
            "sku": f"SKU-{counter['value']:04d}",
            "category": ProductCategory.MEDICATION,
            "unit": "caixa",
            "min_stock": 5,
            "current_stock": 0,
        }
        values.update(overrides)
        product = Product(tenant_id=clinic.id, **values)
        db_session.add(product)
        await db_session.commit()
        return product

    return factory


def slot(days_ahead: int = 1, hour: int = 10, minutes: int = 30):
    """ISO start/end pair for an appointment ``days_ahead`` days from now at ``hour`` UTC."""
    day = (datetime.now(timezone.utc) + timedelta(days=days_ahead)).date()
    start = datetime(day.year, day.month, day.day, hour, tzinfo=timezone.utc)
    return start.isoformat(), (start + timedelta(minutes=minutes)).isoformat()


@pytest.fixture
def appointment_slot():
    return slot
