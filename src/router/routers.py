# src/router/routers.py

from fastapi import FastAPI
from src.auth.auth_controller import router as auth_router
from src.common.config import settings
from src.modules.tenants.tenants_controller import router as tenants_router
from src.modules.users.users_controller import router as users_router
from src.modules.patients.patients_controller import router as patients_router
from src.modules.appointments.appointments_controller import router as appointments_router
from src.modules.medical_records.medical_records_controller import router as medical_records_router
from src.modules.billing.billing_controller import router as billing_router
from src.modules.inventory.inventory_controller import router as inventory_router
from src.modules.settings.settings_controller import router as settings_router
from src.modules.reports.reports_controller import router as reports_router

def include_routers(app: FastAPI) -> None:
    """Include all API routers under the versioned prefix."""
    prefix = settings.API_V1_PREFIX
    app.include_router(auth_router, prefix=prefix)
    app.include_router(tenants_router, prefix=prefix)
    app.include_router(users_router, prefix=prefix)
    app.include_router(patients_router, prefix=prefix)
    app.include_router(appointments_router, prefix=prefix)
    app.include_router(medical_records_router, prefix=prefix)
    app.include_router(billing_router, prefix=prefix)
    app.include_router(inventory_router, prefix=prefix)
    app.include_router(settings_router, prefix=prefix)
    app.include_router(reports_router, prefix=prefix)
