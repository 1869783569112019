"""
Report tests: calculation helpers and the dashboard endpoints
"""
from datetime import date, timedelta

import pytest

from src.common.utils.global_functions import utcnow
from src.models.models import Appointment, AppointmentStatus, AppointmentType, Gender, UserRole
from src.modules.reports.reports_service import age_group, age_on, rate, working_days


# ============================================================================
# HELPERS
# ============================================================================

@pytest.mark.unit
@pytest.mark.parametrize(
    "age,label",
    [(0, "0-17"), (17, "0-17"), (18, "18-29"), (44, "30-44"), (45, "45-59"), (74, "60-74"), (75, "75+"), (101, "75+")],
)
def test_age_group_boundaries(age, label):
    assert age_group(age) == label


@pytest.mark.unit
def test_age_on_counts_birthday():
    assert age_on(date(1990, 6, 15), date(2024, 6, 14)) == 33
    assert age_on(date(1990, 6, 15), date(2024, 6, 15)) == 34


@pytest.mark.unit
def test_working_days_skip_weekends():
    # 2024-06-03 is a Monday
    assert working_days(date(2024, 6, 3), date(2024, 6, 10)) == 5
    assert working_days(date(2024, 6, 8), date(2024, 6, 10)) == 0
    assert working_days(date(2024, 6, 1), date(2024, 7, 1)) == 20


@pytest.mark.unit
def test_rate_handles_empty_totals():
    assert rate(1, 3) == 33.33
    assert rate(0, 0) == 0.0


# ============================================================================
# ENDPOINTS
# ============================================================================

async def add_appointment(db_session, clinic, patient, status):
    start = utcnow()
    appointment = Appointment(
        tenant_id=clinic.id,
        patient_id=patient.id,
        professional_id=clinic.user(UserRole.DOCTOR).id,
        start_time=start,
        end_time=start + timedelta(minutes=30),
        type=AppointmentType.CONSULTATION,
        status=status,
    )
    db_session.add(appointment)
    await db_session.commit()
    return appointment


@pytest.mark.integration
async def test_dashboard(client, clinic, db_session, make_patient, make_product):
    patient = await make_patient(clinic)
    await add_appointment(db_session, clinic, patient, AppointmentStatus.COMPLETED)
    await add_appointment(db_session, clinic, patient, AppointmentStatus.CANCELLED)
    await add_appointment(db_session, clinic, patient, AppointmentStatus.NO_SHOW)
    await add_appointment(db_session, clinic, patient, AppointmentStatus.COMPLETED)
    await make_product(clinic, current_stock=1, min_stock=5)

    response = await client.get("/api/v1/reports/dashboard", headers=clinic.headers(UserRole.RECEPTIONIST))
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["appointments"] == {
        "today": 4,
        "period": 4,
        "completed": 2,
        "cancelled": 1,
        "noShow": 1,
        "completionRate": 50.0,
    }
    assert data["patients"] == {"total": 1, "active": 1, "newInPeriod": 1}
    assert data["revenue"] == {"received": 0.0, "pending": 0.0, "pendingInvoices": 0}
    assert data["inventory"]["lowStockCount"] == 1


@pytest.mark.integration
async def test_dashboard_ignores_other_tenants(client, clinic, other_clinic, db_session, make_patient):
    outsider = await make_patient(other_clinic)
    await add_appointment(db_session, other_clinic, outsider, AppointmentStatus.COMPLETED)

    response = await client.get("/api/v1/reports/dashboard", headers=clinic.headers())
    data = response.json()["data"]
    assert data["appointments"]["period"] == 0
    assert data["patients"]["total"] == 0


@pytest.mark.integration
async def test_patient_stats_by_age_and_gender(client, clinic, make_patient):
    today = utcnow().date()
    await make_patient(clinic, birth_date=date(today.year - 10, 1, 1), gender=Gender.MALE)
    await make_patient(clinic, birth_date=date(1940, 1, 1), gender=Gender.FEMALE)
    await make_patient(clinic, birth_date=date(1945, 1, 1), gender=Gender.FEMALE)

    response = await client.get("/api/v1/reports/patients", headers=clinic.headers())
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["total"] == 3
    groups = {g["ageGroup"]: g["count"] for g in data["byAgeGroup"]}
    assert groups["0-17"] == 1
    assert groups["75+"] == 2
    assert data["byGender"][0] == {"gender": "FEMALE", "count": 2}


@pytest.mark.integration
@pytest.mark.parametrize("path", ["revenue", "productivity", "top-patients"])
async def test_financial_reports_are_admin_only(client, clinic, path):
    response = await client.get(f"/api/v1/reports/{path}", headers=clinic.headers(UserRole.DOCTOR))
    assert response.status_code == 403

    response = await client.get(f"/api/v1/reports/{path}", headers=clinic.headers())
    assert response.status_code == 200


@pytest.mark.integration
async def test_custom_period(client, clinic):
    response = await client.get(
        "/api/v1/reports/appointments?startDate=2024-01-01&endDate=2024-01-31",
        headers=clinic.headers(),
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["period"] == {"startDate": "2024-01-01", "endDate": "2024-01-31"}
    assert data["total"] == 0
