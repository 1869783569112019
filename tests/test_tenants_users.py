"""
Guard, tenant and user management tests
"""
import pytest

from src.models.models import UserRole

NEW_USER = {
    "email": "novo.medico@clinica-a.com.br",
    "password": "Medico@2024",
    "name": "Dra. Helena Rocha",
    "role": "DOCTOR",
    "professionalId": "CRM-SP 99999",
    "specialties": ["Pediatria"],
}


# ============================================================================
# GUARDS
# ============================================================================

@pytest.mark.integration
async def test_role_guard_reports_required_roles(client, clinic):
    response = await client.post("/api/v1/users", json=NEW_USER, headers=clinic.headers(UserRole.RECEPTIONIST))
    assert response.status_code == 403
    error = response.json()["error"]
    assert error["code"] == "INSUFFICIENT_PERMISSIONS"
    assert error["details"] == {"requiredRoles": ["SUPER_ADMIN", "TENANT_ADMIN"], "userRole": "RECEPTIONIST"}


@pytest.mark.integration
async def test_cross_tenant_header_is_denied(client, clinic, other_clinic, make_patient):
    await make_patient(other_clinic)
    response = await client.get(
        "/api/v1/patients",
        headers={**clinic.headers(), "X-Tenant-Id": str(other_clinic.id)},
    )
    assert response.status_code == 403
    assert response.json()["error"]["code"] == "TENANT_ACCESS_DENIED"


@pytest.mark.integration
async def test_super_admin_can_act_on_any_tenant(client, clinic, other_clinic, make_patient):
    patient = await make_patient(other_clinic)
    response = await client.get(
        "/api/v1/patients",
        headers={**clinic.headers(UserRole.SUPER_ADMIN), "X-Tenant-Id": str(other_clinic.id)},
    )
    assert response.status_code == 200
    assert [p["id"] for p in response.json()["data"]] == [str(patient.id)]


@pytest.mark.integration
async def test_malformed_tenant_header(client, clinic):
    response = await client.get("/api/v1/patients", headers={**clinic.headers(), "X-Tenant-Id": "abc"})
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_TENANT_ID"


# ============================================================================
# TENANTS
# ============================================================================

@pytest.mark.integration
async def test_super_admin_creates_tenant_with_admin(client, clinic, plan):
    response = await client.post(
        "/api/v1/tenants",
        json={
            "name": "Clinica Nova",
            "document": "12.345.678/0001-90",
            "subdomain": "clinica-nova",
            "planId": str(plan.id),
            "admin": {"name": "Gestora", "email": "gestora@nova.com.br", "password": "Gestora@1"},
        },
        headers=clinic.headers(UserRole.SUPER_ADMIN),
    )
    assert response.status_code == 201
    data = response.json()["data"]
    assert data["subdomain"] == "clinica-nova"
    assert data["status"] == "TRIAL"
    assert data["plan"]["name"] == "Professional"
    assert data["settings"]["workingHours"] == {"start": "08:00", "end": "18:00"}
    assert data["counts"]["users"] == 1


@pytest.mark.integration
async def test_tenant_subdomain_taken(client, clinic):
    response = await client.post(
        "/api/v1/tenants",
        json={"name": "Outra", "document": "99888777000166", "subdomain": "clinica-a"},
        headers=clinic.headers(UserRole.SUPER_ADMIN),
    )
    assert response.status_code == 409
    assert response.json()["error"]["code"] == "SUBDOMAIN_TAKEN"


@pytest.mark.integration
async def test_tenant_creation_requires_super_admin(client, clinic):
    response = await client.post(
        "/api/v1/tenants",
        json={"name": "Outra", "document": "99888777000166", "subdomain": "outra"},
        headers=clinic.headers(UserRole.TENANT_ADMIN),
    )
    assert response.status_code == 403


@pytest.mark.integration
async def test_other_tenant_looks_missing(client, clinic, other_clinic):
    response = await client.get(f"/api/v1/tenants/{other_clinic.id}", headers=clinic.headers())
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "TENANT_NOT_FOUND"


@pytest.mark.integration
async def test_public_subdomain_lookup_hides_settings(client, clinic, other_clinic):
    response = await client.get("/api/v1/tenants/by-subdomain/clinica-a")
    assert response.status_code == 200
    assert response.json()["data"]["settings"] is None

    response = await client.get("/api/v1/tenants/by-subdomain/clinica-a", headers=clinic.headers(UserRole.NURSE))
    assert response.json()["data"]["settings"]["currency"] == "BRL"

    response = await client.get("/api/v1/tenants/by-subdomain/clinica-a", headers=other_clinic.headers())
    assert response.json()["data"]["settings"] is None


@pytest.mark.integration
async def test_tenant_settings_are_merged(client, clinic):
    response = await client.patch(
        f"/api/v1/tenants/{clinic.id}",
        json={"settings": {"workingHours": {"start": "07:00"}, "features": {"telemedicine": True}}},
        headers=clinic.headers(),
    )
    assert response.status_code == 200
    settings = response.json()["data"]["settings"]
    assert settings["workingHours"] == {"start": "07:00", "end": "18:00"}
    assert settings["features"]["telemedicine"] is True
    assert settings["features"]["billing"] is True


@pytest.mark.integration
async def test_tenant_admin_cannot_change_status(client, clinic):
    response = await client.patch(
        f"/api/v1/tenants/{clinic.id}",
        json={"status": "SUSPENDED"},
        headers=clinic.headers(),
    )
    assert response.status_code == 403


# ============================================================================
# USERS
# ============================================================================

@pytest.mark.integration
async def test_create_and_fetch_user(client, clinic):
    response = await client.post("/api/v1/users", json=NEW_USER, headers=clinic.headers())
    assert response.status_code == 201
    user = response.json()["data"]
    assert user["role"] == "DOCTOR"
    assert user["specialties"] == ["Pediatria"]

    response = await client.get(f"/api/v1/users/{user['id']}", headers=clinic.headers(UserRole.NURSE))
    assert response.status_code == 200
    assert response.json()["data"]["email"] == NEW_USER["email"]


@pytest.mark.integration
async def test_duplicate_email_in_tenant(client, clinic):
    response = await client.post(
        "/api/v1/users",
        json={**NEW_USER, "email": "doctor@clinica-a.com.br"},
        headers=clinic.headers(),
    )
    assert response.status_code == 409
    assert response.json()["error"]["code"] == "EMAIL_TAKEN"


@pytest.mark.integration
async def test_tenant_admin_cannot_grant_super_admin(client, clinic):
    response = await client.post(
        "/api/v1/users",
        json={**NEW_USER, "role": "SUPER_ADMIN"},
        headers=clinic.headers(),
    )
    assert response.status_code == 403


@pytest.mark.integration
async def test_cannot_deactivate_self(client, clinic):
    admin = clinic.user(UserRole.TENANT_ADMIN)
    response = await client.delete(f"/api/v1/users/{admin.id}", headers=clinic.headers())
    assert response.status_code == 409
    assert response.json()["error"]["code"] == "SELF_DEACTIVATION"


@pytest.mark.integration
async def test_user_from_other_tenant_not_found(client, clinic, other_clinic):
    outsider = other_clinic.user(UserRole.DOCTOR)
    response = await client.get(f"/api/v1/users/{outsider.id}", headers=clinic.headers())
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "USER_NOT_FOUND"


@pytest.mark.integration
async def test_list_professionals(client, clinic):
    response = await client.get("/api/v1/users/list/professionals", headers=clinic.headers(UserRole.RECEPTIONIST))
    assert response.status_code == 200
    roles = {p["role"] for p in response.json()["data"]}
    assert roles == {"DOCTOR", "NURSE"}


@pytest.mark.integration
async def test_list_users_pagination_meta(client, clinic):
    response = await client.get("/api/v1/users?page=2&perPage=4", headers=clinic.headers())
    assert response.status_code == 200
    body = response.json()
    assert len(body["data"]) == 2
    assert body["meta"] == {"page": 2, "perPage": 4, "total": 6, "totalPages": 2}
