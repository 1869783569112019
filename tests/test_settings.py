"""
Settings endpoint tests
"""
import pytest

from src.models.models import UserRole


@pytest.mark.integration
async def test_update_profile(client, clinic):
    response = await client.patch(
        "/api/v1/settings/profile",
        json={"name": "Dr. Paulo Mendes", "specialties": ["Cardiologia"]},
        headers=clinic.headers(UserRole.DOCTOR),
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["name"] == "Dr. Paulo Mendes"
    assert data["specialties"] == ["Cardiologia"]


@pytest.mark.integration
async def test_notification_defaults(client, clinic):
    response = await client.get("/api/v1/settings/notifications", headers=clinic.headers(UserRole.NURSE))
    assert response.status_code == 200
    assert response.json()["data"] == {
        "email": {"appointments": True, "reminders": True, "marketing": False, "reports": True},
        "sms": {"appointments": True, "reminders": True},
        "push": {"appointments": True, "reminders": True, "alerts": True},
    }


@pytest.mark.integration
async def test_notification_changes_are_merged(client, clinic):
    headers = clinic.headers(UserRole.NURSE)
    await client.patch("/api/v1/settings/notifications", json={"sms": {"reminders": False}}, headers=headers)
    response = await client.patch("/api/v1/settings/notifications", json={"email": {"marketing": True}}, headers=headers)
    data = response.json()["data"]
    assert data["sms"] == {"appointments": True, "reminders": False}
    assert data["email"]["marketing"] is True
    assert data["email"]["appointments"] is True


@pytest.mark.integration
async def test_mfa_enable_then_disable(client, clinic):
    headers = clinic.headers(UserRole.DOCTOR)
    response = await client.post("/api/v1/settings/security/mfa/enable", headers=headers)
    assert response.status_code == 200
    assert len(response.json()["data"]["secret"]) == 40

    response = await client.post("/api/v1/settings/security/mfa/disable", json={"password": "Errada@1"}, headers=headers)
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_PASSWORD"

    response = await client.post("/api/v1/settings/security/mfa/disable", json={"password": "Senha@123"}, headers=headers)
    assert response.status_code == 200


@pytest.mark.integration
async def test_team_listing_requires_admin(client, clinic):
    response = await client.get("/api/v1/settings/users", headers=clinic.headers(UserRole.DOCTOR))
    assert response.status_code == 403

    response = await client.get("/api/v1/settings/users", headers=clinic.headers())
    assert response.status_code == 200
    assert len(response.json()["data"]) == len(UserRole)


@pytest.mark.integration
async def test_cannot_change_own_status(client, clinic):
    admin = clinic.user(UserRole.TENANT_ADMIN)
    response = await client.patch(
        f"/api/v1/settings/users/{admin.id}/status",
        json={"isActive": False},
        headers=clinic.headers(),
    )
    assert response.status_code == 409
    assert response.json()["error"]["code"] == "SELF_DEACTIVATION"


@pytest.mark.integration
async def test_deactivate_team_member(client, clinic):
    nurse = clinic.user(UserRole.NURSE)
    response = await client.patch(
        f"/api/v1/settings/users/{nurse.id}/status",
        json={"isActive": False},
        headers=clinic.headers(),
    )
    assert response.status_code == 200
    assert response.json()["data"]["isActive"] is False


@pytest.mark.integration
async def test_change_role(client, clinic):
    nurse = clinic.user(UserRole.NURSE)
    url = f"/api/v1/settings/users/{nurse.id}/role"

    response = await client.patch(url, json={"role": "SUPER_ADMIN"}, headers=clinic.headers())
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_ROLE"

    response = await client.patch(url, json={"role": "DOCTOR"}, headers=clinic.headers())
    assert response.status_code == 200
    assert response.json()["data"]["role"] == "DOCTOR"


@pytest.mark.integration
async def test_audit_log_names_the_actor(client, clinic):
    nurse = clinic.user(UserRole.NURSE)
    await client.patch(f"/api/v1/settings/users/{nurse.id}/role", json={"role": "DOCTOR"}, headers=clinic.headers())

    response = await client.get("/api/v1/settings/audit-log?action=UPDATE", headers=clinic.headers())
    assert response.status_code == 200
    page = response.json()["data"]
    assert page["total"] == 1
    entry = page["logs"][0]
    assert entry["resource"] == "user"
    assert entry["userName"] == clinic.user(UserRole.TENANT_ADMIN).name
    assert entry["oldValue"] == {"role": "NURSE"}
    assert entry["newValue"] == {"role": "DOCTOR"}


@pytest.mark.integration
async def test_export_is_accepted(client, clinic):
    response = await client.post("/api/v1/settings/export", json={"type": "patients"}, headers=clinic.headers())
    assert response.status_code == 202
    data = response.json()["data"]
    assert data["type"] == "patients"
    assert data["status"] == "pending"
    assert data["estimatedTime"] == "30 minutes"


@pytest.mark.integration
async def test_integrations(client, clinic):
    headers = clinic.headers()
    response = await client.get("/api/v1/settings/integrations", headers=headers)
    integrations = {i["id"]: i for i in response.json()["data"]}
    assert set(integrations) == {"whatsapp", "email", "payment", "calendar", "tiss"}
    assert integrations["whatsapp"]["status"] == "not_configured"

    response = await client.patch(
        "/api/v1/settings/integrations/whatsapp",
        json={"enabled": True, "config": {"token": "segredo", "phoneNumberId": "123"}},
        headers=headers,
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["enabled"] is True
    assert data["status"] == "configured"
    assert data["configuredKeys"] == ["phoneNumberId", "token"]
    assert "segredo" not in response.text

    response = await client.patch("/api/v1/settings/integrations/fax", json={"enabled": True}, headers=headers)
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "INTEGRATION_NOT_FOUND"


@pytest.mark.integration
async def test_system_info(client, clinic, make_patient):
    await make_patient(clinic)
    response = await client.get("/api/v1/settings/system", headers=clinic.headers())
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["tenant"]["planName"] == "Professional"
    assert data["usage"]["patients"] == {"current": 1, "limit": 5000, "percentage": 0.02}
    assert data["usage"]["users"]["current"] == len(UserRole)
