"""
Authentication endpoint tests
"""
from datetime import timedelta

import pytest
from sqlalchemy import select

from src.auth.auth_service import create_access_token, create_refresh_token
from src.models.models import AuditAction, AuditLog, UserRole

PASSWORD = "Senha@123"


@pytest.mark.integration
async def test_login_success(client, clinic):
    """Login returns the token pair and the user"""
    response = await client.post(
        "/api/v1/auth/login",
        json={"email": "doctor@clinica-a.com.br", "password": PASSWORD, "tenantSubdomain": "clinica-a"},
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["accessToken"]
    assert data["refreshToken"]
    assert data["expiresIn"] == 15 * 60
    assert data["user"]["role"] == "DOCTOR"
    assert data["user"]["tenantId"] == str(clinic.id)
    assert "passwordHash" not in data["user"]


@pytest.mark.integration
async def test_login_uses_host_subdomain(client, clinic, other_clinic):
    """Without tenantSubdomain the clinic comes from the Host header"""
    response = await client.post(
        "/api/v1/auth/login",
        json={"email": "doctor@clinica-b.com.br", "password": PASSWORD},
        headers={"Host": "clinica-b.clinica.app"},
    )
    assert response.status_code == 200
    assert response.json()["data"]["user"]["tenantId"] == str(other_clinic.id)


@pytest.mark.integration
async def test_login_wrong_password(client, clinic):
    response = await client.post(
        "/api/v1/auth/login",
        json={"email": "doctor@clinica-a.com.br", "password": "Errada@123", "tenantSubdomain": "clinica-a"},
    )
    assert response.status_code == 401
    assert response.json() == {
        "success": False,
        "error": {"code": "INVALID_CREDENTIALS", "message": "Invalid credentials"},
    }


@pytest.mark.integration
async def test_login_unknown_tenant(client, clinic):
    response = await client.post(
        "/api/v1/auth/login",
        json={"email": "doctor@clinica-a.com.br", "password": PASSWORD, "tenantSubdomain": "nope"},
    )
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "TENANT_NOT_FOUND"


@pytest.mark.integration
async def test_login_disabled_account(client, clinic, db_session):
    user = clinic.user(UserRole.NURSE)
    user.is_active = False
    await db_session.commit()

    response = await client.post(
        "/api/v1/auth/login",
        json={"email": user.email, "password": PASSWORD, "tenantSubdomain": "clinica-a"},
    )
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "ACCOUNT_DISABLED"


@pytest.mark.integration
async def test_login_is_audited(client, clinic, db_session):
    await client.post(
        "/api/v1/auth/login",
        json={"email": "nurse@clinica-a.com.br", "password": PASSWORD, "tenantSubdomain": "clinica-a"},
    )
    result = await db_session.execute(select(AuditLog).where(AuditLog.action == AuditAction.LOGIN))
    entry = result.scalars().one()
    assert entry.tenant_id == clinic.id
    assert entry.user_id == clinic.user(UserRole.NURSE).id
    assert entry.resource == "auth"


@pytest.mark.integration
async def test_login_validation_errors(client):
    """Every failing field is reported, not just the first"""
    response = await client.post("/api/v1/auth/login", json={"email": "not-an-email", "password": "short"})
    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    fields = {item["field"] for item in error["details"]["errors"]}
    assert fields == {"email", "password"}


@pytest.mark.integration
async def test_me_without_token(client):
    response = await client.get("/api/v1/auth/me")
    assert response.status_code == 401
    assert response.json()["error"] == {"code": "NO_TOKEN", "message": "No token provided"}


@pytest.mark.integration
async def test_me_with_garbage_token(client):
    response = await client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not.a.jwt"})
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "INVALID_TOKEN"


@pytest.mark.integration
async def test_me_with_expired_token(client, clinic):
    token = create_access_token(clinic.user(UserRole.DOCTOR), expires_delta=timedelta(seconds=-10))
    response = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "TOKEN_EXPIRED"


@pytest.mark.integration
async def test_me_returns_profile_with_tenant(client, clinic):
    response = await client.get("/api/v1/auth/me", headers=clinic.headers(UserRole.RECEPTIONIST))
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["email"] == "receptionist@clinica-a.com.br"
    assert data["tenant"]["subdomain"] == "clinica-a"


@pytest.mark.integration
async def test_refresh_issues_new_pair(client, clinic):
    refresh_token = create_refresh_token(clinic.user(UserRole.DOCTOR))
    response = await client.post("/api/v1/auth/refresh", json={"refreshToken": refresh_token})
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["accessToken"] and data["refreshToken"]


@pytest.mark.integration
async def test_refresh_rejects_access_token(client, clinic):
    """Access tokens are signed with another secret"""
    access_token = create_access_token(clinic.user(UserRole.DOCTOR))
    response = await client.post("/api/v1/auth/refresh", json={"refreshToken": access_token})
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "INVALID_REFRESH_TOKEN"


@pytest.mark.integration
async def test_register_creates_receptionist(client, clinic):
    response = await client.post(
        "/api/v1/auth/register",
        json={
            "email": "nova@clinica-a.com.br",
            "password": "Forte@2024",
            "confirmPassword": "Forte@2024",
            "name": "Nova Pessoa",
            "tenantId": str(clinic.id),
        },
    )
    assert response.status_code == 201
    assert response.json()["data"]["user"]["role"] == "RECEPTIONIST"


@pytest.mark.integration
async def test_register_weak_password_and_mismatch(client, clinic):
    response = await client.post(
        "/api/v1/auth/register",
        json={
            "email": "nova@clinica-a.com.br",
            "password": "fraquinha",
            "confirmPassword": "outra-coisa",
            "name": "Nova Pessoa",
            "tenantId": str(clinic.id),
        },
    )
    assert response.status_code == 400
    errors = response.json()["error"]["details"]["errors"]
    assert {"field": "password", "message": "Password must contain an uppercase letter", "code": "value_error"} in errors


@pytest.mark.integration
async def test_register_existing_email(client, clinic):
    response = await client.post(
        "/api/v1/auth/register",
        json={
            "email": "doctor@clinica-a.com.br",
            "password": "Forte@2024",
            "confirmPassword": "Forte@2024",
            "name": "Duplicado",
            "tenantId": str(clinic.id),
        },
    )
    assert response.status_code == 409
    assert response.json()["error"]["code"] == "USER_EXISTS"


@pytest.mark.integration
async def test_change_password_wrong_current(client, clinic):
    response = await client.post(
        "/api/v1/auth/change-password",
        json={"currentPassword": "Errada@123", "newPassword": "NovaSenha@1"},
        headers=clinic.headers(UserRole.DOCTOR),
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_PASSWORD"


@pytest.mark.integration
async def test_change_password_then_login(client, clinic):
    response = await client.post(
        "/api/v1/auth/change-password",
        json={"currentPassword": PASSWORD, "newPassword": "NovaSenha@1"},
        headers=clinic.headers(UserRole.DOCTOR),
    )
    assert response.status_code == 200

    response = await client.post(
        "/api/v1/auth/login",
        json={"email": "doctor@clinica-a.com.br", "password": "NovaSenha@1", "tenantSubdomain": "clinica-a"},
    )
    assert response.status_code == 200


@pytest.mark.integration
async def test_logout(client, clinic):
    response = await client.post("/api/v1/auth/logout", headers=clinic.headers(UserRole.DOCTOR))
    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Logged out successfully"}
