"""
Middleware and error translation tests
"""
import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from pydantic import BaseModel, Field, ValidationError, field_validator

from src.common.exceptions.exceptions import NotFoundException
from src.common.exceptions.handlers import format_validation_errors, register_exception_handlers
from src.common.middleware.rate_limit import FixedWindowRateLimiter, RateLimitMiddleware, forwarded_client
from src.common.middleware.tenant import extract_subdomain


def build_app(limit: int = 2) -> FastAPI:
    app = FastAPI()
    app.add_middleware(RateLimitMiddleware, limit=limit, window_seconds=60)
    register_exception_handlers(app)

    @app.get("/api/ping")
    async def ping():
        return {"pong": True}

    @app.get("/outside")
    async def outside():
        return {"ok": True}

    @app.get("/api/missing")
    async def missing():
        raise NotFoundException("Patient not found", "PATIENT_NOT_FOUND")

    @app.get("/api/boom")
    async def boom():
        raise RuntimeError("kaboom")

    return app


@pytest.fixture
async def mini_client():
    transport = ASGITransport(app=build_app(), raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client


# ============================================================================
# RATE LIMITING
# ============================================================================

@pytest.mark.unit
def test_fixed_window_counts_and_resets():
    limiter = FixedWindowRateLimiter(limit=2, window_seconds=60)
    assert limiter.hit("1.2.3.4", now=1000) == (True, 1, 1060)
    assert limiter.hit("1.2.3.4", now=1010) == (True, 0, 1060)
    assert limiter.hit("1.2.3.4", now=1020) == (False, 0, 1060)
    assert limiter.hit("5.6.7.8", now=1020)[0] is True
    # a new window starts once the old one has elapsed
    assert limiter.hit("1.2.3.4", now=1060) == (True, 1, 1120)


@pytest.mark.integration
async def test_rate_limit_rejects_with_retry_after(mini_client):
    for _ in range(2):
        assert (await mini_client.get("/api/ping")).status_code == 200

    response = await mini_client.get("/api/ping")
    assert response.status_code == 429
    assert response.json()["error"]["code"] == "TOO_MANY_REQUESTS"
    assert response.headers["RateLimit-Remaining"] == "0"
    assert int(response.headers["Retry-After"]) > 0


@pytest.mark.unit
def test_expired_windows_are_evicted():
    limiter = FixedWindowRateLimiter(limit=2, window_seconds=60)
    for index in range(5):
        limiter.hit(f"10.0.0.{index}", now=1000)
    assert len(limiter) == 5

    limiter.hit("10.0.0.9", now=1061)
    assert len(limiter) == 1


@pytest.mark.unit
@pytest.mark.parametrize(
    "header,hops,expected",
    [
        ("203.0.113.9", 1, "203.0.113.9"),
        ("1.2.3.4, 203.0.113.9", 1, "203.0.113.9"),
        ("1.2.3.4, 203.0.113.9, 10.0.0.2", 2, "203.0.113.9"),
        ("203.0.113.9", 3, "203.0.113.9"),
        ("1.2.3.4", 0, None),
        (" , ", 1, None),
    ],
)
def test_forwarded_client_counts_hops_from_the_right(header, hops, expected):
    assert forwarded_client(header, hops) == expected


@pytest.mark.integration
async def test_rotating_forwarded_prefix_does_not_bypass_limit(mini_client):
    statuses = []
    for index in range(3):
        response = await mini_client.get("/api/ping", headers={"X-Forwarded-For": f"1.2.3.{index}, 203.0.113.9"})
        statuses.append(response.status_code)
    assert statuses == [200, 200, 429]
    assert response.json()["error"]["message"] == "Too many requests, please try again later"


@pytest.mark.integration
async def test_rate_limit_keys_on_proxy_reported_client(mini_client):
    for _ in range(2):
        await mini_client.get("/api/ping", headers={"X-Forwarded-For": "203.0.113.9"})
    response = await mini_client.get("/api/ping", headers={"X-Forwarded-For": "203.0.113.9, 198.51.100.7"})
    assert response.status_code == 200


@pytest.mark.integration
async def test_paths_outside_api_are_not_limited(mini_client):
    for _ in range(5):
        response = await mini_client.get("/outside")
        assert response.status_code == 200
    assert "RateLimit-Limit" not in response.headers


# ============================================================================
# ERROR TRANSLATION
# ============================================================================

@pytest.mark.integration
async def test_app_exception_envelope(mini_client):
    response = await mini_client.get("/api/missing")
    assert response.status_code == 404
    assert response.json() == {
        "success": False,
        "error": {"code": "PATIENT_NOT_FOUND", "message": "Patient not found"},
    }


@pytest.mark.integration
async def test_unexpected_error_is_hidden(mini_client):
    response = await mini_client.get("/api/boom")
    assert response.status_code == 500
    error = response.json()["error"]
    assert error["code"] == "INTERNAL_SERVER_ERROR"
    assert error["message"] == "An unexpected error occurred"
    assert "stack" not in error
    assert "kaboom" not in response.text


@pytest.mark.integration
async def test_method_not_allowed(mini_client):
    response = await mini_client.post("/api/ping")
    assert response.status_code == 405
    assert response.json()["error"]["code"] == "METHOD_NOT_ALLOWED"


class Visit(BaseModel):
    reason: str = Field(min_length=3)
    room: int

    @field_validator("reason")
    def no_digits(cls, value):
        if any(ch.isdigit() for ch in value):
            raise ValueError("Reason cannot contain digits")
        return value


@pytest.mark.unit
def test_format_validation_errors():
    with pytest.raises(ValidationError) as caught:
        Visit.model_validate({"reason": "abc1", "room": "x"})
    errors = format_validation_errors(caught.value)
    assert {"field": "reason", "message": "Reason cannot contain digits", "code": "value_error"} in errors
    assert any(e["field"] == "room" and e["code"] == "int_parsing" for e in errors)


# ============================================================================
# SUBDOMAIN
# ============================================================================

@pytest.mark.unit
@pytest.mark.parametrize(
    "host,expected",
    [
        ("clinica-a.clinica.app", "clinica-a"),
        ("Clinica-A.clinica.app:8443", "clinica-a"),
        ("clinica.app", None),
        ("www.clinica.app", None),
        ("api.clinica.app", None),
        ("localhost:8000", None),
        ("192.168.0.10", None),
        (None, None),
    ],
)
def test_extract_subdomain(host, expected):
    assert extract_subdomain(host) == expected
