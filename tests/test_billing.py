"""
Billing tests: invoice pricing, payments and the financial summary
"""
from datetime import timedelta

import pytest

from src.common.utils.global_functions import utcnow
from src.models.models import UserRole


def invoice_body(patient, discount=0, due_in_days=10, items=None):
    return {
        "patientId": str(patient.id),
        "items": items or [
            {"description": "Consulta em consultorio", "procedureCode": "10101012", "quantity": 1, "unitPrice": 150},
            {"description": "Injecao intramuscular", "quantity": 2, "unitPrice": 30.5, "total": 999},
        ],
        "discount": discount,
        "dueDate": (utcnow() + timedelta(days=due_in_days)).isoformat(),
    }


async def create_invoice(client, clinic, body):
    return await client.post("/api/v1/billing/invoices", json=body, headers=clinic.headers(UserRole.RECEPTIONIST))


async def pay(client, clinic, invoice_id, **body):
    body.setdefault("paymentMethod", "PIX")
    return await client.post(
        f"/api/v1/billing/invoices/{invoice_id}/pay",
        json=body,
        headers=clinic.headers(UserRole.RECEPTIONIST),
    )


@pytest.mark.integration
async def test_invoice_totals_are_computed(client, clinic, make_patient):
    patient = await make_patient(clinic)
    response = await create_invoice(client, clinic, invoice_body(patient, discount=11))
    assert response.status_code == 201
    data = response.json()["data"]
    assert [item["total"] for item in data["items"]] == [150.0, 61.0]
    assert data["subtotal"] == 211.0
    assert data["discount"] == 11.0
    assert data["total"] == 200.0
    assert data["amountPaid"] == 0
    assert data["status"] == "PENDING"


@pytest.mark.integration
async def test_invoice_numbers_follow_month_sequence(client, clinic, make_patient):
    patient = await make_patient(clinic)
    prefix = utcnow().strftime("%Y%m")
    first = (await create_invoice(client, clinic, invoice_body(patient))).json()["data"]
    second = (await create_invoice(client, clinic, invoice_body(patient))).json()["data"]
    assert first["invoiceNumber"] == f"{prefix}-00001"
    assert second["invoiceNumber"] == f"{prefix}-00002"


@pytest.mark.integration
async def test_discount_above_subtotal(client, clinic, make_patient):
    patient = await make_patient(clinic)
    response = await create_invoice(client, clinic, invoice_body(patient, discount=500))
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_DISCOUNT"


@pytest.mark.integration
async def test_invoice_needs_items(client, clinic, make_patient):
    patient = await make_patient(clinic)
    body = {**invoice_body(patient), "items": []}
    response = await create_invoice(client, clinic, body)
    assert response.status_code == 400
    assert response.json()["error"]["details"]["errors"][0]["field"] == "items"


@pytest.mark.integration
async def test_partial_then_full_payment(client, clinic, make_patient):
    patient = await make_patient(clinic)
    invoice = (await create_invoice(client, clinic, invoice_body(patient, discount=11))).json()["data"]

    response = await pay(client, clinic, invoice["id"], amount=50, paymentMethod="CASH")
    data = response.json()["data"]
    assert data["status"] == "PARTIAL"
    assert data["amountPaid"] == 50.0
    assert data["paidAt"] is None

    response = await pay(client, clinic, invoice["id"])
    data = response.json()["data"]
    assert data["status"] == "PAID"
    assert data["amountPaid"] == 200.0
    assert data["paymentMethod"] == "PIX"
    assert data["paidAt"] is not None

    response = await pay(client, clinic, invoice["id"], amount=10)
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVOICE_ALREADY_PAID"


@pytest.mark.integration
async def test_partially_paid_invoice_cannot_drop_below_amount_paid(client, clinic, make_patient):
    patient = await make_patient(clinic)
    body = invoice_body(patient, items=[{"description": "Consulta", "quantity": 1, "unitPrice": 100}])
    invoice = (await create_invoice(client, clinic, body)).json()["data"]
    await pay(client, clinic, invoice["id"], amount=80)
    url = f"/api/v1/billing/invoices/{invoice['id']}"
    headers = clinic.headers(UserRole.BILLING_ADMIN)

    response = await client.patch(url, json={"items": [{"description": "Consulta", "quantity": 1, "unitPrice": 50}]}, headers=headers)
    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "INVALID_TOTAL"
    assert error["details"] == {"total": 50.0, "amountPaid": 80.0}

    response = await client.get(url, headers=headers)
    assert response.json()["data"]["total"] == 100.0

    response = await client.patch(url, json={"discount": 10}, headers=headers)
    assert response.status_code == 200
    data = response.json()["data"]
    assert (data["status"], data["total"], data["amountPaid"]) == ("PARTIAL", 90.0, 80.0)

    response = await client.get("/api/v1/billing/summary", headers=headers)
    assert response.json()["data"]["revenue"]["pending"] == 10.0


@pytest.mark.integration
async def test_cancelled_invoice_cannot_be_paid(client, clinic, make_patient):
    patient = await make_patient(clinic)
    invoice = (await create_invoice(client, clinic, invoice_body(patient))).json()["data"]

    response = await client.post(
        f"/api/v1/billing/invoices/{invoice['id']}/cancel",
        json={"reason": "Lancamento duplicado"},
        headers=clinic.headers(UserRole.BILLING_ADMIN),
    )
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "CANCELLED"

    response = await pay(client, clinic, invoice["id"])
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVOICE_CANCELLED"


@pytest.mark.integration
async def test_receptionist_cannot_cancel_invoice(client, clinic, make_patient):
    patient = await make_patient(clinic)
    invoice = (await create_invoice(client, clinic, invoice_body(patient))).json()["data"]
    response = await client.post(
        f"/api/v1/billing/invoices/{invoice['id']}/cancel",
        headers=clinic.headers(UserRole.RECEPTIONIST),
    )
    assert response.status_code == 403


@pytest.mark.integration
async def test_overdue_invoices(client, clinic, make_patient):
    patient = await make_patient(clinic)
    late = (await create_invoice(client, clinic, invoice_body(patient, due_in_days=-3))).json()["data"]
    await create_invoice(client, clinic, invoice_body(patient, due_in_days=5))

    response = await client.get("/api/v1/billing/invoices/overdue", headers=clinic.headers(UserRole.BILLING_ADMIN))
    assert response.status_code == 200
    assert [i["id"] for i in response.json()["data"]] == [late["id"]]


@pytest.mark.integration
async def test_financial_summary(client, clinic, make_patient):
    patient = await make_patient(clinic)
    paid = (await create_invoice(client, clinic, invoice_body(patient, discount=11))).json()["data"]
    partial = (await create_invoice(client, clinic, invoice_body(patient, discount=11))).json()["data"]
    await create_invoice(client, clinic, invoice_body(patient, discount=11))
    await pay(client, clinic, paid["id"])
    await pay(client, clinic, partial["id"], amount=80)

    response = await client.get("/api/v1/billing/summary", headers=clinic.headers(UserRole.BILLING_ADMIN))
    assert response.status_code == 200
    summary = response.json()["data"]
    assert summary["invoices"] == {
        "total": 3, "paid": 1, "pending": 1, "partial": 1, "cancelled": 0, "overdue": 0,
    }
    assert summary["revenue"]["total"] == 200.0
    # 200 still open on the pending invoice plus the 120 left on the partial one
    assert summary["revenue"]["pending"] == 320.0
    assert summary["revenue"]["byPaymentMethod"] == [{"method": "PIX", "total": 200.0, "count": 1}]


@pytest.mark.integration
async def test_summary_requires_billing_role(client, clinic):
    response = await client.get("/api/v1/billing/summary", headers=clinic.headers(UserRole.DOCTOR))
    assert response.status_code == 403
    assert response.json()["error"]["details"]["requiredRoles"] == ["SUPER_ADMIN", "TENANT_ADMIN", "BILLING_ADMIN"]


@pytest.mark.integration
async def test_invoices_are_tenant_scoped(client, clinic, other_clinic, make_patient):
    patient = await make_patient(clinic)
    invoice = (await create_invoice(client, clinic, invoice_body(patient))).json()["data"]
    response = await client.get(f"/api/v1/billing/invoices/{invoice['id']}", headers=other_clinic.headers())
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "INVOICE_NOT_FOUND"


@pytest.mark.integration
async def test_procedure_catalogue(client, clinic):
    headers = clinic.headers(UserRole.RECEPTIONIST)
    response = await client.get("/api/v1/billing/procedures/10101012", headers=headers)
    assert response.json()["data"] == {
        "code": "10101012",
        "description": "Consulta em consultorio",
        "category": "Consultas",
        "defaultPrice": 150.0,
    }

    response = await client.get("/api/v1/billing/procedures?search=curativo", headers=headers)
    results = response.json()["data"]
    assert results and all("curativo" in p["description"].lower() for p in results)

    response = await client.get("/api/v1/billing/procedures/00000000", headers=headers)
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "PROCEDURE_NOT_FOUND"
