"""
Medical record tests
"""
import pytest

from src.models.models import UserRole


def anamnesis(patient, **content):
    return {
        "type": "ANAMNESIS",
        "patientId": str(patient.id),
        "content": content or {"chiefComplaint": "Cefaleia ha 3 dias", "vitalSigns": {"heartRate": 82}},
        "icdCodes": ["R51"],
    }


async def create_record(client, clinic, body, role=UserRole.DOCTOR):
    return await client.post("/api/v1/medical-records", json=body, headers=clinic.headers(role))


@pytest.mark.integration
async def test_doctor_creates_anamnesis(client, clinic, make_patient):
    patient = await make_patient(clinic)
    response = await create_record(client, clinic, anamnesis(patient))
    assert response.status_code == 201
    data = response.json()["data"]
    assert data["type"] == "ANAMNESIS"
    assert data["version"] == 1
    assert data["professionalId"] == str(clinic.user(UserRole.DOCTOR).id)
    assert data["content"]["chiefComplaint"] == "Cefaleia ha 3 dias"
    assert data["content"]["vitalSigns"] == {"heartRate": 82.0}
    assert data["signature"] is None


@pytest.mark.integration
async def test_nurse_cannot_write_records(client, clinic, make_patient):
    patient = await make_patient(clinic)
    response = await create_record(client, clinic, anamnesis(patient), role=UserRole.NURSE)
    assert response.status_code == 403


@pytest.mark.integration
@pytest.mark.parametrize(
    "record_type,content,code",
    [
        ("ANAMNESIS", {"familyHistory": "Sem relevancia"}, "INVALID_ANAMNESIS"),
        ("EVOLUTION", {"subjective": "Melhora parcial"}, "INVALID_EVOLUTION"),
        ("PRESCRIPTION", {"prescriptions": []}, "INVALID_PRESCRIPTION"),
        ("EXAM_REQUEST", {"exams": []}, "INVALID_EXAM_REQUEST"),
        ("CERTIFICATE", {"certificateType": "attendance"}, "INVALID_CERTIFICATE"),
    ],
)
async def test_clinical_minimums(client, clinic, make_patient, record_type, content, code):
    patient = await make_patient(clinic)
    body = {"type": record_type, "patientId": str(patient.id), "content": content}
    response = await create_record(client, clinic, body)
    assert response.status_code == 400
    assert response.json()["error"]["code"] == code


@pytest.mark.integration
async def test_prescription_item_shape_is_validated(client, clinic, make_patient):
    patient = await make_patient(clinic)
    body = {
        "type": "PRESCRIPTION",
        "patientId": str(patient.id),
        "content": {"prescriptions": [{"medication": "Amoxicilina", "dosage": "500mg"}]},
    }
    response = await create_record(client, clinic, body)
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


@pytest.mark.integration
async def test_record_for_unknown_patient(client, clinic, other_clinic, make_patient):
    outsider = await make_patient(other_clinic)
    response = await create_record(client, clinic, anamnesis(outsider))
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "PATIENT_NOT_FOUND"


@pytest.mark.integration
async def test_update_bumps_version(client, clinic, make_patient):
    patient = await make_patient(clinic)
    record = (await create_record(client, clinic, anamnesis(patient))).json()["data"]

    response = await client.patch(
        f"/api/v1/medical-records/{record['id']}",
        json={"content": {"chiefComplaint": "Cefaleia e febre"}},
        headers=clinic.headers(UserRole.DOCTOR),
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["version"] == 2
    assert data["content"]["chiefComplaint"] == "Cefaleia e febre"


@pytest.mark.integration
async def test_only_author_can_edit(client, clinic, make_patient):
    patient = await make_patient(clinic)
    record = (await create_record(client, clinic, anamnesis(patient))).json()["data"]

    response = await client.patch(
        f"/api/v1/medical-records/{record['id']}",
        json={"icdCodes": ["J06"]},
        headers=clinic.headers(UserRole.TENANT_ADMIN),
    )
    assert response.status_code == 403
    assert response.json()["error"]["code"] == "NOT_RECORD_AUTHOR"


@pytest.mark.integration
async def test_signed_record_is_frozen(client, clinic, make_patient):
    patient = await make_patient(clinic)
    record = (await create_record(client, clinic, anamnesis(patient))).json()["data"]
    base = f"/api/v1/medical-records/{record['id']}"
    headers = clinic.headers(UserRole.DOCTOR)

    response = await client.post(f"{base}/sign", json={"signature": "assinatura-digital"}, headers=headers)
    assert response.status_code == 200
    assert response.json()["data"]["signedAt"] is not None

    response = await client.post(f"{base}/sign", json={"signature": "de-novo"}, headers=headers)
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "ALREADY_SIGNED"

    response = await client.patch(base, json={"icdCodes": ["J06"]}, headers=headers)
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "RECORD_SIGNED"


@pytest.mark.integration
async def test_nurse_reads_patient_records(client, clinic, make_patient):
    patient = await make_patient(clinic)
    await create_record(client, clinic, anamnesis(patient))
    await create_record(
        client,
        clinic,
        {"type": "EVOLUTION", "patientId": str(patient.id), "content": {"assessment": "Estavel"}},
    )

    response = await client.get(f"/api/v1/medical-records/patient/{patient.id}", headers=clinic.headers(UserRole.NURSE))
    assert response.status_code == 200
    assert {r["type"] for r in response.json()["data"]} == {"ANAMNESIS", "EVOLUTION"}


@pytest.mark.integration
async def test_receptionist_cannot_read_records(client, clinic, make_patient):
    patient = await make_patient(clinic)
    response = await client.get(
        f"/api/v1/medical-records/patient/{patient.id}",
        headers=clinic.headers(UserRole.RECEPTIONIST),
    )
    assert response.status_code == 403


@pytest.mark.integration
async def test_timeline_lists_records(client, clinic, make_patient):
    patient = await make_patient(clinic)
    await create_record(client, clinic, anamnesis(patient))

    response = await client.get(
        f"/api/v1/medical-records/patient/{patient.id}/timeline",
        headers=clinic.headers(UserRole.DOCTOR),
    )
    assert response.status_code == 200
    entries = response.json()["data"]
    assert [(e["kind"], e["subtype"]) for e in entries] == [("medical_record", "ANAMNESIS")]


@pytest.mark.integration
async def test_templates_filter_by_type(client, clinic):
    response = await client.get("/api/v1/medical-records/templates?type=PRESCRIPTION", headers=clinic.headers(UserRole.NURSE))
    assert response.status_code == 200
    templates = response.json()["data"]
    assert templates
    assert all(t["type"] == "PRESCRIPTION" for t in templates)
