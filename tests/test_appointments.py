"""
Appointment scheduling and status flow tests
"""
from datetime import datetime

import pytest

from src.models.models import AppointmentStatus, UserRole
from src.modules.appointments.appointments_service import can_transition


async def book(client, clinic, patient, start, end, role=UserRole.RECEPTIONIST, professional=None):
    professional = professional or clinic.user(UserRole.DOCTOR)
    return await client.post(
        "/api/v1/appointments",
        json={
            "patientId": str(patient.id),
            "professionalId": str(professional.id),
            "startTime": start,
            "endTime": end,
            "type": "CONSULTATION",
        },
        headers=clinic.headers(role),
    )


# ============================================================================
# STATE MACHINE
# ============================================================================

@pytest.mark.unit
@pytest.mark.parametrize(
    "current,target,allowed",
    [
        (AppointmentStatus.SCHEDULED, AppointmentStatus.CONFIRMED, True),
        (AppointmentStatus.SCHEDULED, AppointmentStatus.WAITING, True),
        (AppointmentStatus.SCHEDULED, AppointmentStatus.IN_PROGRESS, False),
        (AppointmentStatus.CONFIRMED, AppointmentStatus.SCHEDULED, False),
        (AppointmentStatus.WAITING, AppointmentStatus.IN_PROGRESS, True),
        (AppointmentStatus.IN_PROGRESS, AppointmentStatus.COMPLETED, True),
        (AppointmentStatus.IN_PROGRESS, AppointmentStatus.NO_SHOW, False),
        (AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED, False),
        (AppointmentStatus.NO_SHOW, AppointmentStatus.SCHEDULED, False),
    ],
)
def test_transition_table(current, target, allowed):
    assert can_transition(current, target) is allowed


# ============================================================================
# BOOKING
# ============================================================================

@pytest.mark.integration
async def test_book_appointment(client, clinic, make_patient, appointment_slot):
    patient = await make_patient(clinic)
    start, end = appointment_slot()
    response = await book(client, clinic, patient, start, end)
    assert response.status_code == 201
    data = response.json()["data"]
    assert data["status"] == "SCHEDULED"
    assert data["patient"]["fullName"] == patient.full_name
    assert data["professional"]["role"] == "DOCTOR"


@pytest.mark.integration
async def test_end_before_start_is_rejected(client, clinic, make_patient, appointment_slot):
    patient = await make_patient(clinic)
    start, end = appointment_slot()
    response = await book(client, clinic, patient, end, start)
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


@pytest.mark.integration
async def test_overlapping_booking_conflicts(client, clinic, make_patient, appointment_slot):
    patient = await make_patient(clinic)
    start, end = appointment_slot(hour=10, minutes=60)
    first = await book(client, clinic, patient, start, end)

    inner_start, inner_end = appointment_slot(hour=10, minutes=30)
    response = await book(client, clinic, patient, inner_start, inner_end)
    assert response.status_code == 409
    error = response.json()["error"]
    assert error["code"] == "APPOINTMENT_CONFLICT"
    assert error["details"] == {"conflictingAppointmentId": first.json()["data"]["id"]}


@pytest.mark.integration
@pytest.mark.parametrize(
    "start_at,end_at",
    [((10, 15), (10, 45)), ((9, 45), (10, 15)), ((10, 0), (10, 30))],
    ids=["overlaps-end", "overlaps-start", "same-interval"],
)
async def test_partial_and_exact_overlaps_conflict(client, clinic, make_patient, appointment_slot, start_at, end_at):
    patient = await make_patient(clinic)
    start, end = appointment_slot(hour=10)
    first = (await book(client, clinic, patient, start, end)).json()["data"]

    day = datetime.fromisoformat(start)
    candidate_start = day.replace(hour=start_at[0], minute=start_at[1])
    candidate_end = day.replace(hour=end_at[0], minute=end_at[1])
    response = await book(client, clinic, patient, candidate_start.isoformat(), candidate_end.isoformat())
    assert response.status_code == 409
    error = response.json()["error"]
    assert error["code"] == "APPOINTMENT_CONFLICT"
    assert error["details"] == {"conflictingAppointmentId": first["id"]}


@pytest.mark.integration
async def test_back_to_back_bookings_are_allowed(client, clinic, make_patient, appointment_slot):
    patient = await make_patient(clinic)
    start, end = appointment_slot(hour=10)
    assert (await book(client, clinic, patient, start, end)).status_code == 201

    # 10:30 to 11:00 starts exactly where the first booking ends
    _, next_end = appointment_slot(hour=10, minutes=60)
    response = await book(client, clinic, patient, end, next_end)
    assert response.status_code == 201


@pytest.mark.integration
async def test_other_professional_is_free(client, clinic, make_patient, appointment_slot):
    patient = await make_patient(clinic)
    start, end = appointment_slot()
    await book(client, clinic, patient, start, end)
    response = await book(client, clinic, patient, start, end, professional=clinic.user(UserRole.NURSE))
    assert response.status_code == 201


@pytest.mark.integration
async def test_cancelled_appointment_frees_slot(client, clinic, make_patient, appointment_slot):
    patient = await make_patient(clinic)
    start, end = appointment_slot()
    first = (await book(client, clinic, patient, start, end)).json()["data"]

    response = await client.post(
        f"/api/v1/appointments/{first['id']}/cancel",
        json={"reason": "Paciente viajou"},
        headers=clinic.headers(UserRole.RECEPTIONIST),
    )
    assert response.status_code == 200
    assert response.json()["data"]["cancellationReason"] == "Paciente viajou"

    assert (await book(client, clinic, patient, start, end)).status_code == 201


@pytest.mark.integration
async def test_patient_from_other_tenant_cannot_be_booked(client, clinic, other_clinic, make_patient, appointment_slot):
    outsider = await make_patient(other_clinic)
    start, end = appointment_slot()
    response = await book(client, clinic, outsider, start, end)
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "PATIENT_NOT_FOUND"


@pytest.mark.integration
async def test_reschedule_into_conflict(client, clinic, make_patient, appointment_slot):
    patient = await make_patient(clinic)
    morning_start, morning_end = appointment_slot(hour=9)
    later_start, later_end = appointment_slot(hour=14)
    await book(client, clinic, patient, morning_start, morning_end)
    later = (await book(client, clinic, patient, later_start, later_end)).json()["data"]

    response = await client.patch(
        f"/api/v1/appointments/{later['id']}",
        json={"startTime": morning_start, "endTime": morning_end},
        headers=clinic.headers(UserRole.RECEPTIONIST),
    )
    assert response.status_code == 409


# ============================================================================
# STATUS FLOW
# ============================================================================

@pytest.mark.integration
async def test_full_visit_flow(client, clinic, make_patient, appointment_slot):
    patient = await make_patient(clinic)
    start, end = appointment_slot()
    appointment_id = (await book(client, clinic, patient, start, end)).json()["data"]["id"]
    base = f"/api/v1/appointments/{appointment_id}"

    steps = [
        ("confirm", UserRole.RECEPTIONIST, "CONFIRMED", "confirmedAt"),
        ("checkin", UserRole.RECEPTIONIST, "WAITING", "checkedInAt"),
        ("start", UserRole.NURSE, "IN_PROGRESS", "startedAt"),
        ("complete", UserRole.DOCTOR, "COMPLETED", "completedAt"),
    ]
    for action, role, expected_status, stamp in steps:
        response = await client.post(f"{base}/{action}", headers=clinic.headers(role))
        assert response.status_code == 200, action
        data = response.json()["data"]
        assert data["status"] == expected_status
        assert data[stamp] is not None
        if action == "confirm":
            fetched = (await client.get(base, headers=clinic.headers(UserRole.RECEPTIONIST))).json()["data"]
            assert fetched["status"] == "CONFIRMED"
            assert fetched["confirmedAt"] is not None

    response = await client.post(f"{base}/cancel", headers=clinic.headers(UserRole.RECEPTIONIST))
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "CANNOT_CANCEL"


@pytest.mark.integration
async def test_cannot_start_unconfirmed_appointment(client, clinic, make_patient, appointment_slot):
    patient = await make_patient(clinic)
    start, end = appointment_slot()
    appointment_id = (await book(client, clinic, patient, start, end)).json()["data"]["id"]

    response = await client.post(f"/api/v1/appointments/{appointment_id}/start", headers=clinic.headers(UserRole.NURSE))
    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "INVALID_STATUS_TRANSITION"
    assert error["details"] == {"from": "SCHEDULED", "to": "IN_PROGRESS"}


@pytest.mark.integration
async def test_receptionist_cannot_complete(client, clinic, make_patient, appointment_slot):
    patient = await make_patient(clinic)
    start, end = appointment_slot()
    appointment_id = (await book(client, clinic, patient, start, end)).json()["data"]["id"]
    response = await client.post(
        f"/api/v1/appointments/{appointment_id}/complete",
        headers=clinic.headers(UserRole.RECEPTIONIST),
    )
    assert response.status_code == 403


@pytest.mark.integration
async def test_no_show_frees_slot(client, clinic, make_patient, appointment_slot):
    patient = await make_patient(clinic)
    start, end = appointment_slot()
    appointment_id = (await book(client, clinic, patient, start, end)).json()["data"]["id"]

    response = await client.post(
        f"/api/v1/appointments/{appointment_id}/no-show",
        headers=clinic.headers(UserRole.RECEPTIONIST),
    )
    assert response.json()["data"]["status"] == "NO_SHOW"
    assert (await book(client, clinic, patient, start, end)).status_code == 201


# ============================================================================
# QUERIES
# ============================================================================

@pytest.mark.integration
async def test_availability_lists_busy_slots(client, clinic, make_patient, appointment_slot):
    patient = await make_patient(clinic)
    doctor = clinic.user(UserRole.DOCTOR)
    start, end = appointment_slot(days_ahead=2, hour=9)
    await book(client, clinic, patient, start, end)

    response = await client.get(
        f"/api/v1/appointments/professional/{doctor.id}/availability?date={start[:10]}",
        headers=clinic.headers(UserRole.RECEPTIONIST),
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["date"] == start[:10]
    assert len(data["busySlots"]) == 1
    assert data["busySlots"][0]["status"] == "SCHEDULED"


@pytest.mark.integration
async def test_list_filters_by_status(client, clinic, make_patient, appointment_slot):
    patient = await make_patient(clinic)
    first_start, first_end = appointment_slot(hour=9)
    second_start, second_end = appointment_slot(hour=11)
    first = (await book(client, clinic, patient, first_start, first_end)).json()["data"]
    await book(client, clinic, patient, second_start, second_end)
    await client.post(f"/api/v1/appointments/{first['id']}/confirm", headers=clinic.headers(UserRole.RECEPTIONIST))

    response = await client.get("/api/v1/appointments?status=CONFIRMED", headers=clinic.headers(UserRole.DOCTOR))
    assert response.status_code == 200
    assert [a["id"] for a in response.json()["data"]] == [first["id"]]
    assert response.json()["meta"]["total"] == 1
