"""Tests for appointment endpoints."""

from datetime import timedelta

import pytest
from httpx import AsyncClient

from app.core.security import create_access_token

BASE = "/api/v1/appointments/"


def slot(time: str) -> str:
    return f"2030-01-15T{time}:00"


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient) -> None:
    """Test health check endpoint."""
    response = await client.get("/api/v1/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert "version" in data


@pytest.mark.asyncio
async def test_ping(client: AsyncClient) -> None:
    """Test ping endpoint."""
    response = await client.get("/api/v1/ping")
    assert response.status_code == 200
    assert response.json() == {"message": "pong"}


@pytest.mark.asyncio
async def test_requests_carry_request_id(client: AsyncClient) -> None:
    """A supplied request ID is echoed back."""
    response = await client.get("/api/v1/ping", headers={"X-Request-ID": "abc123"})
    assert response.headers["X-Request-ID"] == "abc123"
    assert "X-Process-Time" in response.headers


@pytest.mark.asyncio
async def test_create_appointment(
    client: AsyncClient,
    auth_headers: dict,
    patient_id: int,
    doctor_id: int,
) -> None:
    """Test booking an appointment."""
    response = await client.post(
        BASE,
        json={
            "patient_id": patient_id,
            "doctor_id": doctor_id,
            "scheduled_at": slot("14:00"),
            "notes": "Annual checkup",
        },
        headers=auth_headers,
    )
    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "booked"
    assert data["duration_minutes"] == 30
    assert data["ends_at"] == slot("14:30")
    assert data["created_by"] == 7
    assert data["patient"]["name"] == "Maria Lopez"
    assert data["doctor"]["specialization"] == "General Medicine"
    assert "id" in data


@pytest.mark.asyncio
async def test_create_appointment_with_new_patient(
    client: AsyncClient,
    auth_headers: dict,
    doctor_id: int,
) -> None:
    """Test booking for a patient registered on the spot."""
    response = await client.post(
        BASE,
        json={
            "patient": {"name": "Priya Nair", "phone": "+15550123", "dob": "1990-04-02"},
            "doctor_id": doctor_id,
            "scheduled_at": slot("09:00"),
            "duration_minutes": 45,
        },
        headers=auth_headers,
    )
    assert response.status_code == 201
    data = response.json()
    assert data["patient"]["phone"] == "+15550123"
    assert data["ends_at"] == slot("09:45")


@pytest.mark.asyncio
async def test_create_appointment_conflict(
    client: AsyncClient,
    auth_headers: dict,
    patient_id: int,
    other_patient_id: int,
    doctor_id: int,
) -> None:
    """Test that overlapping bookings return 409 and adjacent ones succeed."""
    payload = {"patient_id": patient_id, "doctor_id": doctor_id, "scheduled_at": slot("14:00")}
    assert (await client.post(BASE, json=payload, headers=auth_headers)).status_code == 201

    overlapping = {**payload, "patient_id": other_patient_id, "scheduled_at": slot("14:15")}
    response = await client.post(BASE, json=overlapping, headers=auth_headers)
    assert response.status_code == 409
    data = response.json()
    assert data["error"] == "ConflictException"
    assert "conflicting appointment" in data["message"]

    adjacent = {**payload, "patient_id": other_patient_id, "scheduled_at": slot("14:30")}
    assert (await client.post(BASE, json=adjacent, headers=auth_headers)).status_code == 201


@pytest.mark.asyncio
async def test_create_appointment_patient_selector_errors(
    client: AsyncClient,
    auth_headers: dict,
    patient_id: int,
    doctor_id: int,
) -> None:
    """Test that both or neither patient selector is a 400."""
    neither = await client.post(
        BASE,
        json={"doctor_id": doctor_id, "scheduled_at": slot("10:00")},
        headers=auth_headers,
    )
    assert neither.status_code == 400
    assert neither.json()["message"] == "Either patient_id or patient object must be provided"

    both = await client.post(
        BASE,
        json={
            "patient_id": patient_id,
            "patient": {"name": "Someone", "phone": "+15550999"},
            "doctor_id": doctor_id,
            "scheduled_at": slot("10:00"),
        },
        headers=auth_headers,
    )
    assert both.status_code == 400
    assert both.json()["message"] == "Cannot provide both patient_id and patient object"


@pytest.mark.asyncio
async def test_create_appointment_validation(
    client: AsyncClient,
    auth_headers: dict,
    patient_id: int,
    doctor_id: int,
) -> None:
    """Test that out-of-range durations fail validation."""
    response = await client.post(
        BASE,
        json={
            "patient_id": patient_id,
            "doctor_id": doctor_id,
            "scheduled_at": slot("10:00"),
            "duration_minutes": 10,
        },
        headers=auth_headers,
    )
    assert response.status_code == 422
    assert response.json()["error"] == "ValidationError"


@pytest.mark.asyncio
async def test_create_appointment_unknown_doctor(
    client: AsyncClient,
    auth_headers: dict,
    patient_id: int,
) -> None:
    """Test booking with a doctor that does not exist."""
    response = await client.post(
        BASE,
        json={"patient_id": patient_id, "doctor_id": 999, "scheduled_at": slot("10:00")},
        headers=auth_headers,
    )
    assert response.status_code == 404
    assert response.json()["message"] == "Doctor not found"


@pytest.mark.asyncio
async def test_list_appointments(
    client: AsyncClient,
    auth_headers: dict,
    patient_id: int,
    doctor_id: int,
) -> None:
    """Test listing appointments with a date filter."""
    for time in ("15:00", "09:00"):
        await client.post(
            BASE,
            json={"patient_id": patient_id, "doctor_id": doctor_id, "scheduled_at": slot(time)},
            headers=auth_headers,
        )

    response = await client.get(
        BASE,
        params={"date": "2030-01-15", "doctor_id": doctor_id},
        headers=auth_headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert [a["scheduled_at"] for a in data] == [slot("09:00"), slot("15:00")]

    other_day = await client.get(BASE, params={"date": "2030-01-16"}, headers=auth_headers)
    assert other_day.json() == []

    bad_date = await client.get(BASE, params={"date": "tomorrow"}, headers=auth_headers)
    assert bad_date.status_code == 400


@pytest.mark.asyncio
async def test_get_appointment(
    client: AsyncClient,
    auth_headers: dict,
    patient_id: int,
    doctor_id: int,
) -> None:
    """Test getting a specific appointment."""
    create_response = await client.post(
        BASE,
        json={"patient_id": patient_id, "doctor_id": doctor_id, "scheduled_at": slot("11:00")},
        headers=auth_headers,
    )
    appointment_id = create_response.json()["id"]

    response = await client.get(f"{BASE}{appointment_id}", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["id"] == appointment_id

    missing = await client.get(f"{BASE}99999", headers=auth_headers)
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_check_conflict_endpoint(
    client: AsyncClient,
    auth_headers: dict,
    patient_id: int,
    doctor_id: int,
) -> None:
    """Test the standalone conflict check."""
    await client.post(
        BASE,
        json={"patient_id": patient_id, "doctor_id": doctor_id, "scheduled_at": slot("14:00")},
        headers=auth_headers,
    )

    busy = await client.get(
        f"{BASE}conflicts",
        params={"doctor_id": doctor_id, "scheduled_at": slot("14:15")},
        headers=auth_headers,
    )
    free = await client.get(
        f"{BASE}conflicts",
        params={"doctor_id": doctor_id, "scheduled_at": slot("14:30")},
        headers=auth_headers,
    )
    assert busy.json() == {"has_conflict": True}
    assert free.json() == {"has_conflict": False}


@pytest.mark.asyncio
async def test_update_appointment(
    client: AsyncClient,
    auth_headers: dict,
    patient_id: int,
    other_patient_id: int,
    doctor_id: int,
) -> None:
    """Test rescheduling, including into a taken slot."""
    first = await client.post(
        BASE,
        json={"patient_id": patient_id, "doctor_id": doctor_id, "scheduled_at": slot("10:00")},
        headers=auth_headers,
    )
    second = await client.post(
        BASE,
        json={"patient_id": other_patient_id, "doctor_id": doctor_id, "scheduled_at": slot("11:00")},
        headers=auth_headers,
    )
    second_id = second.json()["id"]

    conflict = await client.patch(
        f"{BASE}{second_id}",
        json={"scheduled_at": slot("10:15")},
        headers=auth_headers,
    )
    assert conflict.status_code == 409

    moved = await client.patch(
        f"{BASE}{second_id}",
        json={"scheduled_at": slot("12:00"), "duration_minutes": 60},
        headers=auth_headers,
    )
    assert moved.status_code == 200
    assert moved.json()["ends_at"] == slot("13:00")
    assert first.json()["status"] == "booked"


@pytest.mark.asyncio
async def test_cancel_appointment(
    client: AsyncClient,
    auth_headers: dict,
    patient_id: int,
    doctor_id: int,
) -> None:
    """Test cancelling an appointment, then cancelling it again."""
    create_response = await client.post(
        BASE,
        json={"patient_id": patient_id, "doctor_id": doctor_id, "scheduled_at": slot("10:00")},
        headers=auth_headers,
    )
    appointment_id = create_response.json()["id"]

    response = await client.patch(f"{BASE}{appointment_id}/cancel", headers=auth_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "cancelled"
    assert "[CANCELLED at " in data["notes"]

    again = await client.patch(f"{BASE}{appointment_id}/cancel", headers=auth_headers)
    assert again.status_code == 400
    assert again.json() == {
        "error": "InvalidStateException",
        "message": "Appointment is already cancelled",
        "path": f"http://test{BASE}{appointment_id}/cancel",
    }


@pytest.mark.asyncio
async def test_delete_appointment_requires_admin(
    client: AsyncClient,
    auth_headers: dict,
    admin_headers: dict,
    patient_id: int,
    doctor_id: int,
) -> None:
    """Test that only administrators can hard-delete appointments."""
    create_response = await client.post(
        BASE,
        json={"patient_id": patient_id, "doctor_id": doctor_id, "scheduled_at": slot("10:00")},
        headers=auth_headers,
    )
    appointment_id = create_response.json()["id"]

    forbidden = await client.delete(f"{BASE}{appointment_id}", headers=auth_headers)
    assert forbidden.status_code == 403

    response = await client.delete(f"{BASE}{appointment_id}", headers=admin_headers)
    assert response.status_code == 204

    missing = await client.get(f"{BASE}{appointment_id}", headers=auth_headers)
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_unauthorized_access(client: AsyncClient) -> None:
    """Test accessing protected endpoint without auth."""
    response = await client.get(BASE)
    assert response.status_code in (401, 403)


@pytest.mark.asyncio
async def test_token_with_unknown_role(client: AsyncClient) -> None:
    """Test that tokens without a front-desk role are rejected."""
    token = create_access_token(
        data={"sub": "5", "role": "patient"},
        expires_delta=timedelta(minutes=5),
    )
    response = await client.get(BASE, headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_invalid_token(client: AsyncClient) -> None:
    """Test that malformed tokens are rejected."""
    response = await client.get(BASE, headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401
