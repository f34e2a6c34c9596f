"""Tests for walk-in queue endpoints."""

import pytest
from httpx import AsyncClient

BASE = "/api/v1/queue/"


@pytest.mark.asyncio
async def test_add_to_queue(client: AsyncClient, auth_headers: dict, patient_id: int) -> None:
    """Test admitting existing and new patients."""
    response = await client.post(BASE, json={"patient_id": patient_id}, headers=auth_headers)
    assert response.status_code == 201
    data = response.json()
    assert data["queue_number"] == 1
    assert data["status"] == "waiting"
    assert data["priority"] == 1
    assert data["patient"]["name"] == "Maria Lopez"

    walk_in = await client.post(
        BASE,
        json={"patient": {"name": "Ravi Kumar", "phone": "+15550200"}, "priority": 8},
        headers=auth_headers,
    )
    assert walk_in.status_code == 201
    assert walk_in.json()["queue_number"] == 2


@pytest.mark.asyncio
async def test_add_to_queue_duplicate(
    client: AsyncClient, auth_headers: dict, patient_id: int
) -> None:
    """Test that a waiting patient cannot be admitted twice."""
    await client.post(BASE, json={"patient_id": patient_id}, headers=auth_headers)

    response = await client.post(BASE, json={"patient_id": patient_id}, headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["error"] == "InvalidStateException"


@pytest.mark.asyncio
async def test_add_to_queue_validation(client: AsyncClient, auth_headers: dict) -> None:
    """Test priority bounds and patient selection."""
    out_of_range = await client.post(
        BASE,
        json={"patient": {"name": "A B", "phone": "+15550300"}, "priority": 11},
        headers=auth_headers,
    )
    assert out_of_range.status_code == 422

    no_patient = await client.post(BASE, json={"priority": 2}, headers=auth_headers)
    assert no_patient.status_code == 400


@pytest.mark.asyncio
async def test_list_queue_order(client: AsyncClient, auth_headers: dict) -> None:
    """Test that urgent patients are listed first."""
    for name, phone, priority in (
        ("Low", "+15550401", 1),
        ("High", "+15550402", 9),
        ("Mid", "+15550403", 5),
    ):
        await client.post(
            BASE,
            json={"patient": {"name": name, "phone": phone}, "priority": priority},
            headers=auth_headers,
        )

    response = await client.get(BASE, headers=auth_headers)
    assert response.status_code == 200
    assert [e["patient"]["name"] for e in response.json()] == ["High", "Mid", "Low"]


@pytest.mark.asyncio
async def test_status_flow_and_stats(
    client: AsyncClient, auth_headers: dict, patient_id: int, other_patient_id: int
) -> None:
    """Test moving an entry through the queue and reading stats."""
    first = (await client.post(BASE, json={"patient_id": patient_id}, headers=auth_headers)).json()
    await client.post(BASE, json={"patient_id": other_patient_id}, headers=auth_headers)

    response = await client.patch(
        f"{BASE}{first['id']}/status",
        json={"status": "with_doctor"},
        headers=auth_headers,
    )
    assert response.status_code == 200
    assert response.json()["status"] == "with_doctor"

    stats = await client.get(f"{BASE}stats", headers=auth_headers)
    assert stats.status_code == 200
    assert stats.json() == {"waiting": 1, "with_doctor": 1, "total_today": 2}

    waiting = await client.get(BASE, params={"status": "waiting"}, headers=auth_headers)
    assert [e["patient_id"] for e in waiting.json()] == [other_patient_id]

    await client.patch(
        f"{BASE}{first['id']}/status", json={"status": "completed"}, headers=auth_headers
    )
    final = await client.patch(
        f"{BASE}{first['id']}/status", json={"status": "waiting"}, headers=auth_headers
    )
    assert final.status_code == 400


@pytest.mark.asyncio
async def test_skip_and_remove(client: AsyncClient, auth_headers: dict, patient_id: int) -> None:
    """Test skipping an entry, then removing it."""
    entry = (await client.post(BASE, json={"patient_id": patient_id}, headers=auth_headers)).json()

    skipped = await client.patch(f"{BASE}{entry['id']}/skip", headers=auth_headers)
    assert skipped.status_code == 200
    assert skipped.json()["status"] == "skipped"
    assert skipped.json()["notes"].startswith("Skipped at ")

    fetched = await client.get(f"{BASE}{entry['id']}", headers=auth_headers)
    assert fetched.json()["status"] == "skipped"

    removed = await client.delete(f"{BASE}{entry['id']}", headers=auth_headers)
    assert removed.status_code == 200
    assert removed.json() == {"message": "Queue entry removed successfully"}

    missing = await client.get(f"{BASE}{entry['id']}", headers=auth_headers)
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_queue_requires_auth(client: AsyncClient) -> None:
    """Test accessing the queue without auth."""
    response = await client.get(BASE)
    assert response.status_code in (401, 403)
