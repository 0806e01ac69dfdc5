"""HTTP tests for the API surface."""

from uuid import uuid4

import pytest
from httpx import AsyncClient

from clinicflow.schemas.users import Role
from tests.conftest import TEST_PASSWORD, add_appointment, add_user, auth_headers

API = "/api/v1"


@pytest.mark.asyncio
async def test_health_and_ping(client: AsyncClient) -> None:
    """Liveness endpoints need no authentication."""
    response = await client.get(f"{API}/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"

    response = await client.get(f"{API}/ping")
    assert response.json() == {"message": "pong"}


@pytest.mark.asyncio
async def test_signup_login_and_me(client: AsyncClient) -> None:
    """A signed-up patient can log in and see their resolved context."""
    response = await client.post(
        f"{API}/auth/signup",
        json={"email": "new.patient@example.com", "password": "s3cure-passw0rd", "full_name": "New Patient"},
    )
    assert response.status_code == 201
    user = response.json()
    assert user["role"] == "patient"
    assert "password_hash" not in user

    response = await client.post(
        f"{API}/auth/login", json={"email": "new.patient@example.com", "password": "s3cure-passw0rd"}
    )
    assert response.status_code == 200
    token = response.json()["access_token"]

    response = await client.get(f"{API}/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 200
    me = response.json()
    assert me["user_id"] == user["id"]
    assert me["patient_id"] is not None
    assert me["doctor_id"] is None


@pytest.mark.asyncio
async def test_login_with_wrong_password(client: AsyncClient, db_session) -> None:
    """Bad credentials yield a 401 error body."""
    await add_user(db_session, Role.PATIENT, email="known@example.com")

    response = await client.post(
        f"{API}/auth/login", json={"email": "known@example.com", "password": "not-" + TEST_PASSWORD}
    )
    assert response.status_code == 401
    assert response.json()["error"] == "Unauthorized"


@pytest.mark.asyncio
async def test_requests_without_token_are_rejected(client: AsyncClient) -> None:
    """Protected routes require a bearer token."""
    response = await client.get(f"{API}/appointments")
    assert response.status_code in (401, 403)

    response = await client.get(f"{API}/appointments", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_book_and_list_appointments(client: AsyncClient, clinic, sample_appointment_data) -> None:
    """Patients book over HTTP and only see their own appointments."""
    response = await client.post(
        f"{API}/appointments",
        json={**sample_appointment_data, "status": "confirmed"},
        headers=auth_headers(clinic.patient),
    )
    assert response.status_code == 201
    created = response.json()
    assert created["status"] == "pending"

    response = await client.get(f"{API}/appointments", headers=auth_headers(clinic.patient))
    assert [row["id"] for row in response.json()] == [created["id"]]

    response = await client.get(f"{API}/appointments", headers=auth_headers(clinic.other_patient))
    assert response.json() == []

    response = await client.patch(
        f"{API}/appointments/{created['id']}/status",
        json={"status": "confirmed"},
        headers=auth_headers(clinic.doctor),
    )
    assert response.status_code == 200
    assert response.json()["version"] == 2


@pytest.mark.asyncio
async def test_error_bodies_distinguish_denied_from_missing(client: AsyncClient, db_session, clinic) -> None:
    """Foreign rows are 403 AccessDenied, absent rows 404 NotFound."""
    theirs = await add_appointment(db_session, clinic.other_patient, clinic.doctor)

    response = await client.get(f"{API}/appointments/{theirs['id']}", headers=auth_headers(clinic.patient))
    assert response.status_code == 403
    body = response.json()
    assert body["error"] == "AccessDenied"
    assert body["path"].endswith(f"/appointments/{theirs['id']}")

    response = await client.get(f"{API}/appointments/{uuid4()}", headers=auth_headers(clinic.patient))
    assert response.status_code == 404
    assert response.json()["error"] == "NotFound"


@pytest.mark.asyncio
async def test_invalid_transition_is_conflict_status(client: AsyncClient, db_session, clinic) -> None:
    """Lifecycle violations map to 409 InvalidState."""
    row = await add_appointment(db_session, clinic.patient, clinic.doctor, status="cancelled")

    response = await client.patch(
        f"{API}/appointments/{row['id']}/status",
        json={"status": "confirmed"},
        headers=auth_headers(clinic.staff),
    )
    assert response.status_code == 409
    assert response.json()["error"] == "InvalidState"


@pytest.mark.asyncio
async def test_generic_entity_endpoints(client: AsyncClient, db_session, clinic) -> None:
    """Kind-generic list, get, create and status change go through the same rules."""
    row = await add_appointment(db_session, clinic.patient, clinic.doctor)

    response = await client.get(f"{API}/entities/appointments", headers=auth_headers(clinic.doctor))
    assert [item["id"] for item in response.json()] == [str(row["id"])]

    response = await client.get(f"{API}/entities/equipment", headers=auth_headers(clinic.patient))
    assert response.status_code == 403

    response = await client.post(
        f"{API}/entities/equipment",
        json={"name": "Ultrasound", "type": "imaging"},
        headers=auth_headers(clinic.staff),
    )
    assert response.status_code == 201
    equipment_id = response.json()["id"]

    response = await client.patch(
        f"{API}/entities/equipment/{equipment_id}/status",
        json={"status": "in-use"},
        headers=auth_headers(clinic.staff),
    )
    assert response.json()["status"] == "in-use"

    response = await client.patch(
        f"{API}/entities/appointments/{row['id']}/status",
        json={"status": "teleported"},
        headers=auth_headers(clinic.staff),
    )
    assert response.status_code == 422

    response = await client.post(
        f"{API}/entities/staff", json={"position": "Nurse"}, headers=auth_headers(clinic.admin)
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_dashboards_over_http(client: AsyncClient, db_session, clinic) -> None:
    """Each role gets its own dashboard and is refused the others."""
    await add_appointment(db_session, clinic.patient, clinic.doctor)

    response = await client.get(f"{API}/dashboards/patient", headers=auth_headers(clinic.patient))
    assert response.status_code == 200
    assert len(response.json()["upcoming_appointments"]) == 1

    response = await client.get(f"{API}/dashboards/staff", headers=auth_headers(clinic.admin))
    assert response.json()["stats"]["total_appointments"] == 1

    response = await client.get(f"{API}/dashboards/doctor", headers=auth_headers(clinic.patient))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_catalog_without_redis(client: AsyncClient, clinic) -> None:
    """Catalog endpoints work when the cache is unavailable."""
    response = await client.post(
        f"{API}/services",
        json={"name": "Checkup", "category": "general", "price": "20.00"},
        headers=auth_headers(clinic.staff),
    )
    assert response.status_code == 201

    response = await client.get(f"{API}/services", headers=auth_headers(clinic.patient))
    assert [item["name"] for item in response.json()] == ["Checkup"]
