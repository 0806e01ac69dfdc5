"""Tests for role-scoped reads and guarded writes in the generic repository."""

from datetime import date, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest
from sqlalchemy import insert, select
from sqlalchemy.exc import OperationalError

from clinicflow.core.exceptions import (
    AccessDeniedException,
    ConflictException,
    NotFoundException,
    UpstreamFailureException,
)
from clinicflow.core.policies import EntityKind
from clinicflow.core.transactions import apply_effects
from clinicflow.models import (
    appointments,
    health_metrics,
    medical_records,
    notifications,
    payments,
    prescriptions,
    services,
    tasks,
)
from clinicflow.services.repository import EntityRepository
from tests.conftest import add_appointment


async def _insert(db_session, table, **values):
    result = await db_session.execute(insert(table).values(**values).returning(table))
    row = dict(result.mappings().one())
    await db_session.commit()
    return row


@pytest.mark.asyncio
async def test_appointments_scoped_per_role(db_session, clinic) -> None:
    """Patients and doctors see their own appointments, staff see all."""
    mine = await add_appointment(db_session, clinic.patient, clinic.doctor)
    theirs = await add_appointment(db_session, clinic.other_patient, clinic.other_doctor)
    repo = EntityRepository(db_session, EntityKind.APPOINTMENTS)

    assert [row["id"] for row in await repo.list(clinic.patient)] == [mine["id"]]
    assert [row["id"] for row in await repo.list(clinic.other_doctor)] == [theirs["id"]]
    assert {row["id"] for row in await repo.list(clinic.staff)} == {mine["id"], theirs["id"]}
    assert await repo.count(clinic.admin) == 2


@pytest.mark.asyncio
async def test_appointments_ordered_most_recent_first(db_session, clinic) -> None:
    """Appointments come back newest date first by default."""
    today = date.today()
    early = await add_appointment(db_session, clinic.patient, clinic.doctor, appointment_date=today)
    late = await add_appointment(
        db_session, clinic.patient, clinic.doctor, appointment_date=today + timedelta(days=7)
    )
    repo = EntityRepository(db_session, EntityKind.APPOINTMENTS)

    rows = await repo.list(clinic.patient)
    assert [row["id"] for row in rows] == [late["id"], early["id"]]

    rows = await repo.list(clinic.patient, descending=False, limit=1)
    assert [row["id"] for row in rows] == [early["id"]]


@pytest.mark.asyncio
async def test_denied_kind_raises_for_role(db_session, clinic) -> None:
    """Roles without any access to a kind fail fast."""
    with pytest.raises(AccessDeniedException):
        await EntityRepository(db_session, EntityKind.EQUIPMENT).list(clinic.patient)
    with pytest.raises(AccessDeniedException):
        await EntityRepository(db_session, EntityKind.STAFF).list(clinic.doctor)


@pytest.mark.asyncio
async def test_get_by_id_distinguishes_denied_from_missing(db_session, clinic) -> None:
    """Foreign rows are AccessDenied, absent rows NotFound, each logged differently."""
    theirs = await add_appointment(db_session, clinic.other_patient, clinic.doctor)
    repo = EntityRepository(db_session, EntityKind.APPOINTMENTS)

    with patch("clinicflow.services.repository.logger") as mock_logger:
        with pytest.raises(AccessDeniedException):
            await repo.get_by_id(clinic.patient, theirs["id"])
        assert mock_logger.warning.call_args.args[0] == "entity_access_denied"
        assert mock_logger.warning.call_args.kwargs["reason"] == "ownership"
        mock_logger.info.assert_not_called()

    with patch("clinicflow.services.repository.logger") as mock_logger:
        with pytest.raises(NotFoundException):
            await repo.get_by_id(clinic.patient, uuid4())
        assert mock_logger.info.call_args.args[0] == "entity_not_found"
        mock_logger.warning.assert_not_called()


@pytest.mark.asyncio
async def test_get_by_id_returns_visible_row(db_session, clinic) -> None:
    """The owning doctor and staff can both fetch the row."""
    row = await add_appointment(db_session, clinic.patient, clinic.doctor)
    repo = EntityRepository(db_session, EntityKind.APPOINTMENTS)

    assert (await repo.get_by_id(clinic.doctor, row["id"]))["id"] == row["id"]
    assert (await repo.get_by_id(clinic.staff, row["id"]))["id"] == row["id"]


@pytest.mark.asyncio
async def test_prescriptions_visible_through_medical_record(db_session, clinic) -> None:
    """Prescriptions follow the ownership of their medical record."""
    record = await _insert(
        db_session,
        medical_records,
        patient_id=clinic.patient.patient_id,
        doctor_id=clinic.doctor.doctor_id,
        diagnosis="Bronchitis",
    )
    prescription = await _insert(
        db_session,
        prescriptions,
        medical_record_id=record["id"],
        medication_name="Amoxicillin",
    )
    repo = EntityRepository(db_session, EntityKind.PRESCRIPTIONS)

    assert [row["id"] for row in await repo.list(clinic.patient)] == [prescription["id"]]
    assert [row["id"] for row in await repo.list(clinic.doctor)] == [prescription["id"]]
    assert await repo.list(clinic.other_patient) == []
    assert await repo.list(clinic.other_doctor) == []


@pytest.mark.asyncio
async def test_payments_visible_through_appointment(db_session, clinic) -> None:
    """Payments follow the ownership of their appointment."""
    appointment = await add_appointment(db_session, clinic.patient, clinic.doctor)
    payment = await _insert(
        db_session,
        payments,
        appointment_id=appointment["id"],
        patient_id=clinic.patient.patient_id,
        amount=Decimal("75.00"),
        method="card",
    )
    repo = EntityRepository(db_session, EntityKind.PAYMENTS)

    assert [row["id"] for row in await repo.list(clinic.patient)] == [payment["id"]]
    assert [row["id"] for row in await repo.list(clinic.doctor)] == [payment["id"]]
    assert await repo.list(clinic.other_patient) == []
    with pytest.raises(AccessDeniedException):
        await repo.get_by_id(clinic.other_doctor, payment["id"])


@pytest.mark.asyncio
async def test_doctor_sees_metrics_of_linked_patients_only(db_session, clinic) -> None:
    """Health metrics and patient profiles are visible to treating doctors."""
    await add_appointment(db_session, clinic.patient, clinic.doctor)
    for ctx in (clinic.patient, clinic.other_patient):
        await _insert(
            db_session,
            health_metrics,
            patient_id=ctx.patient_id,
            metric_type="heart_rate",
            value="72",
            unit="bpm",
            recorded_date=date.today(),
            recorded_by="patient",
        )

    metrics = await EntityRepository(db_session, EntityKind.HEALTH_METRICS).list(clinic.doctor)
    assert [row["patient_id"] for row in metrics] == [clinic.patient.patient_id]

    patient_rows = await EntityRepository(db_session, EntityKind.PATIENTS).list(clinic.doctor)
    assert [row["id"] for row in patient_rows] == [clinic.patient.patient_id]


@pytest.mark.asyncio
async def test_catalog_hides_unavailable_services_from_patients(db_session, clinic) -> None:
    """Patients see available services in display order; staff see everything."""
    await _insert(db_session, services, name="X-ray", category="imaging", price=Decimal("40"), display_order=2)
    await _insert(db_session, services, name="Checkup", category="general", price=Decimal("20"), display_order=1)
    await _insert(
        db_session,
        services,
        name="Retired",
        category="general",
        price=Decimal("10"),
        is_available=False,
    )
    repo = EntityRepository(db_session, EntityKind.SERVICES)

    assert [row["name"] for row in await repo.list(clinic.patient)] == ["Checkup", "X-ray"]
    assert len(await repo.list(clinic.staff)) == 3


@pytest.mark.asyncio
async def test_notifications_are_private_even_for_admins(db_session, clinic) -> None:
    """Every role only sees notifications addressed to itself."""
    await _insert(db_session, notifications, user_id=clinic.patient.user_id, title="Hi", message="Hello")
    repo = EntityRepository(db_session, EntityKind.NOTIFICATIONS)

    assert len(await repo.list(clinic.patient)) == 1
    assert await repo.list(clinic.admin) == []


@pytest.mark.asyncio
async def test_doctor_sees_assigned_or_created_tasks(db_session, clinic) -> None:
    """Doctors see tasks assigned to or created by them; patients never."""
    await _insert(
        db_session, tasks, assigned_to=clinic.doctor.user_id, created_by=clinic.staff.user_id, title="Review labs"
    )
    await _insert(
        db_session, tasks, assigned_to=clinic.staff.user_id, created_by=clinic.staff.user_id, title="Restock"
    )
    repo = EntityRepository(db_session, EntityKind.TASKS)

    assert [row["title"] for row in await repo.list(clinic.doctor)] == ["Review labs"]
    assert await repo.count(clinic.staff) == 2
    with pytest.raises(AccessDeniedException):
        await repo.list(clinic.patient)


@pytest.mark.asyncio
async def test_update_with_stale_version_conflicts(db_session, clinic) -> None:
    """A write based on an outdated read is rejected, not applied."""
    row = await add_appointment(db_session, clinic.patient, clinic.doctor)
    repo = EntityRepository(db_session, EntityKind.APPOINTMENTS)

    (updated,) = await apply_effects(db_session, [lambda: repo.update(row, {"notes": "first"})])
    assert updated["version"] == row["version"] + 1

    with patch("clinicflow.services.repository.logger") as mock_logger:
        with pytest.raises(ConflictException):
            await apply_effects(db_session, [lambda: repo.update(row, {"notes": "second"})])
        assert mock_logger.warning.call_args.args[0] == "entity_write_conflict"

    current = await repo.find(row["id"])
    assert current["notes"] == "first"


@pytest.mark.asyncio
async def test_apply_effects_rolls_back_on_failure(db_session, clinic) -> None:
    """A failing effect undoes the effects before it."""
    row = await add_appointment(db_session, clinic.patient, clinic.doctor)
    repo = EntityRepository(db_session, EntityKind.APPOINTMENTS)

    async def _fail() -> None:
        raise UpstreamFailureException("downstream broke")

    with pytest.raises(UpstreamFailureException):
        await apply_effects(db_session, [lambda: repo.update(row, {"notes": "lost"}), _fail])

    result = await db_session.execute(select(appointments.c.notes).where(appointments.c.id == row["id"]))
    assert result.scalar_one() is None


@pytest.mark.asyncio
async def test_driver_errors_become_upstream_failures() -> None:
    """Database errors surface as UpstreamFailure and are not retried."""
    db = MagicMock()
    db.execute = AsyncMock(side_effect=OperationalError("SELECT 1", {}, Exception("connection reset")))
    repo = EntityRepository(db, EntityKind.DOCTORS)

    with pytest.raises(UpstreamFailureException):
        await repo.find(uuid4())
    assert db.execute.await_count == 1
