"""Tests for appointment booking and lifecycle."""

from datetime import date, time, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import select

from clinicflow.core.exceptions import (
    AccessDeniedException,
    ConflictException,
    InvalidStateException,
    NotFoundException,
    ValidationException,
)
from clinicflow.models import notifications
from clinicflow.schemas.appointments import (
    AppointmentCreate,
    AppointmentReschedule,
    AppointmentStatus,
    AppointmentStatusUpdate,
    ConsultationType,
)
from clinicflow.services.appointment_service import AppointmentService
from tests.conftest import add_appointment, auth_headers


def _booking(clinic, **overrides) -> AppointmentCreate:
    data = {
        "doctor_id": clinic.doctor.doctor_id,
        "service_type": "General consultation",
        "appointment_date": date.today() + timedelta(days=2),
        "appointment_time": time(9, 0),
    }
    data.update(overrides)
    return AppointmentCreate(**data)


async def _notifications_for(db_session, user_id) -> list[dict]:
    result = await db_session.execute(select(notifications).where(notifications.c.user_id == user_id))
    return [dict(row) for row in result.mappings().all()]


@pytest.mark.asyncio
async def test_patient_booking_is_always_pending(db_session, clinic) -> None:
    """A client-supplied status is ignored; the fee comes from the doctor."""
    service = AppointmentService(db_session)

    created = await service.create_appointment(
        clinic.patient, _booking(clinic, status=AppointmentStatus.CONFIRMED)
    )

    assert created["status"] == "pending"
    assert created["patient_id"] == clinic.patient.patient_id
    assert Decimal(created["fee"]) == Decimal("75.00")
    assert created["version"] == 1

    doctor_inbox = await _notifications_for(db_session, clinic.doctor.user_id)
    assert len(doctor_inbox) == 1
    assert doctor_inbox[0]["related_appointment_id"] == created["id"]


@pytest.mark.asyncio
async def test_staff_books_on_behalf_of_patient(db_session, clinic) -> None:
    """Staff must name the patient they book for."""
    service = AppointmentService(db_session)

    with pytest.raises(ValidationException):
        await service.create_appointment(clinic.staff, _booking(clinic))

    created = await service.create_appointment(
        clinic.staff, _booking(clinic, patient_id=clinic.other_patient.patient_id)
    )
    assert created["patient_id"] == clinic.other_patient.patient_id


@pytest.mark.asyncio
async def test_doctors_cannot_book(db_session, clinic) -> None:
    """Doctors are not allowed to create appointments."""
    with pytest.raises(AccessDeniedException):
        await AppointmentService(db_session).create_appointment(clinic.doctor, _booking(clinic))


@pytest.mark.asyncio
async def test_booking_checks_doctor(db_session, clinic) -> None:
    """Unknown doctors and doctors without video support are rejected."""
    service = AppointmentService(db_session)

    with pytest.raises(NotFoundException):
        await service.create_appointment(clinic.patient, _booking(clinic, doctor_id=clinic.patient.patient_id))

    with pytest.raises(ValidationException):
        await service.create_appointment(
            clinic.patient,
            _booking(
                clinic,
                doctor_id=clinic.other_doctor.doctor_id,
                consultation_type=ConsultationType.VIDEO,
            ),
        )


@pytest.mark.asyncio
async def test_lifecycle_pending_confirmed_completed(db_session, clinic) -> None:
    """The doctor confirms then completes; each step bumps the version."""
    row = await add_appointment(db_session, clinic.patient, clinic.doctor)
    service = AppointmentService(db_session)

    confirmed = await service.update_status(
        clinic.doctor, row["id"], AppointmentStatusUpdate(status=AppointmentStatus.CONFIRMED)
    )
    assert confirmed["status"] == "confirmed"
    assert confirmed["version"] == 2

    completed = await service.update_status(
        clinic.doctor, row["id"], AppointmentStatusUpdate(status=AppointmentStatus.COMPLETED)
    )
    assert completed["status"] == "completed"
    assert completed["completed_at"] is not None

    with pytest.raises(InvalidStateException):
        await service.update_status(
            clinic.doctor, row["id"], AppointmentStatusUpdate(status=AppointmentStatus.CONFIRMED)
        )


@pytest.mark.asyncio
async def test_cancelled_appointment_cannot_be_confirmed(db_session, clinic) -> None:
    """Cancelled is terminal."""
    row = await add_appointment(db_session, clinic.patient, clinic.doctor, status="cancelled")

    with pytest.raises(InvalidStateException):
        await AppointmentService(db_session).update_status(
            clinic.staff, row["id"], AppointmentStatusUpdate(status=AppointmentStatus.CONFIRMED)
        )


@pytest.mark.asyncio
async def test_patient_may_only_cancel(db_session, clinic) -> None:
    """Patients cancel their own appointments and the doctor is told."""
    row = await add_appointment(db_session, clinic.patient, clinic.doctor)
    service = AppointmentService(db_session)

    with pytest.raises(AccessDeniedException):
        await service.update_status(
            clinic.patient, row["id"], AppointmentStatusUpdate(status=AppointmentStatus.CONFIRMED)
        )

    cancelled = await service.update_status(
        clinic.patient,
        row["id"],
        AppointmentStatusUpdate(status=AppointmentStatus.CANCELLED, cancellation_reason="Feeling better"),
    )
    assert cancelled["status"] == "cancelled"
    assert cancelled["cancellation_reason"] == "Feeling better"
    assert cancelled["cancelled_at"] is not None

    doctor_inbox = await _notifications_for(db_session, clinic.doctor.user_id)
    assert [n["title"] for n in doctor_inbox] == ["Appointment cancelled"]


@pytest.mark.asyncio
async def test_patient_cannot_cancel_foreign_appointment(db_session, clinic) -> None:
    """Ownership is checked before the transition."""
    row = await add_appointment(db_session, clinic.other_patient, clinic.doctor)

    with pytest.raises(AccessDeniedException):
        await AppointmentService(db_session).update_status(
            clinic.patient, row["id"], AppointmentStatusUpdate(status=AppointmentStatus.CANCELLED)
        )


@pytest.mark.asyncio
async def test_doctor_cannot_confirm_colleagues_appointment(db_session, clinic) -> None:
    """Doctors only transition their own appointments."""
    row = await add_appointment(db_session, clinic.patient, clinic.doctor)

    with pytest.raises(AccessDeniedException):
        await AppointmentService(db_session).update_status(
            clinic.other_doctor, row["id"], AppointmentStatusUpdate(status=AppointmentStatus.CONFIRMED)
        )


@pytest.mark.asyncio
async def test_stale_expected_version_conflicts(db_session, clinic) -> None:
    """Two writers racing on the same version: the second loses."""
    row = await add_appointment(db_session, clinic.patient, clinic.doctor)
    service = AppointmentService(db_session)

    await service.update_status(
        clinic.doctor,
        row["id"],
        AppointmentStatusUpdate(status=AppointmentStatus.CONFIRMED, expected_version=1),
    )

    with pytest.raises(ConflictException):
        await service.update_status(
            clinic.staff,
            row["id"],
            AppointmentStatusUpdate(status=AppointmentStatus.CANCELLED, expected_version=1),
        )

    current = await service.get_appointment(clinic.staff, row["id"])
    assert current["status"] == "confirmed"


@pytest.mark.asyncio
async def test_notification_failure_does_not_undo_status_change(db_session, clinic) -> None:
    """The transition commits even when its notification cannot be recorded."""
    row = await add_appointment(db_session, clinic.patient, clinic.doctor)
    service = AppointmentService(db_session)

    with (
        patch.object(service.notifications, "_user_ids", AsyncMock(side_effect=RuntimeError("boom"))),
        patch("clinicflow.services.notification_service.logger") as mock_logger,
    ):
        updated = await service.update_status(
            clinic.doctor, row["id"], AppointmentStatusUpdate(status=AppointmentStatus.CONFIRMED)
        )

    assert updated["status"] == "confirmed"
    assert mock_logger.warning.call_args.args[0] == "notification_side_effect_failed"
    assert (await service.get_appointment(clinic.patient, row["id"]))["status"] == "confirmed"


@pytest.mark.asyncio
async def test_list_filters_and_upcoming(db_session, clinic) -> None:
    """Filters narrow the list; upcoming only holds open future appointments."""
    today = date.today()
    soon = await add_appointment(
        db_session, clinic.patient, clinic.doctor, appointment_date=today + timedelta(days=1)
    )
    later = await add_appointment(
        db_session,
        clinic.patient,
        clinic.doctor,
        status="confirmed",
        appointment_date=today + timedelta(days=5),
    )
    await add_appointment(
        db_session, clinic.patient, clinic.doctor, status="completed", appointment_date=today - timedelta(days=5)
    )
    service = AppointmentService(db_session)

    confirmed = await service.list_appointments(clinic.patient, status=AppointmentStatus.CONFIRMED)
    assert [row["id"] for row in confirmed] == [later["id"]]

    upcoming = await service.list_upcoming(clinic.patient, today=today)
    assert [row["id"] for row in upcoming] == [soon["id"], later["id"]]

    past = await service.list_appointments(clinic.patient, to_date=today)
    assert [row["status"] for row in past] == ["completed"]


@pytest.mark.asyncio
async def test_patient_reschedules_pending_appointment(db_session, clinic) -> None:
    """The new slot is stored, the old one kept, and the doctor is told."""
    row = await add_appointment(db_session, clinic.patient, clinic.doctor)
    new_date = row["appointment_date"] + timedelta(days=7)
    service = AppointmentService(db_session)

    moved = await service.reschedule(
        clinic.patient,
        row["id"],
        AppointmentReschedule(appointment_date=new_date, appointment_time=time(14, 0), reason="Work trip"),
    )

    assert moved["status"] == "pending"
    assert moved["appointment_date"] == new_date
    assert moved["appointment_time"] == time(14, 0)
    assert moved["original_date"] == row["appointment_date"]
    assert moved["original_time"] == row["appointment_time"]
    assert moved["reschedule_requested_by"] == "patient"
    assert moved["version"] == row["version"] + 1

    titles = [n["title"] for n in await _notifications_for(db_session, clinic.doctor.user_id)]
    assert titles == ["Appointment rescheduled"]
    assert await _notifications_for(db_session, clinic.patient.user_id) == []


@pytest.mark.asyncio
async def test_reschedule_rules(db_session, clinic) -> None:
    """Closed, foreign, unchanged, past and stale reschedules are all refused."""
    service = AppointmentService(db_session)
    open_row = await add_appointment(db_session, clinic.patient, clinic.doctor, status="confirmed")
    cancelled = await add_appointment(db_session, clinic.patient, clinic.doctor, status="cancelled")
    later = AppointmentReschedule(
        appointment_date=open_row["appointment_date"] + timedelta(days=1), appointment_time=time(9, 0)
    )

    with pytest.raises(InvalidStateException):
        await service.reschedule(clinic.patient, cancelled["id"], later)
    with pytest.raises(AccessDeniedException):
        await service.reschedule(clinic.other_patient, open_row["id"], later)
    with pytest.raises(ValidationException):
        await service.reschedule(
            clinic.doctor,
            open_row["id"],
            AppointmentReschedule(
                appointment_date=open_row["appointment_date"], appointment_time=open_row["appointment_time"]
            ),
        )
    with pytest.raises(ValidationException):
        await service.reschedule(
            clinic.staff,
            open_row["id"],
            AppointmentReschedule(appointment_date=date.today() - timedelta(days=1), appointment_time=time(9, 0)),
        )

    stale = later.model_copy(update={"expected_version": open_row["version"] + 5})
    with pytest.raises(ConflictException):
        await service.reschedule(clinic.staff, open_row["id"], stale)

    unchanged = await service.get_appointment(clinic.staff, open_row["id"])
    assert unchanged["appointment_date"] == open_row["appointment_date"]
    assert unchanged["original_date"] is None


@pytest.mark.asyncio
async def test_reschedule_endpoint(client, clinic, db_session) -> None:
    """Doctors move their own appointments over HTTP."""
    row = await add_appointment(db_session, clinic.patient, clinic.doctor, status="confirmed")
    new_date = row["appointment_date"] + timedelta(days=2)

    response = await client.patch(
        f"/api/v1/appointments/{row['id']}/reschedule",
        json={"appointment_date": new_date.isoformat(), "appointment_time": "16:30:00"},
        headers=auth_headers(clinic.doctor),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["appointment_date"] == new_date.isoformat()
    assert body["reschedule_requested_by"] == "doctor"
    assert body["status"] == "confirmed"
