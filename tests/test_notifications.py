"""Tests for the notification side channel."""

from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from clinicflow.core.exceptions import AccessDeniedException
from clinicflow.schemas.notifications import NotificationCreate
from clinicflow.services.notification_service import NotificationService


def _note(user_id, title: str = "Reminder") -> NotificationCreate:
    return NotificationCreate(user_id=user_id, title=title, message="Bring your insurance card.")


@pytest.mark.asyncio
async def test_patient_cannot_notify_another_user(db_session, clinic) -> None:
    """Only staff and admins may target other users."""
    service = NotificationService(db_session)

    with pytest.raises(AccessDeniedException):
        await service.notify(clinic.patient, _note(clinic.other_patient.user_id))

    own = await service.notify(clinic.patient, _note(clinic.patient.user_id))
    assert own["is_read"] is False

    sent = await service.notify(clinic.staff, _note(clinic.doctor.user_id))
    assert sent["user_id"] == clinic.doctor.user_id


@pytest.mark.asyncio
async def test_repeated_notifications_are_all_kept(db_session, clinic) -> None:
    """Identical notifications are recorded independently."""
    service = NotificationService(db_session)

    first = await service.notify(clinic.staff, _note(clinic.patient.user_id))
    second = await service.notify(clinic.staff, _note(clinic.patient.user_id))

    assert first["id"] != second["id"]
    assert len(await service.list_notifications(clinic.patient)) == 2


@pytest.mark.asyncio
async def test_mark_read_is_owner_only(db_session, clinic) -> None:
    """Recipients mark their own notifications; others are denied."""
    service = NotificationService(db_session)
    note = await service.notify(clinic.staff, _note(clinic.patient.user_id))

    with pytest.raises(AccessDeniedException):
        await service.mark_read(clinic.other_patient, note["id"])

    read = await service.mark_read(clinic.patient, note["id"])
    assert read["is_read"] is True
    assert read["read_at"] is not None
    assert await service.list_notifications(clinic.patient, unread_only=True) == []


@pytest.mark.asyncio
async def test_mark_all_read_counts_unread(db_session, clinic) -> None:
    """Only the caller's unread notifications are touched."""
    service = NotificationService(db_session)
    for title in ("One", "Two", "Three"):
        await service.notify(clinic.staff, _note(clinic.patient.user_id, title))
    await service.notify(clinic.staff, _note(clinic.other_patient.user_id))

    assert await service.mark_all_read(clinic.patient) == 3
    assert await service.mark_all_read(clinic.patient) == 0
    assert len(await service.list_notifications(clinic.other_patient, unread_only=True)) == 1


@pytest.mark.asyncio
async def test_emit_resolves_profile_ids(db_session, clinic) -> None:
    """Profile ids are mapped to their users and duplicates collapse."""
    service = NotificationService(db_session)

    count = await service.emit(
        "Clinic closed",
        "The clinic is closed on Friday.",
        users=[clinic.patient.user_id],
        patient_ids=[clinic.patient.patient_id],
        doctor_ids=[clinic.doctor.doctor_id, None],
    )

    assert count == 2
    assert [n["title"] for n in await service.list_notifications(clinic.doctor)] == ["Clinic closed"]


@pytest.mark.asyncio
async def test_emit_rolls_back_when_recipient_lookup_fails(db_session, clinic) -> None:
    """A failed lookup is rolled back and leaves the session usable for the next emit."""
    service = NotificationService(db_session)
    lookup_error = OperationalError("SELECT user_id FROM patients", {}, Exception("connection reset"))

    with (
        patch.object(service, "_user_ids", AsyncMock(side_effect=lookup_error)),
        patch.object(db_session, "rollback", AsyncMock(wraps=db_session.rollback)) as rollback,
    ):
        count = await service.emit("Lab results", "Your results are ready.", patient_ids=[clinic.patient.patient_id])

    assert count == 0
    rollback.assert_awaited_once()
    assert await service.list_notifications(clinic.patient) == []

    assert await service.emit("Lab results", "Your results are ready.", patient_ids=[clinic.patient.patient_id]) == 1
    assert [n["title"] for n in await service.list_notifications(clinic.patient)] == ["Lab results"]
