"""Tests for per-role dashboard bundles."""

from datetime import date, timedelta
from unittest.mock import AsyncMock, patch

import pytest

from clinicflow.core.exceptions import AccessDeniedException, UpstreamFailureException
from clinicflow.schemas.dashboards import (
    DoctorDashboardResponse,
    PatientDashboardResponse,
    StaffDashboardResponse,
)
from clinicflow.services.dashboard_service import DashboardService
from clinicflow.services.repository import EntityRepository
from tests.conftest import add_appointment


@pytest.mark.asyncio
async def test_patient_dashboard_contains_own_rows_only(db_session, session_factory, clinic) -> None:
    """Every list in the bundle is scoped to the calling patient."""
    today = date.today()
    upcoming = await add_appointment(
        db_session, clinic.patient, clinic.doctor, appointment_date=today + timedelta(days=1)
    )
    past = await add_appointment(
        db_session,
        clinic.patient,
        clinic.doctor,
        status="completed",
        appointment_date=today - timedelta(days=10),
    )
    await add_appointment(db_session, clinic.other_patient, clinic.doctor)

    bundle = await DashboardService(session_factory).get_patient_dashboard(clinic.patient, today=today)

    assert [row["id"] for row in bundle["upcoming_appointments"]] == [upcoming["id"]]
    assert [row["id"] for row in bundle["past_appointments"]] == [past["id"]]
    assert bundle["medical_records"] == []
    PatientDashboardResponse.model_validate(bundle)


@pytest.mark.asyncio
async def test_doctor_dashboard_splits_today(db_session, session_factory, clinic) -> None:
    """Doctors see today's schedule and their linked patients."""
    today = date.today()
    now = await add_appointment(db_session, clinic.patient, clinic.doctor, appointment_date=today)
    await add_appointment(db_session, clinic.other_patient, clinic.other_doctor, appointment_date=today)

    bundle = await DashboardService(session_factory).get_doctor_dashboard(clinic.doctor, today=today)

    assert [row["id"] for row in bundle["today_appointments"]] == [now["id"]]
    assert bundle["upcoming_appointments"] == []
    assert [row["id"] for row in bundle["patients"]] == [clinic.patient.patient_id]
    DoctorDashboardResponse.model_validate(bundle)


@pytest.mark.asyncio
async def test_dashboard_rejects_wrong_role(session_factory, clinic) -> None:
    """Each dashboard belongs to specific roles."""
    service = DashboardService(session_factory)

    with pytest.raises(AccessDeniedException):
        await service.get_patient_dashboard(clinic.doctor)
    with pytest.raises(AccessDeniedException):
        await service.get_doctor_dashboard(clinic.staff)
    with pytest.raises(AccessDeniedException):
        await service.get_staff_dashboard(clinic.patient)


@pytest.mark.asyncio
async def test_staff_dashboard_stats(db_session, session_factory, clinic) -> None:
    """Staff and admins get clinic-wide counters."""
    today = date.today()
    await add_appointment(db_session, clinic.patient, clinic.doctor, appointment_date=today)
    await add_appointment(db_session, clinic.other_patient, clinic.doctor, status="confirmed")

    for ctx in (clinic.staff, clinic.admin):
        bundle = await DashboardService(session_factory).get_staff_dashboard(ctx, today=today)
        assert bundle["stats"] == {
            "total_appointments": 2,
            "today_appointments": 1,
            "pending_appointments": 1,
            "total_patients": 2,
            "active_doctors": 2,
            "pending_payments": 0,
        }
        assert len(bundle["staff"]) == 2
        StaffDashboardResponse.model_validate(bundle)


@pytest.mark.asyncio
async def test_failing_subfetch_fails_whole_bundle(session_factory, clinic) -> None:
    """No partial dashboards: one failing read fails the request."""
    with (
        patch.object(
            EntityRepository,
            "count",
            new_callable=AsyncMock,
            side_effect=UpstreamFailureException("Database operation failed"),
        ),
        patch("clinicflow.services.dashboard_service.logger") as mock_logger,
    ):
        with pytest.raises(UpstreamFailureException):
            await DashboardService(session_factory).get_staff_dashboard(clinic.staff)

    assert mock_logger.error.call_args.args[0] == "dashboard_failed"
