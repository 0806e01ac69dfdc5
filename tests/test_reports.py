"""Tests for admin reports."""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from clinicflow.core.exceptions import AccessDeniedException, ValidationException
from clinicflow.schemas.operations import EquipmentCreate
from clinicflow.schemas.reports import ReportKind, ReportResponse
from clinicflow.services.operations_service import OperationsService
from clinicflow.services.report_service import ReportService
from tests.conftest import add_appointment


@pytest.mark.asyncio
async def test_appointment_report_stats(db_session, clinic) -> None:
    """Rows inside the window are summarised by status, type and revenue."""
    today = date.today()
    await add_appointment(db_session, clinic.patient, clinic.doctor, status="completed", appointment_date=today)
    await add_appointment(
        db_session,
        clinic.other_patient,
        clinic.doctor,
        status="completed",
        consultation_type="video",
        appointment_date=today,
        fee=Decimal("50.00"),
    )
    await add_appointment(db_session, clinic.patient, clinic.other_doctor, appointment_date=today)
    await add_appointment(
        db_session, clinic.patient, clinic.doctor, appointment_date=today + timedelta(days=60)
    )

    report = await ReportService(db_session).generate_report(
        clinic.admin, ReportKind.APPOINTMENTS, start=today, end=today + timedelta(days=7)
    )

    assert report["stats"]["total"] == 3
    assert report["stats"]["by_status"] == {"completed": 2, "pending": 1}
    assert report["stats"]["by_consultation_type"] == {"in-person": 2, "video": 1}
    assert Decimal(report["stats"]["completed_revenue"]) == Decimal("125.00")
    ReportResponse.model_validate(report)


@pytest.mark.asyncio
async def test_reports_are_admin_only(db_session, clinic) -> None:
    """Staff and everyone else are denied."""
    service = ReportService(db_session)

    for ctx in (clinic.staff, clinic.doctor, clinic.patient):
        with pytest.raises(AccessDeniedException):
            await service.generate_report(ctx, ReportKind.PAYMENTS)


@pytest.mark.asyncio
async def test_report_window_must_be_ordered(db_session, clinic) -> None:
    """A window that ends before it starts is rejected."""
    today = date.today()

    with pytest.raises(ValidationException):
        await ReportService(db_session).generate_report(
            clinic.admin, ReportKind.USERS, start=today, end=today - timedelta(days=1)
        )


@pytest.mark.asyncio
async def test_users_report_never_exposes_password_hashes(db_session, clinic) -> None:
    """Account rows are returned without credentials."""
    report = await ReportService(db_session).generate_report(clinic.admin, ReportKind.USERS)

    assert report["stats"]["total"] == 6
    assert report["stats"]["by_role"] == {"patient": 2, "doctor": 2, "staff": 1, "admin": 1}
    assert all("password_hash" not in row for row in report["rows"])
    assert report["end"] == date.today()
    assert report["start"] == date.today() - timedelta(days=30)


@pytest.mark.asyncio
async def test_equipment_report_counts_due_maintenance(db_session, clinic) -> None:
    """Equipment due for maintenance by the end of the window is counted."""
    today = date.today()
    operations = OperationsService(db_session)
    await operations.register_equipment(
        clinic.staff, EquipmentCreate(name="Autoclave", type="sterilizer", next_maintenance=today)
    )
    await operations.register_equipment(
        clinic.staff,
        EquipmentCreate(name="ECG", type="cardiology", next_maintenance=today + timedelta(days=90)),
    )

    report = await ReportService(db_session).generate_report(clinic.admin, ReportKind.EQUIPMENT, end=today)

    assert report["stats"]["total"] == 2
    assert report["stats"]["maintenance_due"] == 1
    assert report["stats"]["by_status"] == {"available": 2}
