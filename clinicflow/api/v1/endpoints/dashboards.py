"""Role dashboard endpoints."""

from fastapi import APIRouter, status

from clinicflow.dependencies import CurrentContext, SessionFactory
from clinicflow.schemas.dashboards import (
    DoctorDashboardResponse,
    PatientDashboardResponse,
    StaffDashboardResponse,
)
from clinicflow.services.dashboard_service import DashboardService

router = APIRouter()


@router.get(
    "/patient",
    response_model=PatientDashboardResponse,
    status_code=status.HTTP_200_OK,
    summary="Patient dashboard",
)
async def patient_dashboard(
    ctx: CurrentContext,
    session_factory: SessionFactory,
) -> PatientDashboardResponse:
    """Appointments, clinical data, payments and notifications of the patient."""
    bundle = await DashboardService(session_factory).get_patient_dashboard(ctx)
    return PatientDashboardResponse.model_validate(bundle)


@router.get(
    "/doctor",
    response_model=DoctorDashboardResponse,
    status_code=status.HTTP_200_OK,
    summary="Doctor dashboard",
)
async def doctor_dashboard(
    ctx: CurrentContext,
    session_factory: SessionFactory,
) -> DoctorDashboardResponse:
    """Today's schedule, treated patients and open work of the doctor."""
    bundle = await DashboardService(session_factory).get_doctor_dashboard(ctx)
    return DoctorDashboardResponse.model_validate(bundle)


@router.get(
    "/staff",
    response_model=StaffDashboardResponse,
    status_code=status.HTTP_200_OK,
    summary="Staff dashboard",
)
async def staff_dashboard(
    ctx: CurrentContext,
    session_factory: SessionFactory,
) -> StaffDashboardResponse:
    """Clinic-wide counters and recent activity for staff and admins."""
    bundle = await DashboardService(session_factory).get_staff_dashboard(ctx)
    return StaffDashboardResponse.model_validate(bundle)
