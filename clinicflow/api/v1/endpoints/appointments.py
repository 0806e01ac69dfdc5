"""Appointment endpoints."""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Query, status

from clinicflow.dependencies import CurrentContext, DatabaseSession
from clinicflow.schemas.appointments import (
    AppointmentCreate,
    AppointmentReschedule,
    AppointmentResponse,
    AppointmentStatus,
    AppointmentStatusUpdate,
)
from clinicflow.services.appointment_service import AppointmentService

router = APIRouter()


@router.post(
    "",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Book an appointment",
)
async def create_appointment(
    data: AppointmentCreate,
    ctx: CurrentContext,
    db: DatabaseSession,
) -> AppointmentResponse:
    """
    Book an appointment.

    Patients book for themselves; staff and admins pass ``patient_id``.
    New appointments always start as ``pending``.

    Args:
        data: Appointment data
        ctx: Caller access context
        db: Database session

    Returns:
        Created appointment
    """
    created = await AppointmentService(db).create_appointment(ctx, data)
    return AppointmentResponse.model_validate(created)


@router.get(
    "",
    response_model=list[AppointmentResponse],
    status_code=status.HTTP_200_OK,
    summary="List appointments",
)
async def list_appointments(
    ctx: CurrentContext,
    db: DatabaseSession,
    status_filter: AppointmentStatus | None = Query(None, alias="status"),
    from_date: date | None = Query(None),
    to_date: date | None = Query(None),
    limit: int = Query(50, ge=1, le=200),
) -> list[AppointmentResponse]:
    """List appointments visible to the caller, most recent first."""
    rows = await AppointmentService(db).list_appointments(
        ctx, status=status_filter, from_date=from_date, to_date=to_date, limit=limit
    )
    return [AppointmentResponse.model_validate(row) for row in rows]


@router.get(
    "/upcoming",
    response_model=list[AppointmentResponse],
    status_code=status.HTTP_200_OK,
    summary="List upcoming appointments",
)
async def list_upcoming_appointments(
    ctx: CurrentContext,
    db: DatabaseSession,
    limit: int = Query(10, ge=1, le=100),
) -> list[AppointmentResponse]:
    """Pending and confirmed appointments from today on, soonest first."""
    rows = await AppointmentService(db).list_upcoming(ctx, limit=limit)
    return [AppointmentResponse.model_validate(row) for row in rows]


@router.get(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Get an appointment",
)
async def get_appointment(
    appointment_id: UUID,
    ctx: CurrentContext,
    db: DatabaseSession,
) -> AppointmentResponse:
    """Get an appointment by id."""
    row = await AppointmentService(db).get_appointment(ctx, appointment_id)
    return AppointmentResponse.model_validate(row)


@router.patch(
    "/{appointment_id}/status",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Change appointment status",
)
async def update_appointment_status(
    appointment_id: UUID,
    data: AppointmentStatusUpdate,
    ctx: CurrentContext,
    db: DatabaseSession,
) -> AppointmentResponse:
    """
    Confirm, complete or cancel an appointment.

    Pass ``expected_version`` to reject the change when someone else
    updated the appointment first.
    """
    row = await AppointmentService(db).update_status(ctx, appointment_id, data)
    return AppointmentResponse.model_validate(row)


@router.patch(
    "/{appointment_id}/reschedule",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Reschedule an appointment",
)
async def reschedule_appointment(
    appointment_id: UUID,
    data: AppointmentReschedule,
    ctx: CurrentContext,
    db: DatabaseSession,
) -> AppointmentResponse:
    """Move a pending or confirmed appointment to another slot."""
    updated = await AppointmentService(db).reschedule(ctx, appointment_id, data)
    return AppointmentResponse.model_validate(updated)
