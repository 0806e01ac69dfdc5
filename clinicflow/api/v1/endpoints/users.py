"""User account and role profile endpoints."""

from uuid import UUID

from fastapi import APIRouter, Query, status

from clinicflow.dependencies import CurrentContext, DatabaseSession
from clinicflow.schemas.users import (
    DoctorResponse,
    DoctorUpdate,
    PatientResponse,
    PatientUpdate,
    Role,
    StaffResponse,
    StaffUpdate,
    UserCreate,
    UserResponse,
)
from clinicflow.services.user_service import UserService

router = APIRouter()


@router.post(
    "/users",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a user with its profile",
)
async def create_user(data: UserCreate, ctx: CurrentContext, db: DatabaseSession) -> UserResponse:
    """
    Create a patient, doctor or staff account.

    Staff and admins create patients and doctors; only admins create staff.
    """
    user = await UserService(db).create_user(ctx, data)
    return UserResponse.model_validate(user)


@router.get(
    "/users",
    response_model=list[UserResponse],
    status_code=status.HTTP_200_OK,
    summary="List users",
)
async def list_users(
    ctx: CurrentContext,
    db: DatabaseSession,
    role: Role | None = Query(None),
    limit: int = Query(100, ge=1, le=500),
) -> list[UserResponse]:
    """List accounts (staff/admin)."""
    rows = await UserService(db).list_users(ctx, role=role, limit=limit)
    return [UserResponse.model_validate(row) for row in rows]


@router.get(
    "/users/{user_id}",
    response_model=UserResponse,
    status_code=status.HTTP_200_OK,
    summary="Get a user",
)
async def get_user(user_id: UUID, ctx: CurrentContext, db: DatabaseSession) -> UserResponse:
    """Get an account: your own, or any for staff and admins."""
    return UserResponse.model_validate(await UserService(db).get_user(ctx, user_id))


@router.delete(
    "/users/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a user",
)
async def delete_user(user_id: UUID, ctx: CurrentContext, db: DatabaseSession) -> None:
    """Delete an account and its profile (admin only)."""
    await UserService(db).delete_user(ctx, user_id)


@router.patch(
    "/patients/{patient_id}",
    response_model=PatientResponse,
    status_code=status.HTTP_200_OK,
    summary="Update a patient profile",
)
async def update_patient(
    patient_id: UUID,
    data: PatientUpdate,
    ctx: CurrentContext,
    db: DatabaseSession,
) -> PatientResponse:
    """Update a patient profile (the patient, staff or admin)."""
    row = await UserService(db).update_patient_profile(ctx, patient_id, data)
    return PatientResponse.model_validate(row)


@router.patch(
    "/doctors/{doctor_id}",
    response_model=DoctorResponse,
    status_code=status.HTTP_200_OK,
    summary="Update a doctor profile",
)
async def update_doctor(
    doctor_id: UUID,
    data: DoctorUpdate,
    ctx: CurrentContext,
    db: DatabaseSession,
) -> DoctorResponse:
    """
    Update a doctor profile.

    Doctors may only change their own availability status and bio.
    """
    row = await UserService(db).update_doctor_profile(ctx, doctor_id, data)
    return DoctorResponse.model_validate(row)


@router.patch(
    "/staff/{staff_id}",
    response_model=StaffResponse,
    status_code=status.HTTP_200_OK,
    summary="Update a staff profile",
)
async def update_staff(
    staff_id: UUID,
    data: StaffUpdate,
    ctx: CurrentContext,
    db: DatabaseSession,
) -> StaffResponse:
    """Update a staff profile (admin only)."""
    row = await UserService(db).update_staff_profile(ctx, staff_id, data)
    return StaffResponse.model_validate(row)
