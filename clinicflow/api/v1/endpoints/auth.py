"""Authentication endpoints."""

from fastapi import APIRouter, status

from clinicflow.dependencies import CurrentContext, DatabaseSession
from clinicflow.schemas.auth import (
    AccessContextResponse,
    LoginRequest,
    SignupRequest,
    TokenResponse,
)
from clinicflow.schemas.users import UserResponse
from clinicflow.services.auth_service import AuthService

router = APIRouter()


@router.post(
    "/signup",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register as a patient",
)
async def signup(data: SignupRequest, db: DatabaseSession) -> UserResponse:
    """
    Create a patient account and its patient profile.

    Args:
        data: Signup payload
        db: Database session

    Returns:
        Created user
    """
    user = await AuthService(db).signup(data)
    return UserResponse.model_validate(user)


@router.post(
    "/login",
    response_model=TokenResponse,
    status_code=status.HTTP_200_OK,
    summary="Log in with email and password",
)
async def login(data: LoginRequest, db: DatabaseSession) -> TokenResponse:
    """Exchange credentials for a bearer access token."""
    return await AuthService(db).login(data)


@router.get(
    "/me",
    response_model=AccessContextResponse,
    status_code=status.HTTP_200_OK,
    summary="Resolved access context",
)
async def me(ctx: CurrentContext) -> AccessContextResponse:
    """Return the role and profile ids resolved for the caller."""
    return AccessContextResponse(
        user_id=ctx.user_id,
        role=ctx.role,
        patient_id=ctx.patient_id,
        doctor_id=ctx.doctor_id,
        staff_id=ctx.staff_id,
    )
