"""Authentication schemas."""

from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from clinicflow.schemas.users import PatientProfileData, Role


class SignupRequest(BaseModel):
    """Patient self-registration request."""

    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    full_name: str = Field(..., min_length=1, max_length=200)
    phone: str | None = Field(None, max_length=20)
    profile: PatientProfileData = Field(default_factory=PatientProfileData)


class LoginRequest(BaseModel):
    """Email/password login request."""

    email: EmailStr
    password: str = Field(..., min_length=1)


class TokenResponse(BaseModel):
    """Access token response."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int


class AccessContextResponse(BaseModel):
    """Resolved access context of the current principal."""

    user_id: UUID
    role: Role
    patient_id: UUID | None = None
    doctor_id: UUID | None = None
    staff_id: UUID | None = None
