"""User and role profile schemas."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field


class Role(str, Enum):
    """Closed set of user roles."""

    PATIENT = "patient"
    DOCTOR = "doctor"
    STAFF = "staff"
    ADMIN = "admin"


class AvailabilityStatus(str, Enum):
    """Doctor availability enumeration."""

    AVAILABLE = "available"
    BUSY = "busy"
    BREAK = "break"


class PatientProfileData(BaseModel):
    """Patient profile fields."""

    date_of_birth: date | None = None
    gender: str | None = Field(None, max_length=20)
    address: str | None = Field(None, max_length=500)
    blood_type: str | None = Field(None, max_length=10)
    allergies: list[str] | None = None
    medical_history: str | None = None
    emergency_contact_name: str | None = None
    emergency_contact_phone: str | None = Field(None, max_length=20)


class DoctorProfileData(BaseModel):
    """Doctor profile fields required when a doctor account is created."""

    specialty: str = Field(..., min_length=1, max_length=200)
    license_number: str = Field(..., min_length=1, max_length=100)
    experience_years: int | None = Field(None, ge=0, le=80)
    consultation_fee: Decimal = Field(default=Decimal("0"), ge=0)
    room: str | None = Field(None, max_length=50)
    bio: str | None = None
    supports_video: bool = False


class StaffProfileData(BaseModel):
    """Staff profile fields."""

    position: str = Field(..., min_length=1, max_length=100)
    department: str | None = Field(None, max_length=100)


class UserCreate(BaseModel):
    """Schema for staff/admin creating an account with its role profile."""

    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    full_name: str = Field(..., min_length=1, max_length=200)
    phone: str | None = Field(None, max_length=20)
    role: Role
    patient_profile: PatientProfileData | None = None
    doctor_profile: DoctorProfileData | None = None
    staff_profile: StaffProfileData | None = None


class UserResponse(BaseModel):
    """Schema for user response."""

    id: UUID
    email: str
    full_name: str
    phone: str | None = None
    role: Role
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class PatientUpdate(PatientProfileData):
    """Schema for updating a patient profile."""


class PatientResponse(PatientProfileData):
    """Schema for patient profile response."""

    id: UUID
    user_id: UUID
    created_at: datetime

    model_config = {"from_attributes": True}


class DoctorUpdate(BaseModel):
    """Schema for updating a doctor profile."""

    specialty: str | None = Field(None, min_length=1, max_length=200)
    license_number: str | None = Field(None, min_length=1, max_length=100)
    experience_years: int | None = Field(None, ge=0, le=80)
    consultation_fee: Decimal | None = Field(None, ge=0)
    room: str | None = Field(None, max_length=50)
    bio: str | None = None
    availability_status: AvailabilityStatus | None = None
    supports_video: bool | None = None

    model_config = {"use_enum_values": True}


class DoctorResponse(BaseModel):
    """Schema for doctor profile response."""

    id: UUID
    user_id: UUID
    specialty: str
    license_number: str
    experience_years: int | None = None
    consultation_fee: Decimal
    room: str | None = None
    bio: str | None = None
    availability_status: AvailabilityStatus
    rating: Decimal
    supports_video: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class StaffUpdate(BaseModel):
    """Schema for updating a staff profile."""

    position: str | None = Field(None, min_length=1, max_length=100)
    department: str | None = Field(None, max_length=100)


class StaffResponse(BaseModel):
    """Schema for staff profile response."""

    id: UUID
    user_id: UUID
    position: str
    department: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}
