"""Appointment schemas for request/response validation."""

from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field


class AppointmentStatus(str, Enum):
    """Appointment status enumeration."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ConsultationType(str, Enum):
    """Consultation type enumeration."""

    IN_PERSON = "in-person"
    VIDEO = "video"
    PHONE = "phone"


class AppointmentCreate(BaseModel):
    """Schema for booking an appointment.

    ``patient_id`` is only honoured for staff/admin bookings; ``status`` is
    accepted for compatibility but a new appointment always starts pending.
    """

    doctor_id: UUID
    patient_id: UUID | None = None
    service_type: str = Field(..., min_length=1, max_length=200)
    reason: str | None = Field(None, max_length=1000)
    appointment_date: date
    appointment_time: time
    consultation_type: ConsultationType = ConsultationType.IN_PERSON
    duration_minutes: int = Field(default=30, ge=5, le=480)
    status: AppointmentStatus | None = None


class AppointmentStatusUpdate(BaseModel):
    """Schema for updating appointment status."""

    status: AppointmentStatus
    cancellation_reason: str | None = Field(None, max_length=1000)
    notes: str | None = Field(None, max_length=1000)
    expected_version: int | None = Field(None, ge=1)


class AppointmentReschedule(BaseModel):
    """Schema for moving an open appointment to another slot."""

    appointment_date: date
    appointment_time: time
    reason: str | None = Field(None, max_length=1000)
    expected_version: int | None = Field(None, ge=1)


class AppointmentResponse(BaseModel):
    """Schema for appointment response."""

    id: UUID
    patient_id: UUID
    doctor_id: UUID
    service_type: str
    reason: str | None = None
    appointment_date: date
    appointment_time: time
    consultation_type: ConsultationType
    status: AppointmentStatus
    fee: Decimal
    duration_minutes: int
    cancellation_reason: str | None = None
    notes: str | None = None
    original_date: date | None = None
    original_time: time | None = None
    reschedule_reason: str | None = None
    reschedule_requested_by: str | None = None
    version: int
    created_at: datetime
    updated_at: datetime
    cancelled_at: datetime | None = None
    completed_at: datetime | None = None

    model_config = {"from_attributes": True}
