"""Clinical schemas: medical records, prescriptions, lab tests, health metrics."""

from datetime import date, datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field


class LabTestStatus(str, Enum):
    """Lab test status enumeration."""

    ORDERED = "ordered"
    COMPLETED = "completed"


class MedicalRecordCreate(BaseModel):
    """Schema for creating a medical record."""

    patient_id: UUID
    appointment_id: UUID | None = None
    diagnosis: str | None = Field(None, max_length=2000)
    notes: str | None = None


class MedicalRecordResponse(BaseModel):
    """Schema for medical record response."""

    id: UUID
    patient_id: UUID
    doctor_id: UUID
    appointment_id: UUID | None = None
    diagnosis: str | None = None
    notes: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class PrescriptionCreate(BaseModel):
    """Schema for creating a prescription under a medical record."""

    medical_record_id: UUID
    medication_name: str = Field(..., min_length=1, max_length=200)
    dosage: str | None = None
    frequency: str | None = None
    duration: str | None = None
    instructions: str | None = None
    quantity: int | None = Field(None, ge=1)
    refills: int = Field(default=0, ge=0, le=12)


class PrescriptionResponse(BaseModel):
    """Schema for prescription response."""

    id: UUID
    medical_record_id: UUID
    medication_name: str
    dosage: str | None = None
    frequency: str | None = None
    duration: str | None = None
    instructions: str | None = None
    quantity: int | None = None
    refills: int
    status: str
    created_at: datetime

    model_config = {"from_attributes": True}


class LabTestOrder(BaseModel):
    """Schema for ordering a lab test."""

    patient_id: UUID
    appointment_id: UUID | None = None
    test_name: str = Field(..., min_length=1, max_length=200)
    test_type: str = Field(..., min_length=1, max_length=100)
    priority: str = Field(default="routine", pattern="^(routine|urgent|stat)$")


class LabTestResult(BaseModel):
    """Schema for recording a lab test result."""

    result: str = Field(..., min_length=1)
    abnormal_findings: str | None = None


class LabTestResponse(BaseModel):
    """Schema for lab test response."""

    id: UUID
    patient_id: UUID
    doctor_id: UUID
    appointment_id: UUID | None = None
    test_name: str
    test_type: str
    priority: str
    result: str | None = None
    abnormal_findings: str | None = None
    status: LabTestStatus
    created_at: datetime
    completed_at: datetime | None = None

    model_config = {"from_attributes": True}


class HealthMetricCreate(BaseModel):
    """Schema for recording a health metric.

    Doctors must name the patient; patients always record for themselves.
    """

    patient_id: UUID | None = None
    metric_type: str = Field(..., min_length=1, max_length=50)
    value: str = Field(..., min_length=1, max_length=100)
    unit: str | None = Field(None, max_length=20)
    recorded_date: date | None = None
    notes: str | None = None


class HealthMetricResponse(BaseModel):
    """Schema for health metric response."""

    id: UUID
    patient_id: UUID
    metric_type: str
    value: str
    unit: str | None = None
    recorded_date: date
    recorded_by: str
    notes: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}
