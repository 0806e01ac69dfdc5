"""Dashboard bundle schemas."""

from pydantic import BaseModel

from clinicflow.schemas.appointments import AppointmentResponse
from clinicflow.schemas.catalog import ServiceResponse
from clinicflow.schemas.clinical import (
    HealthMetricResponse,
    LabTestResponse,
    MedicalRecordResponse,
    PrescriptionResponse,
)
from clinicflow.schemas.notifications import NotificationResponse
from clinicflow.schemas.operations import EquipmentResponse, TaskResponse
from clinicflow.schemas.payments import PaymentResponse
from clinicflow.schemas.users import DoctorResponse, PatientResponse, StaffResponse
from clinicflow.schemas.video_calls import VideoCallResponse


class PatientDashboardResponse(BaseModel):
    """Everything a patient sees on their landing page."""

    upcoming_appointments: list[AppointmentResponse]
    past_appointments: list[AppointmentResponse]
    medical_records: list[MedicalRecordResponse]
    prescriptions: list[PrescriptionResponse]
    lab_tests: list[LabTestResponse]
    health_metrics: list[HealthMetricResponse]
    payments: list[PaymentResponse]
    video_calls: list[VideoCallResponse]
    notifications: list[NotificationResponse]
    services: list[ServiceResponse]


class DoctorDashboardResponse(BaseModel):
    """Everything a doctor sees on their landing page."""

    today_appointments: list[AppointmentResponse]
    upcoming_appointments: list[AppointmentResponse]
    patients: list[PatientResponse]
    medical_records: list[MedicalRecordResponse]
    lab_tests: list[LabTestResponse]
    health_metrics: list[HealthMetricResponse]
    tasks: list[TaskResponse]
    video_calls: list[VideoCallResponse]
    notifications: list[NotificationResponse]


class StaffDashboardStats(BaseModel):
    """Headline counters for the staff dashboard."""

    total_appointments: int
    today_appointments: int
    pending_appointments: int
    total_patients: int
    active_doctors: int
    pending_payments: int


class StaffDashboardResponse(BaseModel):
    """Everything staff and admins see on their landing page."""

    stats: StaffDashboardStats
    appointments: list[AppointmentResponse]
    patients: list[PatientResponse]
    doctors: list[DoctorResponse]
    staff: list[StaffResponse]
    payments: list[PaymentResponse]
    equipment: list[EquipmentResponse]
    tasks: list[TaskResponse]
    notifications: list[NotificationResponse]
