"""Database models."""

from clinicflow.models.appointments import appointments
from clinicflow.models.catalog import service_packages, services
from clinicflow.models.doctors import doctors
from clinicflow.models.equipment import equipment
from clinicflow.models.health_metrics import health_metrics
from clinicflow.models.lab_tests import lab_tests
from clinicflow.models.medical_records import medical_records, prescriptions
from clinicflow.models.messages import message_threads, messages
from clinicflow.models.metadata import metadata
from clinicflow.models.notifications import notifications
from clinicflow.models.patients import patients
from clinicflow.models.payments import payments
from clinicflow.models.staff import staff
from clinicflow.models.tasks import tasks
from clinicflow.models.users import users
from clinicflow.models.video_calls import video_calls

__all__ = [
    "appointments",
    "doctors",
    "equipment",
    "health_metrics",
    "lab_tests",
    "medical_records",
    "message_threads",
    "messages",
    "metadata",
    "notifications",
    "patients",
    "payments",
    "prescriptions",
    "service_packages",
    "services",
    "staff",
    "tasks",
    "users",
    "video_calls",
]
