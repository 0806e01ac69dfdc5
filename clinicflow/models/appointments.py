"""Appointments table model using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Table,
    Text,
    Time,
    Uuid,
    func,
    text,
)

from clinicflow.models.metadata import metadata

appointments = Table(
    "appointments",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    # Ownership / references
    Column(
        "patient_id",
        Uuid,
        ForeignKey("patients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column(
        "doctor_id",
        Uuid,
        ForeignKey("doctors.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    # Appointment details
    Column("service_type", Text, nullable=False),
    Column("reason", Text),
    Column("appointment_date", Date, nullable=False),
    Column("appointment_time", Time, nullable=False),
    Column("consultation_type", String(20), nullable=False, server_default=text("'in-person'")),
    Column("fee", Numeric(10, 2), nullable=False, server_default=text("0")),
    Column("duration_minutes", Integer, nullable=False, server_default=text("30")),
    # Status management
    Column("status", String(20), nullable=False, server_default=text("'pending'")),
    Column("cancellation_reason", Text),
    Column("notes", Text),
    # Last reschedule
    Column("original_date", Date),
    Column("original_time", Time),
    Column("reschedule_reason", Text),
    Column("reschedule_requested_by", String(20)),
    # Optimistic concurrency
    Column("version", Integer, nullable=False, server_default=text("1")),
    # Audit fields
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("cancelled_at", DateTime(timezone=True)),
    Column("completed_at", DateTime(timezone=True)),
    # Constraints
    CheckConstraint(
        "status IN ('pending', 'confirmed', 'completed', 'cancelled')",
        name="appointments_status_check",
    ),
    CheckConstraint(
        "consultation_type IN ('in-person', 'video', 'phone')",
        name="appointments_consultation_type_check",
    ),
)
