"""Lab test table using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    String,
    Table,
    Text,
    Uuid,
    func,
    text,
)

from clinicflow.models.metadata import metadata

lab_tests = Table(
    "lab_tests",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
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
    Column("appointment_id", Uuid, ForeignKey("appointments.id", ondelete="SET NULL")),
    Column("test_name", Text, nullable=False),
    Column("test_type", String(100), nullable=False),
    Column("priority", String(20), nullable=False, server_default=text("'routine'")),
    # Results are filled in by staff
    Column("result", Text),
    Column("abnormal_findings", Text),
    Column("staff_id", Uuid, ForeignKey("staff.id", ondelete="SET NULL")),
    Column("status", String(20), nullable=False, server_default=text("'ordered'")),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("completed_at", DateTime(timezone=True)),
    CheckConstraint(
        "status IN ('ordered', 'completed')",
        name="lab_tests_status_check",
    ),
)
