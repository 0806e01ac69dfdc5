"""Video call table using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
    Uuid,
    func,
    text,
)

from clinicflow.models.metadata import metadata

video_calls = Table(
    "video_calls",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    # One call per appointment
    Column(
        "appointment_id",
        Uuid,
        ForeignKey("appointments.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    ),
    Column("doctor_id", Uuid, ForeignKey("doctors.id", ondelete="CASCADE"), nullable=False),
    Column("patient_id", Uuid, ForeignKey("patients.id", ondelete="CASCADE"), nullable=False),
    Column("call_link", Text, nullable=False),
    Column("room_id", String(100), nullable=False, unique=True),
    Column("status", String(20), nullable=False, server_default=text("'scheduled'")),
    Column("started_at", DateTime(timezone=True)),
    Column("ended_at", DateTime(timezone=True)),
    Column("duration_minutes", Integer),
    Column("recording_url", Text),
    Column("notes", Text),
    Column("version", Integer, nullable=False, server_default=text("1")),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    CheckConstraint(
        "status IN ('scheduled', 'ongoing', 'completed', 'cancelled')",
        name="video_calls_status_check",
    ),
)
