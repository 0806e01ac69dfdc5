"""Task table using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
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

tasks = Table(
    "tasks",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column(
        "assigned_to",
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("created_by", Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("title", Text, nullable=False),
    Column("description", Text),
    Column("priority", String(20), nullable=False, server_default=text("'medium'")),
    Column("task_type", String(50), nullable=False, server_default=text("'general'")),
    Column("status", String(20), nullable=False, server_default=text("'pending'")),
    Column("due_date", Date),
    Column("related_patient_id", Uuid, ForeignKey("patients.id", ondelete="SET NULL")),
    Column("related_equipment_id", Uuid, ForeignKey("equipment.id", ondelete="SET NULL")),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("completed_at", DateTime(timezone=True)),
    CheckConstraint(
        "status IN ('pending', 'in_progress', 'completed')",
        name="tasks_status_check",
    ),
)
