"""Health metric table using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    ForeignKey,
    String,
    Table,
    Text,
    Uuid,
    func,
)

from clinicflow.models.metadata import metadata

health_metrics = Table(
    "health_metrics",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column(
        "patient_id",
        Uuid,
        ForeignKey("patients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("metric_type", String(50), nullable=False),
    Column("value", Text, nullable=False),
    Column("unit", String(20)),
    Column("recorded_date", Date, nullable=False),
    Column("recorded_by", String(20), nullable=False),
    Column("notes", Text),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)
