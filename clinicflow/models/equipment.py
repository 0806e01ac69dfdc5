"""Equipment table using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    String,
    Table,
    Text,
    Uuid,
    func,
    text,
)

from clinicflow.models.metadata import metadata

equipment = Table(
    "equipment",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column("name", Text, nullable=False),
    Column("type", String(100), nullable=False),
    Column("model", Text),
    Column("serial_number", String(100), unique=True),
    Column("location", Text),
    Column("status", String(20), nullable=False, server_default=text("'available'")),
    # Maintenance tracking
    Column("last_maintenance", Date),
    Column("next_maintenance", Date),
    Column("purchase_date", Date),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    CheckConstraint(
        "status IN ('available', 'in-use', 'maintenance', 'out-of-order')",
        name="equipment_status_check",
    ),
)
