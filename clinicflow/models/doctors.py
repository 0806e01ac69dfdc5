"""Doctor profile model definition using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Table,
    Text,
    Uuid,
    func,
    text,
)

from clinicflow.models.metadata import metadata

doctors = Table(
    "doctors",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column(
        "user_id",
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    ),
    # Professional credentials
    Column("specialty", String(200), nullable=False, index=True),
    Column("license_number", String(100), nullable=False, unique=True),
    Column("experience_years", Integer),
    # Practice information
    Column("consultation_fee", Numeric(10, 2), nullable=False, server_default=text("0")),
    Column("room", String(50)),
    Column("bio", Text),
    Column("availability_status", String(20), nullable=False, server_default=text("'available'")),
    Column("rating", Numeric(3, 2), nullable=False, server_default=text("0")),
    Column("supports_video", Boolean, nullable=False, server_default=text("false")),
    # Metadata
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    CheckConstraint(
        "availability_status IN ('available', 'busy', 'break')",
        name="doctors_availability_check",
    ),
)
