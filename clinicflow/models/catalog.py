"""Service catalog tables using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
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

services = Table(
    "services",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column("name", Text, nullable=False),
    Column("category", String(100), nullable=False),
    Column("description", Text),
    Column("duration_minutes", Integer),
    Column("price", Numeric(10, 2), nullable=False),
    Column("doctor_specialty", String(200)),
    Column("is_available", Boolean, nullable=False, server_default=text("true")),
    Column("home_service_available", Boolean, nullable=False, server_default=text("false")),
    Column("popular", Boolean, nullable=False, server_default=text("false")),
    Column("display_order", Integer, nullable=False, server_default=text("0")),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)

service_packages = Table(
    "service_packages",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column("name", Text, nullable=False),
    Column("description", Text),
    # Service ids bundled in the package
    Column("service_ids", JSON, nullable=False),
    Column("original_price", Numeric(10, 2), nullable=False),
    Column("package_price", Numeric(10, 2), nullable=False),
    Column("is_active", Boolean, nullable=False, server_default=text("true")),
    Column("popular", Boolean, nullable=False, server_default=text("false")),
    Column("display_order", Integer, nullable=False, server_default=text("0")),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)
