"""Notification table using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    String,
    Table,
    Text,
    Uuid,
    func,
    text,
)

from clinicflow.models.metadata import metadata

notifications = Table(
    "notifications",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column("user_id", Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("title", Text, nullable=False),
    Column("message", Text, nullable=False),
    Column("type", String(50), nullable=False, server_default=text("'general'")),
    Column("priority", String(20), nullable=False, server_default=text("'medium'")),
    Column("is_read", Boolean, nullable=False, server_default=text("false")),
    Column("related_appointment_id", Uuid),
    Column("related_test_id", Uuid),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("read_at", DateTime(timezone=True)),
    CheckConstraint(
        "priority IN ('low', 'medium', 'high', 'urgent')",
        name="notifications_priority_check",
    ),
    Index("idx_notifications_user_id", "user_id"),
    Index("idx_notifications_user_read", "user_id", "is_read"),
)
