"""Patient-doctor messaging tables using SQLAlchemy Core."""

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

# One conversation per patient/doctor pair (and optionally per appointment)
message_threads = Table(
    "message_threads",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column("patient_id", Uuid, ForeignKey("patients.id", ondelete="CASCADE"), nullable=False),
    Column("doctor_id", Uuid, ForeignKey("doctors.id", ondelete="CASCADE"), nullable=False),
    Column("appointment_id", Uuid, ForeignKey("appointments.id", ondelete="SET NULL")),
    Column("last_message_id", Uuid),
    Column("last_message_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("is_active", Boolean, nullable=False, server_default=text("true")),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Index("idx_message_threads_pair", "patient_id", "doctor_id"),
)

messages = Table(
    "messages",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column("sender_id", Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("receiver_id", Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("thread_id", Uuid, ForeignKey("message_threads.id", ondelete="SET NULL")),
    Column("appointment_id", Uuid, ForeignKey("appointments.id", ondelete="SET NULL")),
    Column("message_text", Text, nullable=False),
    Column("message_type", String(20), nullable=False, server_default=text("'text'")),
    Column("is_read", Boolean, nullable=False, server_default=text("false")),
    Column("read_at", DateTime(timezone=True)),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    CheckConstraint(
        "message_type IN ('text', 'image', 'file', 'voice')",
        name="messages_type_check",
    ),
    Index("idx_messages_receiver_read", "receiver_id", "is_read"),
    Index("idx_messages_pair", "sender_id", "receiver_id"),
)
