"""add messaging tables and reschedule tracking

Revision ID: 002
Revises: 001
Create Date: 2026-10-19 14:00:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id() -> sa.Column:
    return sa.Column(
        "id",
        postgresql.UUID(as_uuid=True),
        server_default=sa.text("gen_random_uuid()"),
        nullable=False,
    )


def _uuid(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(name, postgresql.UUID(as_uuid=True), nullable=nullable)


def _now(name: str) -> sa.Column:
    return sa.Column(
        name,
        postgresql.TIMESTAMP(timezone=True),
        server_default=sa.text("NOW()"),
        nullable=False,
    )


def upgrade() -> None:
    """Track the last reschedule on appointments; add threads and messages."""
    op.add_column("appointments", sa.Column("original_date", sa.Date(), nullable=True))
    op.add_column("appointments", sa.Column("original_time", sa.Time(), nullable=True))
    op.add_column("appointments", sa.Column("reschedule_reason", sa.Text(), nullable=True))
    op.add_column("appointments", sa.Column("reschedule_requested_by", sa.String(20), nullable=True))

    op.create_table(
        "message_threads",
        _id(),
        _uuid("patient_id"),
        _uuid("doctor_id"),
        _uuid("appointment_id", nullable=True),
        _uuid("last_message_id", nullable=True),
        _now("last_message_at"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        _now("created_at"),
        _now("updated_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["patient_id"], ["patients.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["doctor_id"], ["doctors.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["appointment_id"], ["appointments.id"], ondelete="SET NULL"),
    )
    op.create_index("idx_message_threads_pair", "message_threads", ["patient_id", "doctor_id"])

    op.create_table(
        "messages",
        _id(),
        _uuid("sender_id"),
        _uuid("receiver_id"),
        _uuid("thread_id", nullable=True),
        _uuid("appointment_id", nullable=True),
        sa.Column("message_text", sa.Text(), nullable=False),
        sa.Column("message_type", sa.String(20), nullable=False, server_default=sa.text("'text'")),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("read_at", postgresql.TIMESTAMP(timezone=True), nullable=True),
        _now("created_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["sender_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["receiver_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["thread_id"], ["message_threads.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["appointment_id"], ["appointments.id"], ondelete="SET NULL"),
        sa.CheckConstraint(
            "message_type IN ('text', 'image', 'file', 'voice')",
            name="messages_type_check",
        ),
    )
    op.create_index("idx_messages_receiver_read", "messages", ["receiver_id", "is_read"])
    op.create_index("idx_messages_pair", "messages", ["sender_id", "receiver_id"])


def downgrade() -> None:
    """Drop messaging tables and reschedule columns."""
    op.drop_table("messages")
    op.drop_table("message_threads")
    for column in ("reschedule_requested_by", "reschedule_reason", "original_time", "original_date"):
        op.drop_column("appointments", column)
