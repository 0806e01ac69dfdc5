"""Messaging schemas."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field


class MessageType(str, Enum):
    """Kinds of message payload."""

    TEXT = "text"
    IMAGE = "image"
    FILE = "file"
    VOICE = "voice"


class MessageCreate(BaseModel):
    """Schema for sending a message to another user."""

    receiver_id: UUID = Field(..., description="User ID of the recipient")
    message_text: str = Field(..., min_length=1, max_length=5000)
    message_type: MessageType = MessageType.TEXT
    appointment_id: UUID | None = Field(None, description="Appointment the message is about")


class MessageResponse(BaseModel):
    """Schema for message response."""

    id: UUID
    sender_id: UUID
    receiver_id: UUID
    thread_id: UUID | None = None
    appointment_id: UUID | None = None
    message_text: str
    message_type: MessageType
    is_read: bool
    read_at: datetime | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class ThreadOpen(BaseModel):
    """Schema for opening a patient-doctor conversation.

    Patients pass ``doctor_id``, doctors pass ``patient_id``; staff and
    admins pass both.
    """

    patient_id: UUID | None = None
    doctor_id: UUID | None = None
    appointment_id: UUID | None = None


class ThreadResponse(BaseModel):
    """Schema for a conversation with the caller's unread count."""

    id: UUID
    patient_id: UUID
    doctor_id: UUID
    appointment_id: UUID | None = None
    last_message_id: UUID | None = None
    last_message_at: datetime
    is_active: bool
    unread_count: int = 0
    created_at: datetime

    model_config = {"from_attributes": True}
