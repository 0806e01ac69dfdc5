"""Video call schemas."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field


class VideoCallStatus(str, Enum):
    """Video call lifecycle states."""

    SCHEDULED = "scheduled"
    ONGOING = "ongoing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class VideoCallEnd(BaseModel):
    """Schema for ending a video call."""

    duration_minutes: int | None = Field(None, ge=0, le=1440)
    notes: str | None = Field(None, max_length=2000)


class VideoCallResponse(BaseModel):
    """Schema for video call response."""

    id: UUID
    appointment_id: UUID
    doctor_id: UUID
    patient_id: UUID
    call_link: str
    room_id: str
    status: VideoCallStatus
    started_at: datetime | None = None
    ended_at: datetime | None = None
    duration_minutes: int | None = None
    recording_url: str | None = None
    notes: str | None = None
    version: int
    created_at: datetime

    model_config = {"from_attributes": True}


class VideoCallJoinResponse(BaseModel):
    """Schema returned to a participant joining a call."""

    call_link: str
    room_id: str
    status: VideoCallStatus
    token: str | None = None
