"""Notification schemas."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field


class NotificationCreate(BaseModel):
    """Schema for creating a notification."""

    user_id: UUID = Field(..., description="User ID to notify")
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=1000)
    type: str = Field(default="general", max_length=50)
    priority: Literal["low", "medium", "high", "urgent"] = Field(
        default="medium", description="Notification priority"
    )
    related_appointment_id: UUID | None = None
    related_test_id: UUID | None = None


class NotificationResponse(BaseModel):
    """Schema for notification response."""

    id: UUID
    user_id: UUID
    title: str
    message: str
    type: str
    priority: str
    is_read: bool
    related_appointment_id: UUID | None = None
    related_test_id: UUID | None = None
    created_at: datetime
    read_at: datetime | None = None

    model_config = {"from_attributes": True}
