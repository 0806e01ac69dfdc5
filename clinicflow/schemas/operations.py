"""Task and equipment schemas."""

from datetime import date, datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field


class TaskStatus(str, Enum):
    """Task status enumeration."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class EquipmentStatus(str, Enum):
    """Equipment status enumeration."""

    AVAILABLE = "available"
    IN_USE = "in-use"
    MAINTENANCE = "maintenance"
    OUT_OF_ORDER = "out-of-order"


class TaskCreate(BaseModel):
    """Schema for assigning a task."""

    assigned_to: UUID
    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    priority: str = Field(default="medium", pattern="^(low|medium|high|urgent)$")
    task_type: str = Field(default="general", max_length=50)
    due_date: date | None = None
    related_patient_id: UUID | None = None
    related_equipment_id: UUID | None = None


class TaskStatusUpdate(BaseModel):
    """Schema for updating task status."""

    status: TaskStatus


class TaskResponse(BaseModel):
    """Schema for task response."""

    id: UUID
    assigned_to: UUID
    created_by: UUID
    title: str
    description: str | None = None
    priority: str
    task_type: str
    status: TaskStatus
    due_date: date | None = None
    related_patient_id: UUID | None = None
    related_equipment_id: UUID | None = None
    created_at: datetime
    completed_at: datetime | None = None

    model_config = {"from_attributes": True}


class EquipmentCreate(BaseModel):
    """Schema for registering equipment."""

    name: str = Field(..., min_length=1, max_length=200)
    type: str = Field(..., min_length=1, max_length=100)
    model: str | None = None
    serial_number: str | None = Field(None, max_length=100)
    location: str | None = None
    purchase_date: date | None = None
    next_maintenance: date | None = None


class EquipmentStatusUpdate(BaseModel):
    """Schema for changing equipment status."""

    status: EquipmentStatus
    notes: str | None = None


class EquipmentResponse(BaseModel):
    """Schema for equipment response."""

    id: UUID
    name: str
    type: str
    model: str | None = None
    serial_number: str | None = None
    location: str | None = None
    status: EquipmentStatus
    last_maintenance: date | None = None
    next_maintenance: date | None = None
    purchase_date: date | None = None
    created_at: datetime

    model_config = {"from_attributes": True}
