"""Payment schemas."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field


class PaymentStatus(str, Enum):
    """Payment status enumeration."""

    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    CANCELLED = "cancelled"


class PaymentCreate(BaseModel):
    """Schema for staff processing a payment."""

    appointment_id: UUID
    amount: Decimal = Field(..., gt=0)
    method: str = Field(..., min_length=1, max_length=50)
    provider: str | None = Field(None, max_length=50)
    transaction_ref: str | None = None
    description: str | None = None


class PaymentStatusUpdate(BaseModel):
    """Schema for updating payment status."""

    status: PaymentStatus
    transaction_ref: str | None = None


class PaymentResponse(BaseModel):
    """Schema for payment response."""

    id: UUID
    appointment_id: UUID
    patient_id: UUID
    amount: Decimal
    status: PaymentStatus
    method: str
    provider: str | None = None
    transaction_ref: str | None = None
    description: str | None = None
    created_at: datetime
    paid_at: datetime | None = None

    model_config = {"from_attributes": True}
