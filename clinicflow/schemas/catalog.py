"""Service catalog schemas."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field


class ServiceCreate(BaseModel):
    """Schema for creating a catalog service."""

    name: str = Field(..., min_length=1, max_length=200)
    category: str = Field(..., min_length=1, max_length=100)
    description: str | None = None
    duration_minutes: int | None = Field(None, ge=1)
    price: Decimal = Field(..., ge=0)
    doctor_specialty: str | None = None
    is_available: bool = True
    home_service_available: bool = False
    popular: bool = False
    display_order: int = 0


class ServiceUpdate(BaseModel):
    """Schema for updating a catalog service."""

    name: str | None = Field(None, min_length=1, max_length=200)
    category: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = None
    duration_minutes: int | None = Field(None, ge=1)
    price: Decimal | None = Field(None, ge=0)
    doctor_specialty: str | None = None
    is_available: bool | None = None
    home_service_available: bool | None = None
    popular: bool | None = None
    display_order: int | None = None


class ServiceResponse(ServiceCreate):
    """Schema for catalog service response."""

    id: UUID
    created_at: datetime

    model_config = {"from_attributes": True}


class ServicePackageCreate(BaseModel):
    """Schema for creating a service package."""

    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    service_ids: list[UUID] = Field(..., min_length=1)
    original_price: Decimal = Field(..., ge=0)
    package_price: Decimal = Field(..., ge=0)
    is_active: bool = True
    popular: bool = False
    display_order: int = 0


class ServicePackageUpdate(BaseModel):
    """Schema for updating a service package."""

    name: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = None
    service_ids: list[UUID] | None = None
    original_price: Decimal | None = Field(None, ge=0)
    package_price: Decimal | None = Field(None, ge=0)
    is_active: bool | None = None
    popular: bool | None = None
    display_order: int | None = None


class ServicePackageResponse(ServicePackageCreate):
    """Schema for service package response."""

    id: UUID
    created_at: datetime

    model_config = {"from_attributes": True}
