"""Service (work order) schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ...models import LOCATION_TYPES, SERVICE_STATUSES
from ...shared.validators import validate_sync_id


def _check_status(v):
    if v is not None and v not in SERVICE_STATUSES:
        raise ValueError(f"status must be one of: {', '.join(SERVICE_STATUSES)}")
    return v


def _check_location_type(v):
    if v is not None and v not in LOCATION_TYPES:
        raise ValueError(f"location_type must be one of: {', '.join(LOCATION_TYPES)}")
    return v


def _check_amount(v):
    if v is not None and v < 0:
        raise ValueError("Amounts cannot be negative")
    return v


class ServiceCreate(BaseModel):
    """Schema for opening a new work order"""

    sync_id: Optional[str] = None
    client_id: int
    vehicle_id: int
    technician_id: Optional[int] = None
    service_type: str
    status: str = "pending"
    description: Optional[str] = None
    scheduled_date: Optional[datetime] = None
    start_date: Optional[datetime] = None
    completion_date: Optional[datetime] = None
    location_type: str = "workshop"
    address: Optional[str] = None
    price: Optional[float] = None
    displacement_fee: Optional[float] = 0
    total: Optional[float] = None
    notes: Optional[str] = None

    @field_validator("sync_id")
    @classmethod
    def check_sync_id(cls, v):
        return validate_sync_id(v)

    @field_validator("status")
    @classmethod
    def check_status(cls, v):
        return _check_status(v)

    @field_validator("location_type")
    @classmethod
    def check_location_type(cls, v):
        return _check_location_type(v)

    @field_validator("price", "displacement_fee", "total")
    @classmethod
    def check_amounts(cls, v):
        return _check_amount(v)


class ServiceUpdate(BaseModel):
    """Schema for updating a work order"""

    client_id: Optional[int] = None
    vehicle_id: Optional[int] = None
    technician_id: Optional[int] = None
    service_type: Optional[str] = None
    status: Optional[str] = None
    description: Optional[str] = None
    scheduled_date: Optional[datetime] = None
    start_date: Optional[datetime] = None
    completion_date: Optional[datetime] = None
    location_type: Optional[str] = None
    address: Optional[str] = None
    price: Optional[float] = None
    displacement_fee: Optional[float] = None
    total: Optional[float] = None
    notes: Optional[str] = None

    @field_validator("status")
    @classmethod
    def check_status(cls, v):
        return _check_status(v)

    @field_validator("location_type")
    @classmethod
    def check_location_type(cls, v):
        return _check_location_type(v)

    @field_validator("price", "displacement_fee", "total")
    @classmethod
    def check_amounts(cls, v):
        return _check_amount(v)


class ServiceResponse(BaseModel):
    id: int
    sync_id: Optional[str] = None
    client_id: int
    vehicle_id: int
    technician_id: Optional[int] = None
    service_type: str
    status: str
    description: Optional[str] = None
    scheduled_date: Optional[datetime] = None
    start_date: Optional[datetime] = None
    completion_date: Optional[datetime] = None
    location_type: str
    address: Optional[str] = None
    price: Optional[float] = None
    displacement_fee: Optional[float] = None
    total: Optional[float] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
