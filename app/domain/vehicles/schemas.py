"""Vehicle domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ...shared.validators import (
    validate_license_plate,
    validate_sync_id,
    validate_vehicle_year,
    validate_vin,
)


class VehicleCreate(BaseModel):
    """Schema for registering a vehicle for a client"""

    sync_id: Optional[str] = None
    client_id: int
    make: str
    model: str
    year: int
    color: Optional[str] = None
    license_plate: Optional[str] = None
    vin: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("sync_id")
    @classmethod
    def check_sync_id(cls, v):
        return validate_sync_id(v)

    @field_validator("year")
    @classmethod
    def check_year(cls, v):
        return validate_vehicle_year(v)

    @field_validator("license_plate")
    @classmethod
    def check_plate(cls, v):
        return validate_license_plate(v)

    @field_validator("vin")
    @classmethod
    def check_vin(cls, v):
        return validate_vin(v)


class VehicleUpdate(BaseModel):
    """Schema for updating a vehicle"""

    client_id: Optional[int] = None
    make: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = None
    color: Optional[str] = None
    license_plate: Optional[str] = None
    vin: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("year")
    @classmethod
    def check_year(cls, v):
        return validate_vehicle_year(v)

    @field_validator("license_plate")
    @classmethod
    def check_plate(cls, v):
        return validate_license_plate(v)

    @field_validator("vin")
    @classmethod
    def check_vin(cls, v):
        return validate_vin(v)


class VehicleResponse(BaseModel):
    id: int
    sync_id: Optional[str] = None
    client_id: int
    make: str
    model: str
    year: int
    color: Optional[str] = None
    license_plate: Optional[str] = None
    vin: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
