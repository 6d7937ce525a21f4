"""Budget (estimate) schemas - Pydantic models for validation"""

import json
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ...shared.validators import validate_license_plate, validate_sync_id

# Panels shown on the damage map
VEHICLE_PARTS = (
    "para_lama_esquerdo",
    "capo",
    "para_lama_direito",
    "coluna_esquerda",
    "teto",
    "coluna_direita",
    "porta_dianteira_esquerda",
    "porta_dianteira_direita",
    "porta_traseira_esquerda",
    "porta_malas_superior",
    "porta_traseira_direita",
    "lateral_esquerda",
    "porta_malas_inferior",
    "lateral_direita",
)


class DamageUnit(BaseModel):
    """Dent counts by diameter (mm) plus repair flags for one panel"""

    size20: int = 0
    size30: int = 0
    size40: int = 0
    isAluminum: bool = False
    isGlue: bool = False
    isPaint: bool = False

    @field_validator("size20", "size30", "size40")
    @classmethod
    def check_count(cls, v):
        if v < 0:
            raise ValueError("Dent counts cannot be negative")
        return v


def _parse_damaged_parts(v):
    # The web form posts the damage map as a JSON string
    if isinstance(v, str):
        try:
            v = json.loads(v) if v.strip() else None
        except json.JSONDecodeError as e:
            raise ValueError("damaged_parts must be valid JSON") from e
    if isinstance(v, dict):
        unknown = sorted(set(v) - set(VEHICLE_PARTS))
        if unknown:
            raise ValueError(f"Unknown vehicle parts: {', '.join(unknown)}")
    return v


class BudgetCreate(BaseModel):
    """Schema for creating an estimate"""

    sync_id: Optional[str] = None
    client_id: int
    vehicle_info: str = ""
    date: Optional[datetime] = None
    total_aw: float = 0
    total_value: float = 0
    note: Optional[str] = None
    plate: Optional[str] = None
    chassis_number: Optional[str] = None
    damaged_parts: Optional[dict[str, DamageUnit]] = None

    @field_validator("sync_id")
    @classmethod
    def check_sync_id(cls, v):
        return validate_sync_id(v)

    @field_validator("plate")
    @classmethod
    def check_plate(cls, v):
        return validate_license_plate(v)

    @field_validator("damaged_parts", mode="before")
    @classmethod
    def parse_damaged_parts(cls, v):
        return _parse_damaged_parts(v)


class BudgetUpdate(BaseModel):
    client_id: Optional[int] = None
    vehicle_info: Optional[str] = None
    date: Optional[datetime] = None
    total_aw: Optional[float] = None
    total_value: Optional[float] = None
    note: Optional[str] = None
    plate: Optional[str] = None
    chassis_number: Optional[str] = None
    damaged_parts: Optional[dict[str, DamageUnit]] = None

    @field_validator("plate")
    @classmethod
    def check_plate(cls, v):
        return validate_license_plate(v)

    @field_validator("damaged_parts", mode="before")
    @classmethod
    def parse_damaged_parts(cls, v):
        return _parse_damaged_parts(v)


class BudgetResponse(BaseModel):
    id: int
    sync_id: Optional[str] = None
    client_id: int
    vehicle_info: str
    date: Optional[datetime] = None
    total_aw: Optional[float] = None
    total_value: Optional[float] = None
    note: Optional[str] = None
    plate: Optional[str] = None
    chassis_number: Optional[str] = None
    damaged_parts: Optional[dict[str, DamageUnit]] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
