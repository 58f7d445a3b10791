# app/schemas/vehicle.py
from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import Optional

from app.models.enums import VehicleStatus


def _normalize_status(v):
    # Older clients send the underscored spelling
    if isinstance(v, str):
        v = v.strip().lower()
        return {"on_trip": "on trip", "active": "assigned"}.get(v, v)
    return v


class VehicleRegister(BaseModel):
    """Bulk registration: several units of one type in a single request."""
    vehicle_type_name: str = Field(..., min_length=1, max_length=120)
    category: str = Field(..., min_length=1, max_length=80)
    quantity: int = Field(..., ge=1)
    plate_numbers: list[str] = Field(..., min_length=1)
    status: VehicleStatus = VehicleStatus.available

    @field_validator("status", mode="before")
    def normalize_status(cls, v):
        return _normalize_status(v)

    @field_validator("plate_numbers")
    def validate_plates(cls, v):
        cleaned = [p.strip().upper() for p in v]
        if any(not p for p in cleaned):
            raise ValueError("Plate numbers cannot be blank")
        return cleaned


class VehicleUpdate(BaseModel):
    vehicle_type_name: str = Field(..., min_length=1, max_length=120)
    category: str = Field(..., min_length=1, max_length=80)
    plate_number: str = Field(..., min_length=1, max_length=50)
    status: VehicleStatus

    @field_validator("status", mode="before")
    def normalize_status(cls, v):
        return _normalize_status(v)

    @field_validator("plate_number")
    def upper_plate(cls, v):
        return v.strip().upper()


class VehicleBrief(BaseModel):
    id: int
    plate_number: str
    status: str
    type_name: str

    class Config:
        from_attributes = True


class VehicleOut(VehicleBrief):
    vehicle_type_id: int
    created_at: Optional[datetime] = None


class VehicleTypeOut(BaseModel):
    id: int
    vehicle_type_name: str
    category: str
    total_quantity: int
    vehicle_count: int = 0
    vehicles: list[VehicleBrief] = []

    class Config:
        from_attributes = True


class AvailablePlate(BaseModel):
    id: int
    plate_number: str
    model: str
