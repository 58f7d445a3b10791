# app/schemas/trip.py
from pydantic import BaseModel, Field, ValidationInfo, field_validator
from datetime import datetime
from typing import Optional

from app.models.enums import TripStatus
from app.utils import timeutils


def _normalize_status(v):
    if isinstance(v, str):
        v = v.strip().lower()
        return "on trip" if v == "on_trip" else v
    return v


class TripIn(BaseModel):
    """Full trip payload, used for both create and update."""
    tick_no: str = Field(..., alias="tickNo", min_length=1, max_length=50)
    vehicle_id: int
    driver_id: int
    passenger: str = Field(..., min_length=1, max_length=255)
    place: Optional[str] = Field(None, max_length=255)
    purpose: Optional[str] = Field(None, max_length=255)
    chargetoproject: Optional[str] = Field(None, max_length=255)
    fuel_type: Optional[str] = Field(None, max_length=50)
    liters: Optional[float] = Field(None, ge=0)
    trip_start: Optional[datetime] = None
    trip_end: Optional[datetime] = None
    status: Optional[TripStatus] = None
    notes: Optional[str] = Field(None, max_length=500)

    @field_validator("status", mode="before")
    def normalize_status(cls, v):
        return _normalize_status(v)

    @field_validator("tick_no", "passenger")
    def not_blank(cls, v):
        if not v.strip():
            raise ValueError("Field cannot be blank")
        return v.strip()

    @field_validator("trip_start", "trip_end")
    def local_time(cls, v):
        return timeutils.to_local_naive(v)

    @field_validator("trip_end")
    def end_after_start(cls, v, info: ValidationInfo):
        start = info.data.get("trip_start")
        if v and start and v < start:
            raise ValueError("Trip end time must be after or equal to start time.")
        return v

    class Config:
        populate_by_name = True


class TripStatusUpdate(BaseModel):
    status: TripStatus
    notes: Optional[str] = Field(None, max_length=500)

    @field_validator("status", mode="before")
    def normalize_status(cls, v):
        return _normalize_status(v)


class TripDriver(BaseModel):
    id: int
    full_name: str

    class Config:
        from_attributes = True


class TripVehicle(BaseModel):
    id: int
    plate_number: str
    type_name: str
    status: str

    class Config:
        from_attributes = True


class TripOut(BaseModel):
    id: int
    tick_no: str = Field(..., serialization_alias="tickNo")
    vehicle_id: int
    driver_id: int
    passenger: str
    place: Optional[str]
    purpose: Optional[str]
    chargetoproject: Optional[str]
    fuel_type: Optional[str]
    liters: Optional[float]
    trip_start: Optional[datetime]
    trip_end: Optional[datetime]
    status: str
    notes: Optional[str]
    created_at: Optional[datetime] = None
    driver: Optional[TripDriver] = None
    vehicle: Optional[TripVehicle] = None

    class Config:
        from_attributes = True


class NextTicket(BaseModel):
    dept_code: str
    prefix: str
    sequence: int
    tickNo: str
