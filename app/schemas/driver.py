# app/schemas/driver.py
from pydantic import BaseModel, EmailStr, Field, field_validator
from datetime import datetime
from typing import Optional

from app.models.enums import DriverStatus
from app.schemas.vehicle import VehicleBrief


def _blank_to_none(v):
    if isinstance(v, str) and not v.strip():
        return None
    return v


class DriverBase(BaseModel):
    firstname: str = Field(..., min_length=1, max_length=255)
    middlename: Optional[str] = Field(None, max_length=255)
    lastname: str = Field(..., min_length=1, max_length=255)
    suffix: Optional[str] = Field(None, max_length=10)
    address: Optional[str] = None
    email: Optional[EmailStr] = None
    vehicle_id: Optional[int] = None

    @field_validator("middlename", "suffix", "address", "email", "vehicle_id", mode="before")
    def blank_to_none(cls, v):
        return _blank_to_none(v)


class DriverCreate(DriverBase):
    contact: Optional[str] = Field(None, max_length=20)
    status: DriverStatus = DriverStatus.active

    @field_validator("contact", mode="before")
    def blank_contact(cls, v):
        return _blank_to_none(v)

    @field_validator("status")
    def registration_status(cls, v):
        if v == DriverStatus.suspended:
            raise ValueError("New drivers must be active or standby")
        return v


class DriverUpdate(DriverBase):
    contact: Optional[str] = Field(None, min_length=10, max_length=20)
    status: DriverStatus

    @field_validator("contact", mode="before")
    def blank_contact(cls, v):
        return _blank_to_none(v)


class DriverOut(BaseModel):
    id: int
    firstname: str
    middlename: Optional[str]
    lastname: str
    suffix: Optional[str]
    full_name: str
    address: Optional[str]
    contact: Optional[str]
    email: Optional[str]
    status: str
    vehicle_id: Optional[int]
    vehicle: Optional[VehicleBrief] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DriverPage(BaseModel):
    items: list[DriverOut]
    total: int
    page: int
    per_page: int
    last_page: int
