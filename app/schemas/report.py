# app/schemas/report.py
from pydantic import BaseModel, field_validator
from datetime import date
from typing import Optional


class ReportFilters(BaseModel):
    """Query-string filters for the report listing and export."""
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    status: Optional[str] = None
    driver: Optional[int] = None
    vehicle: Optional[int] = None
    search: Optional[str] = None
    ticket_prefix: Optional[str] = None
    per_page: Optional[str] = None
    page: int = 1

    @field_validator("status", "search", "ticket_prefix", mode="before")
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v.strip() if isinstance(v, str) else v

    @field_validator("status")
    def normalize_status(cls, v):
        if v is None:
            return v
        v = v.lower()
        return "on trip" if v == "on_trip" else v

    @field_validator("page")
    def page_floor(cls, v):
        return max(v, 1)
