# app/schemas/dashboard.py
from pydantic import BaseModel, Field
from datetime import date


class DateRange(BaseModel):
    start_date: date
    end_date: date


class ExportRequest(BaseModel):
    format: str = Field("pdf", pattern=r"^(pdf|excel|csv)$")
