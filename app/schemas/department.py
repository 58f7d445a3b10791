# app/schemas/department.py
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional


class DepartmentIn(BaseModel):
    code: str = Field(..., pattern=r"^[0-9]{3}$", description="Exactly 3 digits, 000-999")
    name: str = Field(..., min_length=2, max_length=80)


class DepartmentOut(BaseModel):
    id: int
    code: str
    name: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
