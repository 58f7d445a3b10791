# app/models/department.py
"""
Department / office codes. Used as the middle segment of dispatch ticket numbers.
No foreign key points here: trips only embed the code in their ticket number.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime
from app.database import Base


class Department(Base):
    __tablename__ = "department_code"

    id = Column(Integer, primary_key=True, autoincrement=True)
    code = Column(String(3), unique=True, nullable=False, index=True)
    name = Column(String(80), nullable=False)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    def __repr__(self):
        return f"<Department {self.code} {self.name}>"
