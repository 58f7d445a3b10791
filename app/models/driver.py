# app/models/driver.py
"""
Drivers (operators). `vehicle_id` is a standing assignment, independent of trips.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey
from sqlalchemy.orm import relationship
from app.database import Base
from app.models.enums import DriverStatus


class Driver(Base):
    __tablename__ = "driver_tbl"

    id = Column(Integer, primary_key=True, autoincrement=True)
    firstname = Column(String(255), nullable=False)
    middlename = Column(String(255))
    lastname = Column(String(255), nullable=False, index=True)
    suffix = Column(String(10))
    address = Column(Text)
    contact = Column(String(20))
    email = Column(String(255), unique=True)
    status = Column(String(20), default=DriverStatus.active.value, nullable=False)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id", ondelete="SET NULL"))
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    vehicle = relationship("Vehicle")
    trips = relationship("Trip", back_populates="driver")

    @property
    def full_name(self) -> str:
        parts = [self.firstname, self.middlename, self.lastname, self.suffix]
        return " ".join(p.strip() for p in parts if p and p.strip())

    def __repr__(self):
        return f"<Driver {self.id} {self.full_name}>"
