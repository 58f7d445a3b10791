# app/models/trip.py
"""
Trips (dispatch tickets). Status moves booked → on trip → finished and drives
the assigned vehicle's availability (see services/trip_service.py).
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Float, Text, ForeignKey
from sqlalchemy.orm import relationship
from app.database import Base
from app.models.enums import TripStatus


class Trip(Base):
    __tablename__ = "trip_tbl"

    id = Column(Integer, primary_key=True, autoincrement=True)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id", ondelete="CASCADE"), nullable=False, index=True)
    driver_id = Column(Integer, ForeignKey("driver_tbl.id", ondelete="CASCADE"), nullable=False, index=True)
    fuel_type = Column(String(50))
    liters = Column(Float)
    trip_start = Column(DateTime)
    trip_end = Column(DateTime, index=True)
    purpose = Column(String(255))
    chargetoproject = Column(String(255))
    status = Column(String(20), default=TripStatus.booked.value, nullable=False, index=True)
    passenger = Column(String(255), nullable=False)
    place = Column(String(255))
    tick_no = Column("tickNo", String(50), unique=True, nullable=False, index=True)
    notes = Column(Text)
    created_at = Column(DateTime, default=datetime.now, index=True)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    vehicle = relationship("Vehicle", back_populates="trips")
    driver = relationship("Driver", back_populates="trips")

    def __repr__(self):
        return f"<Trip {self.tick_no} status={self.status}>"
