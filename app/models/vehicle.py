# app/models/vehicle.py
"""
Vehicle types (model/category groupings) and the individual vehicle units.
The unit carries the availability status that the trip lifecycle keeps in sync.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from app.database import Base
from app.models.enums import VehicleStatus


class VehicleType(Base):
    __tablename__ = "vehicle_types"

    id = Column(Integer, primary_key=True, autoincrement=True)
    vehicle_type_name = Column(String(120), nullable=False, index=True)  # e.g. HILUX
    category = Column(String(80), nullable=False)                        # e.g. SUV
    total_quantity = Column(Integer, default=0, nullable=False)          # running count
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    vehicles = relationship("Vehicle", back_populates="vehicle_type", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<VehicleType {self.vehicle_type_name} ({self.category})>"


class Vehicle(Base):
    __tablename__ = "vehicles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    vehicle_type_id = Column(Integer, ForeignKey("vehicle_types.id", ondelete="CASCADE"), nullable=False)
    plate_number = Column(String(50), unique=True, nullable=False, index=True)
    status = Column(String(20), default=VehicleStatus.available.value, nullable=False)
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    vehicle_type = relationship("VehicleType", back_populates="vehicles")
    trips = relationship("Trip", back_populates="vehicle")

    # Stale concurrent status writes fail with StaleDataError instead of overwriting
    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (Index("ix_vehicles_status_type", "status", "vehicle_type_id"),)

    @property
    def type_name(self):
        return self.vehicle_type.vehicle_type_name if self.vehicle_type else "N/A"

    def __repr__(self):
        return f"<Vehicle {self.plate_number} status={self.status}>"
