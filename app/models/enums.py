# app/models/enums.py
"""
Status vocabularies for trips, vehicles and drivers.
Columns store the enum *value*; always compare against `.value`.
"""

from enum import Enum


class TripStatus(str, Enum):
    booked = "booked"
    on_trip = "on trip"
    finished = "finished"


class VehicleStatus(str, Enum):
    available = "available"
    on_trip = "on trip"
    assigned = "assigned"       # standing driver assignment
    maintenance = "maintenance"
    unavailable = "unavailable"


class DriverStatus(str, Enum):
    active = "active"
    standby = "standby"
    suspended = "suspended"


# Trip statuses that still hold a vehicle
ACTIVE_TRIP_STATUSES = (TripStatus.booked.value, TripStatus.on_trip.value)
