# app/services/trip_service.py
"""
Trip lifecycle: keeps Vehicle.status consistent with Trip.status.

Every operation validates first (field-keyed errors, nothing written), then
applies the trip write and the vehicle side effects in ONE commit. Any
database error rolls the whole unit back and surfaces as LifecycleError, so
a trip and its vehicle never diverge.

Vehicle side effects:
  create                    → vehicle "on trip"
  update, vehicle changed
    while stored "on trip"  → old vehicle "available", new vehicle "on trip"
  update into "finished"    → assigned vehicle "available", trip_end stamped if unset
                              (applied after the rule above)
  status leaves "on trip"   → vehicle "available"
  status enters "on trip"   → vehicle "on trip"
  status enters "finished"  → vehicle "available", trip_end stamped if unset
  delete while "on trip"    → vehicle "available"
"""

import re
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session, joinedload

from app.config import settings
from app.models.department import Department
from app.models.driver import Driver
from app.models.enums import TripStatus, VehicleStatus
from app.models.trip import Trip
from app.models.vehicle import Vehicle
from app.schemas.trip import TripIn
from app.services.exceptions import NotFound, ValidationFailed
from app.services.transaction import atomic
from app.utils import timeutils
from app.utils.logger import get_logger

logger = get_logger(__name__)

ON_TRIP = TripStatus.on_trip.value
FINISHED = TripStatus.finished.value


def list_trips(db: Session) -> list[Trip]:
    return (
        db.query(Trip)
        .options(joinedload(Trip.driver), joinedload(Trip.vehicle).joinedload(Vehicle.vehicle_type))
        .order_by(Trip.created_at.desc(), Trip.id.desc())
        .all()
    )


def get_trip(db: Session, trip_id: int) -> Trip:
    trip = db.get(Trip, trip_id)
    if not trip:
        raise NotFound("Trip", trip_id)
    return trip


def validate_trip(db: Session, data: TripIn, trip_id: Optional[int] = None):
    """Store-dependent checks; shape checks already ran in the schema."""
    errors = {}

    dup = db.query(Trip.id).filter(Trip.tick_no == data.tick_no)
    if trip_id is not None:
        dup = dup.filter(Trip.id != trip_id)
    if dup.first():
        errors["tickNo"] = "This ticket number has already been used. Please refresh and try again."

    if not db.get(Vehicle, data.vehicle_id):
        errors["vehicle_id"] = "The selected vehicle is not available."
    if not db.get(Driver, data.driver_id):
        errors["driver_id"] = "The selected driver does not exist."

    if errors:
        raise ValidationFailed(errors)


def transition_vehicle_status(old_status: str, new_status: str) -> Optional[VehicleStatus]:
    """
    Vehicle status implied by a trip status change, or None when the vehicle
    is left alone. Every pair is legal, including booked → finished.
    """
    if old_status == new_status:
        return None
    if new_status == FINISHED or old_status == ON_TRIP:
        return VehicleStatus.available
    if new_status == ON_TRIP:
        return VehicleStatus.on_trip
    return None


def _set_vehicle_status(db: Session, vehicle_id: int, status: VehicleStatus):
    vehicle = db.get(Vehicle, vehicle_id)
    if vehicle is None:
        return
    vehicle.status = status.value
    logger.info(f"[Trip] vehicle {vehicle.plate_number} → {status.value}")


def _trip_fields(data: TripIn) -> dict:
    return data.model_dump(exclude={"status"})


def create_trip(db: Session, data: TripIn) -> Trip:
    validate_trip(db, data)

    trip = Trip(**_trip_fields(data), status=(data.status or TripStatus.booked).value)
    with atomic(db, "Failed to create trip. Please try again."):
        db.add(trip)
        _set_vehicle_status(db, data.vehicle_id, VehicleStatus.on_trip)

    db.refresh(trip)
    logger.info(f"[Trip] Dispatch authorized: {trip.tick_no} (vehicle={trip.vehicle_id}, driver={trip.driver_id})")
    return trip


def update_trip(db: Session, trip_id: int, data: TripIn, now: Optional[datetime] = None) -> Trip:
    trip = get_trip(db, trip_id)
    validate_trip(db, data, trip_id=trip.id)

    old_vehicle_id, old_status = trip.vehicle_id, trip.status
    new_status = data.status.value if data.status else old_status
    fields = _trip_fields(data)
    if data.notes is None:
        fields.pop("notes")

    with atomic(db, "Failed to update trip. Please try again."):
        # Reassignment first, so the finished rule can release the new vehicle
        if old_vehicle_id != data.vehicle_id and old_status == ON_TRIP:
            _set_vehicle_status(db, old_vehicle_id, VehicleStatus.available)
            _set_vehicle_status(db, data.vehicle_id, VehicleStatus.on_trip)

        if new_status == FINISHED and old_status != FINISHED:
            _set_vehicle_status(db, data.vehicle_id, VehicleStatus.available)

        for field, value in fields.items():
            setattr(trip, field, value)
        trip.status = new_status
        if new_status == FINISHED and trip.trip_end is None:
            trip.trip_end = now or timeutils.now()

    db.refresh(trip)
    logger.info(f"[Trip] Updated {trip.tick_no}: {old_status} → {trip.status}")
    return trip


def update_trip_status(db: Session, trip_id: int, new_status: TripStatus,
                       notes: Optional[str] = None, now: Optional[datetime] = None) -> Trip:
    trip = get_trip(db, trip_id)
    old_status, target = trip.status, TripStatus(new_status).value

    with atomic(db, "Failed to update trip status. Please try again."):
        vehicle_status = transition_vehicle_status(old_status, target)
        if vehicle_status is not None:
            _set_vehicle_status(db, trip.vehicle_id, vehicle_status)

        trip.status = target
        if notes is not None:
            trip.notes = notes
        if target == FINISHED and trip.trip_end is None:
            trip.trip_end = now or timeutils.now()

    db.refresh(trip)
    logger.info(f"[Trip] {trip.tick_no} status {old_status} → {target}")
    return trip


STATUS_MESSAGES = {
    TripStatus.booked: "Trip status updated to booked",
    TripStatus.on_trip: "Trip status updated to On Trip",
    TripStatus.finished: "Trip marked as Finished and vehicle made available",
}


def delete_trip(db: Session, trip_id: int) -> str:
    trip = get_trip(db, trip_id)
    tick_no = trip.tick_no

    with atomic(db, "Failed to delete trip."):
        if trip.status == ON_TRIP:
            _set_vehicle_status(db, trip.vehicle_id, VehicleStatus.available)
        db.delete(trip)

    logger.info(f"[Trip] Deleted {tick_no}")
    return tick_no


def next_ticket_number(db: Session, dept_code: str, year: Optional[int] = None) -> dict:
    """Suggest {PREFIX}-{year}-{dept}-{seq:02d}, one past the highest sequence in use."""
    if not db.query(Department.id).filter(Department.code == dept_code).first():
        raise ValidationFailed({"dept_code": "Unknown department code."})

    year = year or timeutils.now().year
    prefix = f"{settings.TICKET_PREFIX}-{year}-{dept_code}-"
    used = db.query(Trip.tick_no).filter(Trip.tick_no.like(f"{prefix}%")).all()

    sequences = []
    for (tick_no,) in used:
        match = re.fullmatch(r"(\d+)", tick_no[len(prefix):])
        if match and int(match.group(1)) > 0:
            sequences.append(int(match.group(1)))
    sequence = max(sequences) + 1 if sequences else 1

    return {
        "dept_code": dept_code,
        "prefix": prefix,
        "sequence": sequence,
        "tickNo": f"{prefix}{sequence:02d}",
    }
