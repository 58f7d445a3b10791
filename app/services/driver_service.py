# app/services/driver_service.py
"""
Driver registry and standing vehicle assignment.

A driver's `vehicle_id` is a standing assignment, separate from trips. The
assigned vehicle carries VehicleStatus.assigned; changing the assignment
releases the old vehicle in the same commit as the driver write.
"""

import math
from typing import Optional

from sqlalchemy.orm import Session, joinedload

from app.config import settings
from app.models.driver import Driver
from app.models.enums import VehicleStatus
from app.models.vehicle import Vehicle
from app.schemas.driver import DriverCreate, DriverUpdate
from app.services.exceptions import NotFound, ValidationFailed
from app.services.transaction import atomic
from app.utils.logger import get_logger

logger = get_logger(__name__)


def list_drivers(db: Session, page: int = 1, per_page: int = None) -> dict:
    per_page = per_page or settings.DRIVER_PAGE_SIZE
    page = max(page, 1)
    total = db.query(Driver).count()
    items = (
        db.query(Driver)
        .options(joinedload(Driver.vehicle).joinedload(Vehicle.vehicle_type))
        .order_by(Driver.created_at.desc(), Driver.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
        .all()
    )
    return {
        "items": items,
        "total": total,
        "page": page,
        "per_page": per_page,
        "last_page": max(1, math.ceil(total / per_page)),
    }


def get_driver(db: Session, driver_id: int) -> Driver:
    driver = db.get(Driver, driver_id)
    if not driver:
        raise NotFound("Driver", driver_id)
    return driver


def _validate(db: Session, data, driver_id: Optional[int] = None):
    errors = {}
    if data.email:
        q = db.query(Driver.id).filter(Driver.email == data.email)
        if driver_id is not None:
            q = q.filter(Driver.id != driver_id)
        if q.first():
            errors["email"] = "The email has already been taken."
    if data.vehicle_id is not None and not db.get(Vehicle, data.vehicle_id):
        errors["vehicle_id"] = "The selected vehicle does not exist."
    if errors:
        raise ValidationFailed(errors)


def _mark_vehicle(db: Session, vehicle_id: int, status: VehicleStatus):
    vehicle = db.get(Vehicle, vehicle_id)
    if vehicle is not None:
        vehicle.status = status.value


def register_driver(db: Session, data: DriverCreate) -> Driver:
    _validate(db, data)

    fields = data.model_dump()
    fields["status"] = data.status.value
    driver = Driver(**fields)
    with atomic(db, "Failed to register operator. Please try again."):
        db.add(driver)
        if data.vehicle_id:
            _mark_vehicle(db, data.vehicle_id, VehicleStatus.assigned)

    db.refresh(driver)
    logger.info(f"[Driver] Registered {driver.full_name} (vehicle={driver.vehicle_id})")
    return driver


def update_driver(db: Session, driver_id: int, data: DriverUpdate) -> Driver:
    driver = get_driver(db, driver_id)
    _validate(db, data, driver_id=driver.id)

    old_vehicle_id = driver.vehicle_id
    fields = data.model_dump(exclude_unset=True)
    fields["status"] = data.status.value

    with atomic(db, "Failed to update operator. Please try again."):
        for field, value in fields.items():
            setattr(driver, field, value)

        if old_vehicle_id != driver.vehicle_id:
            if old_vehicle_id:
                _mark_vehicle(db, old_vehicle_id, VehicleStatus.available)
            if driver.vehicle_id:
                _mark_vehicle(db, driver.vehicle_id, VehicleStatus.assigned)

    db.refresh(driver)
    logger.info(f"[Driver] Updated {driver.lastname}: vehicle {old_vehicle_id} → {driver.vehicle_id}")
    return driver
