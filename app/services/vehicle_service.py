# app/services/vehicle_service.py
"""
Fleet registration: vehicle types and their units.
Used by the vehicles router and by driver registration (available plates).
"""

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from app.models.enums import VehicleStatus
from app.models.vehicle import Vehicle, VehicleType
from app.schemas.vehicle import VehicleRegister, VehicleUpdate
from app.services.exceptions import NotFound, ValidationFailed
from app.services.transaction import atomic
from app.utils.logger import get_logger

logger = get_logger(__name__)


def lookup_vehicle_by_plate(db: Session, plate_number: str):
    """Find a vehicle by plate number. Returns None if not found."""
    return db.query(Vehicle).filter(Vehicle.plate_number == plate_number.strip().upper()).first()


def get_vehicle(db: Session, vehicle_id: int) -> Vehicle:
    vehicle = db.get(Vehicle, vehicle_id)
    if not vehicle:
        raise NotFound("Vehicle", vehicle_id)
    return vehicle


def get_or_create_type(db: Session, name: str, category: str) -> VehicleType:
    name = name.strip().upper()
    vehicle_type = db.query(VehicleType).filter(VehicleType.vehicle_type_name == name).first()
    if vehicle_type is None:
        vehicle_type = VehicleType(vehicle_type_name=name, category=category.strip().upper(), total_quantity=0)
        db.add(vehicle_type)
        logger.info(f"[Fleet] New vehicle type {name}")
    return vehicle_type


def list_vehicle_types(db: Session) -> list[dict]:
    types = (
        db.query(VehicleType)
        .options(selectinload(VehicleType.vehicles))
        .order_by(VehicleType.created_at.desc(), VehicleType.id.desc())
        .all()
    )
    return [
        {
            "id": t.id,
            "vehicle_type_name": t.vehicle_type_name,
            "category": t.category,
            "total_quantity": t.total_quantity,
            "vehicle_count": len(t.vehicles),
            "vehicles": t.vehicles,
        }
        for t in types
    ]


def available_plates(db: Session) -> list[dict]:
    rows = (
        db.query(Vehicle.id, Vehicle.plate_number, VehicleType.vehicle_type_name)
        .join(VehicleType, Vehicle.vehicle_type_id == VehicleType.id)
        .filter(Vehicle.status == VehicleStatus.available.value)
        .order_by(Vehicle.plate_number)
        .all()
    )
    return [{"id": r[0], "plate_number": r[1], "model": r[2]} for r in rows]


def register_vehicles(db: Session, data: VehicleRegister) -> VehicleType:
    errors = {}
    seen = set()
    for i, plate in enumerate(data.plate_numbers):
        if plate in seen:
            errors[f"plate_numbers.{i}"] = f"Plate {plate} is listed more than once."
        seen.add(plate)
    taken = db.query(Vehicle.plate_number).filter(func.upper(Vehicle.plate_number).in_(seen)).all()
    taken = {row[0].upper() for row in taken}
    for i, plate in enumerate(data.plate_numbers):
        if plate in taken:
            errors.setdefault(f"plate_numbers.{i}", f"Plate {plate} is already registered.")
    if errors:
        raise ValidationFailed(errors)

    with atomic(db, "Failed to register vehicles. Please try again."):
        vehicle_type = get_or_create_type(db, data.vehicle_type_name, data.category)
        for plate in data.plate_numbers:
            vehicle_type.vehicles.append(Vehicle(plate_number=plate, status=data.status.value))
        vehicle_type.total_quantity = (vehicle_type.total_quantity or 0) + data.quantity

    db.refresh(vehicle_type)
    logger.info(f"[Fleet] Registered {len(data.plate_numbers)} x {vehicle_type.vehicle_type_name}")
    return vehicle_type


def update_vehicle(db: Session, vehicle_id: int, data: VehicleUpdate) -> Vehicle:
    vehicle = get_vehicle(db, vehicle_id)
    other = lookup_vehicle_by_plate(db, data.plate_number)
    if other and other.id != vehicle.id:
        raise ValidationFailed({"plate_number": f"Plate {data.plate_number} is already registered."})

    with atomic(db, "Failed to update vehicle. Please try again."):
        vehicle.vehicle_type = get_or_create_type(db, data.vehicle_type_name, data.category)
        vehicle.plate_number = data.plate_number
        vehicle.status = data.status.value

    db.refresh(vehicle)
    return vehicle
