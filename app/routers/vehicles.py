# app/routers/vehicles.py
"""Fleet registration: vehicle types and their units."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from app.database import get_db
from app.schemas.vehicle import VehicleRegister, VehicleUpdate, VehicleOut, VehicleTypeOut
from app.services import vehicle_service

router = APIRouter()


@router.get("/vehicles", response_model=list[VehicleTypeOut], summary="Vehicle types with their units")
def list_vehicles(db: Session = Depends(get_db)):
    return vehicle_service.list_vehicle_types(db)


@router.post("/vehicles", status_code=201, summary="Register vehicles of one type")
def register_vehicles(body: VehicleRegister, db: Session = Depends(get_db)):
    vehicle_type = vehicle_service.register_vehicles(db, body)
    return {
        "status": "created",
        "message": f"{len(body.plate_numbers)} vehicle(s) registered successfully!",
        "vehicle_type": vehicle_type.vehicle_type_name,
        "plates": body.plate_numbers,
    }


@router.patch("/vehicles/{vehicle_id}", summary="Update a vehicle")
def update_vehicle(vehicle_id: int, body: VehicleUpdate, db: Session = Depends(get_db)):
    vehicle = vehicle_service.update_vehicle(db, vehicle_id, body)
    return {
        "status": "updated",
        "message": "Vehicle updated successfully!",
        "vehicle": VehicleOut.model_validate(vehicle).model_dump(mode="json"),
    }
