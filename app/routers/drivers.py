# app/routers/drivers.py
"""Driver registry and standing vehicle assignment."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from app.database import get_db
from app.schemas.driver import DriverCreate, DriverUpdate, DriverOut, DriverPage
from app.schemas.vehicle import AvailablePlate
from app.services import driver_service, vehicle_service

router = APIRouter()


@router.get("/drivers", response_model=DriverPage, summary="Drivers, paginated newest first")
def list_drivers(page: int = Query(1, ge=1), db: Session = Depends(get_db)):
    return driver_service.list_drivers(db, page)


@router.get("/drivers/fetch/vehicle-plates", response_model=list[AvailablePlate],
            summary="Available vehicles for assignment")
def vehicle_plates(db: Session = Depends(get_db)):
    return vehicle_service.available_plates(db)


@router.post("/drivers", status_code=201, summary="Register a driver")
def register_driver(body: DriverCreate, db: Session = Depends(get_db)):
    driver = driver_service.register_driver(db, body)
    return {
        "status": "created",
        "message": "Operator registered successfully!",
        "driver": DriverOut.model_validate(driver).model_dump(mode="json"),
    }


@router.patch("/drivers/{driver_id}", summary="Update a driver")
def update_driver(driver_id: int, body: DriverUpdate, db: Session = Depends(get_db)):
    """Changing vehicle_id releases the previously assigned vehicle."""
    driver = driver_service.update_driver(db, driver_id, body)
    return {
        "status": "updated",
        "message": "Operator updated successfully!",
        "driver": DriverOut.model_validate(driver).model_dump(mode="json"),
    }
