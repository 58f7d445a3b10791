# app/routers/trips.py
"""Dispatch tickets: trip CRUD and status transitions."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from app.database import get_db
from app.schemas.trip import TripIn, TripOut, TripStatusUpdate, NextTicket
from app.services import trip_service

router = APIRouter()


def _trip_payload(trip) -> dict:
    return TripOut.model_validate(trip).model_dump(by_alias=True, mode="json")


@router.get("/trips", response_model=list[TripOut], response_model_by_alias=True,
            summary="All trips, newest first")
def list_trips(db: Session = Depends(get_db)):
    return trip_service.list_trips(db)


@router.get("/trips/next-ticket", response_model=NextTicket, summary="Suggest the next ticket number")
def next_ticket(dept_code: str = Query(..., pattern=r"^[0-9]{3}$"), year: int = None,
                db: Session = Depends(get_db)):
    return trip_service.next_ticket_number(db, dept_code, year)


@router.get("/trips/{trip_id}", response_model=TripOut, response_model_by_alias=True)
def get_trip(trip_id: int, db: Session = Depends(get_db)):
    return trip_service.get_trip(db, trip_id)


@router.post("/trips", status_code=201, summary="Authorize a dispatch")
def create_trip(body: TripIn, db: Session = Depends(get_db)):
    """Creates the trip and puts its vehicle on trip in one transaction."""
    trip = trip_service.create_trip(db, body)
    return {"status": "created", "message": "Dispatch authorized successfully!", "trip": _trip_payload(trip)}


@router.patch("/trips/{trip_id}", summary="Edit a trip")
def update_trip(trip_id: int, body: TripIn, db: Session = Depends(get_db)):
    trip = trip_service.update_trip(db, trip_id, body)
    return {"status": "updated", "message": "Trip updated successfully.", "trip": _trip_payload(trip)}


@router.patch("/trips/{trip_id}/status", summary="Change trip status")
def update_trip_status(trip_id: int, body: TripStatusUpdate, db: Session = Depends(get_db)):
    trip = trip_service.update_trip_status(db, trip_id, body.status, body.notes)
    return {
        "status": "updated",
        "message": trip_service.STATUS_MESSAGES[body.status],
        "trip": _trip_payload(trip),
    }


@router.delete("/trips/{trip_id}", summary="Delete a trip")
def delete_trip(trip_id: int, db: Session = Depends(get_db)):
    tick_no = trip_service.delete_trip(db, trip_id)
    return {"status": "deleted", "message": f"Trip {tick_no} deleted successfully.", "tickNo": tick_no}
