# tests/test_trip_service.py
"""Trip lifecycle: vehicle availability follows trip status."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from unittest.mock import MagicMock, patch
from datetime import datetime, timedelta, timezone
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from app.models.enums import TripStatus, VehicleStatus
from app.models.trip import Trip
from app.schemas.trip import TripIn
from app.services import trip_service
from app.services.exceptions import LifecycleError, NotFound, ValidationFailed
from app.services.transaction import atomic

NOW = datetime(2024, 5, 15, 10, 30, 0)


def trip_input(vehicle, driver, **overrides):
    payload = {
        "tickNo": "MEO-2024-001-01",
        "vehicle_id": vehicle.id,
        "driver_id": driver.id,
        "passenger": "Engineering Office",
        "place": "Provincial Capitol",
        "purpose": "Site inspection",
        "fuel_type": "Diesel",
        "liters": 20,
    }
    payload.update(overrides)
    return TripIn(**payload)


class TestTransitionVehicleStatus:
    def test_same_status_has_no_side_effect(self):
        for status in TripStatus:
            assert trip_service.transition_vehicle_status(status.value, status.value) is None

    def test_leaving_on_trip_releases_vehicle(self):
        assert trip_service.transition_vehicle_status("on trip", "booked") == VehicleStatus.available
        assert trip_service.transition_vehicle_status("on trip", "finished") == VehicleStatus.available

    def test_entering_on_trip_takes_vehicle(self):
        assert trip_service.transition_vehicle_status("booked", "on trip") == VehicleStatus.on_trip
        assert trip_service.transition_vehicle_status("finished", "on trip") == VehicleStatus.on_trip

    def test_booked_to_finished_releases_vehicle(self):
        assert trip_service.transition_vehicle_status("booked", "finished") == VehicleStatus.available

    def test_finished_to_booked_leaves_vehicle(self):
        assert trip_service.transition_vehicle_status("finished", "booked") is None


class TestTripSchema:
    def test_mixed_timezones_compared_in_local_time(self):
        start = datetime(2024, 5, 15, 10, 0)
        end = datetime(2024, 5, 15, 9, 0).astimezone()
        with pytest.raises(ValidationError):
            TripIn(tickNo="T-1", vehicle_id=1, driver_id=1, passenger="x", trip_start=start, trip_end=end)

    def test_aware_values_stored_naive(self):
        data = TripIn(tickNo="T-1", vehicle_id=1, driver_id=1, passenger="x",
                      trip_start="2024-05-15T08:00:00Z", trip_end=datetime(2024, 5, 15, 23, 0))
        assert data.trip_start.tzinfo is None
        assert data.trip_start == datetime(2024, 5, 15, 8, 0, tzinfo=timezone.utc).astimezone().replace(tzinfo=None)


class TestAtomic:
    def test_commits_on_success(self):
        db = MagicMock()
        with atomic(db, "nope"):
            pass
        db.commit.assert_called_once()
        db.rollback.assert_not_called()

    def test_database_error_rolls_back_and_raises_lifecycle_error(self):
        db = MagicMock()
        db.commit.side_effect = SQLAlchemyError("connection lost")
        with pytest.raises(LifecycleError, match="Failed to create trip"):
            with atomic(db, "Failed to create trip. Please try again."):
                pass
        db.rollback.assert_called_once()


class TestCreateTrip:
    def test_create_puts_vehicle_on_trip(self, db, factory):
        vehicle, driver = factory.vehicle(), factory.driver()
        trip = trip_service.create_trip(db, trip_input(vehicle, driver))

        db.refresh(vehicle)
        assert trip.status == TripStatus.booked.value
        assert vehicle.status == VehicleStatus.on_trip.value

    def test_duplicate_ticket_rejected_before_write(self, db, factory):
        existing = factory.trip()
        vehicle, driver = factory.vehicle(), factory.driver()

        with pytest.raises(ValidationFailed) as exc:
            trip_service.create_trip(db, trip_input(vehicle, driver, tickNo=existing.tick_no))

        assert "tickNo" in exc.value.errors
        db.refresh(vehicle)
        assert vehicle.status == VehicleStatus.available.value
        assert db.query(Trip).count() == 1

    def test_unknown_vehicle_and_driver_reported_per_field(self, db, factory):
        vehicle, driver = factory.vehicle(), factory.driver()
        data = trip_input(vehicle, driver, vehicle_id=999, driver_id=998)
        with pytest.raises(ValidationFailed) as exc:
            trip_service.create_trip(db, data)
        assert set(exc.value.errors) == {"vehicle_id", "driver_id"}

    def test_commit_failure_rolls_back_trip_and_vehicle(self, db, factory):
        vehicle, driver = factory.vehicle(), factory.driver()

        with patch.object(db, "commit", side_effect=SQLAlchemyError("disk full")):
            with pytest.raises(LifecycleError):
                trip_service.create_trip(db, trip_input(vehicle, driver))

        assert db.query(Trip).count() == 0
        db.refresh(vehicle)
        assert vehicle.status == VehicleStatus.available.value


class TestUpdateTrip:
    def test_reassignment_while_on_trip_swaps_vehicles(self, db, factory):
        old, new = factory.vehicle(status="on trip"), factory.vehicle()
        trip = factory.trip(vehicle=old, status="on trip")

        trip_service.update_trip(db, trip.id, trip_input(old, trip.driver, tickNo=trip.tick_no,
                                                         vehicle_id=new.id))

        db.refresh(old)
        db.refresh(new)
        assert old.status == VehicleStatus.available.value
        assert new.status == VehicleStatus.on_trip.value

    def test_reassignment_while_booked_leaves_vehicles(self, db, factory):
        old, new = factory.vehicle(status="on trip"), factory.vehicle()
        trip = factory.trip(vehicle=old, status="booked")

        trip_service.update_trip(db, trip.id, trip_input(old, trip.driver, tickNo=trip.tick_no,
                                                         vehicle_id=new.id))

        db.refresh(old)
        db.refresh(new)
        assert old.status == VehicleStatus.on_trip.value
        assert new.status == VehicleStatus.available.value

    def test_update_to_finished_releases_new_vehicle_and_stamps_end(self, db, factory):
        old, new = factory.vehicle(status="on trip"), factory.vehicle()
        trip = factory.trip(vehicle=old, status="on trip")

        updated = trip_service.update_trip(
            db, trip.id,
            trip_input(old, trip.driver, tickNo=trip.tick_no, vehicle_id=new.id, status="finished"),
            now=NOW,
        )

        db.refresh(old)
        db.refresh(new)
        assert old.status == VehicleStatus.available.value
        assert new.status == VehicleStatus.available.value
        assert updated.trip_end == NOW

    def test_own_ticket_number_is_not_a_duplicate(self, db, factory):
        trip = factory.trip()
        updated = trip_service.update_trip(
            db, trip.id, trip_input(trip.vehicle, trip.driver, tickNo=trip.tick_no, place="Airport"))
        assert updated.place == "Airport"

    def test_notes_kept_when_not_supplied(self, db, factory):
        trip = factory.trip(notes="Bring the permit")
        trip_service.update_trip(db, trip.id, trip_input(trip.vehicle, trip.driver, tickNo=trip.tick_no))
        assert db.get(Trip, trip.id).notes == "Bring the permit"

    def test_unknown_trip(self, db):
        with pytest.raises(NotFound):
            trip_service.get_trip(db, 404)


class TestUpdateTripStatus:
    @pytest.mark.parametrize("start", ["booked", "on trip"])
    def test_finished_releases_vehicle_and_stamps_end(self, db, factory, start):
        vehicle = factory.vehicle(status="on trip")
        trip = factory.trip(vehicle=vehicle, status=start)

        updated = trip_service.update_trip_status(db, trip.id, TripStatus.finished, now=NOW)

        db.refresh(vehicle)
        assert vehicle.status == VehicleStatus.available.value
        assert updated.trip_end == NOW

    def test_existing_trip_end_is_kept(self, db, factory):
        planned_end = NOW - timedelta(hours=2)
        trip = factory.trip(status="on trip", trip_end=planned_end)
        updated = trip_service.update_trip_status(db, trip.id, TripStatus.finished, now=NOW)
        assert updated.trip_end == planned_end

    def test_entering_on_trip_takes_vehicle(self, db, factory):
        vehicle = factory.vehicle()
        trip = factory.trip(vehicle=vehicle, status="booked")

        trip_service.update_trip_status(db, trip.id, TripStatus.on_trip)

        db.refresh(vehicle)
        assert vehicle.status == VehicleStatus.on_trip.value

    def test_same_status_leaves_vehicle(self, db, factory):
        vehicle = factory.vehicle(status="maintenance")
        trip = factory.trip(vehicle=vehicle, status="booked")

        trip_service.update_trip_status(db, trip.id, TripStatus.booked)

        db.refresh(vehicle)
        assert vehicle.status == VehicleStatus.maintenance.value

    def test_notes_replaced_only_when_given(self, db, factory):
        trip = factory.trip(notes="original")
        trip_service.update_trip_status(db, trip.id, TripStatus.on_trip)
        assert db.get(Trip, trip.id).notes == "original"
        trip_service.update_trip_status(db, trip.id, TripStatus.finished, notes="Returned with full tank")
        assert db.get(Trip, trip.id).notes == "Returned with full tank"

    def test_lifecycle_end_to_end(self, db, factory):
        vehicle, driver = factory.vehicle(), factory.driver()
        trip = trip_service.create_trip(db, trip_input(vehicle, driver))
        db.refresh(vehicle)
        assert vehicle.status == "on trip"

        trip = trip_service.update_trip_status(db, trip.id, TripStatus.finished)

        db.refresh(vehicle)
        assert vehicle.status == "available"
        assert trip.trip_end is not None


class TestDeleteTrip:
    def test_delete_on_trip_releases_vehicle(self, db, factory):
        vehicle = factory.vehicle(status="on trip")
        trip = factory.trip(vehicle=vehicle, status="on trip")

        assert trip_service.delete_trip(db, trip.id) == trip.tick_no

        db.refresh(vehicle)
        assert vehicle.status == VehicleStatus.available.value
        assert db.query(Trip).count() == 0

    @pytest.mark.parametrize("status", ["booked", "finished"])
    def test_delete_other_status_leaves_vehicle(self, db, factory, status):
        vehicle = factory.vehicle(status="maintenance")
        trip = factory.trip(vehicle=vehicle, status=status)

        trip_service.delete_trip(db, trip.id)

        db.refresh(vehicle)
        assert vehicle.status == VehicleStatus.maintenance.value


class TestNextTicketNumber:
    def test_first_ticket_of_the_year(self, db, factory):
        factory.department("001")
        result = trip_service.next_ticket_number(db, "001", year=2024)
        assert result["tickNo"] == "MEO-2024-001-01"
        assert result["sequence"] == 1

    def test_one_past_highest_sequence(self, db, factory):
        factory.department("002", "MEO")
        factory.trip(tick_no="MEO-2024-002-03")
        factory.trip(tick_no="MEO-2024-002-11")
        factory.trip(tick_no="MEO-2023-002-40")

        assert trip_service.next_ticket_number(db, "002", year=2024)["tickNo"] == "MEO-2024-002-12"

    def test_unknown_department(self, db):
        with pytest.raises(ValidationFailed) as exc:
            trip_service.next_ticket_number(db, "999", year=2024)
        assert "dept_code" in exc.value.errors


class TestVehicleVersioning:
    def test_stale_vehicle_write_rolls_back(self, tmp_path):
        from sqlalchemy import create_engine
        from sqlalchemy.orm import sessionmaker
        from app.database import create_tables
        from app.models.vehicle import Vehicle, VehicleType

        engine = create_engine(f"sqlite:///{tmp_path / 'race.db'}")
        create_tables(bind=engine)
        Session = sessionmaker(bind=engine, autoflush=False)

        setup = Session()
        vehicle = Vehicle(plate_number="RACE-1", status="available",
                          vehicle_type=VehicleType(vehicle_type_name="VAN", category="VAN", total_quantity=1))
        setup.add(vehicle)
        setup.commit()
        vehicle_id = vehicle.id
        setup.close()

        first, second = Session(), Session()
        stale = first.get(Vehicle, vehicle_id)
        fresh = second.get(Vehicle, vehicle_id)
        fresh.status = "maintenance"
        second.commit()

        with pytest.raises(LifecycleError):
            with atomic(first, "Failed to update trip. Please try again."):
                stale.status = "on trip"

        check = Session()
        assert check.get(Vehicle, vehicle_id).status == "maintenance"
        for s in (first, second, check):
            s.close()
        engine.dispose()
