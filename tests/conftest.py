# tests/conftest.py
"""Shared fixtures: in-memory SQLite session, fixed clock, cache and API client."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from datetime import datetime
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from app.database import create_tables, get_db
from app.models.department import Department
from app.models.driver import Driver
from app.models.trip import Trip
from app.models.vehicle import Vehicle, VehicleType
from app.services.cache import ReadModelCache, get_cache

# Wednesday mid-morning, mid-month
NOW = datetime(2024, 5, 15, 10, 30, 0)


class FakeClock:
    def __init__(self, current: datetime = NOW):
        self.current = current

    def __call__(self) -> datetime:
        return self.current


class Factory:
    """Builds committed rows with sensible defaults."""

    def __init__(self, db):
        self.db = db
        self._seq = 0

    def _next(self) -> int:
        self._seq += 1
        return self._seq

    def vehicle_type(self, name="HILUX", category="PICKUP"):
        vehicle_type = self.db.query(VehicleType).filter_by(vehicle_type_name=name).first()
        if vehicle_type is None:
            vehicle_type = VehicleType(vehicle_type_name=name, category=category, total_quantity=0)
            self.db.add(vehicle_type)
            self.db.commit()
        return vehicle_type

    def vehicle(self, plate=None, status="available", type_name="HILUX"):
        vehicle = Vehicle(
            plate_number=plate or f"ABC-{self._next():03d}",
            status=status,
            vehicle_type=self.vehicle_type(type_name),
        )
        self.db.add(vehicle)
        self.db.commit()
        return vehicle

    def driver(self, firstname="Juan", lastname=None, status="active", **kwargs):
        driver = Driver(firstname=firstname, lastname=lastname or f"Cruz{self._next()}",
                        status=status, **kwargs)
        self.db.add(driver)
        self.db.commit()
        return driver

    def department(self, code="001", name="Motorpool"):
        department = Department(code=code, name=name)
        self.db.add(department)
        self.db.commit()
        return department

    def trip(self, vehicle=None, driver=None, status="booked", created_at=NOW, **kwargs):
        vehicle = vehicle or self.vehicle()
        driver = driver or self.driver()
        kwargs.setdefault("tick_no", f"MEO-2024-001-{self._next():02d}")
        kwargs.setdefault("passenger", "Mayor's Office")
        trip = Trip(
            vehicle_id=vehicle.id,
            driver_id=driver.id,
            status=status,
            created_at=created_at,
            updated_at=created_at,
            **kwargs,
        )
        self.db.add(trip)
        self.db.commit()
        return trip


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_tables(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    yield session
    session.close()


@pytest.fixture
def factory(db):
    return Factory(db)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return ReadModelCache(clock=clock)


@pytest.fixture
def client(db, cache):
    from fastapi.testclient import TestClient
    from app.main import app

    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_cache] = lambda: cache
    yield TestClient(app)
    app.dependency_overrides.clear()
