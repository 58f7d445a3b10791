# app/services/dashboard_service.py
"""
Dashboard aggregates over trips, vehicles and drivers. Read-only.

Counts are computed with conditional aggregates (one query per entity) and
wrapped in the hour-bucketed read-model cache. Every function takes `now` so
callers and tests control the clock; it defaults to the cache clock.
Returned values are JSON-ready (datetimes rendered as strings) so they can be
stored in Redis unchanged.
"""

from datetime import datetime, timedelta, date
from typing import Optional

from sqlalchemy import and_, case, extract, func, or_
from sqlalchemy.orm import Session, joinedload, selectinload

from app.config import settings
from app.models.driver import Driver
from app.models.enums import ACTIVE_TRIP_STATUSES, DriverStatus, TripStatus, VehicleStatus
from app.models.trip import Trip
from app.models.vehicle import Vehicle, VehicleType
from app.services.cache import ReadModelCache
from app.services.exceptions import ValidationFailed
from app.utils import timeutils
from app.utils.logger import get_logger

logger = get_logger(__name__)

DATETIME_FMT = "%Y-%m-%d %H:%M:%S"


def _count_when(condition):
    return func.count(case((condition, 1)))


def active_trip_filter(now: datetime):
    """Booked or on trip, and not yet ended."""
    return and_(
        Trip.status.in_(ACTIVE_TRIP_STATUSES),
        or_(Trip.trip_end.is_(None), Trip.trip_end > now),
    )


def overdue_trip_filter(now: datetime):
    return and_(Trip.status == TripStatus.on_trip.value, Trip.trip_end < now)


# ── Entity stats ─────────────────────────────────────────────────────────────

def trip_stats(db: Session, now: datetime) -> dict:
    today = timeutils.start_of_day(now)
    tomorrow = today + timedelta(days=1)
    created_today = and_(Trip.created_at >= today, Trip.created_at < tomorrow)

    row = db.query(
        func.count(Trip.id),
        _count_when(created_today),
        _count_when(Trip.created_at >= timeutils.start_of_week(now)),
        _count_when(Trip.created_at >= timeutils.start_of_month(now)),
        _count_when(Trip.created_at >= timeutils.start_of_year(now)),
        _count_when(Trip.status == TripStatus.booked.value),
        _count_when(Trip.status == TripStatus.on_trip.value),
        _count_when(Trip.status == TripStatus.finished.value),
        _count_when(and_(created_today, Trip.status == TripStatus.finished.value)),
    ).one()

    keys = ("total", "today", "this_week", "this_month", "this_year",
            "booked", "on_trip", "finished", "completed_today")
    return {k: int(v or 0) for k, v in zip(keys, row)}


def vehicle_stats(db: Session) -> dict:
    row = db.query(
        func.count(Vehicle.id),
        *[_count_when(Vehicle.status == s.value) for s in VehicleStatus],
    ).one()
    stats = {"total": int(row[0] or 0)}
    for status, count in zip(VehicleStatus, row[1:]):
        stats[status.name] = int(count or 0)

    by_type = (
        db.query(VehicleType.id, VehicleType.vehicle_type_name, VehicleType.category, func.count(Vehicle.id))
        .outerjoin(Vehicle, Vehicle.vehicle_type_id == VehicleType.id)
        .group_by(VehicleType.id, VehicleType.vehicle_type_name, VehicleType.category)
        .order_by(VehicleType.id)
        .all()
    )
    stats["by_type"] = [
        {"id": t_id, "name": name, "count": int(count), "category": category or "Other"}
        for t_id, name, category, count in by_type
    ]
    return stats


def drivers_on_trip(db: Session, now: datetime) -> int:
    return int(
        db.query(func.count(func.distinct(Trip.driver_id)))
        .filter(active_trip_filter(now))
        .scalar() or 0
    )


def driver_stats(db: Session, now: datetime) -> dict:
    row = db.query(
        func.count(Driver.id),
        *[_count_when(Driver.status == s.value) for s in DriverStatus],
    ).one()
    stats = {"total": int(row[0] or 0)}
    for status, count in zip(DriverStatus, row[1:]):
        stats[status.name] = int(count or 0)
    stats["on_trip"] = drivers_on_trip(db, now)
    return stats


# ── Trip lists ───────────────────────────────────────────────────────────────

def trip_duration(trip: Trip, now: datetime) -> Optional[str]:
    if trip.trip_start and trip.trip_end:
        return timeutils.format_hh_mm(trip.trip_start, trip.trip_end)
    if trip.trip_start:
        return timeutils.humanize_delta(trip.trip_start, now)
    return None


def format_trip(trip: Trip, now: datetime) -> dict:
    vehicle = trip.vehicle
    return {
        "id": trip.id,
        "tickNo": trip.tick_no,
        "driver": {"id": trip.driver.id, "name": trip.driver.full_name} if trip.driver else None,
        "vehicle": {
            "id": vehicle.id,
            "plate_number": vehicle.plate_number,
            "type": vehicle.type_name,
        } if vehicle else None,
        "place": trip.place,
        "status": trip.status,
        "fuel_used": trip.liters,
        "duration": trip_duration(trip, now),
        "created_at": trip.created_at.strftime(DATETIME_FMT) if trip.created_at else None,
        "created_ago": timeutils.humanize_ago(trip.created_at, now) if trip.created_at else None,
    }


def _trips_with_relations(db: Session):
    return db.query(Trip).options(
        joinedload(Trip.driver),
        joinedload(Trip.vehicle).joinedload(Vehicle.vehicle_type),
    )


def recent_trips(db: Session, now: datetime, limit: int = 10) -> list[dict]:
    trips = _trips_with_relations(db).order_by(Trip.created_at.desc(), Trip.id.desc()).limit(limit).all()
    return [format_trip(t, now) for t in trips]


def active_trips(db: Session, now: datetime) -> list[dict]:
    trips = (
        _trips_with_relations(db)
        .filter(active_trip_filter(now))
        .order_by(Trip.created_at.desc(), Trip.id.desc())
        .all()
    )
    return [format_trip(t, now) for t in trips]


# ── Rankings over a window ───────────────────────────────────────────────────
# Ties are broken by ascending key/id so results are deterministic.

def fuel_stats(db: Session, start: datetime, end: datetime) -> dict:
    rows = (
        db.query(Trip.fuel_type, func.sum(Trip.liters), func.count(Trip.id))
        .filter(Trip.created_at.between(start, end),
                Trip.fuel_type.isnot(None), Trip.liters.isnot(None))
        .group_by(Trip.fuel_type)
        .order_by(Trip.fuel_type)
        .all()
    )
    by_type = [
        {"fuel_type": fuel, "total_liters": float(total or 0), "trip_count": int(count)}
        for fuel, total, count in rows
    ]
    return {
        "total_liters": float(sum(r["total_liters"] for r in by_type)),
        "by_fuel_type": by_type,
    }


def monthly_trends(db: Session, now: datetime, months: int = 6) -> list[dict]:
    """Trips and finished trips per month for the last `months` months, zero-filled."""
    first = timeutils.shift_months(now, -(months - 1))
    year_col = extract("year", Trip.created_at)
    month_col = extract("month", Trip.created_at)
    rows = (
        db.query(year_col, month_col, func.count(Trip.id),
                 _count_when(Trip.status == TripStatus.finished.value))
        .filter(Trip.created_at >= datetime(first.year, first.month, 1))
        .group_by(year_col, month_col)
        .all()
    )
    found = {(int(y), int(m)): (int(total), int(done)) for y, m, total, done in rows}

    trends = []
    for i in range(months - 1, -1, -1):
        month = timeutils.shift_months(now, -i)
        total, done = found.get((month.year, month.month), (0, 0))
        trends.append({"month": month.strftime("%b %Y"), "trips": total, "completed": done})
    return trends


def top_destinations(db: Session, start: datetime, end: datetime, limit: int = 5) -> list[dict]:
    trip_count = func.count(Trip.id)
    rows = (
        db.query(Trip.place, trip_count, func.avg(Trip.liters))
        .filter(Trip.place.isnot(None), Trip.created_at.between(start, end))
        .group_by(Trip.place)
        .order_by(trip_count.desc(), Trip.place)
        .limit(limit)
        .all()
    )
    return [
        {"place": place, "trip_count": int(count), "avg_fuel": float(avg or 0)}
        for place, count, avg in rows
    ]


def top_drivers(db: Session, start: datetime, end: datetime, limit: int = 5,
                with_trips_only: bool = False) -> list[dict]:
    trip_count = func.count(Trip.id)
    q = (
        db.query(Driver, trip_count, func.sum(Trip.liters))
        .outerjoin(Trip, and_(Trip.driver_id == Driver.id, Trip.created_at.between(start, end)))
        .group_by(Driver.id)
    )
    if with_trips_only:
        q = q.having(trip_count > 0)
    rows = q.order_by(trip_count.desc(), Driver.id).limit(limit).all()
    return [
        {
            "id": driver.id,
            "name": driver.full_name,
            "trip_count": int(count),
            "total_fuel": float(fuel or 0),
            "status": driver.status,
        }
        for driver, count, fuel in rows
    ]


def most_used_vehicles(db: Session, start: datetime, end: datetime, limit: int = 5,
                       with_trips_only: bool = False) -> list[dict]:
    trip_count = func.count(Trip.id)
    q = (
        db.query(Vehicle, trip_count)
        .outerjoin(Trip, and_(Trip.vehicle_id == Vehicle.id, Trip.created_at.between(start, end)))
        .options(selectinload(Vehicle.vehicle_type))
        .group_by(Vehicle.id)
    )
    if with_trips_only:
        q = q.having(trip_count > 0)
    rows = q.order_by(trip_count.desc(), Vehicle.id).limit(limit).all()
    return [
        {
            "id": vehicle.id,
            "plate_number": vehicle.plate_number,
            "type": vehicle.type_name,
            "category": vehicle.vehicle_type.category if vehicle.vehicle_type else "Unknown",
            "trip_count": int(count),
            "status": vehicle.status,
        }
        for vehicle, count in rows
    ]


def project_stats(db: Session, start: datetime, end: datetime) -> list[dict]:
    trip_count = func.count(Trip.id)
    rows = (
        db.query(Trip.chargetoproject, trip_count, func.sum(Trip.liters))
        .filter(Trip.chargetoproject.isnot(None), Trip.created_at.between(start, end))
        .group_by(Trip.chargetoproject)
        .order_by(trip_count.desc(), Trip.chargetoproject)
        .all()
    )
    return [
        {"project": project, "trip_count": int(count), "total_fuel": float(fuel or 0)}
        for project, count, fuel in rows
    ]


def compute_alerts(db: Session, now: datetime) -> dict:
    return {
        "vehicles_in_maintenance": db.query(Vehicle)
            .filter(Vehicle.status == VehicleStatus.maintenance.value).count(),
        "active_trips": db.query(Trip).filter(active_trip_filter(now)).count(),
        "drivers_on_trip": drivers_on_trip(db, now),
        "overdue_trips": db.query(Trip).filter(overdue_trip_filter(now)).count(),
    }


# ── Cached read models ───────────────────────────────────────────────────────

def alerts(db: Session, cache: ReadModelCache, now: Optional[datetime] = None) -> dict:
    now = now or cache.clock()
    return cache.remember("alerts", lambda: compute_alerts(db, now))


def compute_dashboard(db: Session, cache: ReadModelCache, now: Optional[datetime] = None) -> dict:
    now = now or cache.clock()
    month_start = timeutils.start_of_month(now)

    data = {
        "tripStats": trip_stats(db, now),
        "vehicleStats": vehicle_stats(db),
        "driverStats": driver_stats(db, now),
    }

    def additional():
        return {
            "recentTrips": recent_trips(db, now),
            "activeTrips": active_trips(db, now),
            "fuelStats": fuel_stats(db, month_start, now),
            "monthlyTrends": cache.remember("monthly_trends", lambda: monthly_trends(db, now)),
            "topDestinations": top_destinations(db, month_start, now),
            "topDrivers": top_drivers(db, month_start, now),
            "mostUsedVehicles": most_used_vehicles(db, month_start, now),
            "projectStats": project_stats(db, month_start, now),
            "alerts": alerts(db, cache, now),
        }

    data.update(cache.remember("additional", additional))
    return data


def dashboard(db: Session, cache: ReadModelCache, now: Optional[datetime] = None) -> dict:
    return cache.remember("main", lambda: compute_dashboard(db, cache, now))


def live_updates(db: Session, cache: ReadModelCache, last_update: Optional[datetime] = None,
                 refresh_type: str = "partial", now: Optional[datetime] = None) -> dict:
    now = now or cache.clock()
    last_update = timeutils.to_local_naive(last_update)
    response = {
        "timestamp": now.strftime(DATETIME_FMT),
        "refresh_needed": last_update is None or (now - last_update).total_seconds() > 60,
    }
    if refresh_type == "full":
        response["data"] = compute_dashboard(db, cache, now)
    else:
        response["updates"] = partial_updates(db, cache, last_update, now)
    return response


def partial_updates(db: Session, cache: ReadModelCache, last_update: Optional[datetime],
                    now: datetime) -> dict:
    if last_update is None:
        return {}

    changed = (
        _trips_with_relations(db)
        .filter(or_(Trip.created_at > last_update, Trip.updated_at > last_update))
        .order_by(Trip.updated_at.desc(), Trip.id.desc())
        .limit(5)
        .all()
    )
    today = timeutils.start_of_day(now)
    return {
        "new_trips": [format_trip(t, now) for t in changed],
        "stats": {
            "booked_trips": db.query(Trip).filter(Trip.status == TripStatus.booked.value).count(),
            "on_trip_trips": db.query(Trip).filter(Trip.status == TripStatus.on_trip.value).count(),
            "trips_today": db.query(Trip).filter(
                Trip.created_at >= today, Trip.created_at < today + timedelta(days=1)).count(),
        },
        "alerts": alerts(db, cache, now),
    }


def vehicle_locations(db: Session, now: datetime) -> dict:
    """Vehicles currently out. Coordinates stay null until GPS tracking exists."""
    vehicles = (
        db.query(Vehicle)
        .options(joinedload(Vehicle.vehicle_type))
        .filter(Vehicle.status == VehicleStatus.on_trip.value)
        .order_by(Vehicle.id)
        .all()
    )
    return {
        "vehicles": [
            {
                "id": v.id,
                "plate_number": v.plate_number,
                "type": v.type_name,
                "status": v.status,
                "latitude": None,
                "longitude": None,
            }
            for v in vehicles
        ],
        "timestamp": now.strftime(DATETIME_FMT),
    }


def trip_stats_by_range(db: Session, cache: ReadModelCache, start_date: date, end_date: date) -> dict:
    if end_date < start_date:
        raise ValidationFailed({"end_date": "The end date must be a date after or equal to start date."})

    start = datetime.combine(start_date, datetime.min.time())
    end = timeutils.end_of_day(end_date)

    def compute():
        row = (
            db.query(
                func.count(Trip.id),
                _count_when(Trip.status == TripStatus.booked.value),
                _count_when(Trip.status == TripStatus.on_trip.value),
                _count_when(Trip.status == TripStatus.finished.value),
                func.sum(Trip.liters),
            )
            .filter(Trip.created_at.between(start, end))
            .one()
        )
        return {
            "total": int(row[0] or 0),
            "booked": int(row[1] or 0),
            "on_trip": int(row[2] or 0),
            "finished": int(row[3] or 0),
            "total_fuel": float(row[4] or 0),
            "date_range": f"{start:%b %d, %Y} - {end:%b %d, %Y}",
        }

    key = f"trip_stats_{int(start.timestamp())}_{int(end.timestamp())}"
    return cache.get_or_compute(key, settings.CACHE_TTL_DATE_RANGE, compute)


def quick_stats(db: Session, cache: ReadModelCache, now: Optional[datetime] = None) -> dict:
    now = now or cache.clock()

    def compute():
        today = timeutils.start_of_day(now)
        return {
            "trips_today": db.query(Trip).filter(
                Trip.created_at >= today, Trip.created_at < today + timedelta(days=1)).count(),
            "active_trips": db.query(Trip).filter(active_trip_filter(now)).count(),
            "available_vehicles": db.query(Vehicle)
                .filter(Vehicle.status == VehicleStatus.available.value).count(),
            "active_drivers": db.query(Driver)
                .filter(Driver.status == DriverStatus.active.value).count(),
            "timestamp": now.strftime(DATETIME_FMT),
        }

    return cache.remember("quick_stats", compute)


def _activity_action(trip: Trip) -> str:
    # Column defaults stamp created_at and updated_at separately on insert
    if trip.updated_at is None or trip.created_at is None:
        return "created"
    return "created" if (trip.updated_at - trip.created_at).total_seconds() < 1 else "updated"


def recent_activity(db: Session, cache: ReadModelCache, now: Optional[datetime] = None) -> list[dict]:
    now = now or cache.clock()

    def compute():
        trips = (
            db.query(Trip)
            .options(joinedload(Trip.driver), joinedload(Trip.vehicle))
            .order_by(Trip.created_at.desc(), Trip.id.desc())
            .limit(20)
            .all()
        )
        items = []
        for trip in trips:
            touched = trip.updated_at or trip.created_at
            items.append({
                "id": trip.id,
                "type": "trip",
                "action": _activity_action(trip),
                "description": f"Trip #{trip.tick_no} to {trip.place or 'Unknown destination'}",
                "driver": f"{trip.driver.firstname} {trip.driver.lastname}".strip() if trip.driver else "N/A",
                "vehicle": trip.vehicle.plate_number if trip.vehicle else "N/A",
                "status": trip.status,
                "timestamp": timeutils.humanize_ago(touched, now) if touched else None,
                "full_time": touched.strftime(DATETIME_FMT) if touched else None,
            })
        return items

    return cache.remember("recent_activity", compute)


def summary(db: Session, cache: ReadModelCache, now: Optional[datetime] = None) -> dict:
    now = now or cache.clock()

    def compute():
        today = timeutils.start_of_day(now)
        trips = db.query(
            _count_when(and_(Trip.created_at >= today, Trip.created_at < today + timedelta(days=1))),
            _count_when(Trip.created_at >= timeutils.start_of_month(now)),
            _count_when(active_trip_filter(now)),
        ).one()
        vehicles = vehicle_stats(db)
        return {
            "trips_today": int(trips[0] or 0),
            "trips_month": int(trips[1] or 0),
            "active_trips": int(trips[2] or 0),
            "available_vehicles": vehicles["available"],
            "vehicles_in_maintenance": vehicles["maintenance"],
            "total_vehicles": vehicles["total"],
            "timestamp": now.strftime(DATETIME_FMT),
        }

    return cache.remember("summary", compute)


def clear_cache(cache: ReadModelCache) -> dict:
    keys = cache.clear()
    return {
        "message": "Dashboard cache cleared successfully",
        "timestamp": cache.clock().strftime(DATETIME_FMT),
        "keys": keys,
    }


def refresh(db: Session, cache: ReadModelCache) -> dict:
    """Clear, then eagerly rebuild the snapshot (and repopulate the cache)."""
    cache.clear()
    data = dashboard(db, cache)
    logger.info("[Dashboard] snapshot rebuilt after manual refresh")
    return {
        "message": "Dashboard data refreshed successfully",
        "timestamp": cache.clock().strftime(DATETIME_FMT),
        "data": data,
    }


def export_summary(db: Session, cache: ReadModelCache, fmt: str = "pdf") -> dict:
    """Export stub: reports what would be exported, produces no file."""
    data = compute_dashboard(db, cache)
    return {
        "message": "Export feature ready",
        "format": fmt,
        "data_available": {
            "trips": data["tripStats"]["total"],
            "vehicles": data["vehicleStats"]["total"],
            "drivers": data["driverStats"]["total"],
            "monthly_trends": len(data.get("monthlyTrends", [])),
            "recent_trips": len(data.get("recentTrips", [])),
        },
        "export_time": cache.clock().strftime(DATETIME_FMT),
    }
