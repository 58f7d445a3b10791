# app/services/report_service.py
"""
Filtered, paginated trip reports plus the same aggregate panels as the
dashboard, computed over the report window instead of month-to-date only.
"""

import math
from datetime import datetime
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Query, Session, joinedload

from app.config import settings
from app.models.driver import Driver
from app.models.trip import Trip
from app.models.vehicle import Vehicle
from app.schemas.report import ReportFilters
from app.schemas.trip import TripOut
from app.services import dashboard_service as panels
from app.utils import timeutils
from app.utils.logger import get_logger

logger = get_logger(__name__)

EXPORT_FORMATS = ("pdf", "excel", "csv")
RANKING_LIMIT = 10


def resolve_per_page(value) -> int:
    """Page size from the allow-list; anything else falls back to the default."""
    try:
        per_page = int(value)
    except (TypeError, ValueError):
        return settings.REPORT_DEFAULT_PAGE_SIZE
    if per_page not in settings.REPORT_PAGE_SIZES:
        return settings.REPORT_DEFAULT_PAGE_SIZE
    return per_page


def _escape(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def filtered_trips(db: Session, filters: ReportFilters) -> Query:
    q = (
        db.query(Trip)
        .outerjoin(Driver, Trip.driver_id == Driver.id)
        .outerjoin(Vehicle, Trip.vehicle_id == Vehicle.id)
    )

    if filters.date_from:
        q = q.filter(Trip.created_at >= datetime.combine(filters.date_from, datetime.min.time()))
    if filters.date_to:
        q = q.filter(Trip.created_at <= timeutils.end_of_day(filters.date_to))
    if filters.status and filters.status != "all":
        q = q.filter(Trip.status == filters.status)
    if filters.driver:
        q = q.filter(Trip.driver_id == filters.driver)
    if filters.vehicle:
        q = q.filter(Trip.vehicle_id == filters.vehicle)
    if filters.ticket_prefix:
        q = q.filter(Trip.tick_no.like(_escape(filters.ticket_prefix) + "%", escape="\\"))
    if filters.search:
        pattern = f"%{_escape(filters.search)}%"
        q = q.filter(or_(
            Trip.tick_no.ilike(pattern, escape="\\"),
            Trip.passenger.ilike(pattern, escape="\\"),
            Trip.place.ilike(pattern, escape="\\"),
            Trip.purpose.ilike(pattern, escape="\\"),
            Driver.firstname.ilike(pattern, escape="\\"),
            Driver.lastname.ilike(pattern, escape="\\"),
            Vehicle.plate_number.ilike(pattern, escape="\\"),
        ))
    return q


def ticket_prefix(tick_no: str) -> str:
    """Ticket number without its trailing -sequence segment."""
    head, sep, _ = tick_no.rpartition("-")
    return head if sep else tick_no


def available_prefixes(query: Query) -> list[str]:
    rows = query.with_entities(Trip.tick_no).distinct().all()
    return sorted({ticket_prefix(tick_no) for (tick_no,) in rows if tick_no})


def report_window(filters: ReportFilters, now: datetime) -> tuple[datetime, datetime]:
    """Explicit date range when both ends are given, month-to-date otherwise."""
    if filters.date_from and filters.date_to:
        return (
            datetime.combine(filters.date_from, datetime.min.time()),
            timeutils.end_of_day(filters.date_to),
        )
    return timeutils.start_of_month(now), now


def paginate(query: Query, page: int, per_page: int) -> dict:
    total = query.count()
    items = (
        query.options(joinedload(Trip.driver), joinedload(Trip.vehicle).joinedload(Vehicle.vehicle_type))
        .order_by(Trip.created_at.desc(), Trip.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
        .all()
    )
    return {
        "items": [TripOut.model_validate(t).model_dump(by_alias=True, mode="json") for t in items],
        "total": total,
        "page": page,
        "per_page": per_page,
        "last_page": max(1, math.ceil(total / per_page)),
    }


def build_report(db: Session, filters: ReportFilters, now: Optional[datetime] = None) -> dict:
    now = now or timeutils.now()
    per_page = resolve_per_page(filters.per_page)
    query = filtered_trips(db, filters)
    start, end = report_window(filters, now)

    report = {
        "trips": paginate(query, filters.page, per_page),
        "availablePrefixes": available_prefixes(query),
        "filters": {**filters.model_dump(mode="json"), "per_page": per_page},
        "tripStats": panels.trip_stats(db, now),
        "vehicleStats": panels.vehicle_stats(db),
        "driverStats": panels.driver_stats(db, now),
        "fuelStats": panels.fuel_stats(db, start, end),
        "monthlyTrends": panels.monthly_trends(db, now, months=12),
        "topDestinations": panels.top_destinations(db, start, end, limit=RANKING_LIMIT),
        "topDrivers": panels.top_drivers(db, start, end, limit=RANKING_LIMIT, with_trips_only=True),
        "mostUsedVehicles": panels.most_used_vehicles(db, start, end, limit=RANKING_LIMIT,
                                                      with_trips_only=True),
        "projectStats": panels.project_stats(db, start, end),
        "generatedAt": now.strftime(panels.DATETIME_FMT),
    }
    logger.debug(f"[Report] {report['trips']['total']} trips matched, window {start} → {end}")
    return report


def export_report(db: Session, filters: ReportFilters, fmt: str) -> dict:
    """Export stub: counts the matching trips, produces no file."""
    count = filtered_trips(db, filters).count()
    logger.info(f"[Report] {fmt} export requested for {count} trips")
    return {
        "message": f"{fmt.upper()} export is not yet implemented",
        "format": fmt,
        "trips_count": count,
    }
