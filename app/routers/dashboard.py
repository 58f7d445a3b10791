# app/routers/dashboard.py
"""
Dashboard read models. Everything here is read-only apart from the cache
maintenance endpoints (clear-cache, refresh).
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from datetime import datetime
from typing import Optional
from app.database import get_db
from app.schemas.dashboard import DateRange, ExportRequest
from app.services import dashboard_service
from app.services.cache import ReadModelCache, get_cache

router = APIRouter()


@router.get("/dashboard", summary="Full dashboard snapshot")
def dashboard(db: Session = Depends(get_db), cache: ReadModelCache = Depends(get_cache)):
    return dashboard_service.dashboard(db, cache)


@router.get("/dashboard/quick-stats")
def quick_stats(db: Session = Depends(get_db), cache: ReadModelCache = Depends(get_cache)):
    return dashboard_service.quick_stats(db, cache)


@router.get("/dashboard/recent-activity")
def recent_activity(db: Session = Depends(get_db), cache: ReadModelCache = Depends(get_cache)):
    return dashboard_service.recent_activity(db, cache)


@router.get("/dashboard/vehicle-locations", summary="Vehicles on trip (no GPS yet)")
def vehicle_locations(db: Session = Depends(get_db), cache: ReadModelCache = Depends(get_cache)):
    return dashboard_service.vehicle_locations(db, cache.clock())


@router.get("/dashboard/summary")
def summary(db: Session = Depends(get_db), cache: ReadModelCache = Depends(get_cache)):
    return dashboard_service.summary(db, cache)


@router.get("/dashboard/live-updates", summary="Polling endpoint for the dashboard")
def live_updates(
    last_update: Optional[datetime] = None,
    refresh_type: str = Query("partial", pattern=r"^(full|partial)$"),
    db: Session = Depends(get_db),
    cache: ReadModelCache = Depends(get_cache),
):
    return dashboard_service.live_updates(db, cache, last_update, refresh_type)


@router.post("/dashboard/trip-stats-by-range")
def trip_stats_by_range(body: DateRange, db: Session = Depends(get_db),
                        cache: ReadModelCache = Depends(get_cache)):
    return dashboard_service.trip_stats_by_range(db, cache, body.start_date, body.end_date)


@router.post("/dashboard/clear-cache")
def clear_cache(cache: ReadModelCache = Depends(get_cache)):
    return dashboard_service.clear_cache(cache)


@router.post("/dashboard/refresh", summary="Clear the cache and rebuild the snapshot")
def refresh(db: Session = Depends(get_db), cache: ReadModelCache = Depends(get_cache)):
    return dashboard_service.refresh(db, cache)


@router.post("/dashboard/export")
def export(body: ExportRequest, db: Session = Depends(get_db), cache: ReadModelCache = Depends(get_cache)):
    return dashboard_service.export_summary(db, cache, body.format)
