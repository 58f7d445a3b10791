# app/routers/reports.py
"""Filtered trip reports with the aggregate panels."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from app.database import get_db
from app.schemas.report import ReportFilters
from app.services import report_service

router = APIRouter()


@router.get("/reports", summary="Filtered, paginated trip report")
def get_report(filters: ReportFilters = Depends(), db: Session = Depends(get_db)):
    """
    Filters: date_from, date_to, status (or "all"), driver, vehicle, search,
    ticket_prefix. per_page must be one of 10/15/25/50/100, otherwise 15.
    """
    return report_service.build_report(db, filters)


@router.get("/reports/export", summary="Export the filtered report")
def export_report(format: str = "pdf", filters: ReportFilters = Depends(), db: Session = Depends(get_db)):
    if format not in report_service.EXPORT_FORMATS:
        raise HTTPException(status_code=400, detail="Invalid export format")
    return report_service.export_report(db, filters, format)
