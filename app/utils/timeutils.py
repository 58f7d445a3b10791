# app/utils/timeutils.py
"""
Calendar boundaries and human-friendly durations for dashboard/report output.
All datetimes are naive local time, matching the DateTime columns.
"""

from datetime import datetime, timedelta, date, time


def now() -> datetime:
    return datetime.now()


def to_local_naive(moment: datetime) -> datetime:
    """Aware datetimes (e.g. a trailing Z from a browser) converted to naive local time."""
    if moment is not None and moment.tzinfo is not None:
        return moment.astimezone().replace(tzinfo=None)
    return moment


def start_of_day(moment: datetime) -> datetime:
    return datetime.combine(moment.date(), time.min)


def end_of_day(moment) -> datetime:
    day = moment.date() if isinstance(moment, datetime) else moment
    return datetime.combine(day, time.max)


def start_of_week(moment: datetime) -> datetime:
    """Monday 00:00 of the week containing `moment`."""
    return start_of_day(moment) - timedelta(days=moment.weekday())


def start_of_month(moment: datetime) -> datetime:
    return datetime(moment.year, moment.month, 1)


def start_of_year(moment: datetime) -> datetime:
    return datetime(moment.year, 1, 1)


def shift_months(moment: datetime, months: int) -> date:
    """First day of the month `months` away from `moment` (negative = past)."""
    index = moment.year * 12 + (moment.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def format_hh_mm(start: datetime, end: datetime) -> str:
    """Elapsed time as HH:MM. Hours wrap at 24 like a clock-style diff."""
    seconds = abs(int((end - start).total_seconds()))
    hours, remainder = divmod(seconds, 3600)
    return f"{hours % 24:02d}:{remainder // 60:02d}"


_UNITS = (
    ("year", 365 * 86400),
    ("month", 30 * 86400),
    ("week", 7 * 86400),
    ("day", 86400),
    ("hour", 3600),
    ("minute", 60),
    ("second", 1),
)


def humanize_delta(start: datetime, end: datetime) -> str:
    """Largest whole unit between two moments, e.g. '3 hours', '1 day'."""
    seconds = abs(int((end - start).total_seconds()))
    for unit, size in _UNITS:
        if seconds >= size:
            count = seconds // size
            return f"{count} {unit}{'s' if count != 1 else ''}"
    return "1 second"


def humanize_ago(moment: datetime, reference: datetime) -> str:
    if moment > reference:
        return f"{humanize_delta(moment, reference)} from now"
    return f"{humanize_delta(moment, reference)} ago"
