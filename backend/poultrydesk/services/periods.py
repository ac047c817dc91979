# Overview: Period selectors; turn "current day/week/month/year" or an explicit range into [start, end).

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from ..validation import ValidationError
from poultrydesk.time_utils import utcnow, parse_iso_datetime


PERIOD_KINDS = ("day", "week", "month", "year")

WEEKDAYS = {
    "monday": 0,
    "tuesday": 1,
    "wednesday": 2,
    "thursday": 3,
    "friday": 4,
    "saturday": 5,
    "sunday": 6,
}


def _midnight(dt: datetime) -> datetime:
    return dt.replace(hour=0, minute=0, second=0, microsecond=0)


def current_period(
    kind: str,
    now: datetime | None = None,
    week_starts_on: str = "sunday",
) -> tuple[datetime, datetime]:
    """
    Half-open [start, end) for the period containing `now` (UTC-naive).

    - day:   today 00:00 -> tomorrow 00:00
    - week:  most recent `week_starts_on` 00:00 -> +7 days
    - month: 1st 00:00 -> 1st of next month
    - year:  Jan 1 00:00 -> Jan 1 next year
    """
    now = _naive_utc(now) if now else utcnow()
    kind = (kind or "").strip().lower()

    if kind == "day":
        start = _midnight(now)
        return start, start + timedelta(days=1)

    if kind == "week":
        first_day = WEEKDAYS.get((week_starts_on or "").strip().lower())
        if first_day is None:
            raise ValidationError(f"Invalid week start day: {week_starts_on}")
        offset = (now.weekday() - first_day) % 7
        start = _midnight(now) - timedelta(days=offset)
        return start, start + timedelta(days=7)

    if kind == "month":
        start = _midnight(now).replace(day=1)
        if start.month == 12:
            end = start.replace(year=start.year + 1, month=1)
        else:
            end = start.replace(month=start.month + 1)
        return start, end

    if kind == "year":
        start = _midnight(now).replace(month=1, day=1)
        return start, start.replace(year=start.year + 1)

    raise ValidationError(f"Invalid period: {kind}. Use one of: {', '.join(PERIOD_KINDS)}")


def parse_range(start, end) -> tuple[datetime, datetime]:
    """
    Validate an explicit [start, end) range.

    Accepts datetimes or ISO-8601 strings; both are required and start must
    be strictly before end.
    """
    start_dt = _as_datetime(start, "start")
    end_dt = _as_datetime(end, "end")
    if start_dt >= end_dt:
        raise ValidationError("start must be before end")
    return start_dt, end_dt


def _naive_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def _as_datetime(value, label: str) -> datetime:
    if isinstance(value, datetime):
        return _naive_utc(value)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"{label} is required")
    try:
        dt = parse_iso_datetime(str(value))
    except ValueError:
        raise ValidationError(f"Invalid {label} date format. Use ISO-8601.")
    if dt is None:
        raise ValidationError(f"{label} is required")
    return dt
