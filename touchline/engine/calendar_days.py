"""Calendar-day arithmetic.

Every cadence date is a calendar day: a YYYY-MM-DD string with no
time-of-day. Timestamps are reduced to a day in one fixed reference frame
(UTC) before any arithmetic, and all arithmetic happens on datetime.date,
which has no clock and therefore no daylight-saving transitions.

Usage:
    from touchline.engine.calendar_days import add_days, day_diff, to_calendar_day

    due = add_days(to_calendar_day(last_send_at), 7)
    days_left = day_diff(due, today_calendar_day())
"""

from datetime import date, datetime, timedelta
from typing import Optional, Union

from touchline.db.models import normalize_timestamp, parse_timestamp, utcnow

DayLike = Union[str, date, datetime]


def _as_date(value: DayLike) -> date:
    """Reduce a day-like value to a date."""
    if isinstance(value, datetime):
        return normalize_timestamp(value).date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if len(text) == 10:
        return date.fromisoformat(text)
    parsed = parse_timestamp(text)
    if parsed is None:
        raise ValueError(f"Not a calendar day or timestamp: {value!r}")
    return parsed.date()


def to_calendar_day(value: DayLike) -> str:
    """Truncate a timestamp (or date) to its UTC calendar day.

    Aware datetimes are converted to UTC first; naive ones are taken as UTC.

    Args:
        value: datetime, date, or ISO string

    Returns:
        YYYY-MM-DD

    Raises:
        ValueError: value is empty or not an ISO date or timestamp
    """
    return _as_date(value).isoformat()


def add_days(day: DayLike, n: int) -> str:
    """Add exactly n calendar days."""
    return (_as_date(day) + timedelta(days=n)).isoformat()


def day_diff(day_a: DayLike, day_b: DayLike) -> int:
    """Signed difference day_a - day_b in whole calendar days."""
    return (_as_date(day_a) - _as_date(day_b)).days


def today_calendar_day(now: Optional[datetime] = None) -> str:
    """Today's calendar day in the same reference frame as to_calendar_day."""
    return to_calendar_day(now or utcnow())
