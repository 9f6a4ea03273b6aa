from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta
from typing import Iterator, Optional

FRIDAY = 4
SATURDAY = 5
SUNDAY = 6
MONDAY = 0


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def parse_iso_datetime(value: str) -> datetime:
    """Parse an ISO-8601 timestamp, accepting a trailing 'Z'.

    Aware values are converted to naive local time so they compare with
    timestamps produced by ``now_local``.
    """
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


def month_bounds(year: int, month: int) -> tuple[date, date]:
    last = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last)


def iter_days(start: date, end: date) -> Iterator[date]:
    """Inclusive day range; empty when start > end."""
    day = start
    while day <= end:
        yield day
        day += timedelta(days=1)


def days_inclusive(start: date, end: date) -> int:
    if start > end:
        return 0
    return (end - start).days + 1


def is_weekend(day: date) -> bool:
    return day.weekday() in (SATURDAY, SUNDAY)


def cascade_target(day: date) -> Optional[date]:
    """Weekend day that an absence on ``day`` spills onto.

    Friday -> following Saturday, Monday -> preceding Sunday.
    """
    if day.weekday() == FRIDAY:
        return day + timedelta(days=1)
    if day.weekday() == MONDAY:
        return day - timedelta(days=1)
    return None


def cascade_source(day: date) -> Optional[date]:
    """Weekday whose absence would cascade onto weekend ``day``."""
    if day.weekday() == SATURDAY:
        return day - timedelta(days=1)
    if day.weekday() == SUNDAY:
        return day + timedelta(days=1)
    return None


def hours_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 3600.0
