"""
Timezone-aware datetime helpers.
- Store and compute in UTC in DB.
- Attendance dates and shift wall-clock times live in the business timezone (settings.BUSINESS_TZ).
- API responses expose datetimes in the business timezone with an explicit offset; never Z.
"""
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Protocol, Tuple
from zoneinfo import ZoneInfo

from app.core.config import settings

UTC = timezone.utc
BUSINESS_TZ = ZoneInfo(settings.BUSINESS_TZ)


class Clock(Protocol):
    def now(self) -> datetime:
        ...


class SystemClock:
    """Wall clock, UTC."""

    def now(self) -> datetime:
        return now_utc()


class FixedClock:
    """Clock pinned to an instant; tests move it with advance()."""

    def __init__(self, instant: datetime):
        self._now = ensure_utc(instant)

    def now(self) -> datetime:
        return self._now

    def advance(self, **kwargs) -> None:
        self._now = self._now + timedelta(**kwargs)


def now_utc() -> datetime:
    """Current time in UTC (timezone-aware)."""
    return datetime.now(UTC)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """If dt is naive, treat as UTC and return timezone-aware UTC. If already aware, convert to UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    else:
        dt = dt.astimezone(UTC)
    return dt


def to_business_tz(dt: Optional[datetime]) -> Optional[datetime]:
    """Convert to the business timezone. Naive datetimes are treated as UTC before converting."""
    if dt is None:
        return None
    return ensure_utc(dt).astimezone(BUSINESS_TZ)


def iso_business(dt: Optional[datetime]) -> Optional[str]:
    """Serialize as ISO-8601 in the business timezone (e.g. +05:30). Use for API response datetime fields."""
    if dt is None:
        return None
    return to_business_tz(dt).isoformat()


def get_work_date(utc_now: Optional[datetime] = None) -> date:
    """Return the attendance date (business timezone) for the given UTC time (default now)."""
    return to_business_tz(utc_now or now_utc()).date()


def parse_hhmm(value: str) -> time:
    """Parse "HH:MM" into a time. Raises ValueError on anything else."""
    hours, minutes = value.strip().split(":")
    return time(int(hours), int(minutes))


def shift_time_on(day, hhmm: str) -> datetime:
    """
    Business-timezone wall time ``hhmm`` on the business date of ``day``, as a UTC instant.

    ``day`` may be a date or an instant; an instant is first mapped to its business date.
    """
    if isinstance(day, datetime):
        day = get_work_date(day)
    local = datetime.combine(day, parse_hhmm(hhmm), tzinfo=BUSINESS_TZ)
    return local.astimezone(UTC)


def business_day_bounds(day: date) -> Tuple[datetime, datetime]:
    """UTC instants [start, end) of a business-timezone calendar day."""
    start = datetime.combine(day, time.min, tzinfo=BUSINESS_TZ)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=BUSINESS_TZ)
    return start.astimezone(UTC), end.astimezone(UTC)


def minutes_between(start: datetime, end: datetime) -> float:
    """Signed minutes from start to end (fractional)."""
    return (ensure_utc(end) - ensure_utc(start)).total_seconds() / 60


def week_bounds(day: date) -> Tuple[date, date]:
    """Monday and Sunday of the ISO week containing ``day``."""
    monday = day - timedelta(days=day.weekday())
    return monday, monday + timedelta(days=6)


def parse_date(value: str) -> date:
    """Parse YYYY-MM-DD. Raises ValueError on bad input."""
    return datetime.strptime(value, "%Y-%m-%d").date()
