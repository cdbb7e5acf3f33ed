"""
Timezone-aware datetime helpers.
- Store and compute instants in UTC in the DB.
- Day-granularity comparisons ("today") use the configured reference timezone (settings.TZ).
"""
import calendar
from datetime import date, datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from app.core.config import settings

UTC = timezone.utc


def reference_tz() -> ZoneInfo:
    """Reference timezone for backdating checks and the auto-approval cutoff."""
    return ZoneInfo(settings.TZ)


def now_utc() -> datetime:
    """Current time in UTC (timezone-aware). Use for approved_at, archived_at, etc."""
    return datetime.now(UTC)


def today_local() -> date:
    """Today's date in the reference timezone."""
    return datetime.now(reference_tz()).date()


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """If dt is naive, treat as UTC and return timezone-aware UTC. If already aware, convert to UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    else:
        dt = dt.astimezone(UTC)
    return dt


def to_local(dt: Optional[datetime]) -> Optional[datetime]:
    """Convert to the reference timezone. Naive datetimes are treated as UTC before converting."""
    if dt is None:
        return None
    return ensure_utc(dt).astimezone(reference_tz())


def iso_local(dt: Optional[datetime]) -> Optional[str]:
    """Serialize as ISO-8601 with the reference timezone offset. Use for API response datetime fields."""
    if dt is None:
        return None
    return to_local(dt).isoformat()


def one_month_before(day: date) -> date:
    """Same day of the previous month, clamped to that month's last day (Mar 31 -> Feb 28/29)."""
    year, month = (day.year - 1, 12) if day.month == 1 else (day.year, day.month - 1)
    return date(year, month, min(day.day, calendar.monthrange(year, month)[1]))
