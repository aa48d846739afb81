"""Date helpers with consistent UTC handling.

Maintenance dates are calendar days. Day arithmetic is plain calendar-day
addition with no timezone or DST adjustment; "today" always comes from the
server clock in UTC.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Optional, Union


def utc_now() -> datetime:
    """Return current datetime in UTC timezone."""
    return datetime.now(timezone.utc)


def utc_today() -> date:
    """Return today's calendar date in UTC."""
    return utc_now().date()


def add_days(day: date, days: int) -> date:
    """Add whole calendar days to a date."""
    return day + timedelta(days=days)


def add_years(day: date, years: int) -> date:
    """
    Add calendar years, clamping Feb 29 to Feb 28 in non-leap years.

    Args:
        day: Starting date
        years: Number of years to add (may be negative)

    Returns:
        Date with the same month and day, ``years`` later
    """
    try:
        return day.replace(year=day.year + years)
    except ValueError:
        return day.replace(year=day.year + years, day=28)


def ensure_aware(dt: Optional[datetime]) -> Optional[datetime]:
    """Ensure datetime is timezone-aware, assuming UTC if naive."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def parse_date(value: Union[str, date, datetime, None]) -> Optional[date]:
    """
    Coerce a stored or transported value to a calendar date.

    Accepts ``date``, ``datetime`` (converted to its UTC date) and ISO-8601
    strings with or without a time part.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_aware(value).astimezone(timezone.utc).date()
    if isinstance(value, date):
        return value
    if "T" in value or " " in value.strip():
        return parse_date(parse_datetime(value))
    return date.fromisoformat(value)


def parse_datetime(value: Union[str, datetime, None]) -> Optional[datetime]:
    """Coerce a stored timestamp to an aware UTC datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    return ensure_aware(value)


def to_iso(value: Union[date, datetime, None]) -> Optional[str]:
    """ISO-8601 string for a date or datetime, or None."""
    if value is None:
        return None
    return value.isoformat()
