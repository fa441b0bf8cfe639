"""Calendar-day helpers for IANA timezones.

Instants are handled as timezone-aware UTC datetimes. A calendar day in a
timezone is represented either as a ``date`` (the local day) or as the UTC
instant of that day's local midnight (a "day instant"). Two instants that fall
on the same local day always map to the same ``date`` and the same day instant,
so both are safe to use as dictionary keys.

Naive datetimes are read as UTC.
"""

import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError, available_timezones

from ..errors import InvalidDateError, InvalidTimezoneError

DEFAULT_TIMEZONE = "Asia/Kolkata"

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# Fixed width so that stored values sort the same way as the instants they hold
STORAGE_FORMAT = "%Y-%m-%dT%H:%M:%S.%f+00:00"

DateLike = Union[datetime, date, str]


def get_zone(name: str) -> ZoneInfo:
    """Get the ZoneInfo for an IANA timezone name.

    Raises:
        InvalidTimezoneError: If the name is not a known timezone.
    """
    if not isinstance(name, str) or not name:
        raise InvalidTimezoneError(f"Invalid timezone: {name!r}")
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, OSError) as exc:
        raise InvalidTimezoneError(f"Unknown timezone: {name}") from exc


def is_valid_timezone(name: str) -> bool:
    """Check whether a name is a known IANA timezone."""
    try:
        get_zone(name)
    except InvalidTimezoneError:
        return False
    return True


def list_timezones() -> list[str]:
    """All known IANA timezone names, sorted."""
    return sorted(available_timezones())


def as_utc(instant: datetime) -> datetime:
    """Return an aware UTC datetime for an instant."""
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)


def utc_now() -> datetime:
    """Current instant as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def parse_calendar_date(date_string: str) -> date:
    """Parse a ``YYYY-MM-DD`` string.

    Raises:
        InvalidDateError: If the string is not a valid calendar day.
    """
    if not isinstance(date_string, str) or not DATE_PATTERN.match(date_string):
        raise InvalidDateError(f"Expected YYYY-MM-DD, got {date_string!r}")
    try:
        return date.fromisoformat(date_string)
    except ValueError as exc:
        raise InvalidDateError(f"Invalid calendar date: {date_string}") from exc


def format_date_in_timezone(instant: datetime, tz: str) -> str:
    """Format an instant as ``YYYY-MM-DD`` in the given timezone."""
    return to_local_day(instant, tz).isoformat()


def local_midnight(day: date, tz: str) -> datetime:
    """UTC instant of local midnight for a calendar day in a timezone.

    When midnight falls inside a DST gap the first existing instant of the
    local day is returned.
    """
    zone = get_zone(tz)
    # fold=0 resolves a skipped midnight with the pre-transition offset,
    # which lands on the first instant that exists on that local day
    return datetime.combine(day, time.min, tzinfo=zone).astimezone(timezone.utc)


def parse_date_in_timezone(date_string: str, tz: str) -> datetime:
    """Parse ``YYYY-MM-DD`` as a calendar day in the given timezone.

    Returns:
        UTC instant of 00:00:00 on that day in ``tz``
    """
    return local_midnight(parse_calendar_date(date_string), tz)


def get_start_of_day_in_timezone(instant: datetime, tz: str) -> datetime:
    """Get the day instant of the local day an instant falls on."""
    return local_midnight(to_local_day(instant, tz), tz)


def get_today_in_timezone(tz: str, now: Optional[datetime] = None) -> datetime:
    """Get the day instant of the current local day in a timezone.

    Args:
        tz: IANA timezone name
        now: Reference instant (default: the real clock)
    """
    return get_start_of_day_in_timezone(now if now is not None else utc_now(), tz)


def shift_day(day: date, days: int) -> date:
    """Move a calendar day by a number of days."""
    return day + timedelta(days=days)


def to_local_day(value: DateLike, tz: str) -> date:
    """Map an instant or calendar-day value to the local day in a timezone.

    ``date`` objects and ``YYYY-MM-DD`` strings already name a calendar day
    and are returned as-is. Datetimes and ISO datetime strings are converted
    from their instant.

    Raises:
        InvalidDateError: If the value is missing or malformed.
    """
    zone = get_zone(tz)
    if isinstance(value, datetime):
        return as_utc(value).astimezone(zone).date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        if DATE_PATTERN.match(value):
            return parse_calendar_date(value)
        return as_utc(_parse_iso_datetime(value)).astimezone(zone).date()
    raise InvalidDateError(f"Expected a date or datetime, got {value!r}")


def to_instant(value: DateLike, tz: str) -> datetime:
    """Map an instant or calendar-day value to an aware UTC instant.

    Calendar days become local midnight in ``tz``.

    Raises:
        InvalidDateError: If the value is missing or malformed.
    """
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, date):
        return local_midnight(value, tz)
    if isinstance(value, str):
        if DATE_PATTERN.match(value):
            return parse_date_in_timezone(value, tz)
        return as_utc(_parse_iso_datetime(value))
    raise InvalidDateError(f"Expected a date or datetime, got {value!r}")


def _parse_iso_datetime(value: str) -> datetime:
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as exc:
        raise InvalidDateError(f"Invalid datetime: {value}") from exc


def format_datetime_in_timezone(instant: datetime, tz: str) -> str:
    """Format an instant for display, e.g. ``Jan 2, 2025, 5:29 AM``."""
    local = as_utc(instant).astimezone(get_zone(tz))
    hour = local.hour % 12 or 12
    meridiem = "AM" if local.hour < 12 else "PM"
    return f"{local:%b} {local.day}, {local.year}, {hour}:{local.minute:02d} {meridiem}"


def get_timezone_offset(instant: datetime, tz: str) -> float:
    """Get the UTC offset of a timezone at an instant, in hours."""
    local = as_utc(instant).astimezone(get_zone(tz))
    offset = local.utcoffset() or timedelta(0)
    return offset.total_seconds() / 3600


def to_storage(instant: datetime) -> str:
    """Serialize an instant for storage as a fixed-width UTC string."""
    return as_utc(instant).strftime(STORAGE_FORMAT)


def from_storage(value: str) -> datetime:
    """Deserialize an instant written by :func:`to_storage`."""
    return as_utc(_parse_iso_datetime(value))
