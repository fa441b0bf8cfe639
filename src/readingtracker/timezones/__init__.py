"""Timezone handling.

Provides functionality for:
- Resolving a user's IANA timezone once per request
- Mapping instants to calendar days in a timezone and back
"""

from .dates import (
    DEFAULT_TIMEZONE,
    format_date_in_timezone,
    format_datetime_in_timezone,
    get_start_of_day_in_timezone,
    get_timezone_offset,
    get_today_in_timezone,
    is_valid_timezone,
    parse_date_in_timezone,
)
from .resolver import TimezoneResolver

__all__ = [
    "DEFAULT_TIMEZONE",
    "TimezoneResolver",
    "format_date_in_timezone",
    "format_datetime_in_timezone",
    "get_start_of_day_in_timezone",
    "get_timezone_offset",
    "get_today_in_timezone",
    "is_valid_timezone",
    "parse_date_in_timezone",
]
