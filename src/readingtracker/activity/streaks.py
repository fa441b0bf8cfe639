"""Reading streaks and active-day counts.

Both calculations bucket logs by the reader's local calendar day, not the
server's or UTC's, and take the reference instant as a parameter so results
are reproducible.
"""

from collections.abc import Iterable, Mapping
from datetime import date, datetime
from typing import Any, Optional

from ..errors import InvalidDateError, InvalidLogDateError
from ..timezones.dates import shift_day, to_local_day, utc_now


def log_date_of(log: Any) -> Any:
    """Read the ``date`` of a log given as an object or a mapping."""
    if isinstance(log, Mapping):
        return log.get("date")
    return getattr(log, "date", None)


def reading_days(logs: Iterable[Any], timezone: str) -> set[date]:
    """Distinct local days that have at least one log.

    Raises:
        InvalidLogDateError: If a log has a missing or malformed date.
    """
    days = set()
    for log in logs:
        value = log_date_of(log)
        if value is None:
            raise InvalidLogDateError(f"Reading log without a date: {log!r}")
        try:
            days.add(to_local_day(value, timezone))
        except InvalidDateError as exc:
            raise InvalidLogDateError(f"Reading log has invalid date {value!r}") from exc
    return days


def calculate_reading_streak(
    logs: Iterable[Any],
    timezone: str,
    now: Optional[datetime] = None,
) -> int:
    """Count consecutive local days with reading, ending today or yesterday.

    Today may still be in progress: a streak that last included yesterday is
    kept. Missing both today and yesterday resets it to zero. Only the logs
    passed in are considered, so the streak can never exceed the span of the
    window the caller fetched.

    Args:
        logs: Rows with a ``date`` (instant or calendar day), any order
        timezone: IANA timezone of the reader
        now: Reference instant (default: the real clock)

    Returns:
        Streak length in days
    """
    days = reading_days(logs, timezone)
    if not days:
        return 0

    today = to_local_day(now if now is not None else utc_now(), timezone)
    if today in days:
        anchor = today
    elif shift_day(today, -1) in days:
        anchor = shift_day(today, -1)
    else:
        return 0

    streak = 1
    day = shift_day(anchor, -1)
    while day in days:
        streak += 1
        day = shift_day(day, -1)
    return streak


def get_reading_days_in_period(
    logs: Iterable[Any],
    period_days: int,
    timezone: str,
    now: Optional[datetime] = None,
) -> int:
    """Count distinct local days with reading in a trailing window.

    The window is the ``period_days`` local days ending with today, so a
    period of 7 covers today and the six days before it. Logs dated after
    today are counted too.

    Args:
        logs: Rows with a ``date`` (instant or calendar day), any order
        period_days: Window length in days, must be positive
        timezone: IANA timezone of the reader
        now: Reference instant (default: the real clock)
    """
    if isinstance(period_days, bool) or not isinstance(period_days, int) or period_days <= 0:
        raise ValueError(f"period_days must be a positive integer, got {period_days!r}")

    days = reading_days(logs, timezone)
    today = to_local_day(now if now is not None else utc_now(), timezone)
    cutoff = shift_day(today, -period_days)
    return sum(1 for day in days if day > cutoff)


def longest_streak(logs: Iterable[Any], timezone: str) -> int:
    """Longest run of consecutive local days with reading in the given logs."""
    days = reading_days(logs, timezone)
    best = 0
    for day in days:
        # Only count from the first day of each run
        if shift_day(day, -1) in days:
            continue
        length = 1
        while shift_day(day, length) in days:
            length += 1
        best = max(best, length)
    return best
