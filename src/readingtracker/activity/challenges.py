"""Challenge progress aggregation.

A challenge covers whole calendar days: from 00:00:00.000 on its start day to
23:59:59.999 on its end day, both in the reader's timezone. Page challenges
(``pages``, ``yearly``) sum the pages of reading logs inside that window; book
challenges (``books``, ``genre``) count books completed inside it.
"""

import logging
from collections.abc import Iterable, Mapping
from datetime import datetime, timedelta
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError

from ..db.schemas import BookStatus, ChallengeType
from ..db.sqlite import Database, get_db
from ..errors import InvalidDateError, InvalidLogDateError
from ..timezones.dates import (
    DEFAULT_TIMEZONE,
    local_midnight,
    shift_day,
    to_instant,
    to_local_day,
    utc_now,
)
from ..timezones.resolver import TimezoneResolver
from .schemas import BookCompletion, ChallengeStanding, ChallengeWindow, PageLog
from .streaks import log_date_of

logger = logging.getLogger(__name__)

PAGE_CHALLENGES = (ChallengeType.PAGES, ChallengeType.YEARLY)
BOOK_CHALLENGES = (ChallengeType.BOOKS, ChallengeType.GENRE)


def _as_window(challenge: Any) -> ChallengeWindow:
    if isinstance(challenge, ChallengeWindow):
        return challenge
    return ChallengeWindow.model_validate(challenge)


def _field(row: Any, name: str) -> Any:
    if isinstance(row, Mapping):
        return row.get(name)
    return getattr(row, name, None)


def challenge_window(
    challenge: Any, timezone: str = DEFAULT_TIMEZONE
) -> tuple[datetime, datetime]:
    """Get the first and last instant a challenge counts, in UTC."""
    window = _as_window(challenge)
    start = local_midnight(window.start_date, timezone)
    end = local_midnight(shift_day(window.end_date, 1), timezone) - timedelta(milliseconds=1)
    return start, end


def aggregate_challenge_progress(
    challenge: Any,
    page_logs: Iterable[Any] = (),
    completed_books: Iterable[Any] = (),
    timezone: str = DEFAULT_TIMEZONE,
) -> int:
    """Compute a challenge's progress from rows already fetched.

    Args:
        challenge: Challenge with ``challenge_type``, ``start_date``, ``end_date``
        page_logs: Rows with ``date`` and ``pages_read``
        completed_books: Rows with ``status`` and ``completed_at``
        timezone: IANA timezone the challenge days are read in

    Returns:
        Pages read or books completed in the window; 0 for unknown types
    """
    window = _as_window(challenge)
    start, end = challenge_window(window, timezone)
    challenge_type = window.known_type

    if challenge_type in PAGE_CHALLENGES:
        total = 0
        for log in page_logs:
            value = log_date_of(log)
            if value is None:
                raise InvalidLogDateError(f"Reading log without a date: {log!r}")
            try:
                instant = to_instant(value, timezone)
            except InvalidDateError as exc:
                raise InvalidLogDateError(f"Reading log has invalid date {value!r}") from exc
            if start <= instant <= end:
                total += _pages_of(log)
        return total

    if challenge_type in BOOK_CHALLENGES:
        count = 0
        for book in completed_books:
            if _field(book, "status") != BookStatus.COMPLETED.value:
                continue
            completed_at = _field(book, "completed_at")
            if completed_at is None:
                continue
            if start <= to_instant(completed_at, timezone) <= end:
                count += 1
        return count

    return 0


def _pages_of(log: Any) -> int:
    pages = _field(log, "pages_read")
    if pages is None or isinstance(pages, bool) or not isinstance(pages, int) or pages < 0:
        raise ValueError(f"pages_read must be a non-negative integer, got {pages!r}")
    return pages


class ChallengeProgressCalculator:
    """Fetches a reader's rows for a challenge and aggregates them."""

    def __init__(
        self,
        db: Optional[Database] = None,
        resolver: Optional[TimezoneResolver] = None,
    ):
        """Initialize calculator.

        Args:
            db: Database instance
            resolver: Request-scoped timezone resolver
        """
        self.db = db or get_db()
        self.resolver = resolver or TimezoneResolver(self.db)

    def calculate_challenge_progress(self, user_id: str, challenge: Any) -> int:
        """Calculate a user's progress in a challenge.

        Args:
            user_id: User ID
            challenge: Challenge row or ChallengeWindow

        Returns:
            Progress value (pages or books)
        """
        window = _as_window(challenge)
        timezone = self.resolver.resolve(user_id)
        start, end = challenge_window(window, timezone)
        challenge_type = window.known_type

        if challenge_type in PAGE_CHALLENGES:
            rows = self.db.get_reading_logs(user_id, start=start, end=end)
            logs = [PageLog.model_validate(row) for row in rows]
            return aggregate_challenge_progress(window, page_logs=logs, timezone=timezone)
        if challenge_type in BOOK_CHALLENGES:
            rows = self.db.get_completed_books(user_id, start=start, end=end)
            books = [BookCompletion.model_validate(row) for row in rows]
            return aggregate_challenge_progress(
                window, completed_books=books, timezone=timezone
            )
        return 0

    def update_challenge_progress(self, user_id: str, now: Optional[datetime] = None) -> int:
        """Recompute and store progress for a user's running challenges.

        Storage errors and malformed stored rows are logged rather than raised
        so that callers logging reading are not failed by the refresh.

        Returns:
            Number of participant rows updated
        """
        timezone = self.resolver.resolve(user_id)
        today = to_local_day(now if now is not None else utc_now(), timezone)

        try:
            updated = 0
            for challenge, participant in self.db.get_participations(user_id, active_on=today):
                progress = self.calculate_challenge_progress(user_id, challenge)
                self.db.update_participant_progress(participant.id, progress)
                updated += 1
            return updated
        except (SQLAlchemyError, ValueError):
            logger.exception("Failed to update challenge progress for user %s", user_id)
            return 0

    def get_standings(self, user_id: str) -> list[ChallengeStanding]:
        """Get a user's stored progress in every challenge they joined."""
        return [
            ChallengeStanding(
                challenge_id=challenge.id,
                name=challenge.name,
                challenge_type=challenge.challenge_type,
                target=challenge.target,
                progress=participant.progress,
                start_date=challenge.start_date,
                end_date=challenge.end_date,
            )
            for challenge, participant in self.db.get_participations(user_id)
        ]
