"""Activity service: fetches a reader's rows and shapes aggregated results.

Each service instance stands for one request. It owns a TimezoneResolver, so a
reader's timezone is looked up at most once per instance.
"""

from collections import defaultdict
from datetime import datetime
from typing import Optional

from ..config import get_config
from ..db.models import Achievement, Book, ReadingLog, User
from ..db.schemas import BookStatus, ReadingLogCreate
from ..db.sqlite import Database, get_db
from ..errors import BookNotFoundError, InvalidTimezoneError, UserNotFoundError
from ..timezones.dates import (
    format_date_in_timezone,
    get_today_in_timezone,
    is_valid_timezone,
    local_midnight,
    parse_date_in_timezone,
    shift_day,
    to_local_day,
    utc_now,
)
from ..timezones.resolver import TimezoneResolver
from .achievements import AchievementAwarder
from .challenges import ChallengeProgressCalculator
from .schemas import (
    ActivitySummary,
    DashboardStats,
    HeatmapDay,
    LeaderboardEntry,
    LeaderboardPeriod,
    LogDate,
    QuickStats,
)
from .streaks import calculate_reading_streak, get_reading_days_in_period

WEEK_DAYS = 7
MONTH_DAYS = 30

LEADERBOARD_DAYS = {
    LeaderboardPeriod.TODAY: 1,
    LeaderboardPeriod.WEEK: WEEK_DAYS,
    LeaderboardPeriod.MONTH: MONTH_DAYS,
}


class ActivityService:
    """Reading activity for one request."""

    def __init__(
        self,
        db: Optional[Database] = None,
        resolver: Optional[TimezoneResolver] = None,
        lookback_days: Optional[int] = None,
    ):
        """Initialize service.

        Args:
            db: Database instance
            resolver: Timezone resolver (default: a fresh one for this service)
            lookback_days: Local days of history fetched for streaks. A streak
                longer than this is reported as this many days.
        """
        config = get_config()
        self.db = db or get_db()
        self.resolver = resolver or TimezoneResolver(self.db, config.default_timezone)
        self.lookback_days = (
            lookback_days if lookback_days is not None else config.streak_lookback_days
        )
        if self.lookback_days <= 0:
            raise ValueError(f"lookback_days must be positive, got {self.lookback_days}")

    # -------------------------------------------------------------------------
    # Aggregates
    # -------------------------------------------------------------------------

    def _recent_logs(self, user_id: str, tz: str, now: Optional[datetime]) -> list[LogDate]:
        today = to_local_day(now if now is not None else utc_now(), tz)
        start = local_midnight(shift_day(today, -(self.lookback_days - 1)), tz)
        rows = self.db.get_reading_logs(user_id, start=start)
        return [LogDate.model_validate(row) for row in rows]

    def get_activity_summary(
        self, user_id: str, now: Optional[datetime] = None
    ) -> ActivitySummary:
        """Get streak and active days for the last week and month."""
        tz = self.resolver.resolve(user_id)
        logs = self._recent_logs(user_id, tz, now)
        return ActivitySummary(
            reading_streak=calculate_reading_streak(logs, tz, now=now),
            days_read_this_week=get_reading_days_in_period(logs, WEEK_DAYS, tz, now=now),
            days_read_this_month=get_reading_days_in_period(logs, MONTH_DAYS, tz, now=now),
        )

    def get_reading_streak(self, user_id: str, now: Optional[datetime] = None) -> int:
        """Get the current reading streak."""
        tz = self.resolver.resolve(user_id)
        return calculate_reading_streak(self._recent_logs(user_id, tz, now), tz, now=now)

    def _total_pages(self, user_id: str, books: list[Book]) -> int:
        return self.db.sum_pages_read(user_id) + sum(b.initial_pages or 0 for b in books)

    def get_quick_stats(self, user_id: str, now: Optional[datetime] = None) -> QuickStats:
        """Get book and page totals with the current streak."""
        books = self.db.list_books(user_id)
        total_books = len(books)
        total_pages = self._total_pages(user_id, books)
        streak = self.get_reading_streak(user_id, now=now)

        text = (
            f"{total_books} book{'s' if total_books != 1 else ''}, "
            f"{total_pages:,} pages, {streak}-day streak"
        )
        return QuickStats(
            total_books=total_books,
            total_pages_read=total_pages,
            reading_streak=streak,
            text=text,
        )

    def get_dashboard_stats(
        self, user_id: str, now: Optional[datetime] = None
    ) -> DashboardStats:
        """Get everything the dashboard shows."""
        tz = self.resolver.resolve(user_id)
        summary = self.get_activity_summary(user_id, now=now)

        books = self.db.list_books(user_id)
        total_books = len(books)
        completed = sum(1 for b in books if b.status == BookStatus.COMPLETED.value)
        percentage = round(completed / total_books * 100) if total_books else 0

        return DashboardStats(
            **summary.model_dump(),
            total_books=total_books,
            completed_books=completed,
            completion_percentage=percentage,
            total_pages_read=self._total_pages(user_id, books),
            today_pages=self.db.sum_pages_read(
                user_id, since=get_today_in_timezone(tz, now=now)
            ),
        )

    def get_reading_heatmap(
        self,
        user_id: str,
        days: Optional[int] = 365,
        now: Optional[datetime] = None,
    ) -> list[HeatmapDay]:
        """Get pages read per local day.

        Args:
            user_id: User ID
            days: Local days ending today to include, None for all history
            now: Reference instant (default: the real clock)
        """
        tz = self.resolver.resolve(user_id)
        start = None
        if days is not None:
            if days <= 0:
                raise ValueError(f"days must be positive, got {days}")
            today = to_local_day(now if now is not None else utc_now(), tz)
            start = local_midnight(shift_day(today, -(days - 1)), tz)

        pages_by_day: dict[str, int] = defaultdict(int)
        for log in self.db.get_reading_logs(user_id, start=start):
            entry = LogDate.model_validate(log)
            pages_by_day[format_date_in_timezone(entry.date, tz)] += log.pages_read or 0

        return [HeatmapDay(date=day, pages=pages) for day, pages in sorted(pages_by_day.items())]

    def get_leaderboard(
        self,
        period: LeaderboardPeriod = LeaderboardPeriod.ALL_TIME,
        now: Optional[datetime] = None,
    ) -> list[LeaderboardEntry]:
        """Rank readers by pages read in a trailing period.

        The period covers whole local days in the resolver's default
        timezone: today for ``today``, the last 7 days for ``week`` and the
        last 30 for ``month``, each including today. Readers with no pages in
        the period are left out. Ties keep a stable order by username.
        """
        period = LeaderboardPeriod(period)
        since = None
        if period in LEADERBOARD_DAYS:
            tz = self.resolver.default_timezone
            today = to_local_day(now if now is not None else utc_now(), tz)
            since = local_midnight(shift_day(today, -(LEADERBOARD_DAYS[period] - 1)), tz)

        book_counts = self.db.count_books_by_user()
        return [
            LeaderboardEntry(
                rank=rank,
                user_id=user_id,
                username=username,
                total_pages=total_pages,
                book_count=book_counts.get(user_id, 0),
            )
            for rank, (user_id, username, total_pages) in enumerate(
                self.db.sum_pages_by_user(since=since), start=1
            )
        ]

    def award_streak_achievements(
        self, user_id: str, now: Optional[datetime] = None
    ) -> tuple[int, list[Achievement]]:
        """Award milestones for the current streak.

        Returns:
            Current streak and the achievements created by this call
        """
        streak = self.get_reading_streak(user_id, now=now)
        awarded = AchievementAwarder(self.db).check_and_award_streak_achievements(
            user_id, streak
        )
        return streak, awarded

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def log_reading(
        self,
        user_id: str,
        book_id: str,
        pages_read: int,
        date_string: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> ReadingLog:
        """Log pages read in a book on a local day.

        Logging the same book twice on one day adds to the existing entry.

        Args:
            user_id: User ID
            book_id: Book ID, must belong to the user
            pages_read: Pages read, must be positive
            date_string: Local day as YYYY-MM-DD (default: today)
            now: Reference instant (default: the real clock)

        Returns:
            The created or updated log
        """
        if pages_read <= 0:
            raise ValueError(f"pages_read must be positive, got {pages_read}")

        book = self.db.get_book(book_id)
        if not book or book.user_id != user_id:
            raise BookNotFoundError(f"Book not found: {book_id}")

        tz = self.resolver.resolve(user_id)
        if date_string:
            day = parse_date_in_timezone(date_string, tz)
        else:
            day = get_today_in_timezone(tz, now=now)

        existing = self.db.get_reading_log(user_id, book_id, day)
        if existing:
            log = self.db.add_pages_to_log(existing.id, pages_read)
        else:
            log = self.db.create_reading_log(
                ReadingLogCreate(
                    user_id=user_id, book_id=book_id, date=day, pages_read=pages_read
                )
            )

        self.db.advance_book(book_id, pages_read)
        ChallengeProgressCalculator(self.db, self.resolver).update_challenge_progress(
            user_id, now=now
        )
        return log

    def complete_book(
        self,
        user_id: str,
        book_id: str,
        date_string: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Book:
        """Mark a book completed, now or at the start of a local day."""
        book = self.db.get_book(book_id)
        if not book or book.user_id != user_id:
            raise BookNotFoundError(f"Book not found: {book_id}")

        if date_string:
            completed_at = parse_date_in_timezone(date_string, self.resolver.resolve(user_id))
        else:
            completed_at = now if now is not None else utc_now()

        book = self.db.complete_book(book_id, completed_at)
        ChallengeProgressCalculator(self.db, self.resolver).update_challenge_progress(
            user_id, now=now
        )
        return book

    def set_timezone(self, user_id: str, tz: str) -> User:
        """Change a user's timezone preference."""
        if not is_valid_timezone(tz):
            raise InvalidTimezoneError(f"Unknown timezone: {tz}")
        user = self.db.update_user_timezone(user_id, tz)
        if not user:
            raise UserNotFoundError(f"User not found: {user_id}")
        self.resolver.forget(user_id)
        return user
