"""Pydantic schemas for activity aggregation inputs and results."""

from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from ..db.schemas import ChallengeType


# ============================================================================
# Inputs
# ============================================================================


class LogDate(BaseModel):
    """A reading log reduced to its day."""

    date: datetime

    model_config = {"from_attributes": True}


class PageLog(LogDate):
    """A reading log with the pages read that day."""

    pages_read: int = Field(..., ge=0)


class BookCompletion(BaseModel):
    """A book reduced to its completion state."""

    status: str
    completed_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ChallengeWindow(BaseModel):
    """A challenge reduced to what progress aggregation needs."""

    id: str
    challenge_type: str
    start_date: date
    end_date: date

    model_config = {"from_attributes": True}

    @property
    def known_type(self) -> Optional[ChallengeType]:
        """The challenge type, or None if it is not one we aggregate."""
        try:
            return ChallengeType(self.challenge_type)
        except ValueError:
            return None


# ============================================================================
# Results
# ============================================================================


class ActivitySummary(BaseModel):
    """Streak and recent activity of a reader."""

    reading_streak: int
    days_read_this_week: int
    days_read_this_month: int


class QuickStats(BaseModel):
    """One-line reading totals."""

    total_books: int
    total_pages_read: int
    reading_streak: int
    text: str


class DashboardStats(ActivitySummary):
    """Totals and activity for a reader's dashboard."""

    total_books: int
    completed_books: int
    completion_percentage: int
    total_pages_read: int
    today_pages: int


class HeatmapDay(BaseModel):
    """Pages read on one local day."""

    date: str  # YYYY-MM-DD
    pages: int


class ChallengeStanding(BaseModel):
    """A reader's progress in one challenge."""

    challenge_id: str
    name: str
    challenge_type: str
    target: int
    progress: int
    start_date: date
    end_date: date

    @property
    def progress_percent(self) -> float:
        """Progress as a percentage of the target."""
        if self.target <= 0:
            return 0.0
        return min(100.0, (self.progress / self.target) * 100)


class LeaderboardPeriod(str, Enum):
    """Trailing window a leaderboard ranks pages over."""

    TODAY = "today"
    WEEK = "week"
    MONTH = "month"
    ALL_TIME = "all-time"


class LeaderboardEntry(BaseModel):
    """One reader's place on the leaderboard."""

    rank: int
    user_id: str
    username: str
    total_pages: int
    book_count: int
