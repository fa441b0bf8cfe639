"""Reading activity aggregation.

Provides functionality for:
- Current reading streaks and active days per local calendar day
- Challenge progress over a window of calendar days
- Streak milestone achievements
- Leaderboards of pages read across readers
"""

from .achievements import STREAK_MILESTONES, AchievementAwarder, get_milestone_label
from .challenges import (
    ChallengeProgressCalculator,
    aggregate_challenge_progress,
    challenge_window,
)
from .schemas import (
    ActivitySummary,
    BookCompletion,
    ChallengeWindow,
    DashboardStats,
    HeatmapDay,
    LeaderboardEntry,
    LeaderboardPeriod,
    LogDate,
    PageLog,
    QuickStats,
)
from .service import ActivityService
from .streaks import calculate_reading_streak, get_reading_days_in_period

__all__ = [
    "STREAK_MILESTONES",
    "AchievementAwarder",
    "get_milestone_label",
    "ChallengeProgressCalculator",
    "aggregate_challenge_progress",
    "challenge_window",
    "ActivitySummary",
    "BookCompletion",
    "ChallengeWindow",
    "DashboardStats",
    "HeatmapDay",
    "LeaderboardEntry",
    "LeaderboardPeriod",
    "LogDate",
    "PageLog",
    "QuickStats",
    "ActivityService",
    "calculate_reading_streak",
    "get_reading_days_in_period",
]
