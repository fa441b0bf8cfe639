"""Streak milestone achievements."""

import logging
from typing import Optional

from ..db.models import Achievement
from ..db.sqlite import Database, get_db

logger = logging.getLogger(__name__)

STREAK_ACHIEVEMENT = "streak"

STREAK_MILESTONES = (10, 25, 50, 100, 250, 500)


def milestones_reached(streak: int) -> list[int]:
    """Milestones a streak of this length has reached."""
    return [m for m in STREAK_MILESTONES if streak >= m]


def get_milestone_label(milestone: int) -> str:
    """Title for a streak milestone."""
    if milestone >= 500:
        return "Legendary Reader"
    if milestone >= 250:
        return "Master Reader"
    if milestone >= 100:
        return "Dedicated Reader"
    if milestone >= 50:
        return "Committed Reader"
    if milestone >= 25:
        return "Regular Reader"
    return "Getting Started"


class AchievementAwarder:
    """Creates streak achievements for milestones a reader has reached."""

    def __init__(self, db: Optional[Database] = None):
        """Initialize awarder.

        Args:
            db: Database instance
        """
        self.db = db or get_db()

    def check_and_award_streak_achievements(
        self, user_id: str, current_streak: int
    ) -> list[Achievement]:
        """Award every reached milestone the user does not hold yet.

        Args:
            user_id: User ID
            current_streak: Current streak in days

        Returns:
            Newly created achievements only
        """
        awarded = []
        for milestone in milestones_reached(current_streak):
            if self.db.get_achievement(user_id, STREAK_ACHIEVEMENT, milestone):
                continue
            achievement = self.db.create_achievement(user_id, STREAK_ACHIEVEMENT, milestone)
            logger.info("User %s reached the %d-day streak milestone", user_id, milestone)
            awarded.append(achievement)
        return awarded
