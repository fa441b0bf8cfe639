"""Per-request lookup of a user's timezone preference."""

import logging
from typing import TYPE_CHECKING, Optional

from sqlalchemy.exc import SQLAlchemyError

from .dates import DEFAULT_TIMEZONE, is_valid_timezone

if TYPE_CHECKING:
    from ..db.sqlite import Database

logger = logging.getLogger(__name__)


class TimezoneResolver:
    """Resolves user ids to IANA timezone names.

    Create one resolver per request: lookups are memoized on the instance, so
    repeated calls for the same user within a request hit storage once and
    nothing is shared between requests.
    """

    def __init__(self, db: "Database", default_timezone: str = DEFAULT_TIMEZONE):
        """Initialize resolver.

        Args:
            db: Database to read preferences from
            default_timezone: Zone used when a preference is missing or unusable
        """
        self.db = db
        self.default_timezone = default_timezone
        self._cache: dict[str, str] = {}

    def resolve(self, user_id: str) -> str:
        """Get a user's timezone, falling back to the default. Never raises."""
        if user_id in self._cache:
            return self._cache[user_id]

        try:
            tz = self.db.get_user_timezone(user_id)
        except SQLAlchemyError:
            logger.warning(
                "Timezone lookup failed for user %s, using %s",
                user_id,
                self.default_timezone,
                exc_info=True,
            )
            # Not cached: the next call in this request may succeed
            return self.default_timezone

        if not tz:
            tz = self.default_timezone
        elif not is_valid_timezone(tz):
            logger.warning(
                "User %s has unknown timezone %r, using %s",
                user_id,
                tz,
                self.default_timezone,
            )
            tz = self.default_timezone

        self._cache[user_id] = tz
        return tz

    def forget(self, user_id: str) -> None:
        """Drop a cached entry, e.g. after the user changed their timezone."""
        self._cache.pop(user_id, None)

    def clear(self) -> None:
        """Drop all cached entries."""
        self._cache.clear()

    def cached(self, user_id: str) -> Optional[str]:
        """Get a cached timezone without looking it up."""
        return self._cache.get(user_id)
