"""Exceptions raised by readingtracker."""


class ReadingTrackerError(Exception):
    """Base class for readingtracker errors."""


class InvalidTimezoneError(ReadingTrackerError, ValueError):
    """Raised when a name is not a known IANA timezone."""


class InvalidDateError(ReadingTrackerError, ValueError):
    """Raised when a value cannot be read as a calendar day or instant."""


class InvalidLogDateError(InvalidDateError):
    """Raised when a reading log handed to the engine has no usable date."""


class UserNotFoundError(ReadingTrackerError, LookupError):
    """Raised when a user does not exist."""


class BookNotFoundError(ReadingTrackerError, LookupError):
    """Raised when a book does not exist or belongs to another user."""


class ChallengeNotFoundError(ReadingTrackerError, LookupError):
    """Raised when a challenge does not exist."""
