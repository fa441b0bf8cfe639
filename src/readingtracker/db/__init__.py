"""Database module for local SQLite storage."""

from .models import Achievement, Book, Challenge, ChallengeParticipant, ReadingLog, User
from .schemas import BookCreate, BookStatus, ChallengeCreate, ChallengeType, ReadingLogCreate, UserCreate
from .sqlite import Database, get_db

__all__ = [
    "Achievement",
    "Book",
    "Challenge",
    "ChallengeParticipant",
    "ReadingLog",
    "User",
    "BookCreate",
    "BookStatus",
    "ChallengeCreate",
    "ChallengeType",
    "ReadingLogCreate",
    "UserCreate",
    "Database",
    "get_db",
]
