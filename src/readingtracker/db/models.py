"""SQLAlchemy ORM models for local SQLite database.

Tables:
- users: Readers and their timezone preference
- books: Books on a reader's shelf
- reading_logs: Pages read per book per local day
- challenges: Reading challenge definitions
- challenge_participants: Readers taking part in a challenge
- achievements: Streak milestones reached by a reader
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from sqlalchemy import ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from ..timezones.dates import DEFAULT_TIMEZONE
from .schemas import BookStatus, ChallengeType


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


def generate_uuid() -> str:
    """Generate a UUID string for primary keys."""
    return str(uuid4())


def utc_timestamp() -> str:
    """Current time as an ISO string."""
    return datetime.now(timezone.utc).isoformat()


class User(Base):
    """User model - a reader and their timezone preference."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    username: Mapped[str] = mapped_column(String(100), nullable=False, unique=True, index=True)
    timezone: Mapped[Optional[str]] = mapped_column(String(64), default=DEFAULT_TIMEZONE)

    created_at: Mapped[str] = mapped_column(String(32), default=utc_timestamp)

    # Relationships
    books: Mapped[list["Book"]] = relationship(
        "Book", back_populates="user", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username='{self.username}', timezone={self.timezone})>"


class Book(Base):
    """Book model - a book on a reader's shelf."""

    __tablename__ = "books"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    title: Mapped[str] = mapped_column(String(500), nullable=False, index=True)
    author: Mapped[str] = mapped_column(String(500), nullable=False)
    genre: Mapped[Optional[str]] = mapped_column(String(100))
    status: Mapped[str] = mapped_column(
        String(20), default=BookStatus.WANT_TO_READ.value, index=True
    )

    # Page tracking
    total_pages: Mapped[int] = mapped_column(Integer, default=0)
    current_page: Mapped[int] = mapped_column(Integer, default=0)
    initial_pages: Mapped[int] = mapped_column(Integer, default=0)  # Read before tracking

    # UTC instant, storage format
    completed_at: Mapped[Optional[str]] = mapped_column(String(32), index=True)

    created_at: Mapped[str] = mapped_column(String(32), default=utc_timestamp)
    updated_at: Mapped[str] = mapped_column(
        String(32), default=utc_timestamp, onupdate=utc_timestamp
    )

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="books")
    reading_logs: Mapped[list["ReadingLog"]] = relationship(
        "ReadingLog", back_populates="book", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Book(id={self.id}, title='{self.title}', status={self.status})>"

    @property
    def progress_percent(self) -> float:
        """Percentage of the book read."""
        if not self.total_pages:
            return 0.0
        return min(100.0, (self.current_page / self.total_pages) * 100)


class ReadingLog(Base):
    """Reading log model - pages read in one book on one local day."""

    __tablename__ = "reading_logs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    book_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("books.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # UTC instant of local midnight, storage format
    date: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    pages_read: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[str] = mapped_column(String(32), default=utc_timestamp)

    # Relationships
    book: Mapped["Book"] = relationship("Book", back_populates="reading_logs")

    __table_args__ = (
        UniqueConstraint("user_id", "book_id", "date", name="uq_reading_log_day"),
    )

    def __repr__(self) -> str:
        return f"<ReadingLog(id={self.id}, book_id={self.book_id}, date={self.date})>"


class Challenge(Base):
    """Challenge model - a reading challenge over a range of calendar days."""

    __tablename__ = "challenges"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    name: Mapped[str] = mapped_column(String(200), nullable=False, unique=True, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text)
    challenge_type: Mapped[str] = mapped_column(
        String(20), default=ChallengeType.PAGES.value
    )
    target: Mapped[int] = mapped_column(Integer, nullable=False)

    # Calendar days, ISO date
    start_date: Mapped[str] = mapped_column(String(10), nullable=False)
    end_date: Mapped[str] = mapped_column(String(10), nullable=False, index=True)

    created_at: Mapped[str] = mapped_column(String(32), default=utc_timestamp)

    # Relationships
    participants: Mapped[list["ChallengeParticipant"]] = relationship(
        "ChallengeParticipant", back_populates="challenge", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Challenge(id={self.id}, name='{self.name}', type={self.challenge_type})>"


class ChallengeParticipant(Base):
    """A reader's membership and progress in a challenge."""

    __tablename__ = "challenge_participants"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    challenge_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("challenges.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    progress: Mapped[int] = mapped_column(Integer, default=0)

    joined_at: Mapped[str] = mapped_column(String(32), default=utc_timestamp)
    updated_at: Mapped[str] = mapped_column(
        String(32), default=utc_timestamp, onupdate=utc_timestamp
    )

    # Relationships
    challenge: Mapped["Challenge"] = relationship("Challenge", back_populates="participants")

    __table_args__ = (
        UniqueConstraint("challenge_id", "user_id", name="uq_challenge_participant"),
    )

    def __repr__(self) -> str:
        return (
            f"<ChallengeParticipant(challenge_id={self.challenge_id}, "
            f"user_id={self.user_id}, progress={self.progress})>"
        )


class Achievement(Base):
    """Achievement model - a milestone reached by a reader."""

    __tablename__ = "achievements"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type: Mapped[str] = mapped_column(String(20), nullable=False, default="streak")
    milestone: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[str] = mapped_column(String(32), default=utc_timestamp)

    __table_args__ = (
        UniqueConstraint("user_id", "type", "milestone", name="uq_achievement_milestone"),
    )

    def __repr__(self) -> str:
        return f"<Achievement(user_id={self.user_id}, type={self.type}, milestone={self.milestone})>"
