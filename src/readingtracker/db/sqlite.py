"""SQLite database operations.

Handles database connection, session management, and CRUD operations.
"""

import os
from contextlib import contextmanager
from datetime import date, datetime
from pathlib import Path
from typing import Generator, Optional

from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..timezones.dates import to_storage
from .models import (
    Achievement,
    Base,
    Book,
    Challenge,
    ChallengeParticipant,
    ReadingLog,
    User,
)
from .schemas import BookCreate, BookStatus, ChallengeCreate, ReadingLogCreate, UserCreate


class Database:
    """Database connection and operations manager."""

    def __init__(self, db_path: Optional[str] = None):
        """Initialize database connection.

        Args:
            db_path: Path to SQLite database file. If None, uses
                     READINGTRACKER_DB_PATH env var or default location.
        """
        if db_path is None:
            db_path = os.environ.get(
                "READINGTRACKER_DB_PATH",
                str(Path.home() / ".readingtracker" / "reading.db"),
            )

        self.db_path = Path(db_path)
        self._is_memory = str(db_path) == ":memory:"

        if not self._is_memory:
            self._ensure_directory()

        # For in-memory databases, use StaticPool to reuse the same connection
        # This ensures all sessions share the same in-memory database
        if self._is_memory:
            self.engine = create_engine(
                "sqlite:///:memory:",
                echo=False,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            self.engine = create_engine(
                f"sqlite:///{self.db_path}",
                echo=False,
                connect_args={"check_same_thread": False},
            )
        self.SessionLocal = sessionmaker(bind=self.engine, autocommit=False, autoflush=False)

    def _ensure_directory(self) -> None:
        """Ensure the database directory exists."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def create_tables(self) -> None:
        """Create all database tables."""
        Base.metadata.create_all(self.engine)

    def drop_tables(self) -> None:
        """Drop all database tables. Use with caution!"""
        Base.metadata.drop_all(self.engine)

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """Get a database session context manager."""
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    # ========================================================================
    # User Operations
    # ========================================================================

    def create_user(self, user: UserCreate, default_timezone: Optional[str] = None) -> User:
        """Create a new user."""
        with self.get_session() as s:
            db_user = User(username=user.username)
            if user.timezone or default_timezone:
                db_user.timezone = user.timezone or default_timezone
            s.add(db_user)
            s.flush()
            s.expunge(db_user)
            return db_user

    def get_user(self, user_id: str) -> Optional[User]:
        """Get a user by ID."""
        with self.get_session() as s:
            user = s.get(User, user_id)
            if user:
                s.expunge(user)
            return user

    def get_user_by_username(self, username: str) -> Optional[User]:
        """Get a user by username."""
        with self.get_session() as s:
            stmt = select(User).where(User.username == username)
            user = s.execute(stmt).scalar_one_or_none()
            if user:
                s.expunge(user)
            return user

    def get_user_timezone(self, user_id: str) -> Optional[str]:
        """Get the stored timezone preference of a user, if any."""
        with self.get_session() as s:
            stmt = select(User.timezone).where(User.id == user_id)
            return s.execute(stmt).scalar_one_or_none()

    def update_user_timezone(self, user_id: str, tz: str) -> Optional[User]:
        """Update a user's timezone preference."""
        with self.get_session() as s:
            user = s.get(User, user_id)
            if not user:
                return None
            user.timezone = tz
            s.flush()
            s.expunge(user)
            return user

    # ========================================================================
    # Book Operations
    # ========================================================================

    def create_book(
        self, user_id: str, book: BookCreate, session: Optional[Session] = None
    ) -> Book:
        """Create a new book record."""

        def _create(s: Session) -> Book:
            db_book = Book(
                user_id=user_id,
                title=book.title,
                author=book.author,
                genre=book.genre,
                status=book.status.value,
                total_pages=book.total_pages,
                current_page=book.current_page,
                initial_pages=book.initial_pages,
                completed_at=to_storage(book.completed_at) if book.completed_at else None,
            )
            s.add(db_book)
            s.flush()
            return db_book

        if session:
            return _create(session)
        else:
            with self.get_session() as s:
                db_book = _create(s)
                s.expunge(db_book)
                return db_book

    def get_book(self, book_id: str) -> Optional[Book]:
        """Get a book by ID."""
        with self.get_session() as s:
            book = s.get(Book, book_id)
            if book:
                s.expunge(book)
            return book

    def find_book(self, user_id: str, query: str) -> Optional[Book]:
        """Find one of a user's books by title.

        An exact (case-insensitive) title match wins over a partial one.
        """
        with self.get_session() as s:
            stmt = select(Book).where(
                Book.user_id == user_id, func.lower(Book.title) == query.lower()
            )
            book = s.execute(stmt).scalars().first()
            if not book:
                stmt = (
                    select(Book)
                    .where(Book.user_id == user_id, Book.title.ilike(f"%{query}%"))
                    .order_by(Book.title)
                )
                book = s.execute(stmt).scalars().first()
            if book:
                s.expunge(book)
            return book

    def list_books(self, user_id: str) -> list[Book]:
        """Get all of a user's books."""
        with self.get_session() as s:
            stmt = select(Book).where(Book.user_id == user_id).order_by(Book.title)
            books = list(s.execute(stmt).scalars().all())
            for book in books:
                s.expunge(book)
            return books

    def complete_book(self, book_id: str, completed_at: datetime) -> Optional[Book]:
        """Mark a book completed at an instant."""
        with self.get_session() as s:
            book = s.get(Book, book_id)
            if not book:
                return None
            book.status = BookStatus.COMPLETED.value
            book.completed_at = to_storage(completed_at)
            if book.total_pages:
                book.current_page = book.total_pages
            s.flush()
            s.expunge(book)
            return book

    def advance_book(self, book_id: str, pages: int) -> Optional[Book]:
        """Move a book's current page forward, capped at its last page."""
        with self.get_session() as s:
            book = s.get(Book, book_id)
            if not book:
                return None
            current = max(0, book.current_page + pages)
            book.current_page = min(current, book.total_pages) if book.total_pages else current
            s.flush()
            s.expunge(book)
            return book

    def get_completed_books(
        self,
        user_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[Book]:
        """Get books a user completed, optionally within [start, end]."""
        with self.get_session() as s:
            stmt = select(Book).where(
                Book.user_id == user_id,
                Book.status == BookStatus.COMPLETED.value,
                Book.completed_at.is_not(None),
            )
            if start:
                stmt = stmt.where(Book.completed_at >= to_storage(start))
            if end:
                stmt = stmt.where(Book.completed_at <= to_storage(end))
            books = list(s.execute(stmt).scalars().all())
            for book in books:
                s.expunge(book)
            return books

    # ========================================================================
    # Reading Log Operations
    # ========================================================================

    def create_reading_log(
        self, log: ReadingLogCreate, session: Optional[Session] = None
    ) -> ReadingLog:
        """Create a new reading log entry."""

        def _create(s: Session) -> ReadingLog:
            db_log = ReadingLog(
                user_id=log.user_id,
                book_id=log.book_id,
                date=to_storage(log.date),
                pages_read=log.pages_read,
            )
            s.add(db_log)
            s.flush()
            return db_log

        if session:
            return _create(session)
        else:
            with self.get_session() as s:
                db_log = _create(s)
                s.expunge(db_log)
                return db_log

    def get_reading_log(
        self, user_id: str, book_id: str, day: datetime
    ) -> Optional[ReadingLog]:
        """Get the log of a book on the local day starting at ``day``."""
        with self.get_session() as s:
            stmt = select(ReadingLog).where(
                ReadingLog.user_id == user_id,
                ReadingLog.book_id == book_id,
                ReadingLog.date == to_storage(day),
            )
            log = s.execute(stmt).scalar_one_or_none()
            if log:
                s.expunge(log)
            return log

    def add_pages_to_log(self, log_id: str, pages: int) -> Optional[ReadingLog]:
        """Add pages to an existing reading log."""
        with self.get_session() as s:
            log = s.get(ReadingLog, log_id)
            if not log:
                return None
            log.pages_read += pages
            s.flush()
            s.expunge(log)
            return log

    def get_reading_logs(
        self,
        user_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[ReadingLog]:
        """Get a user's reading logs, newest first, optionally within [start, end]."""
        with self.get_session() as s:
            stmt = select(ReadingLog).where(ReadingLog.user_id == user_id)
            if start:
                stmt = stmt.where(ReadingLog.date >= to_storage(start))
            if end:
                stmt = stmt.where(ReadingLog.date <= to_storage(end))
            stmt = stmt.order_by(ReadingLog.date.desc())
            logs = list(s.execute(stmt).scalars().all())
            for log in logs:
                s.expunge(log)
            return logs

    def sum_pages_read(self, user_id: str, since: Optional[datetime] = None) -> int:
        """Total pages in a user's reading logs, optionally since an instant."""
        with self.get_session() as s:
            stmt = select(func.coalesce(func.sum(ReadingLog.pages_read), 0)).where(
                ReadingLog.user_id == user_id
            )
            if since:
                stmt = stmt.where(ReadingLog.date >= to_storage(since))
            return int(s.execute(stmt).scalar_one())

    def sum_pages_by_user(
        self, since: Optional[datetime] = None
    ) -> list[tuple[str, str, int]]:
        """Total pages per user, most pages first.

        Users without pages in the range are left out.

        Returns:
            List of (user_id, username, total_pages)
        """
        with self.get_session() as s:
            total = func.sum(ReadingLog.pages_read)
            stmt = select(User.id, User.username, total.label("total_pages")).join(
                ReadingLog, ReadingLog.user_id == User.id
            )
            if since:
                stmt = stmt.where(ReadingLog.date >= to_storage(since))
            stmt = (
                stmt.group_by(User.id, User.username)
                .having(total > 0)
                .order_by(total.desc(), User.username)
            )
            return [(row.id, row.username, int(row.total_pages)) for row in s.execute(stmt)]

    def count_books_by_user(self) -> dict[str, int]:
        """Number of books on each user's shelf."""
        with self.get_session() as s:
            stmt = select(Book.user_id, func.count(Book.id)).group_by(Book.user_id)
            return {user_id: count for user_id, count in s.execute(stmt)}

    # ========================================================================
    # Challenge Operations
    # ========================================================================

    def create_challenge(self, challenge: ChallengeCreate) -> Challenge:
        """Create a new challenge."""
        with self.get_session() as s:
            db_challenge = Challenge(
                name=challenge.name,
                description=challenge.description,
                challenge_type=challenge.challenge_type.value,
                target=challenge.target,
                start_date=challenge.start_date.isoformat(),
                end_date=challenge.end_date.isoformat(),
            )
            s.add(db_challenge)
            s.flush()
            s.expunge(db_challenge)
            return db_challenge

    def get_challenge(self, challenge_id: str) -> Optional[Challenge]:
        """Get a challenge by ID."""
        with self.get_session() as s:
            challenge = s.get(Challenge, challenge_id)
            if challenge:
                s.expunge(challenge)
            return challenge

    def get_challenge_by_name(self, name: str) -> Optional[Challenge]:
        """Get a challenge by name (case-insensitive)."""
        with self.get_session() as s:
            stmt = select(Challenge).where(func.lower(Challenge.name) == name.lower())
            challenge = s.execute(stmt).scalar_one_or_none()
            if challenge:
                s.expunge(challenge)
            return challenge

    def join_challenge(self, challenge_id: str, user_id: str) -> ChallengeParticipant:
        """Add a user to a challenge. Joining twice returns the existing entry."""
        with self.get_session() as s:
            stmt = select(ChallengeParticipant).where(
                ChallengeParticipant.challenge_id == challenge_id,
                ChallengeParticipant.user_id == user_id,
            )
            participant = s.execute(stmt).scalar_one_or_none()
            if not participant:
                participant = ChallengeParticipant(challenge_id=challenge_id, user_id=user_id)
                s.add(participant)
                s.flush()
            s.expunge(participant)
            return participant

    def get_participations(
        self, user_id: str, active_on: Optional[date] = None
    ) -> list[tuple[Challenge, ChallengeParticipant]]:
        """Get the challenges a user takes part in with their participant rows.

        Args:
            user_id: User ID
            active_on: Only challenges whose end date is on or after this day
        """
        with self.get_session() as s:
            stmt = (
                select(Challenge, ChallengeParticipant)
                .join(ChallengeParticipant, ChallengeParticipant.challenge_id == Challenge.id)
                .where(ChallengeParticipant.user_id == user_id)
            )
            if active_on:
                stmt = stmt.where(Challenge.end_date >= active_on.isoformat())
            stmt = stmt.order_by(Challenge.end_date)

            rows = [(c, p) for c, p in s.execute(stmt).all()]
            for challenge, participant in rows:
                s.expunge(challenge)
                s.expunge(participant)
            return rows

    def update_participant_progress(
        self, participant_id: str, progress: int
    ) -> Optional[ChallengeParticipant]:
        """Store a participant's progress."""
        with self.get_session() as s:
            participant = s.get(ChallengeParticipant, participant_id)
            if not participant:
                return None
            participant.progress = progress
            s.flush()
            s.expunge(participant)
            return participant

    # ========================================================================
    # Achievement Operations
    # ========================================================================

    def get_achievement(
        self, user_id: str, achievement_type: str, milestone: int
    ) -> Optional[Achievement]:
        """Get an achievement by its unique (user, type, milestone) key."""
        with self.get_session() as s:
            stmt = select(Achievement).where(
                Achievement.user_id == user_id,
                Achievement.type == achievement_type,
                Achievement.milestone == milestone,
            )
            achievement = s.execute(stmt).scalar_one_or_none()
            if achievement:
                s.expunge(achievement)
            return achievement

    def create_achievement(
        self, user_id: str, achievement_type: str, milestone: int
    ) -> Achievement:
        """Create an achievement row."""
        with self.get_session() as s:
            achievement = Achievement(
                user_id=user_id, type=achievement_type, milestone=milestone
            )
            s.add(achievement)
            s.flush()
            s.expunge(achievement)
            return achievement

    def list_achievements(self, user_id: str) -> list[Achievement]:
        """Get all achievements of a user, smallest milestone first."""
        with self.get_session() as s:
            stmt = (
                select(Achievement)
                .where(Achievement.user_id == user_id)
                .order_by(Achievement.type, Achievement.milestone)
            )
            achievements = list(s.execute(stmt).scalars().all())
            for achievement in achievements:
                s.expunge(achievement)
            return achievements


# Global database instance
_db: Optional[Database] = None


def get_db(db_path: Optional[str] = None) -> Database:
    """Get or create the global database instance."""
    global _db
    if _db is None:
        _db = Database(db_path)
        _db.create_tables()
    return _db


def reset_db() -> None:
    """Reset the global database instance. Used for testing."""
    global _db
    _db = None
