"""Tests for SQLite database operations."""

from datetime import date, datetime, timezone
from uuid import UUID

import pytest
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError

from readingtracker.db.models import Achievement, Book, Challenge, ReadingLog, User
from readingtracker.db.schemas import (
    BookCreate,
    BookStatus,
    ChallengeCreate,
    ChallengeType,
    ReadingLogCreate,
    UserCreate,
)
from readingtracker.db.sqlite import Database, get_db, reset_db
from readingtracker.timezones.dates import parse_date_in_timezone, to_storage

UTC = timezone.utc


def midnight_ist(day: str) -> datetime:
    """UTC instant of local midnight in Asia/Kolkata."""
    return parse_date_in_timezone(day, "Asia/Kolkata")


class TestDatabaseCreation:
    """Tests for database initialization."""

    def test_database_creates_tables(self, db: Database):
        """Test that database creates all required tables."""
        with db.get_session() as session:
            session.query(User).first()
            session.query(Book).first()
            session.query(ReadingLog).first()
            session.query(Challenge).first()
            session.query(Achievement).first()

    def test_file_database(self, tmp_path):
        """Test that a file database creates its directory."""
        path = tmp_path / "nested" / "reading.db"
        database = Database(str(path))
        database.create_tables()

        assert path.parent.exists()

    def test_global_database(self, tmp_path):
        """Test the shared database instance."""
        first = get_db(str(tmp_path / "reading.db"))

        assert get_db() is first
        reset_db()
        assert get_db(str(tmp_path / "other.db")) is not first


class TestUsers:
    """Tests for user operations."""

    def test_create_user(self, db: Database):
        """Test creating a user with a generated id."""
        user = db.create_user(UserCreate(username="cara", timezone="Europe/Paris"))

        assert str(UUID(user.id)) == user.id
        assert user.timezone == "Europe/Paris"
        assert db.get_user(user.id).username == "cara"
        assert db.get_user_by_username("cara").id == user.id

    def test_default_timezone(self, db: Database):
        """Test the timezone used when none is given."""
        assert db.create_user(UserCreate(username="a")).timezone == "Asia/Kolkata"
        assert db.create_user(UserCreate(username="b"), "UTC").timezone == "UTC"

    def test_duplicate_username(self, db: Database, reader):
        """Test that usernames are unique."""
        with pytest.raises(IntegrityError):
            db.create_user(UserCreate(username=reader.username))

    def test_get_user_timezone(self, db: Database, reader):
        """Test reading the stored preference."""
        assert db.get_user_timezone(reader.id) == "Asia/Kolkata"
        assert db.get_user_timezone("missing") is None

    def test_update_user_timezone(self, db: Database, reader):
        """Test changing the stored preference."""
        assert db.update_user_timezone(reader.id, "UTC").timezone == "UTC"
        assert db.get_user_timezone(reader.id) == "UTC"
        assert db.update_user_timezone("missing", "UTC") is None


class TestBooks:
    """Tests for book operations."""

    def test_create_book(self, db: Database, reader, novel):
        """Test creating a book."""
        book = db.get_book(novel.id)

        assert book.user_id == reader.id
        assert book.status == BookStatus.READING.value
        assert book.initial_pages == 1000
        assert book.completed_at is None

    def test_current_page_cannot_pass_total(self):
        """Test book validation."""
        with pytest.raises(ValidationError):
            BookCreate(title="T", author="A", total_pages=10, current_page=11)

    def test_find_book(self, db: Database, reader, novel, short_book):
        """Test finding a book by exact or partial title."""
        assert db.find_book(reader.id, "the long novel").id == novel.id
        assert db.find_book(reader.id, "Stories").id == short_book.id
        assert db.find_book(reader.id, "Missing") is None

    def test_find_book_is_per_user(self, db: Database, other_reader, novel):
        """Test that other users' books are not found."""
        assert db.find_book(other_reader.id, "The Long Novel") is None

    def test_list_books(self, db: Database, reader, novel, short_book):
        """Test listing a user's books by title."""
        assert [b.title for b in db.list_books(reader.id)] == ["Short Stories", "The Long Novel"]

    def test_complete_book(self, db: Database, short_book):
        """Test marking a book completed."""
        book = db.complete_book(short_book.id, datetime(2025, 6, 1, 12, 0, tzinfo=UTC))

        assert book.status == BookStatus.COMPLETED.value
        assert book.completed_at == "2025-06-01T12:00:00.000000+00:00"
        assert book.current_page == 300

    def test_advance_book(self, db: Database, short_book):
        """Test that advancing stops at the last page."""
        assert db.advance_book(short_book.id, 100).current_page == 100
        assert db.advance_book(short_book.id, 500).current_page == 300
        assert db.advance_book("missing", 1) is None

    def test_advance_book_without_total(self, db: Database, reader):
        """Test advancing a book with unknown length."""
        book = db.create_book(reader.id, BookCreate(title="Open", author="A"))

        assert db.advance_book(book.id, 40).current_page == 40

    def test_completed_books_in_range(self, db: Database, reader, novel, short_book):
        """Test filtering completed books by instant."""
        db.complete_book(novel.id, datetime(2025, 5, 31, 23, 0, tzinfo=UTC))
        db.complete_book(short_book.id, datetime(2025, 6, 2, 8, 0, tzinfo=UTC))

        start = datetime(2025, 6, 1, tzinfo=UTC)
        end = datetime(2025, 6, 30, 23, 59, 59, 999000, tzinfo=UTC)
        assert [b.id for b in db.get_completed_books(reader.id, start, end)] == [short_book.id]
        assert len(db.get_completed_books(reader.id)) == 2


class TestReadingLogs:
    """Tests for reading log operations."""

    def log(self, db, user, book, day, pages):
        return db.create_reading_log(
            ReadingLogCreate(
                user_id=user.id, book_id=book.id, date=midnight_ist(day), pages_read=pages
            )
        )

    def test_create_log(self, db: Database, reader, novel):
        """Test that log dates are stored as UTC instants."""
        log = self.log(db, reader, novel, "2025-06-15", 30)

        assert log.date == "2025-06-14T18:30:00.000000+00:00"
        assert log.pages_read == 30

    def test_one_log_per_book_and_day(self, db: Database, reader, novel):
        """Test the uniqueness of a book's day."""
        self.log(db, reader, novel, "2025-06-15", 30)

        with pytest.raises(IntegrityError):
            self.log(db, reader, novel, "2025-06-15", 10)

    def test_get_and_add_to_log(self, db: Database, reader, novel):
        """Test finding a day's log and adding pages."""
        log = self.log(db, reader, novel, "2025-06-15", 30)

        found = db.get_reading_log(reader.id, novel.id, midnight_ist("2025-06-15"))
        assert found.id == log.id
        assert db.add_pages_to_log(log.id, 12).pages_read == 42
        assert db.get_reading_log(reader.id, novel.id, midnight_ist("2025-06-14")) is None

    def test_logs_in_range_newest_first(self, db: Database, reader, novel, short_book):
        """Test range filters and ordering."""
        for day in ("2025-06-10", "2025-06-12", "2025-06-14"):
            self.log(db, reader, novel, day, 10)
        self.log(db, reader, short_book, "2025-06-12", 5)

        logs = db.get_reading_logs(
            reader.id, start=midnight_ist("2025-06-11"), end=midnight_ist("2025-06-12")
        )
        assert len(logs) == 2
        newest = db.get_reading_logs(reader.id)[0]
        assert newest.date == to_storage(midnight_ist("2025-06-14"))

    def test_sum_pages(self, db: Database, reader, other_reader, novel, short_book):
        """Test summing pages, all time and since an instant."""
        self.log(db, reader, novel, "2025-06-10", 10)
        self.log(db, reader, short_book, "2025-06-15", 25)

        assert db.sum_pages_read(reader.id) == 35
        assert db.sum_pages_read(reader.id, since=midnight_ist("2025-06-15")) == 25
        assert db.sum_pages_read(other_reader.id) == 0

    def test_pages_cannot_be_negative(self, reader, novel):
        """Test log validation."""
        with pytest.raises(ValidationError):
            ReadingLogCreate(
                user_id=reader.id, book_id=novel.id, date=midnight_ist("2025-06-15"), pages_read=-1
            )

class TestChallenges:
    """Tests for challenge operations."""

    @pytest.fixture
    def june(self, db: Database):
        """A page challenge over June."""
        return db.create_challenge(
            ChallengeCreate(
                name="June Pages",
                target=500,
                start_date=date(2025, 6, 1),
                end_date=date(2025, 6, 30),
            )
        )

    def test_create_challenge(self, db: Database, june):
        """Test that dates are stored as calendar days."""
        challenge = db.get_challenge(june.id)

        assert challenge.challenge_type == ChallengeType.PAGES.value
        assert challenge.start_date == "2025-06-01"
        assert challenge.end_date == "2025-06-30"
        assert db.get_challenge_by_name("june pages").id == june.id

    def test_duplicate_name(self, db: Database, june):
        """Test that challenge names are unique."""
        with pytest.raises(IntegrityError):
            db.create_challenge(
                ChallengeCreate(
                    name="June Pages",
                    target=1,
                    start_date=date(2025, 6, 1),
                    end_date=date(2025, 6, 2),
                )
            )

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"name": "   ", "target": 1},
            {"name": "X", "target": 0},
            {"name": "X", "target": 1, "end_date": date(2025, 5, 31)},
        ],
    )
    def test_invalid_challenge(self, kwargs):
        """Test challenge validation."""
        data = {"start_date": date(2025, 6, 1), "end_date": date(2025, 6, 30), **kwargs}

        with pytest.raises(ValidationError):
            ChallengeCreate(**data)

    def test_join_is_idempotent(self, db: Database, reader, june):
        """Test that joining twice keeps one participant row."""
        first = db.join_challenge(june.id, reader.id)
        second = db.join_challenge(june.id, reader.id)

        assert first.id == second.id
        assert first.progress == 0
        assert len(db.get_participations(reader.id)) == 1

    def test_participations_active_on(self, db: Database, reader, june):
        """Test filtering out finished challenges."""
        db.join_challenge(june.id, reader.id)

        assert len(db.get_participations(reader.id, active_on=date(2025, 6, 30))) == 1
        assert db.get_participations(reader.id, active_on=date(2025, 7, 1)) == []

    def test_update_progress(self, db: Database, reader, june):
        """Test storing progress."""
        participant = db.join_challenge(june.id, reader.id)

        assert db.update_participant_progress(participant.id, 120).progress == 120
        challenge, stored = db.get_participations(reader.id)[0]
        assert challenge.name == "June Pages"
        assert stored.progress == 120
        assert db.update_participant_progress("missing", 1) is None


class TestAchievements:
    """Tests for achievement operations."""

    def test_create_and_list(self, db: Database, reader):
        """Test achievements are listed smallest milestone first."""
        db.create_achievement(reader.id, "streak", 25)
        db.create_achievement(reader.id, "streak", 10)

        assert [a.milestone for a in db.list_achievements(reader.id)] == [10, 25]
        assert db.get_achievement(reader.id, "streak", 25) is not None
        assert db.get_achievement(reader.id, "streak", 50) is None

    def test_unique_per_milestone(self, db: Database, reader):
        """Test a milestone is stored once per user."""
        db.create_achievement(reader.id, "streak", 10)

        with pytest.raises(IntegrityError):
            db.create_achievement(reader.id, "streak", 10)


class TestLeaderboardQueries:
    """Tests for per-user totals."""

    def log(self, db, user, book, day, pages):
        return db.create_reading_log(
            ReadingLogCreate(
                user_id=user.id, book_id=book.id, date=midnight_ist(day), pages_read=pages
            )
        )

    def test_sum_pages_by_user(self, db: Database, reader, other_reader, novel):
        """Test totals per user, most pages first."""
        emma = db.create_book(other_reader.id, BookCreate(title="Emma", author="Austen"))
        self.log(db, reader, novel, "2025-06-01", 10)
        self.log(db, other_reader, emma, "2025-06-10", 25)
        self.log(db, other_reader, emma, "2025-06-11", 5)

        assert db.sum_pages_by_user() == [
            (other_reader.id, "ben", 30),
            (reader.id, "asha", 10),
        ]
        assert db.sum_pages_by_user(since=midnight_ist("2025-06-11")) == [
            (other_reader.id, "ben", 5)
        ]

    def test_users_without_pages_are_left_out(self, db: Database, reader, other_reader, novel):
        """Test that zero totals and users without logs are skipped."""
        self.log(db, reader, novel, "2025-06-01", 0)

        assert db.sum_pages_by_user() == []

    def test_count_books_by_user(self, db: Database, reader, other_reader, novel, short_book):
        """Test shelf sizes per user."""
        assert db.count_books_by_user() == {reader.id: 2}
