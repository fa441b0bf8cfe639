"""Pytest configuration and shared fixtures.

This module provides fixtures for testing readingtracker, including an
in-memory database, sample readers and books, and a fixed reference instant.
"""

import os
from datetime import datetime, timezone
from typing import Generator

import pytest

from readingtracker.activity import ActivityService
from readingtracker.config import reset_config
from readingtracker.db.schemas import BookCreate, BookStatus, UserCreate
from readingtracker.db.sqlite import Database, reset_db
from readingtracker.timezones import TimezoneResolver

# 17:30 on 2025-06-15 in Asia/Kolkata
NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)

ENV_VARS = (
    "READINGTRACKER_DB_PATH",
    "READINGTRACKER_DEFAULT_TIMEZONE",
    "READINGTRACKER_STREAK_LOOKBACK_DAYS",
    "READINGTRACKER_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_environment() -> Generator[None, None, None]:
    """Isolate every test from ambient configuration."""
    saved = {name: os.environ.pop(name) for name in ENV_VARS if name in os.environ}
    reset_config()
    reset_db()
    yield
    for name in ENV_VARS:
        os.environ.pop(name, None)
    os.environ.update(saved)
    reset_config()
    reset_db()


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
def db() -> Database:
    """Create an in-memory database for testing."""
    database = Database(":memory:")
    database.create_tables()
    return database


@pytest.fixture
def reader(db: Database):
    """A reader in India."""
    return db.create_user(UserCreate(username="asha", timezone="Asia/Kolkata"))


@pytest.fixture
def other_reader(db: Database):
    """A reader in New York."""
    return db.create_user(UserCreate(username="ben", timezone="America/New_York"))


@pytest.fixture
def novel(db: Database, reader):
    """A long book the reader is reading."""
    return db.create_book(
        reader.id,
        BookCreate(
            title="The Long Novel",
            author="Author A",
            status=BookStatus.READING,
            total_pages=2000,
            initial_pages=1000,
        ),
    )


@pytest.fixture
def short_book(db: Database, reader):
    """A short book the reader is reading."""
    return db.create_book(
        reader.id,
        BookCreate(
            title="Short Stories",
            author="Author B",
            genre="Fiction",
            status=BookStatus.READING,
            total_pages=300,
        ),
    )


@pytest.fixture
def service(db: Database) -> ActivityService:
    """An activity service for one request."""
    return ActivityService(db, TimezoneResolver(db))


@pytest.fixture
def now() -> datetime:
    """Fixed reference instant."""
    return NOW
