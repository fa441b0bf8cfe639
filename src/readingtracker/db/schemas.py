"""Pydantic schemas for data validation.

These schemas validate data on its way into the database.
"""

from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class BookStatus(str, Enum):
    """Status of a book on a reader's shelf."""

    WANT_TO_READ = "want_to_read"
    READING = "reading"
    COMPLETED = "completed"
    DNF = "dnf"  # Did not finish


class ChallengeType(str, Enum):
    """What a challenge counts."""

    PAGES = "pages"
    BOOKS = "books"
    YEARLY = "yearly"  # Pages over a year
    GENRE = "genre"  # Books completed


# ============================================================================
# Create Schemas
# ============================================================================


class UserCreate(BaseModel):
    """Schema for creating a user."""

    username: str = Field(..., min_length=1, max_length=100)
    timezone: Optional[str] = Field(None, description="IANA timezone name")


class BookCreate(BaseModel):
    """Schema for adding a book to a reader's shelf."""

    title: str = Field(..., min_length=1, description="Book title")
    author: str = Field(..., min_length=1, description="Primary author")
    genre: Optional[str] = None
    status: BookStatus = Field(default=BookStatus.WANT_TO_READ)
    total_pages: int = Field(0, ge=0)
    current_page: int = Field(0, ge=0)
    initial_pages: int = Field(0, ge=0, description="Pages read before tracking")
    completed_at: Optional[datetime] = None

    @model_validator(mode="after")
    def check_current_page(self) -> "BookCreate":
        """Current page cannot pass the last page."""
        if self.total_pages and self.current_page > self.total_pages:
            raise ValueError("current_page cannot exceed total_pages")
        return self


class ReadingLogCreate(BaseModel):
    """Schema for storing a reading log."""

    user_id: str
    book_id: str
    date: datetime = Field(..., description="Instant of local midnight")
    pages_read: int = Field(..., ge=0)


class ChallengeCreate(BaseModel):
    """Schema for creating a challenge."""

    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    challenge_type: ChallengeType = Field(default=ChallengeType.PAGES)
    target: int = Field(..., gt=0)
    start_date: date
    end_date: date

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        """Strip surrounding whitespace from the name."""
        v = v.strip()
        if not v:
            raise ValueError("name cannot be blank")
        return v

    @model_validator(mode="after")
    def check_dates(self) -> "ChallengeCreate":
        """End date cannot come before start date."""
        if self.end_date < self.start_date:
            raise ValueError("end_date cannot be before start_date")
        return self
