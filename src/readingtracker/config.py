"""Configuration management for readingtracker.

Loads configuration from environment variables and provides defaults.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .timezones.dates import DEFAULT_TIMEZONE, is_valid_timezone

# Load .env file if present
load_dotenv()

DEFAULT_LOOKBACK_DAYS = 90


@dataclass
class Config:
    """Application configuration."""

    # Database
    db_path: Path

    # Timezones
    default_timezone: str

    # Streaks
    streak_lookback_days: int

    # Logging
    log_level: str

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        db_path_str = os.environ.get(
            "READINGTRACKER_DB_PATH",
            str(Path.home() / ".readingtracker" / "reading.db"),
        )
        db_path = Path(db_path_str).expanduser()

        return cls(
            db_path=db_path,
            default_timezone=os.environ.get(
                "READINGTRACKER_DEFAULT_TIMEZONE", DEFAULT_TIMEZONE
            ),
            streak_lookback_days=int(
                os.environ.get(
                    "READINGTRACKER_STREAK_LOOKBACK_DAYS", str(DEFAULT_LOOKBACK_DAYS)
                )
            ),
            log_level=os.environ.get("READINGTRACKER_LOG_LEVEL", "WARNING").upper(),
        )

    def validate(self) -> list[str]:
        """Validate configuration, return list of errors."""
        errors = []

        if not is_valid_timezone(self.default_timezone):
            errors.append(f"Unknown default timezone: {self.default_timezone}")

        if self.streak_lookback_days <= 0:
            errors.append(
                f"Streak lookback must be positive, got {self.streak_lookback_days}"
            )

        # Check database directory is writable
        if not self.db_path.parent.exists():
            try:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
            except PermissionError:
                errors.append(f"Cannot create database directory: {self.db_path.parent}")

        return errors


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create the global config instance."""
    global _config
    if _config is None:
        _config = Config.from_env()
    return _config


def reset_config() -> None:
    """Reset the global config instance. Used for testing."""
    global _config
    _config = None
