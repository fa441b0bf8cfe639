"""readingtracker - reading logs, streaks and challenges per user timezone."""

__version__ = "0.1.0"
