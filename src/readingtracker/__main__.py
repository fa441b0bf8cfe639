"""Main entry point for ``python -m readingtracker``."""

from readingtracker.cli import app

if __name__ == "__main__":
    app()
