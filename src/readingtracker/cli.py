"""Command-line interface for readingtracker.

Built with Typer for commands and Rich for beautiful output.
"""

import logging
from datetime import date
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from sqlalchemy.exc import IntegrityError

from . import __version__
from .activity import (
    ActivityService,
    ChallengeProgressCalculator,
    LeaderboardPeriod,
    get_milestone_label,
)
from .config import get_config
from .db import get_db
from .db.schemas import BookCreate, BookStatus, ChallengeCreate, ChallengeType, UserCreate
from .errors import ReadingTrackerError
from .timezones import TimezoneResolver, is_valid_timezone

# Create the main app
app = typer.Typer(
    name="readingtracker",
    help="Track your reading streaks, challenges and achievements.",
    no_args_is_help=True,
)

# Create sub-apps for command groups
user_app = typer.Typer(help="Manage readers.")
app.add_typer(user_app, name="user")

book_app = typer.Typer(help="Manage a reader's books.")
app.add_typer(book_app, name="book")

challenge_app = typer.Typer(help="Reading challenges.")
app.add_typer(challenge_app, name="challenge")

# Rich console for pretty output
console = Console()


@app.callback()
def main() -> None:
    """Check configuration and set up logging before any command runs."""
    config = get_config()
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    errors = config.validate()
    if errors:
        for error in errors:
            print_error(error)
        raise typer.Exit(1)


# ============================================================================
# Helper Functions
# ============================================================================


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[bold red]Error:[/bold red] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[bold green]Success:[/bold green] {message}")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[dim]{message}[/dim]")


def get_service() -> ActivityService:
    """Create a service for this invocation."""
    config = get_config()
    db = get_db(str(config.db_path))
    return ActivityService(db, TimezoneResolver(db, config.default_timezone))


def require_user(username: str):
    """Look up a user or exit."""
    user = get_db(str(get_config().db_path)).get_user_by_username(username)
    if not user:
        print_error(f"No user named: {username}")
        raise typer.Exit(1)
    return user


def require_book(user_id: str, title: str):
    """Look up one of a user's books or exit."""
    book = get_db(str(get_config().db_path)).find_book(user_id, title)
    if not book:
        print_error(f"No book found matching: {title}")
        raise typer.Exit(1)
    return book


def parse_day(value: str) -> date:
    """Parse a YYYY-MM-DD option or exit."""
    try:
        return date.fromisoformat(value)
    except ValueError:
        print_error(f"Invalid date: {value} (expected YYYY-MM-DD)")
        raise typer.Exit(1)


# ============================================================================
# Commands
# ============================================================================


@app.command()
def version() -> None:
    """Show version."""
    console.print(f"readingtracker {__version__}")


@user_app.command("add")
def user_add(
    username: str = typer.Argument(..., help="Username"),
    tz: Optional[str] = typer.Option(None, "--timezone", "-t", help="IANA timezone"),
) -> None:
    """Add a reader."""
    config = get_config()
    if tz and not is_valid_timezone(tz):
        print_error(f"Unknown timezone: {tz}")
        raise typer.Exit(1)

    db = get_db(str(config.db_path))
    try:
        user = db.create_user(UserCreate(username=username, timezone=tz), config.default_timezone)
    except IntegrityError:
        print_error(f"User already exists: {username}")
        raise typer.Exit(1)

    print_success(f"Added {user.username} ({user.timezone})")


@user_app.command("timezone")
def user_timezone(
    username: str = typer.Argument(..., help="Username"),
    tz: Optional[str] = typer.Argument(None, help="New IANA timezone"),
) -> None:
    """Show or change a reader's timezone."""
    user = require_user(username)
    service = get_service()

    if tz is None:
        console.print(service.resolver.resolve(user.id))
        return

    try:
        service.set_timezone(user.id, tz)
    except ReadingTrackerError as e:
        print_error(str(e))
        raise typer.Exit(1)
    print_success(f"{username} now reads in {tz}")


@book_app.command("add")
def book_add(
    username: str = typer.Argument(..., help="Username"),
    title: str = typer.Argument(..., help="Book title"),
    author: str = typer.Option(..., "--author", "-a", help="Author"),
    pages: int = typer.Option(0, "--pages", "-p", help="Total pages"),
    initial_pages: int = typer.Option(0, "--initial-pages", help="Pages read before tracking"),
    genre: Optional[str] = typer.Option(None, "--genre", "-g", help="Genre"),
) -> None:
    """Add a book to a reader's shelf."""
    user = require_user(username)
    try:
        data = BookCreate(
            title=title,
            author=author,
            genre=genre,
            status=BookStatus.READING,
            total_pages=pages,
            current_page=min(initial_pages, pages) if pages else initial_pages,
            initial_pages=initial_pages,
        )
    except ValidationError as e:
        print_error(str(e))
        raise typer.Exit(1)

    book = get_db(str(get_config().db_path)).create_book(user.id, data)
    print_success(f"Added: {book.title} by {book.author}")


@book_app.command("complete")
def book_complete(
    username: str = typer.Argument(..., help="Username"),
    title: str = typer.Argument(..., help="Book title"),
    finished: Optional[str] = typer.Option(None, "--date", help="Date (YYYY-MM-DD, default: now)"),
) -> None:
    """Mark a book completed."""
    user = require_user(username)
    book = require_book(user.id, title)

    try:
        get_service().complete_book(user.id, book.id, date_string=finished)
    except ReadingTrackerError as e:
        print_error(str(e))
        raise typer.Exit(1)
    print_success(f"Completed: {book.title}")


@app.command()
def log(
    username: str = typer.Argument(..., help="Username"),
    title: str = typer.Argument(..., help="Book title to log reading for"),
    pages: int = typer.Option(..., "--pages", "-p", help="Pages read"),
    session_date: Optional[str] = typer.Option(None, "--date", help="Date (YYYY-MM-DD, default: today)"),
) -> None:
    """Log pages read on a day."""
    user = require_user(username)
    book = require_book(user.id, title)

    try:
        entry = get_service().log_reading(user.id, book.id, pages, date_string=session_date)
    except (ReadingTrackerError, ValueError) as e:
        print_error(str(e))
        raise typer.Exit(1)

    print_success(f"Logged {pages} pages of {book.title}")
    print_info(f"  {entry.pages_read} pages that day")


@app.command()
def streak(
    username: str = typer.Argument(..., help="Username"),
) -> None:
    """Show a reader's streak and recent activity."""
    user = require_user(username)
    summary = get_service().get_activity_summary(user.id)

    table = Table(title=f"Reading activity: {username}", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right", style="bold")
    table.add_row("Current streak", f"{summary.reading_streak} days")
    table.add_row("Days read this week", str(summary.days_read_this_week))
    table.add_row("Days read this month", str(summary.days_read_this_month))
    console.print(table)


@app.command()
def stats(
    username: str = typer.Argument(..., help="Username"),
) -> None:
    """Show reading totals."""
    user = require_user(username)
    service = get_service()
    dashboard = service.get_dashboard_stats(user.id)
    quick = service.get_quick_stats(user.id)

    lines = [
        f"[bold]Books:[/bold] {dashboard.total_books} "
        f"({dashboard.completed_books} completed, {dashboard.completion_percentage}%)",
        f"[bold]Pages read:[/bold] {dashboard.total_pages_read:,}",
        f"[bold]Pages today:[/bold] {dashboard.today_pages}",
        f"[bold]Streak:[/bold] {dashboard.reading_streak} days",
    ]
    console.print(Panel("\n".join(lines), title=f"Stats for {username}", subtitle=quick.text))


@app.command()
def heatmap(
    username: str = typer.Argument(..., help="Username"),
    days: int = typer.Option(30, "--days", "-d", help="Days to show"),
) -> None:
    """Show pages read per day."""
    user = require_user(username)
    try:
        entries = get_service().get_reading_heatmap(user.id, days=days)
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(1)

    if not entries:
        print_info("No reading logged in this period")
        return

    table = Table(title=f"Pages per day: {username}")
    table.add_column("Date", style="cyan")
    table.add_column("Pages", justify="right")
    for entry in entries:
        table.add_row(entry.date, str(entry.pages))
    console.print(table)


@app.command()
def leaderboard(
    period: LeaderboardPeriod = typer.Option(
        LeaderboardPeriod.ALL_TIME, "--period", "-p", help="today, week, month or all-time"
    ),
) -> None:
    """Rank readers by pages read."""
    entries = get_service().get_leaderboard(period)

    if not entries:
        print_info("No reading logged in this period")
        return

    table = Table(title=f"Leaderboard ({period.value})", header_style="bold magenta")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Reader", style="cyan")
    table.add_column("Pages", justify="right", style="bold")
    table.add_column("Books", justify="right")
    for entry in entries:
        table.add_row(
            str(entry.rank), entry.username, f"{entry.total_pages:,}", str(entry.book_count)
        )
    console.print(table)


@app.command()
def achievements(
    username: str = typer.Argument(..., help="Username"),
) -> None:
    """Award reached streak milestones and list all achievements."""
    user = require_user(username)
    service = get_service()
    current, awarded = service.award_streak_achievements(user.id)

    for achievement in awarded:
        print_success(
            f"New achievement: {get_milestone_label(achievement.milestone)} "
            f"({achievement.milestone}-day streak)"
        )

    held = service.db.list_achievements(user.id)
    if not held:
        print_info(f"No achievements yet (current streak: {current} days)")
        return

    table = Table(title=f"Achievements: {username}")
    table.add_column("Milestone", justify="right")
    table.add_column("Title", style="green")
    table.add_column("Earned", style="dim")
    for achievement in held:
        table.add_row(
            f"{achievement.milestone} days",
            get_milestone_label(achievement.milestone),
            achievement.created_at[:10],
        )
    console.print(table)


@challenge_app.command("create")
def challenge_create(
    name: str = typer.Argument(..., help="Challenge name"),
    challenge_type: ChallengeType = typer.Option(ChallengeType.PAGES, "--type", help="What to count"),
    target: int = typer.Option(..., "--target", help="Pages or books to reach"),
    start: str = typer.Option(..., "--start", help="Start date (YYYY-MM-DD)"),
    end: str = typer.Option(..., "--end", help="End date (YYYY-MM-DD)"),
) -> None:
    """Create a challenge."""
    try:
        data = ChallengeCreate(
            name=name,
            challenge_type=challenge_type,
            target=target,
            start_date=parse_day(start),
            end_date=parse_day(end),
        )
    except ValidationError as e:
        print_error(str(e))
        raise typer.Exit(1)

    db = get_db(str(get_config().db_path))
    try:
        challenge = db.create_challenge(data)
    except IntegrityError:
        print_error(f"Challenge already exists: {name}")
        raise typer.Exit(1)
    print_success(f"Created challenge: {challenge.name}")


@challenge_app.command("join")
def challenge_join(
    name: str = typer.Argument(..., help="Challenge name"),
    username: str = typer.Argument(..., help="Username"),
) -> None:
    """Join a challenge."""
    user = require_user(username)
    db = get_db(str(get_config().db_path))
    challenge = db.get_challenge_by_name(name)
    if not challenge:
        print_error(f"No challenge named: {name}")
        raise typer.Exit(1)

    participant = db.join_challenge(challenge.id, user.id)
    calculator = ChallengeProgressCalculator(db, get_service().resolver)
    progress = calculator.calculate_challenge_progress(user.id, challenge)
    db.update_participant_progress(participant.id, progress)
    print_success(f"{username} joined {challenge.name} ({progress}/{challenge.target})")


@challenge_app.command("progress")
def challenge_progress(
    username: str = typer.Argument(..., help="Username"),
) -> None:
    """Show a reader's challenge progress."""
    user = require_user(username)
    service = get_service()
    calculator = ChallengeProgressCalculator(service.db, service.resolver)
    calculator.update_challenge_progress(user.id)
    standings = calculator.get_standings(user.id)

    if not standings:
        print_info(f"{username} has not joined any challenges")
        return

    table = Table(title=f"Challenges: {username}", header_style="bold magenta")
    table.add_column("Challenge", style="cyan")
    table.add_column("Type")
    table.add_column("Progress", justify="right")
    table.add_column("Ends", style="dim")
    for standing in standings:
        table.add_row(
            standing.name,
            standing.challenge_type,
            f"{standing.progress}/{standing.target} ({standing.progress_percent:.0f}%)",
            standing.end_date.isoformat(),
        )
    console.print(table)


if __name__ == "__main__":
    app()
