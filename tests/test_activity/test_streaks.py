"""Tests for streak and active-day calculations."""

import random
from datetime import date, datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from readingtracker.activity.schemas import LogDate
from readingtracker.activity.streaks import (
    calculate_reading_streak,
    get_reading_days_in_period,
    longest_streak,
)
from readingtracker.errors import InvalidLogDateError
from readingtracker.timezones.dates import parse_date_in_timezone

TZ = "Asia/Kolkata"
UTC = timezone.utc

# 17:30 on 2025-06-15 in Asia/Kolkata
NOW = datetime(2025, 6, 15, 12, 0, tzinfo=UTC)
TODAY = date(2025, 6, 15)


def log_on(offset: int, tz: str = TZ) -> dict:
    """A log at local midnight ``offset`` days from today."""
    day = (TODAY + timedelta(days=offset)).isoformat()
    return {"date": parse_date_in_timezone(day, tz)}


def logs_on(*offsets: int) -> list[dict]:
    return [log_on(o) for o in offsets]


class TestCalculateReadingStreak:
    """Tests for calculate_reading_streak."""

    def test_empty_logs(self):
        """Test that no logs means no streak."""
        assert calculate_reading_streak([], TZ, now=NOW) == 0

    def test_three_days_ending_today(self):
        """Test logs on today and the two days before."""
        assert calculate_reading_streak(logs_on(0, -1, -2), TZ, now=NOW) == 3

    def test_today_in_progress_keeps_yesterdays_streak(self):
        """Test that a streak ending yesterday still counts."""
        assert calculate_reading_streak(logs_on(-1, -2, -3, -4), TZ, now=NOW) == 4

    def test_gap_after_yesterday(self):
        """Test logs on yesterday and three days ago."""
        assert calculate_reading_streak(logs_on(-1, -3), TZ, now=NOW) == 1

    def test_missing_today_and_yesterday_resets(self):
        """Test that skipping two days from now breaks the streak."""
        assert calculate_reading_streak(logs_on(-2, -3, -4, -5), TZ, now=NOW) == 0

    @pytest.mark.parametrize("k", [1, 2, 5, 12, 40])
    def test_exact_length_before_gap(self, k):
        """Test k consecutive days ending today followed by a gap."""
        offsets = [-i for i in range(k)] + [-(k + 1), -(k + 2)]

        assert calculate_reading_streak(logs_on(*offsets), TZ, now=NOW) == k

    def test_order_and_duplicates_do_not_matter(self):
        """Test that shuffling and repeating logs keeps the streak."""
        logs = logs_on(0, -1, -2, -3, -5)
        noisy = logs * 3
        random.Random(7).shuffle(noisy)

        assert calculate_reading_streak(noisy, TZ, now=NOW) == 4
        assert calculate_reading_streak(list(reversed(logs)), TZ, now=NOW) == 4

    def test_several_logs_on_one_day_count_once(self):
        """Test that logs at different times of a local day count as one."""
        logs = [
            {"date": datetime(2025, 6, 14, 18, 31, tzinfo=UTC)},  # 00:01 on 6/15
            {"date": datetime(2025, 6, 15, 9, 0, tzinfo=UTC)},  # 14:30 on 6/15
            {"date": datetime(2025, 6, 15, 11, 59, tzinfo=UTC)},  # 17:29 on 6/15
        ]

        assert calculate_reading_streak(logs, TZ, now=NOW) == 1

    def test_buckets_by_reader_timezone(self):
        """Test that 23:59 UTC on Jan 1 belongs to Jan 2 in India."""
        logs = [{"date": datetime(2025, 1, 1, 23, 59, tzinfo=UTC)}]
        now = datetime(2025, 1, 3, 6, 0, tzinfo=UTC)

        # Jan 2 is yesterday in India but two days ago in UTC
        assert calculate_reading_streak(logs, "Asia/Kolkata", now=now) == 1
        assert calculate_reading_streak(logs, "UTC", now=now) == 0

    def test_today_follows_reader_timezone(self):
        """Test that 'today' is the reader's local day, not UTC's."""
        # 20:00 UTC on June 15 is already June 16 in India
        now = datetime(2025, 6, 15, 20, 0, tzinfo=UTC)
        logs = [{"date": "2025-06-14"}]

        assert calculate_reading_streak(logs, TZ, now=now) == 0
        assert calculate_reading_streak(logs, "UTC", now=now) == 1

    def test_accepts_objects_models_and_calendar_days(self):
        """Test the supported row shapes."""
        logs = [
            SimpleNamespace(date=parse_date_in_timezone("2025-06-15", TZ)),
            LogDate(date=parse_date_in_timezone("2025-06-14", TZ)),
            {"date": "2025-06-13"},
            {"date": date(2025, 6, 12)},
            SimpleNamespace(date="2025-06-10T18:30:00.000000+00:00"),  # 6/11 local
        ]

        assert calculate_reading_streak(logs, TZ, now=NOW) == 5

    def test_defaults_to_clock(self):
        """Test that the real clock is used without an instant."""
        logs = [{"date": datetime.now(UTC)}]

        assert calculate_reading_streak(logs, "UTC") == 1

    @pytest.mark.parametrize(
        "bad",
        [{"date": None}, {}, {"date": "last tuesday"}, {"date": 1718409600}, object()],
    )
    def test_bad_dates_are_rejected(self, bad):
        """Test that rows without a usable date raise instead of miscounting."""
        with pytest.raises(InvalidLogDateError):
            calculate_reading_streak(logs_on(0) + [bad], TZ, now=NOW)


class TestReadingDaysInPeriod:
    """Tests for get_reading_days_in_period."""

    def test_empty_logs(self):
        """Test that no logs means no active days."""
        assert get_reading_days_in_period([], 7, TZ, now=NOW) == 0

    def test_week_and_month(self):
        """Test counting distinct days in trailing windows."""
        logs = logs_on(0, 0, -3, -6, -7, -20, -29, -30, -45)

        assert get_reading_days_in_period(logs, 7, TZ, now=NOW) == 3
        assert get_reading_days_in_period(logs, 30, TZ, now=NOW) == 6

    def test_single_day_period_is_today(self):
        """Test that a one-day period only covers today."""
        assert get_reading_days_in_period(logs_on(0, -1), 1, TZ, now=NOW) == 1
        assert get_reading_days_in_period(logs_on(-1), 1, TZ, now=NOW) == 0

    def test_monotonic_in_window_size(self):
        """Test that a wider window never counts fewer days."""
        rng = random.Random(11)
        for _ in range(20):
            logs = logs_on(*(rng.randint(-60, 0) for _ in range(rng.randint(0, 25))))
            week = get_reading_days_in_period(logs, 7, TZ, now=NOW)
            month = get_reading_days_in_period(logs, 30, TZ, now=NOW)

            assert 0 <= week <= month <= 30

    def test_buckets_by_reader_timezone(self):
        """Test that window edges follow the reader's local day."""
        # 18:00 UTC on June 8 is 23:30 June 8 in India, seven days before 6/15
        logs = [{"date": datetime(2025, 6, 8, 18, 0, tzinfo=UTC)}]

        assert get_reading_days_in_period(logs, 7, TZ, now=NOW) == 0
        # 18:31 UTC on June 8 is 00:01 June 9 in India, inside the week
        logs = [{"date": datetime(2025, 6, 8, 18, 31, tzinfo=UTC)}]
        assert get_reading_days_in_period(logs, 7, TZ, now=NOW) == 1

    @pytest.mark.parametrize("period", [0, -7, 2.5, True])
    def test_invalid_period(self, period):
        """Test that the period must be a positive integer."""
        with pytest.raises(ValueError):
            get_reading_days_in_period(logs_on(0), period, TZ, now=NOW)


class TestLongestStreak:
    """Tests for longest_streak."""

    def test_longest_run(self):
        """Test finding the longest run anywhere in the logs."""
        logs = logs_on(0, -1, -5, -6, -7, -8, -20)

        assert longest_streak(logs, TZ) == 4

    def test_empty(self):
        """Test that no logs means no run."""
        assert longest_streak([], TZ) == 0
