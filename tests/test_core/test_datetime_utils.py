"""Tests for datetime_utils."""

from datetime import UTC, datetime, timedelta, timezone

from opsdesk.core.datetime_utils import (
    days_until,
    is_expired,
    seconds_since,
    start_of_day,
    to_naive_utc,
    utc_now,
)

NOW = datetime(2026, 10, 18, 15, 30)


class TestToNaiveUtc:
    """Tests for to_naive_utc."""

    def test_naive_passes_through(self):
        assert to_naive_utc(NOW) == NOW

    def test_aware_converted_to_utc(self):
        """Should shift offset-aware input to UTC and drop tzinfo."""
        central = timezone(timedelta(hours=-5))
        converted = to_naive_utc(datetime(2026, 10, 18, 10, 0, tzinfo=central))

        assert converted == datetime(2026, 10, 18, 15, 0)
        assert converted.tzinfo is None


class TestDaysUntil:
    """Tests for days_until (whole days, rounded up)."""

    def test_partial_day_rounds_up(self):
        assert days_until(NOW + timedelta(hours=30), NOW) == 2
        assert days_until(NOW + timedelta(hours=1), NOW) == 1

    def test_exact_days(self):
        assert days_until(NOW + timedelta(days=7), NOW) == 7

    def test_just_passed_is_zero(self):
        assert days_until(NOW - timedelta(hours=1), NOW) == 0

    def test_overdue_is_negative(self):
        assert days_until(NOW - timedelta(days=2, hours=1), NOW) == -2


class TestHelpers:
    def test_start_of_day(self):
        assert start_of_day(NOW) == datetime(2026, 10, 18)

    def test_utc_now_is_naive(self):
        now = utc_now()
        assert now.tzinfo is None
        assert abs((datetime.now(UTC).replace(tzinfo=None) - now).total_seconds()) < 5

    def test_seconds_since(self):
        assert seconds_since(NOW - timedelta(minutes=2), NOW) == 120

    def test_is_expired(self):
        assert is_expired(utc_now() - timedelta(seconds=1)) is True
        assert is_expired(utc_now() + timedelta(days=1)) is False
