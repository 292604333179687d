"""Tests for clock implementations."""
from datetime import datetime, timedelta, timezone

from freelance_tracker.clock import DeterministicClock, SystemClock


class TestSystemClock:
    """Tests for the production clock."""

    def test_now_is_utc_aware(self):
        now = SystemClock().now()
        assert now.tzinfo is not None
        assert now.utcoffset() == timedelta(0)


class TestDeterministicClock:
    """Tests for the test clock."""

    def test_now_is_stable(self):
        clock = DeterministicClock()
        assert clock.now() == clock.now()

    def test_advance(self):
        start = datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc)
        clock = DeterministicClock(start)

        clock.advance(30)
        clock.advance_minutes(2)

        assert clock.now() == start + timedelta(minutes=2, seconds=30)

    def test_set_time_resets_advance(self):
        clock = DeterministicClock()
        clock.advance(100)
        target = datetime(2026, 1, 1, tzinfo=timezone.utc)

        clock.set_time(target)

        assert clock.now() == target
