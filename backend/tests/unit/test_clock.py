"""
Unit tests for the weekly boundary helpers and clocks.
"""

from datetime import UTC, datetime, timedelta
from zoneinfo import ZoneInfo

from core.clock import FixedClock, SystemClock, next_week_start, to_utc, week_start

ROME = ZoneInfo("Europe/Rome")


class TestWeekStart:
    """Monday 00:00 boundary in UTC and in a reference timezone."""

    def test_midweek_maps_to_monday_midnight(self):
        moment = datetime(2026, 10, 14, 12, 0, tzinfo=UTC)  # Wednesday
        assert week_start(moment) == datetime(2026, 10, 12, 0, 0, tzinfo=UTC)

    def test_monday_midnight_is_its_own_boundary(self):
        moment = datetime(2026, 10, 12, 0, 0, tzinfo=UTC)
        assert week_start(moment) == moment

    def test_sunday_late_belongs_to_previous_monday(self):
        moment = datetime(2026, 10, 18, 23, 59, 59, tzinfo=UTC)
        assert week_start(moment) == datetime(2026, 10, 12, tzinfo=UTC)

    def test_naive_values_are_treated_as_utc(self):
        assert week_start(datetime(2026, 10, 14, 12, 0)) == datetime(2026, 10, 12, tzinfo=UTC)

    def test_reference_timezone_moves_the_boundary(self):
        # Monday 01:00 in Rome (CEST, UTC+2) is still Sunday in UTC
        moment = datetime(2026, 10, 11, 23, 0, tzinfo=UTC)

        assert week_start(moment, ROME) == datetime(2026, 10, 11, 22, 0, tzinfo=UTC)
        assert week_start(moment) == datetime(2026, 10, 5, tzinfo=UTC)

    def test_result_is_always_utc(self):
        result = week_start(datetime(2026, 10, 14, 12, 0, tzinfo=UTC), ROME)
        assert result.tzinfo == UTC


class TestNextWeekStart:
    def test_next_boundary_is_seven_days_later(self):
        moment = datetime(2026, 10, 14, 12, 0, tzinfo=UTC)
        assert next_week_start(moment) == datetime(2026, 10, 19, tzinfo=UTC)

    def test_next_boundary_is_strictly_after_a_boundary(self):
        moment = datetime(2026, 10, 12, tzinfo=UTC)
        assert next_week_start(moment) == datetime(2026, 10, 19, tzinfo=UTC)

    def test_next_boundary_across_dst_change(self):
        # Rome leaves summer time on 2026-10-25, so the next local midnight is UTC+1
        moment = datetime(2026, 10, 21, 12, 0, tzinfo=UTC)

        assert week_start(moment, ROME) == datetime(2026, 10, 18, 22, 0, tzinfo=UTC)
        assert next_week_start(moment, ROME) == datetime(2026, 10, 25, 23, 0, tzinfo=UTC)


class TestClocks:
    def test_to_utc_converts_offsets(self):
        moment = datetime(2026, 10, 14, 14, 0, tzinfo=ROME)
        assert to_utc(moment) == datetime(2026, 10, 14, 12, 0, tzinfo=UTC)

    def test_system_clock_is_aware_utc(self):
        assert SystemClock().now().tzinfo == UTC

    def test_fixed_clock_advances(self):
        clock = FixedClock(datetime(2026, 10, 14, 12, 0, tzinfo=UTC))

        clock.advance(days=6)

        assert clock.now() == datetime(2026, 10, 20, 12, 0, tzinfo=UTC)
        assert clock.now() - timedelta(days=6) == datetime(2026, 10, 14, 12, 0, tzinfo=UTC)

    def test_fixed_clock_set(self):
        clock = FixedClock(datetime(2026, 10, 14, 12, 0, tzinfo=UTC))
        clock.set(datetime(2027, 1, 1))
        assert clock.now() == datetime(2027, 1, 1, tzinfo=UTC)
