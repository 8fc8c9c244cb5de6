"""Tests for duration bounds and minute-level window containment."""

from datetime import datetime

import pytest

from src.availability.duration import (
    booking_duration_minutes,
    check_duration_bounds,
    is_time_fully_within_effective_windows,
    validate_duration,
)
from src.errors import ErrorKind, InvalidBookingDurationError
from src.schemas.policy_schema import TimeWindow
from tests.conftest import make_policy


def at(hour: int, minute: int = 0, day: int = 12) -> datetime:
    return datetime(2025, 7, day, hour, minute)


class TestBookingDurationMinutes:
    def test_plain_hour(self):
        assert booking_duration_minutes(at(10), at(11)) == 60

    def test_crosses_midnight(self):
        assert booking_duration_minutes(at(23, 30), at(0, 30)) == 60

    def test_equal_start_and_end_is_a_full_day(self):
        assert booking_duration_minutes(at(9), at(9)) == 24 * 60


class TestCheckDurationBounds:
    def test_bounds_are_inclusive(self):
        policy = make_policy(min_booking_time=30, max_booking_time=120)
        assert check_duration_bounds(30, policy)
        assert check_duration_bounds(120, policy)

    def test_below_minimum(self):
        policy = make_policy(min_booking_time=30, max_booking_time=120)
        with pytest.raises(InvalidBookingDurationError):
            check_duration_bounds(29, policy)

    def test_above_maximum(self):
        policy = make_policy(min_booking_time=30, max_booking_time=120)
        with pytest.raises(InvalidBookingDurationError):
            check_duration_bounds(121, policy)

    def test_zero_duration_rejected(self):
        policy = make_policy(min_booking_time=30, max_booking_time=120)
        with pytest.raises(InvalidBookingDurationError, match="zero minutes"):
            check_duration_bounds(0, policy)

    def test_unset_bounds_rejected(self):
        policy = make_policy(min_booking_time=0, max_booking_time=120)
        with pytest.raises(InvalidBookingDurationError, match="not configured"):
            check_duration_bounds(60, policy)

    @pytest.mark.parametrize("min_minutes,max_minutes", [(15, 60), (30, 120), (1, 1440)])
    def test_accepts_exactly_the_closed_range(self, min_minutes, max_minutes):
        policy = make_policy(min_booking_time=min_minutes, max_booking_time=max_minutes)
        for minutes in range(0, 200, 5):
            expected = minutes > 0 and min_minutes <= minutes <= max_minutes
            try:
                accepted = check_duration_bounds(minutes, policy)
            except InvalidBookingDurationError:
                accepted = False
            assert accepted == expected, minutes

    def test_evening_hour_below_large_minimum(self):
        policy = make_policy(min_booking_time=100, max_booking_time=999)
        with pytest.raises(InvalidBookingDurationError) as exc_info:
            validate_duration(at(20), at(21), policy)
        assert exc_info.value.to_dict()["error"] == ErrorKind.INVALID_BOOKING_DURATION.value


class TestFullyWithinEffectiveWindows:
    day_windows = [TimeWindow(start="08:00", end="22:00")]
    night_windows = [
        TimeWindow(start="00:00", end="01:00"),
        TimeWindow(start="23:00", end="23:59:59"),
    ]

    def test_inside_single_window(self):
        assert is_time_fully_within_effective_windows(at(15), at(17), self.day_windows)

    def test_window_end_is_inclusive(self):
        assert is_time_fully_within_effective_windows(at(21), at(22), self.day_windows)

    def test_runs_past_window_end(self):
        assert not is_time_fully_within_effective_windows(at(21, 30), at(22, 30), self.day_windows)

    def test_starts_before_window(self):
        assert not is_time_fully_within_effective_windows(at(7, 45), at(8, 30), self.day_windows)

    def test_across_midnight_fragments(self):
        assert is_time_fully_within_effective_windows(
            at(23, 30), at(0, 30, day=13), self.night_windows
        )

    def test_across_midnight_beyond_fragment(self):
        assert not is_time_fully_within_effective_windows(
            at(23, 30), at(1, 30, day=13), self.night_windows
        )
