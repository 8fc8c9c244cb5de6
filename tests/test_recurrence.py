"""Tests for recurrence-rule expansion."""

from datetime import datetime

import pytest

from src.availability.recurrence import expand_occurrences, has_occurrence_between
from src.errors import InvalidRecurrenceRuleError

NOW = datetime(2025, 7, 1, 0, 0)


class TestExpandOccurrences:
    def test_weekly_count(self):
        occurrences = expand_occurrences(
            "FREQ=WEEKLY;COUNT=4", datetime(2025, 7, 1, 10, 0), datetime(2025, 7, 1, 11, 0), NOW
        )
        assert [start.day for start, _ in occurrences] == [1, 8, 15, 22]
        assert all(end - start == datetime(2025, 1, 1, 11) - datetime(2025, 1, 1, 10)
                   for start, end in occurrences)
        assert all(start.hour == 10 for start, _ in occurrences)

    def test_open_ended_rule_stops_at_horizon(self):
        occurrences = expand_occurrences(
            "FREQ=DAILY", datetime(2025, 7, 1, 10, 0), datetime(2025, 7, 1, 11, 0), NOW,
            horizon_months=1,
        )
        assert len(occurrences) == 31
        assert occurrences[-1][0] == datetime(2025, 7, 31, 10, 0)

    def test_past_occurrences_skipped(self):
        occurrences = expand_occurrences(
            "FREQ=WEEKLY;COUNT=4", datetime(2025, 6, 17, 10, 0), datetime(2025, 6, 17, 11, 0), NOW
        )
        assert [start.day for start, _ in occurrences] == [1, 8]

    def test_overnight_duration_preserved(self):
        occurrences = expand_occurrences(
            "FREQ=DAILY;COUNT=2", datetime(2025, 7, 1, 23, 30), datetime(2025, 7, 2, 0, 30), NOW
        )
        assert occurrences[1] == (datetime(2025, 7, 2, 23, 30), datetime(2025, 7, 3, 0, 30))

    def test_invalid_rule(self):
        with pytest.raises(InvalidRecurrenceRuleError):
            expand_occurrences(
                "FREQ=SOMETIMES", datetime(2025, 7, 1, 10, 0), datetime(2025, 7, 1, 11, 0), NOW
            )


class TestHasOccurrenceBetween:
    rule = "FREQ=WEEKLY"
    dtstart = datetime(2025, 7, 1, 10, 0)

    def test_occurrence_inside_window(self):
        assert has_occurrence_between(
            self.rule, self.dtstart, datetime(2025, 7, 8, 9, 0), datetime(2025, 7, 8, 11, 0)
        )

    def test_no_occurrence_inside_window(self):
        assert not has_occurrence_between(
            self.rule, self.dtstart, datetime(2025, 7, 9, 9, 0), datetime(2025, 7, 9, 11, 0)
        )
