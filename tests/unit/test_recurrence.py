"""Unit tests for recurrence expansion."""

import pytest

from carecal.calendar.models import CalendarDate, RecurrencePattern, RecurrenceRule
from carecal.calendar.recurrence import (
    applies_on,
    describe,
    next_occurrence,
    occurrences_between,
)

D = CalendarDate


class TestAppliesOn:
    def test_weekly(self):
        rule = RecurrenceRule(RecurrencePattern.WEEKLY)
        assert applies_on(rule, D(2024, 1, 1), D(2024, 1, 15))
        assert not applies_on(rule, D(2024, 1, 1), D(2024, 1, 10))

    def test_monthly_clamps_to_month_end(self):
        rule = RecurrenceRule(RecurrencePattern.MONTHLY, D(2024, 3, 1))
        assert applies_on(rule, D(2024, 1, 31), D(2024, 2, 29))
        assert not applies_on(rule, D(2024, 1, 31), D(2024, 4, 30))

    def test_monthly_clamp_only_on_last_day(self):
        rule = RecurrenceRule(RecurrencePattern.MONTHLY)
        anchor = D(2024, 1, 31)
        assert applies_on(rule, anchor, D(2024, 4, 30))
        assert not applies_on(rule, anchor, D(2024, 4, 29))
        assert applies_on(rule, anchor, D(2024, 5, 31))

    def test_anchor_itself(self):
        for pattern in RecurrencePattern:
            assert applies_on(RecurrenceRule(pattern), D(2024, 3, 10), D(2024, 3, 10))

    def test_before_anchor(self):
        rule = RecurrenceRule(RecurrencePattern.DAILY)
        assert not applies_on(rule, D(2024, 3, 10), D(2024, 3, 9))

    def test_end_date_is_inclusive(self):
        rule = RecurrenceRule(RecurrencePattern.DAILY, D(2024, 3, 12))
        assert applies_on(rule, D(2024, 3, 10), D(2024, 3, 12))
        assert not applies_on(rule, D(2024, 3, 10), D(2024, 3, 13))

    @pytest.mark.parametrize(
        ("pattern", "query", "expected"),
        [
            (RecurrencePattern.DAILY, D(2024, 1, 2), True),
            (RecurrencePattern.BIWEEKLY, D(2024, 1, 15), True),
            (RecurrencePattern.BIWEEKLY, D(2024, 1, 8), False),
            (RecurrencePattern.QUARTERLY, D(2024, 4, 1), True),
            (RecurrencePattern.QUARTERLY, D(2024, 2, 1), False),
            (RecurrencePattern.YEARLY, D(2025, 1, 1), True),
            (RecurrencePattern.YEARLY, D(2024, 7, 1), False),
        ],
    )
    def test_periods(self, pattern, query, expected):
        assert applies_on(RecurrenceRule(pattern), D(2024, 1, 1), query) is expected

    def test_yearly_leap_day_clamps(self):
        rule = RecurrenceRule(RecurrencePattern.YEARLY)
        assert applies_on(rule, D(2024, 2, 29), D(2025, 2, 28))
        assert applies_on(rule, D(2024, 2, 29), D(2028, 2, 29))


class TestOccurrences:
    def test_weekly_range(self):
        rule = RecurrenceRule(RecurrencePattern.WEEKLY)
        dates = list(occurrences_between(rule, D(2024, 1, 1), D(2024, 1, 3), D(2024, 1, 31)))
        assert dates == [D(2024, 1, 8), D(2024, 1, 15), D(2024, 1, 22), D(2024, 1, 29)]

    def test_monthly_range_matches_applies_on(self):
        rule = RecurrenceRule(RecurrencePattern.MONTHLY, D(2024, 6, 30))
        anchor = D(2024, 1, 31)
        dates = list(occurrences_between(rule, anchor, D(2024, 1, 1), D(2024, 12, 31)))
        assert dates == [
            D(2024, 1, 31),
            D(2024, 2, 29),
            D(2024, 3, 31),
            D(2024, 4, 30),
            D(2024, 5, 31),
            D(2024, 6, 30),
        ]
        assert all(applies_on(rule, anchor, d) for d in dates)

    def test_range_before_anchor_is_empty(self):
        rule = RecurrenceRule(RecurrencePattern.DAILY)
        assert list(occurrences_between(rule, D(2024, 5, 1), D(2024, 4, 1), D(2024, 4, 30))) == []

    def test_next_occurrence(self):
        rule = RecurrenceRule(RecurrencePattern.BIWEEKLY, D(2024, 2, 1))
        anchor = D(2024, 1, 1)
        assert next_occurrence(rule, anchor, D(2024, 1, 2)) == D(2024, 1, 15)
        assert next_occurrence(rule, anchor, D(2024, 1, 30)) is None
        assert next_occurrence(rule, anchor, D(2024, 3, 1)) is None


class TestDescribe:
    def test_without_end(self):
        assert describe(RecurrenceRule(RecurrencePattern.WEEKLY)) == "Repeats weekly"

    def test_with_end(self):
        rule = RecurrenceRule(RecurrencePattern.MONTHLY, D(2024, 3, 1))
        assert describe(rule) == "Repeats monthly, until Mar 1, 2024"

    def test_labels(self):
        assert [p.label for p in RecurrencePattern] == [
            "Daily", "Weekly", "Bi-weekly", "Monthly", "Quarterly", "Yearly",
        ]
