"""
Recurrence expansion.

Pure predicates over ``RecurrenceRule``. Day-counted patterns (daily,
weekly, biweekly) check the day offset modulo the period. Month-anchored
patterns (monthly, quarterly, yearly) check the month offset and the
anchor's day-of-month, clamped to the length of the queried month.
"""

from collections.abc import Iterator

from carecal.calendar.models import CalendarDate, RecurrenceRule
from carecal.calendar.normalizer import (
    add_months,
    days_between,
    format_short_date,
    months_between,
    shift_days,
)


def applies_on(
    rule: RecurrenceRule, anchor: CalendarDate, query: CalendarDate
) -> bool:
    """Check if a recurring definition anchored at ``anchor`` occurs on ``query``."""
    if query < anchor:
        return False
    if rule.end_date is not None and query > rule.end_date:
        return False

    period_days = rule.pattern.period_days
    if period_days is not None:
        return days_between(anchor, query) % period_days == 0

    period_months = rule.pattern.period_months
    offset = months_between(anchor, query)
    if offset % period_months != 0:
        return False
    return query.day == min(anchor.day, query.days_in_month)


def occurrences_between(
    rule: RecurrenceRule,
    anchor: CalendarDate,
    start: CalendarDate,
    end: CalendarDate,
) -> Iterator[CalendarDate]:
    """Yield every date in ``[start, end]`` on which the rule applies, ascending."""
    first = max(start, anchor)
    last = end if rule.end_date is None else min(end, rule.end_date)
    if first > last:
        return

    period_days = rule.pattern.period_days
    if period_days is not None:
        # Jump straight to the first aligned day instead of scanning
        remainder = days_between(anchor, first) % period_days
        current = shift_days(first, (period_days - remainder) % period_days)
        while current <= last:
            yield current
            current = shift_days(current, period_days)
        return

    period_months = rule.pattern.period_months
    step = -(-months_between(anchor, first) // period_months)
    while True:
        occurrence = add_months(anchor, step * period_months)
        if occurrence > last:
            return
        if occurrence >= first:
            yield occurrence
        step += 1


def next_occurrence(
    rule: RecurrenceRule, anchor: CalendarDate, after: CalendarDate
) -> CalendarDate | None:
    """First occurrence on or after ``after``, or ``None`` once the series has ended."""
    if rule.end_date is not None and after > rule.end_date:
        return None
    horizon = rule.end_date or add_months(max(after, anchor), 12)
    return next(occurrences_between(rule, anchor, after, horizon), None)


def describe(rule: RecurrenceRule) -> str:
    """Human-readable summary, e.g. ``Repeats weekly, until Mar 1, 2024``."""
    text = f"Repeats {rule.pattern.value}"
    if rule.end_date is not None:
        text += f", until {format_short_date(rule.end_date)}"
    return text
