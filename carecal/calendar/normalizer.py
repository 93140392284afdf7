"""
Date and time normalization.

Every user-facing date or time input ends up here and comes out as a
``CalendarDate`` / ``TimeOfDay`` built from explicit integer components.
Nothing in this module parses a string into a timestamp and reads local
fields back, so the selected wall-clock date is the date that gets stored.
"""

import calendar
import re
from datetime import date, datetime, time
from typing import Any

from carecal.calendar.errors import InvalidDateFormat, InvalidTimeFormat
from carecal.calendar.models import CalendarDate, LocalMoment, TimeOfDay

_DATE_PATTERN = re.compile(r"^\s*(\d{4})-(\d{1,2})-(\d{1,2})\s*$")
_TIME_24H_PATTERN = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*$")
_TIME_12H_PATTERN = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*([AaPp])\.?\s*[Mm]\.?\s*$")

_MONTH_NAMES = list(calendar.month_name)
_MONTH_ABBRS = list(calendar.month_abbr)
_DAY_NAMES = list(calendar.day_name)


def normalize(year: int, month: int, day: int) -> CalendarDate:
    """Build a ``CalendarDate`` from explicit components."""
    return CalendarDate(year, month, day)


def parse_date(value: str) -> CalendarDate:
    """
    Parse a ``YYYY-MM-DD`` selection token.

    Args:
        value: Three ``-``-separated integer groups

    Returns:
        The canonical date

    Raises:
        InvalidDateFormat: The groups are missing or out of range
    """
    if not isinstance(value, str):
        raise InvalidDateFormat(f"Expected a date string, got {type(value).__name__}", value)

    match = _DATE_PATTERN.match(value)
    if not match:
        raise InvalidDateFormat(f"Invalid date format: {value!r}", value)

    year, month, day = (int(group) for group in match.groups())
    return CalendarDate(year, month, day)


def from_widget(value: date) -> CalendarDate:
    """Extract the wall-clock fields of a picker's ``date``/``datetime`` on receipt."""
    if not isinstance(value, date):
        raise InvalidDateFormat(f"Expected a date object, got {type(value).__name__}", value)
    return CalendarDate(value.year, value.month, value.day)


def shift_days(value: CalendarDate, delta: int) -> CalendarDate:
    """Move a date by ``delta`` days using ordinal arithmetic."""
    try:
        shifted = date.fromordinal(value.toordinal() + delta)
    except (ValueError, OverflowError) as e:
        raise InvalidDateFormat(f"Date shift out of range: {value} {delta:+d}", delta) from e
    return CalendarDate(shifted.year, shifted.month, shifted.day)


def add_months(value: CalendarDate, months: int) -> CalendarDate:
    """Move a date by whole months, clamping the day to the target month's length."""
    index = value.year * 12 + (value.month - 1) + months
    year, month_index = divmod(index, 12)
    month = month_index + 1
    if not 1 <= year <= 9999:
        raise InvalidDateFormat(f"Month shift out of range: {value} {months:+d}", months)
    day = min(value.day, calendar.monthrange(year, month)[1])
    return CalendarDate(year, month, day)


def days_between(start: CalendarDate, end: CalendarDate) -> int:
    """Signed number of days from ``start`` to ``end``."""
    return end.toordinal() - start.toordinal()


def months_between(start: CalendarDate, end: CalendarDate) -> int:
    """Signed number of calendar months from ``start``'s month to ``end``'s month."""
    return (end.year - start.year) * 12 + (end.month - start.month)


def parse_time(value: str) -> TimeOfDay:
    """
    Parse a time typed or selected by the user.

    Accepts 24-hour ``HH:MM`` and 12-hour ``h:mm AM``.

    Raises:
        InvalidTimeFormat: The input matches neither form or is out of range
    """
    if not isinstance(value, str):
        raise InvalidTimeFormat(f"Expected a time string, got {type(value).__name__}", value)

    match = _TIME_12H_PATTERN.match(value)
    if match:
        hour, minute = int(match.group(1)), int(match.group(2))
        if not 1 <= hour <= 12:
            raise InvalidTimeFormat(f"Invalid 12-hour time: {value!r}", value)
        is_pm = match.group(3).lower() == "p"
        hour = hour % 12 + (12 if is_pm else 0)
        return TimeOfDay(hour, minute)

    match = _TIME_24H_PATTERN.match(value)
    if match:
        return TimeOfDay(int(match.group(1)), int(match.group(2)))

    raise InvalidTimeFormat(f"Invalid time format: {value!r}", value)


def from_widget_time(value: time | datetime) -> TimeOfDay:
    """Extract hour and minute from a picker's ``time``/``datetime``."""
    if not isinstance(value, (time, datetime)):
        raise InvalidTimeFormat(f"Expected a time object, got {type(value).__name__}", value)
    return TimeOfDay(value.hour, value.minute)


def moment_from_datetime(value: datetime) -> LocalMoment:
    """Split a wall-clock ``datetime`` into date and time as shown on the clock."""
    return LocalMoment(
        CalendarDate(value.year, value.month, value.day),
        TimeOfDay(value.hour, value.minute),
    )


def coerce_date(value: Any) -> CalendarDate:
    """Accept a ``CalendarDate``, a picker ``date`` or a ``YYYY-MM-DD`` string."""
    if isinstance(value, CalendarDate):
        return value
    if isinstance(value, date):
        return from_widget(value)
    if isinstance(value, dict):
        try:
            return CalendarDate(int(value["year"]), int(value["month"]), int(value["day"]))
        except (KeyError, TypeError) as e:
            raise InvalidDateFormat(f"Invalid date mapping: {value!r}", value) from e
    return parse_date(value)


def coerce_time(value: Any) -> TimeOfDay:
    """Accept a ``TimeOfDay``, a picker ``time``/``datetime`` or a time string."""
    if isinstance(value, TimeOfDay):
        return value
    if isinstance(value, (time, datetime)):
        return from_widget_time(value)
    if isinstance(value, dict):
        try:
            return TimeOfDay(int(value["hour"]), int(value.get("minute", 0)))
        except (KeyError, TypeError) as e:
            raise InvalidTimeFormat(f"Invalid time mapping: {value!r}", value) from e
    return parse_time(value)


def format_date(value: CalendarDate) -> str:
    """``YYYY-MM-DD`` with zero-padded month and day."""
    return value.isoformat()


def format_time(value: TimeOfDay) -> str:
    """``HH:MM`` 24-hour, the persisted form."""
    return value.isoformat()


def format_time_12h(value: TimeOfDay) -> str:
    """12-hour display form, e.g. ``9:30 AM``."""
    suffix = "AM" if value.hour < 12 else "PM"
    hour = value.hour % 12 or 12
    return f"{hour}:{value.minute:02d} {suffix}"


def format_short_date(value: CalendarDate) -> str:
    """Short display form, e.g. ``Mar 1, 2024``."""
    return f"{_MONTH_ABBRS[value.month]} {value.day}, {value.year}"


def format_long_date(value: CalendarDate) -> str:
    """Long display form, e.g. ``Saturday, June 1, 2024``."""
    return (
        f"{_DAY_NAMES[value.weekday()]}, "
        f"{_MONTH_NAMES[value.month]} {value.day}, {value.year}"
    )


def format_month_heading(year: int, month: int) -> str:
    """Month group heading, e.g. ``June 2024``."""
    return f"{_MONTH_NAMES[month]} {year}"
