"""Calendar data models."""

import calendar
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from carecal.calendar.errors import (
    InvalidDateFormat,
    InvalidStatusTransition,
    InvalidTimeFormat,
)


@dataclass(frozen=True, order=True)
class CalendarDate:
    """Wall-clock date with no time of day and no time zone.

    Always built from explicit integer components. Ordering and equality
    compare ``(year, month, day)``.
    """

    year: int
    month: int
    day: int

    def __post_init__(self) -> None:
        for name in ("year", "month", "day"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidDateFormat(f"{name} must be an integer", value)
        if not 1 <= self.year <= 9999:
            raise InvalidDateFormat(f"Year out of range: {self.year}", self.year)
        if not 1 <= self.month <= 12:
            raise InvalidDateFormat(f"Month out of range: {self.month}", self.month)
        days_in_month = calendar.monthrange(self.year, self.month)[1]
        if not 1 <= self.day <= days_in_month:
            raise InvalidDateFormat(
                f"Day out of range for {self.year}-{self.month:02d}: {self.day}",
                self.day,
            )

    @classmethod
    def from_date(cls, value: date) -> "CalendarDate":
        """Copy the wall-clock fields of a ``date`` or ``datetime``."""
        return cls(value.year, value.month, value.day)

    def to_date(self) -> date:
        """Naive ``date`` with the same components."""
        return date(self.year, self.month, self.day)

    def toordinal(self) -> int:
        return self.to_date().toordinal()

    def weekday(self) -> int:
        """Monday is 0, Sunday is 6."""
        return self.to_date().weekday()

    @property
    def days_in_month(self) -> int:
        return calendar.monthrange(self.year, self.month)[1]

    def isoformat(self) -> str:
        return f"{self.year:04d}-{self.month:02d}-{self.day:02d}"

    def __str__(self) -> str:
        return self.isoformat()


@dataclass(frozen=True, order=True)
class TimeOfDay:
    """Hour and minute, independent of any date. Persisted as ``HH:MM``."""

    hour: int
    minute: int = 0

    def __post_init__(self) -> None:
        for name in ("hour", "minute"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidTimeFormat(f"{name} must be an integer", value)
        if not 0 <= self.hour <= 23:
            raise InvalidTimeFormat(f"Hour out of range: {self.hour}", self.hour)
        if not 0 <= self.minute <= 59:
            raise InvalidTimeFormat(f"Minute out of range: {self.minute}", self.minute)

    @classmethod
    def from_minutes(cls, minutes: int) -> "TimeOfDay":
        return cls(minutes // 60, minutes % 60)

    @property
    def total_minutes(self) -> int:
        return self.hour * 60 + self.minute

    def isoformat(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"

    def __str__(self) -> str:
        return self.isoformat()


@dataclass(frozen=True, order=True)
class LocalMoment:
    """A wall-clock instant: the caller's notion of "now"."""

    date: CalendarDate
    time: TimeOfDay


@dataclass(frozen=True)
class TimeSlot:
    """One offerable start time on a given day. Never persisted."""

    date: CalendarDate
    time: TimeOfDay


class RecurrencePattern(str, Enum):
    """Recurrence pattern enum."""

    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"

    @property
    def label(self) -> str:
        return _PATTERN_LABELS[self]

    @property
    def period_days(self) -> int | None:
        """Period for day-counted patterns, ``None`` for month-anchored ones."""
        return _PATTERN_DAYS.get(self)

    @property
    def period_months(self) -> int | None:
        """Period for month-anchored patterns, ``None`` for day-counted ones."""
        return _PATTERN_MONTHS.get(self)


_PATTERN_LABELS = {
    RecurrencePattern.DAILY: "Daily",
    RecurrencePattern.WEEKLY: "Weekly",
    RecurrencePattern.BIWEEKLY: "Bi-weekly",
    RecurrencePattern.MONTHLY: "Monthly",
    RecurrencePattern.QUARTERLY: "Quarterly",
    RecurrencePattern.YEARLY: "Yearly",
}
_PATTERN_DAYS = {
    RecurrencePattern.DAILY: 1,
    RecurrencePattern.WEEKLY: 7,
    RecurrencePattern.BIWEEKLY: 14,
}
_PATTERN_MONTHS = {
    RecurrencePattern.MONTHLY: 1,
    RecurrencePattern.QUARTERLY: 3,
    RecurrencePattern.YEARLY: 12,
}


@dataclass(frozen=True)
class RecurrenceRule:
    """Embedded recurrence definition. No ``end_date`` means indefinitely."""

    pattern: RecurrencePattern
    end_date: CalendarDate | None = None


class AppointmentStatus(str, Enum):
    """Appointment status enum."""

    UPCOMING = "upcoming"
    PAST = "past"
    CANCELLED = "cancelled"


class EventStatus(str, Enum):
    """Event status enum."""

    UPCOMING = "upcoming"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class EventCategory(str, Enum):
    """Event category enum."""

    PERSONAL = "personal"
    WORK = "work"
    SOCIAL = "social"
    HEALTH = "health"
    OTHER = "other"


class ReminderChannel(str, Enum):
    """Reminder delivery channel enum."""

    NOTIFICATION = "notification"
    EMAIL = "email"
    SMS = "sms"
    ALL = "all"


class SourceKind(str, Enum):
    """Entity family an agenda entry was projected from."""

    EVENT = "event"
    APPOINTMENT = "appointment"


class Reminder(BaseModel):
    """Reminder settings attached to an entity."""

    model_config = ConfigDict(frozen=True)

    offset_minutes: int = Field(default=30, ge=0)
    channel: ReminderChannel = ReminderChannel.NOTIFICATION


def _coerce_date(value: Any) -> Any:
    from carecal.calendar.normalizer import coerce_date

    if value is None or isinstance(value, CalendarDate):
        return value
    return coerce_date(value)


def _coerce_time(value: Any) -> Any:
    from carecal.calendar.normalizer import coerce_time

    if value is None or isinstance(value, TimeOfDay):
        return value
    return coerce_time(value)


class _ScheduledEntity(BaseModel):
    """Fields and checks shared by appointments and events."""

    model_config = ConfigDict(frozen=True)

    id: str | None = Field(None, description="Gateway document ID")
    date: CalendarDate = Field(..., description="Anchor date")
    recurrence: RecurrenceRule | None = None
    reminder: Reminder = Field(default_factory=Reminder)
    color: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("date", mode="before")
    @classmethod
    def parse_date(cls, v: Any) -> Any:
        return _coerce_date(v)

    @model_validator(mode="after")
    def validate_recurrence_end(self) -> "_ScheduledEntity":
        """Validate recurrence end date is not before the anchor date."""
        rule = self.recurrence
        if rule and rule.end_date and rule.end_date < self.date:
            raise ValueError("Recurrence end date cannot be before start date")
        return self

    @property
    def is_recurring(self) -> bool:
        return self.recurrence is not None

    def occurs_on(self, target: CalendarDate) -> bool:
        """Check if the entity falls on ``target`` directly or by recurrence."""
        if self.recurrence is None:
            return self.date == target

        from carecal.calendar.recurrence import applies_on

        return applies_on(self.recurrence, self.date, target)


class Appointment(_ScheduledEntity):
    """Medical appointment data model."""

    doctor_name: str = Field(..., description="Doctor name")
    specialty: str = Field(..., description="Doctor specialty")
    time: TimeOfDay = Field(..., description="Start time")
    location: str = Field(..., description="Clinic or hospital")
    duration_minutes: int = Field(default=30, gt=0)
    status: AppointmentStatus = Field(default=AppointmentStatus.UPCOMING)
    time_zone: str = Field(default="UTC", description="Informational only")
    notes: str = ""

    @field_validator("time", mode="before")
    @classmethod
    def parse_time(cls, v: Any) -> Any:
        return _coerce_time(v)

    @property
    def display_title(self) -> str:
        return f"Dr. {self.doctor_name} ({self.specialty})"

    @property
    def is_cancelled(self) -> bool:
        return self.status == AppointmentStatus.CANCELLED

    def _transition(self, target: AppointmentStatus) -> "Appointment":
        if self.status != AppointmentStatus.UPCOMING:
            raise InvalidStatusTransition(
                "appointment", self.status.value, target.value
            )
        return self.model_copy(update={"status": target})

    def mark_past(self) -> "Appointment":
        """Mark appointment as attended."""
        return self._transition(AppointmentStatus.PAST)

    def cancel(self) -> "Appointment":
        """Cancel appointment. Cancellation is terminal."""
        return self._transition(AppointmentStatus.CANCELLED)


class CalendarEvent(_ScheduledEntity):
    """Generic calendar event data model."""

    title: str = Field(..., description="Event title")
    description: str = ""
    time: TimeOfDay | None = Field(None, description="Start time, None for all-day")
    location: str = ""
    category: EventCategory = Field(default=EventCategory.PERSONAL)
    is_all_day: bool = False
    status: EventStatus = Field(default=EventStatus.UPCOMING)

    @model_validator(mode="before")
    @classmethod
    def normalize_all_day(cls, data: Any) -> Any:
        """Drop the time of all-day events and infer all-day from a missing time."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if data.get("is_all_day"):
            data["time"] = None
        elif data.get("time") is None and "is_all_day" not in data:
            data["is_all_day"] = True
        return data

    @field_validator("time", mode="before")
    @classmethod
    def parse_time(cls, v: Any) -> Any:
        return _coerce_time(v)

    @model_validator(mode="after")
    def validate_time_present(self) -> "CalendarEvent":
        if not self.is_all_day and self.time is None:
            raise ValueError("Timed events require a time")
        return self

    @property
    def display_title(self) -> str:
        return self.title

    @property
    def is_cancelled(self) -> bool:
        return self.status == EventStatus.CANCELLED

    def _transition(self, target: EventStatus) -> "CalendarEvent":
        if self.status != EventStatus.UPCOMING:
            raise InvalidStatusTransition("event", self.status.value, target.value)
        return self.model_copy(update={"status": target})

    def mark_completed(self) -> "CalendarEvent":
        """Mark event as completed. Completion is terminal."""
        return self._transition(EventStatus.COMPLETED)

    def cancel(self) -> "CalendarEvent":
        """Cancel event."""
        return self._transition(EventStatus.CANCELLED)


@dataclass(frozen=True)
class AgendaEntry:
    """Read-only display projection of one appointment or event on one day."""

    source_kind: SourceKind
    source_id: str | None
    display_title: str
    time: TimeOfDay | None
    is_all_day: bool
    location: str
    category_color: str
    is_recurring: bool
    recurrence_label: str | None
    status: str


@dataclass(frozen=True)
class Marker:
    """One colored dot on a month-view cell, one per contributing entity."""

    key: str | None
    color: str
