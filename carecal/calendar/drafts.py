"""Form drafts: raw, not-yet-validated input from the scheduling dialogs."""

import datetime as dt

from pydantic import BaseModel, Field, field_validator

from carecal.calendar.models import (
    Appointment,
    CalendarDate,
    CalendarEvent,
    EventCategory,
    RecurrencePattern,
    RecurrenceRule,
    Reminder,
    ReminderChannel,
    TimeOfDay,
)
from carecal.calendar.normalizer import (
    coerce_date,
    coerce_time,
    from_widget,
    from_widget_time,
)
from carecal.config import Settings, get_settings

DateInput = CalendarDate | dt.date | str | None
TimeInput = TimeOfDay | dt.time | str | None


class _Draft(BaseModel):
    """Fields shared by both dialogs. Values may still be raw strings."""

    date: DateInput = None
    time: TimeInput = None
    location: str = ""
    is_recurring: bool = False
    recurrence_pattern: str | None = None
    recurrence_end: DateInput = None
    reminder_minutes: int | None = Field(default=None, ge=0)
    reminder_channel: str | None = None
    color: str | None = None

    @field_validator("date", "recurrence_end", mode="before")
    @classmethod
    def _date_from_picker(cls, v):
        # datetime is a date subclass; keep its wall-clock day
        if isinstance(v, dt.date):
            return from_widget(v)
        return v

    @field_validator("time", mode="before")
    @classmethod
    def _time_from_picker(cls, v):
        if isinstance(v, (dt.time, dt.datetime)):
            return from_widget_time(v)
        return v

    def _recurrence(self) -> RecurrenceRule | None:
        if not self.is_recurring or not self.recurrence_pattern:
            return None
        end = coerce_date(self.recurrence_end) if self.recurrence_end else None
        return RecurrenceRule(RecurrencePattern(self.recurrence_pattern), end)

    def _reminder(self, settings: Settings) -> Reminder:
        minutes = self.reminder_minutes
        channel = self.reminder_channel
        return Reminder(
            offset_minutes=settings.default_reminder_minutes if minutes is None else minutes,
            channel=ReminderChannel(channel or settings.default_reminder_channel),
        )


class AppointmentDraft(_Draft):
    """Appointment scheduling form state."""

    doctor_name: str = ""
    specialty: str = ""
    duration_minutes: int | None = 30
    time_zone: str | None = None
    notes: str = ""

    def to_appointment(self, settings: Settings | None = None) -> Appointment:
        """Build the entity. Call only after validation returned no errors."""
        settings = settings or get_settings()
        return Appointment(
            doctor_name=self.doctor_name.strip(),
            specialty=self.specialty.strip(),
            date=coerce_date(self.date),
            time=coerce_time(self.time),
            location=self.location.strip(),
            duration_minutes=self.duration_minutes or settings.default_duration_minutes,
            recurrence=self._recurrence(),
            reminder=self._reminder(settings),
            time_zone=self.time_zone or settings.default_time_zone,
            color=self.color or settings.default_appointment_color,
            notes=self.notes.strip(),
        )

    @classmethod
    def from_appointment(cls, appointment: Appointment) -> "AppointmentDraft":
        """Prefill the dialog for a reschedule."""
        rule = appointment.recurrence
        return cls(
            doctor_name=appointment.doctor_name,
            specialty=appointment.specialty,
            date=appointment.date,
            time=appointment.time,
            location=appointment.location,
            duration_minutes=appointment.duration_minutes,
            is_recurring=rule is not None,
            recurrence_pattern=rule.pattern.value if rule else None,
            recurrence_end=rule.end_date if rule else None,
            reminder_minutes=appointment.reminder.offset_minutes,
            reminder_channel=appointment.reminder.channel.value,
            time_zone=appointment.time_zone,
            color=appointment.color,
            notes=appointment.notes,
        )


class EventDraft(_Draft):
    """Add-event form state."""

    title: str = ""
    description: str = ""
    category: str = EventCategory.PERSONAL.value
    is_all_day: bool = False

    def to_event(self, settings: Settings | None = None) -> CalendarEvent:
        """Build the entity. Call only after validation returned no errors."""
        settings = settings or get_settings()
        category = EventCategory(self.category)
        return CalendarEvent(
            title=self.title.strip(),
            description=self.description.strip(),
            date=coerce_date(self.date),
            time=None if self.is_all_day else coerce_time(self.time),
            location=self.location.strip(),
            category=category,
            is_all_day=self.is_all_day,
            recurrence=self._recurrence(),
            reminder=self._reminder(settings),
            color=self.color or settings.category_color(category.value),
        )
