"""
Entity validation.

Checks a draft against field-level and cross-field rules and returns every
violation at once so the dialog can list all problems together. Nothing here
raises for bad input or reads the wall clock; ``now`` is always passed in.
"""

from dataclasses import dataclass
from typing import Any

from carecal.calendar.drafts import AppointmentDraft, EventDraft
from carecal.calendar.errors import FieldError, InvalidDateFormat, PastDateRejected
from carecal.calendar.models import (
    CalendarDate,
    EventCategory,
    LocalMoment,
    RecurrencePattern,
    ReminderChannel,
    TimeOfDay,
)
from carecal.calendar.normalizer import coerce_date, coerce_time


@dataclass(frozen=True)
class ValidationPolicy:
    """Duration bounds for appointments, in minutes."""

    min_duration_minutes: int = 15
    max_duration_minutes: int = 240

    @classmethod
    def from_settings(cls, settings) -> "ValidationPolicy":
        return cls(
            min_duration_minutes=settings.min_duration_minutes,
            max_duration_minutes=settings.max_duration_minutes,
        )


DEFAULT_POLICY = ValidationPolicy()


def _format_minutes(minutes: int) -> str:
    if minutes % 60 == 0:
        hours = minutes // 60
        return f"{hours} hour" if hours == 1 else f"{hours} hours"
    return f"{minutes} minutes"


def _require_text(errors: list[FieldError], field: str, value: str, label: str) -> None:
    if not (value or "").strip():
        errors.append(FieldError(field, f"{label} is required", "required"))


def _check_date(
    errors: list[FieldError], raw: Any, today: CalendarDate
) -> CalendarDate | None:
    if raw is None or raw == "":
        errors.append(FieldError("date", "Date is required", "required"))
        return None
    try:
        value = coerce_date(raw)
    except InvalidDateFormat:
        errors.append(FieldError("date", "Valid date is required"))
        return None
    if value < today:
        errors.append(PastDateRejected("date", "Date cannot be in the past"))
    return value


def _check_time(
    errors: list[FieldError],
    raw: Any,
    day: CalendarDate | None,
    now: LocalMoment,
) -> TimeOfDay | None:
    if raw is None or raw == "":
        errors.append(FieldError("time", "Time is required", "required"))
        return None
    try:
        value = coerce_time(raw)
    except InvalidDateFormat:
        errors.append(FieldError("time", "Valid time is required"))
        return None
    if day == now.date and value < now.time:
        errors.append(PastDateRejected("time", "Time cannot be in the past"))
    return value


def _check_recurrence(
    errors: list[FieldError],
    draft: AppointmentDraft | EventDraft,
    day: CalendarDate | None,
    noun: str,
) -> None:
    pattern = draft.recurrence_pattern
    if draft.is_recurring and not pattern:
        errors.append(
            FieldError("recurrence", "Please select a recurrence pattern", "required")
        )
        return
    if not draft.is_recurring or not pattern:
        return
    if pattern not in {p.value for p in RecurrencePattern}:
        errors.append(FieldError("recurrence", "Invalid recurrence pattern"))
        return
    if draft.recurrence_end in (None, ""):
        return
    try:
        end = coerce_date(draft.recurrence_end)
    except InvalidDateFormat:
        errors.append(FieldError("recurrence", "Invalid recurrence end date"))
        return
    if day is not None and end < day:
        errors.append(
            FieldError(
                "recurrence", f"Recurrence end date must be after {noun} date"
            )
        )


def _check_reminder(errors: list[FieldError], draft: AppointmentDraft | EventDraft) -> None:
    if draft.reminder_channel is None:
        return
    if draft.reminder_channel not in {c.value for c in ReminderChannel}:
        errors.append(FieldError("reminder", "Invalid reminder type"))


def validate_appointment(
    draft: AppointmentDraft,
    now: LocalMoment,
    policy: ValidationPolicy = DEFAULT_POLICY,
) -> list[FieldError]:
    """Return every rule the appointment draft violates, in form order."""
    errors: list[FieldError] = []

    _require_text(errors, "doctor_name", draft.doctor_name, "Doctor name")
    _require_text(errors, "specialty", draft.specialty, "Specialty")
    _require_text(errors, "location", draft.location, "Location")

    day = _check_date(errors, draft.date, now.date)
    _check_time(errors, draft.time, day, now)
    _check_recurrence(errors, draft, day, "appointment")

    duration = draft.duration_minutes
    if not duration:
        errors.append(FieldError("duration_minutes", "Duration is required", "required"))
    elif duration < policy.min_duration_minutes:
        errors.append(
            FieldError(
                "duration_minutes",
                f"Duration must be at least {policy.min_duration_minutes} minutes",
                "range",
            )
        )
    elif duration > policy.max_duration_minutes:
        errors.append(
            FieldError(
                "duration_minutes",
                f"Duration cannot exceed {_format_minutes(policy.max_duration_minutes)}",
                "range",
            )
        )

    _check_reminder(errors, draft)
    return errors


def validate_event(draft: EventDraft, now: LocalMoment) -> list[FieldError]:
    """Return every rule the event draft violates, in form order."""
    errors: list[FieldError] = []

    _require_text(errors, "title", draft.title, "Event title")
    _require_text(errors, "location", draft.location, "Location")

    day = _check_date(errors, draft.date, now.date)
    if not draft.is_all_day:
        _check_time(errors, draft.time, day, now)
    _check_recurrence(errors, draft, day, "event")

    if draft.category not in {c.value for c in EventCategory}:
        errors.append(FieldError("category", "Invalid event category"))

    _check_reminder(errors, draft)
    return errors


def validate(
    candidate: AppointmentDraft | EventDraft,
    now: LocalMoment,
    policy: ValidationPolicy = DEFAULT_POLICY,
) -> list[FieldError]:
    """Dispatch on the draft type."""
    if isinstance(candidate, AppointmentDraft):
        return validate_appointment(candidate, now, policy)
    return validate_event(candidate, now)
