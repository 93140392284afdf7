"""
Document encoding for the persistence gateway.

Dates are stored as ``YYYY-MM-DD``, times as 24-hour ``HH:MM``. Optional
recurrence fields are always written, as ``None`` when unset, because the
store rejects missing keys but accepts explicit nulls.
"""

from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any

from carecal.calendar.models import (
    Appointment,
    AppointmentStatus,
    CalendarEvent,
    EventCategory,
    EventStatus,
    RecurrencePattern,
    RecurrenceRule,
    Reminder,
    ReminderChannel,
)
from carecal.calendar.normalizer import parse_date, parse_time


def _enum_value(value: Any) -> Any:
    return getattr(value, "value", value)


def _encode_timestamp(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _decode_timestamp(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def encode_recurrence(rule: RecurrenceRule | None) -> dict[str, Any]:
    """Flatten a rule into the three persisted recurrence keys."""
    if rule is None:
        return {"isRecurring": False, "recurrencePattern": None, "recurrenceEnd": None}
    return {
        "isRecurring": True,
        "recurrencePattern": rule.pattern.value,
        "recurrenceEnd": rule.end_date.isoformat() if rule.end_date else None,
    }


def decode_recurrence(doc: Mapping[str, Any]) -> RecurrenceRule | None:
    pattern = doc.get("recurrencePattern")
    if not doc.get("isRecurring") or not pattern:
        return None
    end = doc.get("recurrenceEnd")
    return RecurrenceRule(RecurrencePattern(pattern), parse_date(end) if end else None)


def _encode_reminder(reminder: Reminder) -> dict[str, Any]:
    return {
        "reminderTime": reminder.offset_minutes,
        "reminderType": reminder.channel.value,
    }


def _decode_reminder(doc: Mapping[str, Any]) -> Reminder:
    return Reminder(
        offset_minutes=doc.get("reminderTime", 30),
        channel=ReminderChannel(doc.get("reminderType") or "notification"),
    )


def encode_appointment(appointment: Appointment) -> dict[str, Any]:
    """Appointment -> stored document body (the ID is the document key)."""
    return {
        "doctorName": appointment.doctor_name,
        "specialty": appointment.specialty,
        "date": appointment.date.isoformat(),
        "time": appointment.time.isoformat(),
        "location": appointment.location,
        "notes": appointment.notes,
        "status": appointment.status.value,
        "duration": appointment.duration_minutes,
        **encode_recurrence(appointment.recurrence),
        **_encode_reminder(appointment.reminder),
        "timeZone": appointment.time_zone,
        "color": appointment.color,
        "createdAt": _encode_timestamp(appointment.created_at),
        "updatedAt": _encode_timestamp(appointment.updated_at),
    }


def decode_appointment(doc_id: str, doc: Mapping[str, Any]) -> Appointment:
    """Stored document -> Appointment."""
    return Appointment(
        id=doc_id,
        doctor_name=doc.get("doctorName", ""),
        specialty=doc.get("specialty", ""),
        date=parse_date(doc["date"]),
        time=parse_time(doc["time"]),
        location=doc.get("location", ""),
        notes=doc.get("notes") or "",
        status=AppointmentStatus(doc.get("status", "upcoming")),
        duration_minutes=doc.get("duration", 30),
        recurrence=decode_recurrence(doc),
        reminder=_decode_reminder(doc),
        time_zone=doc.get("timeZone") or "UTC",
        color=doc.get("color"),
        created_at=_decode_timestamp(doc.get("createdAt")),
        updated_at=_decode_timestamp(doc.get("updatedAt")),
    )


def encode_event(event: CalendarEvent) -> dict[str, Any]:
    """CalendarEvent -> stored document body."""
    return {
        "title": event.title,
        "description": event.description,
        "date": event.date.isoformat(),
        "time": event.time.isoformat() if event.time else None,
        "location": event.location,
        "isAllDay": event.is_all_day,
        **encode_recurrence(event.recurrence),
        "category": event.category.value,
        "color": event.color,
        **_encode_reminder(event.reminder),
        "status": event.status.value,
        "isCompleted": event.status == EventStatus.COMPLETED,
        "createdAt": _encode_timestamp(event.created_at),
        "updatedAt": _encode_timestamp(event.updated_at),
    }


def decode_event(doc_id: str, doc: Mapping[str, Any]) -> CalendarEvent:
    """Stored document -> CalendarEvent."""
    raw_time = doc.get("time")
    return CalendarEvent(
        id=doc_id,
        title=doc.get("title", ""),
        description=doc.get("description") or "",
        date=parse_date(doc["date"]),
        time=parse_time(raw_time) if raw_time else None,
        location=doc.get("location") or "",
        # a timed event stored without a time is shown as all-day
        is_all_day=bool(doc.get("isAllDay")) or not raw_time,
        recurrence=decode_recurrence(doc),
        category=EventCategory(doc.get("category") or "other"),
        color=doc.get("color"),
        reminder=_decode_reminder(doc),
        status=EventStatus(doc.get("status", "upcoming")),
        created_at=_decode_timestamp(doc.get("createdAt")),
        updated_at=_decode_timestamp(doc.get("updatedAt")),
    )


_FIELD_ENCODERS: dict[str, Callable[[Any], dict[str, Any]]] = {
    "date": lambda v: {"date": v.isoformat()},
    "time": lambda v: {"time": v.isoformat() if v else None},
    "status": lambda v: {"status": _enum_value(v)},
    "duration_minutes": lambda v: {"duration": v},
    "recurrence": encode_recurrence,
    "reminder": _encode_reminder,
    "doctor_name": lambda v: {"doctorName": v},
    "specialty": lambda v: {"specialty": v},
    "location": lambda v: {"location": v},
    "notes": lambda v: {"notes": v},
    "time_zone": lambda v: {"timeZone": v},
    "color": lambda v: {"color": v},
    "title": lambda v: {"title": v},
    "description": lambda v: {"description": v},
    "category": lambda v: {"category": _enum_value(v)},
    "is_all_day": lambda v: {"isAllDay": v},
    "updated_at": lambda v: {"updatedAt": _encode_timestamp(v)},
}


def encode_fields(fields: Mapping[str, Any]) -> dict[str, Any]:
    """Encode a partial update given in model field names."""
    encoded: dict[str, Any] = {}
    for name, value in fields.items():
        encoder = _FIELD_ENCODERS.get(name)
        if encoder is None:
            raise KeyError(f"Field '{name}' cannot be updated")
        encoded.update(encoder(value))
    if encoded.get("status") == EventStatus.COMPLETED.value:
        encoded["isCompleted"] = True
    return encoded
