"""Calendar scheduling engine."""

# Storage is not imported here: the gateways import this package's models
from carecal.calendar.aggregator import (
    CalendarAggregator,
    CalendarSnapshot,
    DayMarking,
    ViewState,
)
from carecal.calendar.drafts import AppointmentDraft, EventDraft
from carecal.calendar.errors import (
    CalendarError,
    DataUnavailable,
    EntityNotFound,
    FieldError,
    InvalidDateFormat,
    InvalidStatusTransition,
    InvalidTimeFormat,
    PastDateRejected,
    ValidationFailed,
    WriteFailed,
)
from carecal.calendar.listing import group_by_month, split_appointments
from carecal.calendar.models import (
    AgendaEntry,
    Appointment,
    AppointmentStatus,
    CalendarDate,
    CalendarEvent,
    EventCategory,
    EventStatus,
    LocalMoment,
    Marker,
    RecurrencePattern,
    RecurrenceRule,
    Reminder,
    ReminderChannel,
    SourceKind,
    TimeOfDay,
    TimeSlot,
)
from carecal.calendar.service import CalendarService
from carecal.calendar.slots import SlotPolicy, generate_slots, time_slots
from carecal.calendar.validator import ValidationPolicy, validate

__all__ = [
    "CalendarDate",
    "TimeOfDay",
    "LocalMoment",
    "TimeSlot",
    "RecurrencePattern",
    "RecurrenceRule",
    "Reminder",
    "ReminderChannel",
    "Appointment",
    "AppointmentStatus",
    "CalendarEvent",
    "EventCategory",
    "EventStatus",
    "AgendaEntry",
    "Marker",
    "SourceKind",
    "AppointmentDraft",
    "EventDraft",
    "CalendarError",
    "InvalidDateFormat",
    "InvalidTimeFormat",
    "FieldError",
    "PastDateRejected",
    "ValidationFailed",
    "InvalidStatusTransition",
    "DataUnavailable",
    "WriteFailed",
    "EntityNotFound",
    "SlotPolicy",
    "generate_slots",
    "time_slots",
    "ValidationPolicy",
    "validate",
    "CalendarAggregator",
    "CalendarSnapshot",
    "DayMarking",
    "ViewState",
    "CalendarService",
    "split_appointments",
    "group_by_month",
]
