"""
Calendar aggregation.

Merges the appointment and event streams into the per-day agenda and the
month-view markers. Every stream push replaces the stored snapshot for that
stream and rebuilds the full agenda and marker map; nothing is patched
incrementally.
"""

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING

from carecal.calendar.errors import DataUnavailable
from carecal.calendar.models import (
    AgendaEntry,
    Appointment,
    CalendarDate,
    CalendarEvent,
    Marker,
    SourceKind,
)
from carecal.calendar.normalizer import shift_days
from carecal.calendar.recurrence import describe
from carecal.config import Settings, get_settings
from carecal.utils.mixins import LoggerMixin

if TYPE_CHECKING:
    from carecal.storage.gateway import PersistenceGateway, Unsubscribe

MarkerMap = dict[CalendarDate, tuple[Marker, ...]]


class ViewState(str, Enum):
    """Aggregation state."""

    LOADING = "loading"
    READY = "ready"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class DayMarking:
    """Month-view cell: its markers and whether it is the selected day."""

    markers: tuple[Marker, ...] = ()
    selected: bool = False


@dataclass(frozen=True)
class CalendarSnapshot:
    """Immutable result of one aggregation pass."""

    state: ViewState
    display_date: CalendarDate
    agenda: tuple[AgendaEntry, ...] = ()
    markers: MarkerMap = field(default_factory=dict)
    error: DataUnavailable | None = None


def _event_color(event: CalendarEvent, settings: Settings) -> str:
    return event.color or settings.category_color(event.category.value)


def _appointment_color(appointment: Appointment, settings: Settings) -> str:
    return appointment.color or settings.default_appointment_color


def _active(entities: Iterable[CalendarEvent | Appointment]):
    return [entity for entity in entities if not entity.is_cancelled]


def to_agenda_entry(
    entity: CalendarEvent | Appointment, settings: Settings | None = None
) -> AgendaEntry:
    """Project one appointment or event into its display row."""
    settings = settings or get_settings()
    rule = entity.recurrence

    if isinstance(entity, Appointment):
        return AgendaEntry(
            source_kind=SourceKind.APPOINTMENT,
            source_id=entity.id,
            display_title=entity.display_title,
            time=entity.time,
            is_all_day=False,
            location=entity.location,
            category_color=_appointment_color(entity, settings),
            is_recurring=rule is not None,
            recurrence_label=describe(rule) if rule else None,
            status=entity.status.value,
        )

    return AgendaEntry(
        source_kind=SourceKind.EVENT,
        source_id=entity.id,
        display_title=entity.display_title,
        time=entity.time,
        is_all_day=entity.is_all_day,
        location=entity.location,
        category_color=_event_color(entity, settings),
        is_recurring=rule is not None,
        recurrence_label=describe(rule) if rule else None,
        status=entity.status.value,
    )


def _agenda_sort_key(item: tuple[int, AgendaEntry]) -> tuple[int, int, int]:
    position, entry = item
    if entry.is_all_day or entry.time is None:
        return (0, 0, position)
    return (1, entry.time.total_minutes, position)


def build_agenda(
    target: CalendarDate,
    events: Sequence[CalendarEvent],
    appointments: Sequence[Appointment],
    settings: Settings | None = None,
) -> tuple[AgendaEntry, ...]:
    """
    Ordered agenda for one day.

    All-day entries first, then ascending start time. Ties keep stream order:
    events before appointments, each in snapshot order.
    """
    settings = settings or get_settings()
    matching = [e for e in _active(events) if e.occurs_on(target)]
    matching += [a for a in _active(appointments) if a.occurs_on(target)]

    entries = [to_agenda_entry(entity, settings) for entity in matching]
    ordered = sorted(enumerate(entries), key=_agenda_sort_key)
    return tuple(entry for _, entry in ordered)


def build_markers(
    year: int,
    month: int,
    events: Sequence[CalendarEvent],
    appointments: Sequence[Appointment],
    settings: Settings | None = None,
) -> MarkerMap:
    """
    One marker per contributing entity for every day of the month.

    Dates appear in calendar order; markers on a date keep stream order.
    """
    settings = settings or get_settings()
    first = CalendarDate(year, month, 1)
    days = [shift_days(first, offset) for offset in range(first.days_in_month)]

    contributors: list[tuple[CalendarEvent | Appointment, str]] = [
        (event, _event_color(event, settings)) for event in _active(events)
    ]
    contributors += [
        (appointment, _appointment_color(appointment, settings))
        for appointment in _active(appointments)
    ]

    markers: MarkerMap = {}
    for day in days:
        dots = tuple(
            Marker(key=entity.id, color=color)
            for entity, color in contributors
            if entity.occurs_on(day)
        )
        if dots:
            markers[day] = dots
    return markers


def build_month_view(
    year: int,
    month: int,
    selected: CalendarDate,
    events: Sequence[CalendarEvent],
    appointments: Sequence[Appointment],
    settings: Settings | None = None,
) -> dict[CalendarDate, DayMarking]:
    """Marker map plus the selected-day flag, ready for the month grid."""
    view = {
        day: DayMarking(markers=dots, selected=day == selected)
        for day, dots in build_markers(year, month, events, appointments, settings).items()
    }
    if selected not in view:
        view[selected] = DayMarking(selected=True)
    return view


class CalendarAggregator(LoggerMixin):
    """Live agenda and marker view over the two gateway streams.

    Listeners receive a new ``CalendarSnapshot`` after every recomputation.
    While a stream is failing the last good agenda and markers are kept and
    the snapshot carries ``ViewState.UNAVAILABLE`` with the error.
    """

    def __init__(
        self,
        gateway: "PersistenceGateway",
        owner_id: str,
        display_date: CalendarDate,
        settings: Settings | None = None,
    ):
        self.gateway = gateway
        self.owner_id = owner_id
        self.settings = settings or get_settings()
        self._events: list[CalendarEvent] | None = None
        self._appointments: list[Appointment] | None = None
        self._errors: dict[str, DataUnavailable] = {}
        self._unsubscribers: list["Unsubscribe"] = []
        self._listeners: list[Callable[[CalendarSnapshot], None]] = []
        self._snapshot = CalendarSnapshot(ViewState.LOADING, display_date)

    @property
    def snapshot(self) -> CalendarSnapshot:
        return self._snapshot

    @property
    def display_date(self) -> CalendarDate:
        return self._snapshot.display_date

    def add_listener(self, callback: Callable[[CalendarSnapshot], None]) -> Callable[[], None]:
        """Register a snapshot listener; returns a function that removes it."""
        self._listeners.append(callback)

        def remove() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return remove

    def start(self) -> None:
        """Subscribe to both streams."""
        if self._unsubscribers:
            return

        self._unsubscribers = [
            self.gateway.subscribe_events(
                self.owner_id, self._on_events, self._on_stream_error
            ),
            self.gateway.subscribe_appointments(
                self.owner_id, self._on_appointments, self._on_stream_error
            ),
        ]
        self.logger.info("Calendar aggregator started", owner_id=self.owner_id)

    def stop(self) -> None:
        """Unsubscribe from both streams."""
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        self.logger.info("Calendar aggregator stopped", owner_id=self.owner_id)

    def show_date(self, target: CalendarDate) -> CalendarSnapshot:
        """Move the display to ``target`` (and its month) and recompute."""
        self._snapshot = replace(self._snapshot, display_date=target)
        return self._recompute()

    # Stream callbacks

    def _on_events(self, events: list[CalendarEvent]) -> None:
        self._events = list(events)
        self._errors.pop("events", None)
        self._recompute()

    def _on_appointments(self, appointments: list[Appointment]) -> None:
        self._appointments = list(appointments)
        self._errors.pop("appointments", None)
        self._recompute()

    def _on_stream_error(self, error: DataUnavailable) -> None:
        self._errors[error.stream or "unknown"] = error
        self.logger.error(
            "Calendar data unavailable",
            owner_id=self.owner_id,
            stream=error.stream,
            error=str(error),
        )
        self._recompute()

    # Queries over the latest snapshots

    def agenda_for_date(self, target: CalendarDate) -> tuple[AgendaEntry, ...]:
        return build_agenda(
            target, self._events or [], self._appointments or [], self.settings
        )

    def agenda_for_range(
        self, start: CalendarDate, end: CalendarDate
    ) -> dict[CalendarDate, tuple[AgendaEntry, ...]]:
        """Agenda per day in ``[start, end]``, days without entries omitted."""
        result: dict[CalendarDate, tuple[AgendaEntry, ...]] = {}
        day = start
        while day <= end:
            agenda = self.agenda_for_date(day)
            if agenda:
                result[day] = agenda
            day = shift_days(day, 1)
        return result

    def markers_for_month(self, year: int, month: int) -> MarkerMap:
        return build_markers(
            year, month, self._events or [], self._appointments or [], self.settings
        )

    def month_view(
        self, year: int, month: int, selected: CalendarDate | None = None
    ) -> dict[CalendarDate, DayMarking]:
        return build_month_view(
            year,
            month,
            selected or self.display_date,
            self._events or [],
            self._appointments or [],
            self.settings,
        )

    def _recompute(self) -> CalendarSnapshot:
        display = self._snapshot.display_date
        previous = self._snapshot

        if self._errors:
            error = next(iter(self._errors.values()))
            snapshot = CalendarSnapshot(
                ViewState.UNAVAILABLE,
                display,
                agenda=previous.agenda,
                markers=previous.markers,
                error=error,
            )
        elif self._events is None or self._appointments is None:
            snapshot = CalendarSnapshot(ViewState.LOADING, display)
        else:
            snapshot = CalendarSnapshot(
                ViewState.READY,
                display,
                agenda=self.agenda_for_date(display),
                markers=self.markers_for_month(display.year, display.month),
            )

        self._snapshot = snapshot
        for listener in list(self._listeners):
            listener(snapshot)
        return snapshot
