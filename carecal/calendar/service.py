"""
Scheduling service.

The single write path the dialogs call. Drafts are validated against an
explicit ``now``, turned into entities and handed to the gateway. Nothing is
merged into any displayed list here; the next subscription snapshot is what
makes a write visible.
"""

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from carecal.calendar.drafts import AppointmentDraft, EventDraft
from carecal.calendar.errors import (
    EntityNotFound,
    InvalidStatusTransition,
    ValidationFailed,
)
from carecal.calendar.models import (
    Appointment,
    AppointmentStatus,
    CalendarEvent,
    LocalMoment,
)
from carecal.calendar.validator import (
    ValidationPolicy,
    validate_appointment,
    validate_event,
)
from carecal.config import Settings, get_settings
from carecal.utils.mixins import LoggerMixin

if TYPE_CHECKING:
    from carecal.storage.gateway import PersistenceGateway


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CalendarService(LoggerMixin):
    """Create, reschedule and transition appointments and events for one owner."""

    def __init__(
        self,
        gateway: "PersistenceGateway",
        owner_id: str,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.gateway = gateway
        self.owner_id = owner_id
        self.settings = settings or get_settings()
        self.policy = ValidationPolicy.from_settings(self.settings)
        self._clock = clock
        self._in_flight: set[str] = set()

    def is_submitting(self, form_key: str) -> bool:
        return form_key in self._in_flight

    @contextmanager
    def _submission(self, form_key: str) -> Iterator[bool]:
        """Yield False if the same form already has a write in flight."""
        if form_key in self._in_flight:
            self.logger.warning(
                "Duplicate submission ignored",
                owner_id=self.owner_id,
                form=form_key,
            )
            yield False
            return

        self._in_flight.add(form_key)
        try:
            yield True
        finally:
            self._in_flight.discard(form_key)

    def _reject_invalid(self, errors, form_key: str) -> None:
        if errors:
            self.logger.warning(
                "Submission rejected",
                owner_id=self.owner_id,
                form=form_key,
                fields=[error.field for error in errors],
            )
            raise ValidationFailed(errors)

    @staticmethod
    def _require_id(entity: Appointment | CalendarEvent, kind: str, operation: str) -> str:
        if not entity.id:
            raise EntityNotFound(kind, "", operation=operation)
        return entity.id

    # Appointments

    async def schedule_appointment(
        self, draft: AppointmentDraft, now: LocalMoment
    ) -> str | None:
        """Validate and create an appointment.

        Returns the new ID, or None when an earlier submission of the same
        form is still in flight.

        Raises:
            ValidationFailed: the draft violates one or more rules
            WriteFailed: the gateway rejected the write
        """
        form_key = "appointment:new"
        with self._submission(form_key) as accepted:
            if not accepted:
                return None

            self._reject_invalid(
                validate_appointment(draft, now, self.policy), form_key
            )
            stamp = self._clock()
            appointment = draft.to_appointment(self.settings).model_copy(
                update={"created_at": stamp, "updated_at": stamp}
            )
            appointment_id = await self.gateway.create_appointment(
                self.owner_id, appointment
            )

        self.logger.info(
            "Appointment scheduled",
            owner_id=self.owner_id,
            appointment_id=appointment_id,
            date=appointment.date.isoformat(),
            time=appointment.time.isoformat(),
        )
        return appointment_id

    async def reschedule_appointment(
        self, appointment: Appointment, draft: AppointmentDraft, now: LocalMoment
    ) -> str | None:
        """Move an upcoming appointment, keeping its ID.

        Date, time, duration and recurrence come from the draft.
        """
        appointment_id = self._require_id(
            appointment, "Appointment", "reschedule appointment"
        )
        if appointment.status != AppointmentStatus.UPCOMING:
            raise InvalidStatusTransition(
                "appointment", appointment.status.value, "rescheduled"
            )

        form_key = f"appointment:{appointment_id}"
        with self._submission(form_key) as accepted:
            if not accepted:
                return None

            self._reject_invalid(
                validate_appointment(draft, now, self.policy), form_key
            )
            moved = draft.to_appointment(self.settings)
            fields: dict[str, Any] = {
                "date": moved.date,
                "time": moved.time,
                "duration_minutes": moved.duration_minutes,
                "recurrence": moved.recurrence,
                "updated_at": self._clock(),
            }
            await self.gateway.update_appointment(self.owner_id, appointment_id, fields)

        self.logger.info(
            "Appointment rescheduled",
            owner_id=self.owner_id,
            appointment_id=appointment_id,
            date=moved.date.isoformat(),
            time=moved.time.isoformat(),
        )
        return appointment_id

    async def cancel_appointment(self, appointment: Appointment) -> None:
        appointment_id = self._require_id(appointment, "Appointment", "cancel appointment")
        cancelled = appointment.cancel()
        await self._write_status(
            self.gateway.update_appointment, appointment_id, cancelled.status
        )
        self.logger.info(
            "Appointment cancelled", owner_id=self.owner_id, appointment_id=appointment_id
        )

    async def complete_appointment(self, appointment: Appointment) -> None:
        """Mark an upcoming appointment as past."""
        appointment_id = self._require_id(
            appointment, "Appointment", "complete appointment"
        )
        attended = appointment.mark_past()
        await self._write_status(
            self.gateway.update_appointment, appointment_id, attended.status
        )
        self.logger.info(
            "Appointment marked past", owner_id=self.owner_id, appointment_id=appointment_id
        )

    # Events

    async def add_event(self, draft: EventDraft, now: LocalMoment) -> str | None:
        """Validate and create an event; None while a previous add is in flight."""
        form_key = "event:new"
        with self._submission(form_key) as accepted:
            if not accepted:
                return None

            self._reject_invalid(validate_event(draft, now), form_key)
            stamp = self._clock()
            event = draft.to_event(self.settings).model_copy(
                update={"created_at": stamp, "updated_at": stamp}
            )
            event_id = await self.gateway.create_event(self.owner_id, event)

        self.logger.info(
            "Event added",
            owner_id=self.owner_id,
            event_id=event_id,
            date=event.date.isoformat(),
            all_day=event.is_all_day,
        )
        return event_id

    async def complete_event(self, event: CalendarEvent) -> None:
        event_id = self._require_id(event, "Event", "complete event")
        completed = event.mark_completed()
        await self._write_status(self.gateway.update_event, event_id, completed.status)
        self.logger.info("Event completed", owner_id=self.owner_id, event_id=event_id)

    async def cancel_event(self, event: CalendarEvent) -> None:
        event_id = self._require_id(event, "Event", "cancel event")
        cancelled = event.cancel()
        await self._write_status(self.gateway.update_event, event_id, cancelled.status)
        self.logger.info("Event cancelled", owner_id=self.owner_id, event_id=event_id)

    async def delete_event(self, event: CalendarEvent) -> None:
        """Remove an event permanently."""
        event_id = self._require_id(event, "Event", "delete event")
        await self.gateway.delete_event(self.owner_id, event_id)
        self.logger.info("Event deleted", owner_id=self.owner_id, event_id=event_id)

    async def _write_status(self, update, entity_id: str, status) -> None:
        await update(
            self.owner_id,
            entity_id,
            {"status": status, "updated_at": self._clock()},
        )
