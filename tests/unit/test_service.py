"""Unit tests for the scheduling service."""

import asyncio
from datetime import datetime, timezone

import pytest

from carecal.calendar.drafts import AppointmentDraft
from carecal.calendar.errors import (
    EntityNotFound,
    InvalidStatusTransition,
    PastDateRejected,
    ValidationFailed,
)
from carecal.calendar.models import (
    AppointmentStatus,
    CalendarDate,
    EventStatus,
    TimeOfDay,
)
from carecal.calendar.service import CalendarService
from carecal.storage import Collection, InMemoryGateway

STAMP = datetime(2024, 6, 1, 9, 15, tzinfo=timezone.utc)


@pytest.fixture
def service(gateway, owner_id) -> CalendarService:
    return CalendarService(gateway, owner_id, clock=lambda: STAMP)


def _latest(gateway, owner_id, collection: Collection) -> list:
    received: list = []
    subscribe = (
        gateway.subscribe_appointments
        if collection == Collection.APPOINTMENTS
        else gateway.subscribe_events
    )
    unsubscribe = subscribe(owner_id, received.append)
    unsubscribe()
    return received[-1]


class TestAppointments:
    @pytest.mark.asyncio
    async def test_schedule_creates_appointment(
        self, service, gateway, owner_id, appointment_draft, now
    ):
        appointment_id = await service.schedule_appointment(appointment_draft, now)

        (stored,) = _latest(gateway, owner_id, Collection.APPOINTMENTS)
        assert stored.id == appointment_id
        assert stored.date == CalendarDate(2024, 6, 3)
        assert stored.time == TimeOfDay(10, 0)
        assert stored.created_at == STAMP
        assert stored.updated_at == STAMP

    @pytest.mark.asyncio
    async def test_invalid_draft_raises_and_writes_nothing(
        self, service, gateway, owner_id, appointment_draft, now
    ):
        draft = appointment_draft.model_copy(update={"date": "2024-05-31"})

        with pytest.raises(ValidationFailed) as exc_info:
            await service.schedule_appointment(draft, now)

        assert len(exc_info.value.errors) == 1
        assert isinstance(exc_info.value.errors[0], PastDateRejected)
        assert "Date cannot be in the past" in str(exc_info.value)
        assert gateway.documents(owner_id, Collection.APPOINTMENTS) == {}

    @pytest.mark.asyncio
    async def test_duplicate_submission_is_ignored(self, owner_id, appointment_draft, now):
        release = asyncio.Event()

        class SlowGateway(InMemoryGateway):
            async def _persist(self, owner_id, collection, documents):
                await release.wait()

        gateway = SlowGateway()
        service = CalendarService(gateway, owner_id, clock=lambda: STAMP)

        first = asyncio.create_task(service.schedule_appointment(appointment_draft, now))
        await asyncio.sleep(0)
        assert service.is_submitting("appointment:new")

        second = await service.schedule_appointment(appointment_draft, now)
        release.set()
        created = await first

        assert second is None
        assert created is not None
        assert len(gateway.documents(owner_id, Collection.APPOINTMENTS)) == 1
        assert not service.is_submitting("appointment:new")

    @pytest.mark.asyncio
    async def test_guard_released_after_failure(self, service, appointment_draft, now):
        bad = appointment_draft.model_copy(update={"doctor_name": ""})
        with pytest.raises(ValidationFailed):
            await service.schedule_appointment(bad, now)
        assert await service.schedule_appointment(appointment_draft, now) is not None

    @pytest.mark.asyncio
    async def test_reschedule_keeps_id(self, service, gateway, owner_id, appointment_draft, now):
        appointment_id = await service.schedule_appointment(appointment_draft, now)
        (stored,) = _latest(gateway, owner_id, Collection.APPOINTMENTS)

        draft = AppointmentDraft.from_appointment(stored).model_copy(
            update={"date": "2024-06-05", "time": "2:00 PM", "duration_minutes": 60}
        )
        assert await service.reschedule_appointment(stored, draft, now) == appointment_id

        (moved,) = _latest(gateway, owner_id, Collection.APPOINTMENTS)
        assert moved.id == appointment_id
        assert moved.date == CalendarDate(2024, 6, 5)
        assert moved.time == TimeOfDay(14, 0)
        assert moved.duration_minutes == 60
        assert moved.doctor_name == stored.doctor_name

    @pytest.mark.asyncio
    async def test_reschedule_requires_upcoming(self, service, gateway, owner_id, appointment_draft, now):
        await service.schedule_appointment(appointment_draft, now)
        (stored,) = _latest(gateway, owner_id, Collection.APPOINTMENTS)
        await service.cancel_appointment(stored)
        (cancelled,) = _latest(gateway, owner_id, Collection.APPOINTMENTS)

        with pytest.raises(InvalidStatusTransition):
            await service.reschedule_appointment(
                cancelled, AppointmentDraft.from_appointment(cancelled), now
            )

    @pytest.mark.asyncio
    async def test_cancel_and_complete(self, service, gateway, owner_id, appointment_draft, now):
        await service.schedule_appointment(appointment_draft, now)
        await service.schedule_appointment(
            appointment_draft.model_copy(update={"time": "11:00"}), now
        )
        first, second = _latest(gateway, owner_id, Collection.APPOINTMENTS)

        await service.cancel_appointment(first)
        await service.complete_appointment(second)

        statuses = {a.id: a.status for a in _latest(gateway, owner_id, Collection.APPOINTMENTS)}
        assert statuses == {
            first.id: AppointmentStatus.CANCELLED,
            second.id: AppointmentStatus.PAST,
        }

    @pytest.mark.asyncio
    async def test_cancelled_is_terminal(self, service, gateway, owner_id, appointment_draft, now):
        await service.schedule_appointment(appointment_draft, now)
        (stored,) = _latest(gateway, owner_id, Collection.APPOINTMENTS)
        await service.cancel_appointment(stored)
        (cancelled,) = _latest(gateway, owner_id, Collection.APPOINTMENTS)

        with pytest.raises(InvalidStatusTransition):
            await service.complete_appointment(cancelled)

    @pytest.mark.asyncio
    async def test_unsaved_appointment_cannot_be_cancelled(self, service, appointment_draft):
        with pytest.raises(EntityNotFound):
            await service.cancel_appointment(appointment_draft.to_appointment())


class TestEvents:
    @pytest.mark.asyncio
    async def test_add_event(self, service, gateway, owner_id, event_draft, now):
        event_id = await service.add_event(event_draft, now)

        (stored,) = _latest(gateway, owner_id, Collection.EVENTS)
        assert stored.id == event_id
        assert stored.color == "#4CD964"
        assert stored.time == TimeOfDay(14, 30)

    @pytest.mark.asyncio
    async def test_invalid_event(self, service, event_draft, now):
        with pytest.raises(ValidationFailed) as exc_info:
            await service.add_event(event_draft.model_copy(update={"title": " "}), now)
        assert [e.message for e in exc_info.value.errors] == ["Event title is required"]

    @pytest.mark.asyncio
    async def test_complete_cancel_delete(self, service, gateway, owner_id, event_draft, now):
        await service.add_event(event_draft, now)
        await service.add_event(event_draft.model_copy(update={"time": "16:00"}), now)
        first, second = _latest(gateway, owner_id, Collection.EVENTS)

        await service.complete_event(first)
        await service.cancel_event(second)
        statuses = [e.status for e in _latest(gateway, owner_id, Collection.EVENTS)]
        assert statuses == [EventStatus.COMPLETED, EventStatus.CANCELLED]

        await service.delete_event(first)
        assert [e.id for e in _latest(gateway, owner_id, Collection.EVENTS)] == [second.id]

    @pytest.mark.asyncio
    async def test_completed_event_is_terminal(self, service, gateway, owner_id, event_draft, now):
        await service.add_event(event_draft, now)
        (stored,) = _latest(gateway, owner_id, Collection.EVENTS)
        await service.complete_event(stored)
        (completed,) = _latest(gateway, owner_id, Collection.EVENTS)

        with pytest.raises(InvalidStatusTransition):
            await service.cancel_event(completed)
