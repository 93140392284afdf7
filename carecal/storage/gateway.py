"""Persistence gateway contract and the shared document-store machinery."""

import copy
import uuid
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import ValidationError

from carecal.calendar.errors import (
    CalendarError,
    DataUnavailable,
    EntityNotFound,
    WriteFailed,
)
from carecal.calendar.models import Appointment, CalendarEvent
from carecal.storage.codec import (
    decode_appointment,
    decode_event,
    encode_appointment,
    encode_event,
    encode_fields,
)
from carecal.utils.error_handler import translate_errors
from carecal.utils.mixins import LoggerMixin

Unsubscribe = Callable[[], None]
OnError = Callable[[DataUnavailable], None]


class Collection(str, Enum):
    """Document collections kept per owner."""

    APPOINTMENTS = "appointments"
    EVENTS = "events"


class PersistenceGateway(ABC):
    """Read/write/subscribe contract the calendar engine depends on.

    Subscriptions push a complete snapshot of the owner's collection on
    subscribe and after every change. Appointments are never hard-deleted;
    they move to ``cancelled`` instead.
    """

    @abstractmethod
    def subscribe_appointments(
        self,
        owner_id: str,
        on_update: Callable[[list[Appointment]], None],
        on_error: OnError | None = None,
    ) -> Unsubscribe: ...

    @abstractmethod
    def subscribe_events(
        self,
        owner_id: str,
        on_update: Callable[[list[CalendarEvent]], None],
        on_error: OnError | None = None,
    ) -> Unsubscribe: ...

    @abstractmethod
    async def create_appointment(self, owner_id: str, appointment: Appointment) -> str: ...

    @abstractmethod
    async def update_appointment(
        self, owner_id: str, appointment_id: str, fields: Mapping[str, Any]
    ) -> None: ...

    @abstractmethod
    async def create_event(self, owner_id: str, event: CalendarEvent) -> str: ...

    @abstractmethod
    async def update_event(
        self, owner_id: str, event_id: str, fields: Mapping[str, Any]
    ) -> None: ...

    @abstractmethod
    async def delete_event(self, owner_id: str, event_id: str) -> None: ...


_DECODERS: dict[Collection, Callable[[str, Mapping[str, Any]], Any]] = {
    Collection.APPOINTMENTS: decode_appointment,
    Collection.EVENTS: decode_event,
}


class _Subscription:
    def __init__(self, on_update: Callable[[list[Any]], None], on_error: OnError | None):
        self.on_update = on_update
        self.on_error = on_error


class DocumentGateway(PersistenceGateway, LoggerMixin):
    """Gateway over an owner -> collection -> id -> document mapping.

    Documents live in memory; subclasses decide whether and where a
    collection is persisted by overriding ``_persist``. A write is committed
    to memory only after ``_persist`` succeeds, then every subscriber of that
    collection receives a fresh snapshot.
    """

    def __init__(self) -> None:
        self._documents: dict[tuple[str, Collection], dict[str, dict[str, Any]]] = {}
        self._subscriptions: dict[tuple[str, Collection], list[_Subscription]] = {}
        self._stream_errors: dict[tuple[str, Collection], DataUnavailable] = {}

    async def _persist(
        self, owner_id: str, collection: Collection, documents: dict[str, dict[str, Any]]
    ) -> None:
        """Store the full collection. The in-memory gateway keeps nothing else."""

    def _now(self) -> datetime:
        return datetime.now(timezone.utc)

    # Subscriptions

    def subscribe_appointments(self, owner_id, on_update, on_error=None) -> Unsubscribe:
        return self._subscribe(owner_id, Collection.APPOINTMENTS, on_update, on_error)

    def subscribe_events(self, owner_id, on_update, on_error=None) -> Unsubscribe:
        return self._subscribe(owner_id, Collection.EVENTS, on_update, on_error)

    def _subscribe(
        self,
        owner_id: str,
        collection: Collection,
        on_update: Callable[[list[Any]], None],
        on_error: OnError | None,
    ) -> Unsubscribe:
        key = (owner_id, collection)
        subscription = _Subscription(on_update, on_error)
        self._subscriptions.setdefault(key, []).append(subscription)

        self.logger.info(
            "Subscribed", owner_id=owner_id, collection=collection.value
        )
        self._deliver(key, [subscription])

        def unsubscribe() -> None:
            subscribers = self._subscriptions.get(key, [])
            if subscription in subscribers:
                subscribers.remove(subscription)
                self.logger.info(
                    "Unsubscribed", owner_id=owner_id, collection=collection.value
                )

        return unsubscribe

    def _snapshot(self, key: tuple[str, Collection]) -> list[Any]:
        decode = _DECODERS[key[1]]
        documents = self._documents.get(key, {})
        return [decode(doc_id, doc) for doc_id, doc in documents.items()]

    def _deliver(
        self,
        key: tuple[str, Collection],
        subscribers: list[_Subscription],
        *,
        raise_unhandled: bool = True,
    ) -> None:
        """Push the current snapshot, or the stream error, to ``subscribers``.

        A failing callback is logged and skipped. It never fails the write
        that triggered delivery.
        """
        if not subscribers:
            return

        error = self._stream_errors.get(key)
        snapshot: list[Any] = []
        if error is None:
            try:
                snapshot = self._snapshot(key)
            except (CalendarError, ValidationError, KeyError, ValueError) as e:
                self.logger.error(
                    "Failed to decode snapshot",
                    owner_id=key[0],
                    collection=key[1].value,
                    error=str(e),
                )
                error = DataUnavailable(
                    f"Stored {key[1].value} could not be read: {e}",
                    operation=f"subscribe_{key[1].value}",
                    stream=key[1].value,
                )

        for subscription in list(subscribers):
            if error is not None and subscription.on_error is None:
                if raise_unhandled:
                    raise error
                self.logger.error(
                    "Stream error has no handler",
                    owner_id=key[0],
                    collection=key[1].value,
                    error=str(error),
                )
                continue
            try:
                if error is not None:
                    subscription.on_error(error)
                else:
                    subscription.on_update(list(snapshot))
            except Exception as e:
                self.logger.error(
                    "Subscriber callback failed",
                    owner_id=key[0],
                    collection=key[1].value,
                    error=str(e),
                    exc_info=True,
                )

    def _publish(
        self, owner_id: str, collection: Collection, *, raise_unhandled: bool = True
    ) -> None:
        key = (owner_id, collection)
        self._deliver(
            key, self._subscriptions.get(key, []), raise_unhandled=raise_unhandled
        )

    def report_stream_error(
        self, owner_id: str, collection: Collection, error: Exception
    ) -> None:
        """Push a stream failure to every subscriber of ``collection``."""
        key = (owner_id, collection)
        self._stream_errors[key] = DataUnavailable(
            f"{collection.value} stream failed: {error}",
            operation=f"subscribe_{collection.value}",
            stream=collection.value,
        )
        self.logger.error(
            "Subscription stream failed",
            owner_id=owner_id,
            collection=collection.value,
            error=str(error),
        )
        self._publish(owner_id, collection)

    def restore_stream(self, owner_id: str, collection: Collection) -> None:
        """Clear a stream failure and push a fresh snapshot."""
        self._stream_errors.pop((owner_id, collection), None)
        self._publish(owner_id, collection)

    # Writes

    async def _commit(
        self,
        owner_id: str,
        collection: Collection,
        mutate: Callable[[dict[str, dict[str, Any]]], None],
        operation: str,
    ) -> None:
        key = (owner_id, collection)

        @translate_errors(operation, owner_id=owner_id, collection=collection.value)
        async def write() -> None:
            if not owner_id:
                raise WriteFailed(
                    "User not logged in", operation=operation, retryable=False
                )
            documents = copy.deepcopy(self._documents.get(key, {}))
            mutate(documents)
            await self._persist(owner_id, collection, documents)
            self._documents[key] = documents

        await write()
        self._publish(owner_id, collection, raise_unhandled=False)

    async def create_appointment(self, owner_id: str, appointment: Appointment) -> str:
        appointment_id = appointment.id or str(uuid.uuid4())
        document = encode_appointment(appointment)
        now = self._now()
        document["createdAt"] = document["createdAt"] or now.isoformat()
        document["updatedAt"] = document["updatedAt"] or now.isoformat()

        def insert(documents: dict[str, dict[str, Any]]) -> None:
            documents[appointment_id] = document

        await self._commit(
            owner_id, Collection.APPOINTMENTS, insert, "create appointment"
        )
        self.logger.info(
            "Appointment created",
            owner_id=owner_id,
            appointment_id=appointment_id,
            date=document["date"],
        )
        return appointment_id

    async def update_appointment(
        self, owner_id: str, appointment_id: str, fields: Mapping[str, Any]
    ) -> None:
        await self._update(
            owner_id, Collection.APPOINTMENTS, "Appointment", appointment_id, fields
        )

    async def create_event(self, owner_id: str, event: CalendarEvent) -> str:
        event_id = event.id or str(uuid.uuid4())
        document = encode_event(event)
        now = self._now()
        document["createdAt"] = document["createdAt"] or now.isoformat()
        document["updatedAt"] = document["updatedAt"] or now.isoformat()

        def insert(documents: dict[str, dict[str, Any]]) -> None:
            documents[event_id] = document

        await self._commit(owner_id, Collection.EVENTS, insert, "create event")
        self.logger.info(
            "Event created", owner_id=owner_id, event_id=event_id, date=document["date"]
        )
        return event_id

    async def update_event(
        self, owner_id: str, event_id: str, fields: Mapping[str, Any]
    ) -> None:
        await self._update(owner_id, Collection.EVENTS, "Event", event_id, fields)

    async def delete_event(self, owner_id: str, event_id: str) -> None:
        def remove(documents: dict[str, dict[str, Any]]) -> None:
            if event_id not in documents:
                raise EntityNotFound("Event", event_id, operation="delete event")
            del documents[event_id]

        await self._commit(owner_id, Collection.EVENTS, remove, "delete event")
        self.logger.info("Event deleted", owner_id=owner_id, event_id=event_id)

    async def _update(
        self,
        owner_id: str,
        collection: Collection,
        kind: str,
        entity_id: str,
        fields: Mapping[str, Any],
    ) -> None:
        encoded = encode_fields(fields)
        encoded.setdefault("updatedAt", self._now().isoformat())

        def patch(documents: dict[str, dict[str, Any]]) -> None:
            if entity_id not in documents:
                raise EntityNotFound(kind, entity_id, operation=f"update {kind.lower()}")
            merged = {**documents[entity_id], **encoded}
            # Reject patches that would leave an unreadable document behind
            _DECODERS[collection](entity_id, merged)
            documents[entity_id] = merged

        await self._commit(owner_id, collection, patch, f"update {kind.lower()}")
        self.logger.info(
            f"{kind} updated",
            owner_id=owner_id,
            entity_id=entity_id,
            fields=sorted(fields),
        )
