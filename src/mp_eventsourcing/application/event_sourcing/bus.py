"""Application event sourcing – StoreAndDispatchBus (the publish path)."""

from __future__ import annotations

from typing import Any, Mapping, Sequence, Union

from mp_eventsourcing.application.cqrs.events import EventHandlerBus
from mp_eventsourcing.application.event_sourcing.dispatch import dispatch_projections
from mp_eventsourcing.application.event_sourcing.event_record import EventRecord, NewEvent
from mp_eventsourcing.application.event_sourcing.registry import ProjectionRegistry
from mp_eventsourcing.application.event_sourcing.reports import (
    HandlerFailure,
    ProjectionFailure,
    PublishResult,
)
from mp_eventsourcing.application.event_sourcing.store import EventLogStore
from mp_eventsourcing.kernel.ddd.domain_event import DomainEvent
from mp_eventsourcing.observability.logging import get_logger, record_fields

Publishable = Union[DomainEvent, NewEvent]
logger = get_logger(__name__)


class StoreAndDispatchBus:
    """Persist an event, then fan it out to business handlers and projections.

    Persistence is the source of truth: if the append fails the error
    propagates and no handler sees the event.  Once the append succeeds,
    handler and projection failures are logged and returned in the
    :class:`PublishResult`; they never fail the publish call and never roll
    back the persisted event (stale read models are rebuilt by replay).

    Business handlers only run for :class:`DomainEvent` instances, since they
    are bound to the concrete event type.  Publishing a raw :class:`NewEvent`
    reaches projections only.

    Example::

        bus = StoreAndDispatchBus(store, projections, handlers)
        result = await bus.publish(UserCreated(aggregate_id="u1", name="Ada"), 0)
        assert result.record.sequence_number == 1
    """

    def __init__(
        self,
        store: EventLogStore,
        projections: ProjectionRegistry,
        handlers: EventHandlerBus | None = None,
    ) -> None:
        self._store = store
        self._projections = projections
        self._handlers = handlers

    async def publish(
        self,
        event: Publishable,
        expected_sequence_number: int | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> PublishResult:
        return await self.publish_batch([event], expected_sequence_number, metadata)

    async def publish_batch(
        self,
        events: Sequence[Publishable],
        expected_sequence_number: int | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> PublishResult:
        """Append *events* for one aggregate atomically, then dispatch them in append order."""
        pending = [self._to_new_event(ev, metadata) for ev in events]
        records = await self._store.append_batch(pending, expected_sequence_number)

        handler_failures: list[HandlerFailure] = []
        projection_failures: list[ProjectionFailure] = []
        for event, record in zip(events, records):
            if isinstance(event, DomainEvent):
                handler_failures.extend(await self._dispatch_handlers(event, record))
            _, failures = await dispatch_projections(
                record, self._projections, ProjectionFailure, logger
            )
            projection_failures.extend(failures)

        return PublishResult(
            records=tuple(records),
            handler_failures=tuple(handler_failures),
            projection_failures=tuple(projection_failures),
        )

    async def _dispatch_handlers(
        self, event: DomainEvent, record: EventRecord
    ) -> list[HandlerFailure]:
        if self._handlers is None:
            return []
        try:
            outcomes = await self._handlers.dispatch(event)
        except Exception as exc:  # noqa: BLE001 – handler errors never fail publish
            errors = [(type(self._handlers).__qualname__, exc)]
        else:
            errors = [(o.handler, o.error) for o in outcomes if o.error is not None]

        failures: list[HandlerFailure] = []
        for name, error in errors:
            logger.error(
                "event_dispatch_failed",
                handler=name,
                failure="HandlerFailure",
                exc_info=error,
                **record_fields(record),
            )
            failures.append(HandlerFailure.for_record(name, record, error))
        return failures

    @staticmethod
    def _to_new_event(event: Publishable, metadata: Mapping[str, Any] | None) -> NewEvent:
        if isinstance(event, NewEvent):
            if not metadata:
                return event
            return NewEvent(
                aggregate_type=event.aggregate_type,
                aggregate_id=event.aggregate_id,
                event_kind=event.event_kind,
                payload=event.payload,
                schema_version=event.schema_version,
                metadata={**event.metadata, **metadata},
            )
        return NewEvent.from_domain_event(event, metadata)


__all__ = ["Publishable", "StoreAndDispatchBus"]
