"""Application – Event Sourcing: log store, projections, publish bus, replay, queries."""

from mp_eventsourcing.application.event_sourcing.bus import Publishable, StoreAndDispatchBus
from mp_eventsourcing.application.event_sourcing.event_record import EventRecord, NewEvent
from mp_eventsourcing.application.event_sourcing.projector import (
    ProjectionFunc,
    ProjectionHandler,
    Projector,
)
from mp_eventsourcing.application.event_sourcing.query import EventQueryService
from mp_eventsourcing.application.event_sourcing.registry import ProjectionRegistry
from mp_eventsourcing.application.event_sourcing.replay import (
    CancellationToken,
    ReplayCursor,
    ReplayEngine,
    ReplayReport,
)
from mp_eventsourcing.application.event_sourcing.reports import (
    DispatchFailure,
    HandlerFailure,
    ProjectionFailure,
    PublishResult,
    ReplayRecordFailure,
)
from mp_eventsourcing.application.event_sourcing.store import EventLogStore, InMemoryEventLogStore

__all__ = [
    "CancellationToken",
    "DispatchFailure",
    "EventLogStore",
    "EventQueryService",
    "EventRecord",
    "HandlerFailure",
    "InMemoryEventLogStore",
    "NewEvent",
    "ProjectionFailure",
    "ProjectionFunc",
    "ProjectionHandler",
    "ProjectionRegistry",
    "Projector",
    "Publishable",
    "PublishResult",
    "ReplayCursor",
    "ReplayEngine",
    "ReplayRecordFailure",
    "ReplayReport",
    "StoreAndDispatchBus",
]
