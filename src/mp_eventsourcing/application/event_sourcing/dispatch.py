"""Application event sourcing – projection fan-out shared by publish and replay.

Dispatch behaviour:

1. Look up projections by ``event_kind``.
2. Invoke them sequentially, in registration order.
3. Catch each projection's exception, log it, record it.
4. Continue with the next projection.

Nothing here writes to the event log.
"""

from __future__ import annotations

from typing import Any, TypeVar

from mp_eventsourcing.application.event_sourcing.event_record import EventRecord
from mp_eventsourcing.application.event_sourcing.projector import handler_name, invoke_projection
from mp_eventsourcing.application.event_sourcing.registry import ProjectionRegistry
from mp_eventsourcing.application.event_sourcing.reports import DispatchFailure
from mp_eventsourcing.observability.logging import get_logger, record_fields

F = TypeVar("F", bound=DispatchFailure)
logger = get_logger(__name__)


async def dispatch_projections(
    record: EventRecord,
    registry: ProjectionRegistry,
    failure_type: type[F],
    log: Any = None,
) -> tuple[int, list[F]]:
    """Deliver *record* to every matching projection.

    Returns ``(invoked, failures)``.  Never raises for projection errors;
    task cancellation still propagates.
    """
    log = log or logger
    handlers = registry.handlers_for(record.event_kind)
    failures: list[F] = []
    for handler in handlers:
        name = handler_name(handler)
        try:
            await invoke_projection(handler, record)
        except Exception as exc:  # noqa: BLE001 – isolated per projection
            log.error(
                "event_dispatch_failed",
                handler=name,
                failure=failure_type.__name__,
                exc_info=exc,
                **record_fields(record),
            )
            failures.append(failure_type.for_record(name, record, exc))
    return len(handlers), failures


__all__ = ["dispatch_projections"]
