"""Application event sourcing – ReplayEngine.

Replay rules:

- Read events only; never append to the log.
- Deterministic order: ``global_sequence`` for the whole log,
  ``sequence_number`` for a single aggregate.
- Drive projections only; business-logic handlers are never reachable from here.
- Re-deliver everything in range; no deduplication.
- A failing projection is logged and reported, and the run continues.
- Cancellation is checked between records, so the cursor always points at
  the last record whose projections all ran.
"""

from __future__ import annotations

import asyncio
import dataclasses
import inspect
from contextlib import aclosing
from typing import Any, AsyncIterator, Awaitable, Callable, Iterable, Literal, Union

from mp_eventsourcing.application.event_sourcing.dispatch import dispatch_projections
from mp_eventsourcing.application.event_sourcing.event_record import EventRecord
from mp_eventsourcing.application.event_sourcing.registry import ProjectionRegistry
from mp_eventsourcing.application.event_sourcing.reports import ReplayRecordFailure
from mp_eventsourcing.application.event_sourcing.store import EventLogStore
from mp_eventsourcing.kernel.errors import ReplayInProgressError
from mp_eventsourcing.observability.logging import get_logger

ReplayScope = Literal["all", "aggregate"]
logger = get_logger(__name__)


@dataclasses.dataclass(frozen=True)
class ReplayCursor:
    """Last position fully processed by a replay run.

    ``position`` is a ``global_sequence`` for ``scope="all"`` and a
    ``sequence_number`` for ``scope="aggregate"``; ``0`` before the first record.
    """

    scope: ReplayScope
    position: int = 0

    @property
    def next_position(self) -> int:
        """Where a resumed run should start."""
        return self.position + 1

    def advance(self, position: int) -> "ReplayCursor":
        return dataclasses.replace(self, position=position)


ProgressCallback = Callable[[ReplayCursor], Union[None, Awaitable[None]]]


class CancellationToken:
    """Cooperative stop signal for a replay run."""

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


@dataclasses.dataclass
class ReplayReport:
    """Structured result of a replay run."""

    scope: ReplayScope
    cursor: ReplayCursor
    events_processed: int = 0
    projections_invoked: int = 0
    cancelled: bool = False
    failures: list[ReplayRecordFailure] = dataclasses.field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return not self.cancelled and not self.failures

    def to_dict(self) -> dict[str, Any]:
        return {
            "scope": self.scope,
            "position": self.cursor.position,
            "events_processed": self.events_processed,
            "projections_invoked": self.projections_invoked,
            "cancelled": self.cancelled,
            "failures": [f.to_dict() for f in self.failures],
        }


async def _iterate(records: Iterable[EventRecord]) -> AsyncIterator[EventRecord]:
    for record in records:
        yield record


class ReplayEngine:
    """Rebuild read models by re-delivering stored events to projections.

    One run at a time per engine; starting a second concurrent run raises
    :class:`ReplayInProgressError`.

    Example::

        engine = ReplayEngine(store, projections)
        report = await engine.replay_all()
        if not report.succeeded:
            resume_from = report.cursor.next_position
    """

    def __init__(self, store: EventLogStore, projections: ProjectionRegistry) -> None:
        self._store = store
        self._projections = projections
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def replay_all(
        self,
        from_global_sequence: int = 1,
        on_progress: ProgressCallback | None = None,
        cancellation: CancellationToken | None = None,
    ) -> ReplayReport:
        """Replay the whole log from *from_global_sequence*, in ``global_sequence`` order."""
        start = max(from_global_sequence, 1)
        report = ReplayReport(scope="all", cursor=ReplayCursor("all", start - 1))
        log = logger.bind(replay_scope="all", from_position=start)
        return await self._run(
            lambda: self._store.get_all_events(start),
            report,
            lambda record: record.global_sequence,
            on_progress,
            cancellation,
            log,
        )

    async def replay_for_aggregate(
        self,
        aggregate_type: str,
        aggregate_id: str,
        from_sequence: int = 1,
        on_progress: ProgressCallback | None = None,
        cancellation: CancellationToken | None = None,
    ) -> ReplayReport:
        """Replay one aggregate's events from *from_sequence*, in ``sequence_number`` order."""
        start = max(from_sequence, 1)
        report = ReplayReport(scope="aggregate", cursor=ReplayCursor("aggregate", start - 1))
        log = logger.bind(
            replay_scope="aggregate",
            aggregate_type=aggregate_type,
            aggregate_id=aggregate_id,
            from_position=start,
        )

        async def stream() -> AsyncIterator[EventRecord]:
            records = await self._store.get_events_for_aggregate(aggregate_type, aggregate_id, start)
            async for record in _iterate(records):
                yield record

        return await self._run(
            stream,
            report,
            lambda record: record.sequence_number,
            on_progress,
            cancellation,
            log,
        )

    async def _run(
        self,
        open_stream: Callable[[], AsyncIterator[EventRecord]],
        report: ReplayReport,
        position_of: Callable[[EventRecord], int],
        on_progress: ProgressCallback | None,
        cancellation: CancellationToken | None,
        log: Any,
    ) -> ReplayReport:
        if self._running:
            raise ReplayInProgressError("A replay run is already in progress on this engine")
        self._running = True
        log.info("replay_started")
        try:
            async with aclosing(open_stream()) as records:  # type: ignore[type-var]
                async for record in records:
                    if cancellation is not None and cancellation.cancelled:
                        report.cancelled = True
                        log.info("replay_cancelled", position=report.cursor.position)
                        break

                    invoked, failures = await dispatch_projections(
                        record, self._projections, ReplayRecordFailure, log
                    )
                    for failure in failures:
                        log.warning(
                            "replay_record_failed",
                            handler=failure.handler,
                            position=position_of(record),
                        )
                    report.failures.extend(failures)
                    report.projections_invoked += invoked
                    report.events_processed += 1
                    report.cursor = report.cursor.advance(position_of(record))

                    if on_progress is not None:
                        result = on_progress(report.cursor)
                        if inspect.isawaitable(result):
                            await result
        except asyncio.CancelledError:
            log.info("replay_cancelled", position=report.cursor.position, reason="task_cancelled")
            raise
        finally:
            self._running = False

        log.info(
            "replay_completed",
            position=report.cursor.position,
            events_processed=report.events_processed,
            failures=len(report.failures),
            cancelled=report.cancelled,
        )
        return report


__all__ = [
    "CancellationToken",
    "ProgressCallback",
    "ReplayCursor",
    "ReplayEngine",
    "ReplayReport",
    "ReplayScope",
]
