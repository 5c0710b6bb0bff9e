"""Application event sourcing – EventLogStore port and InMemoryEventLogStore."""

from __future__ import annotations

import abc
import asyncio
from typing import AsyncIterator, Sequence

from mp_eventsourcing.application.event_sourcing.event_record import EventRecord, NewEvent
from mp_eventsourcing.kernel.errors import ConcurrencyConflictError, ValidationError
from mp_eventsourcing.kernel.time import Clock, SystemClock
from mp_eventsourcing.observability.logging import get_logger, record_fields

logger = get_logger(__name__)


def normalise_expected(expected_sequence_number: int | None) -> int:
    """``None`` means "no prior events expected", i.e. ``0``."""
    if expected_sequence_number is None:
        return 0
    if expected_sequence_number < 0:
        raise ValidationError(
            "expected_sequence_number must be >= 0",
            errors=[{"field": "expected_sequence_number", "value": expected_sequence_number}],
        )
    return expected_sequence_number


def batch_aggregate_key(events: Sequence[NewEvent]) -> tuple[str, str]:
    """Return the single aggregate every event in *events* targets."""
    keys = {ev.aggregate_key for ev in events}
    if len(keys) != 1:
        raise ValidationError(
            "A batch must target exactly one aggregate",
            errors=[{"aggregate": f"{t}/{i}"} for t, i in sorted(keys)],
        )
    return keys.pop()


class EventLogStore(abc.ABC):
    """Port – durable, ordered, append-only event log.

    ``expected_sequence_number`` drives **optimistic concurrency control**:

    - Pass ``None`` (or ``0``) when the aggregate has no events yet.
    - Pass the aggregate's current ``sequence_number`` otherwise.
    - The store raises :class:`ConcurrencyConflictError` if the aggregate's
      actual sequence number differs, and never retries on its own.
    """

    async def append(
        self,
        event: NewEvent,
        expected_sequence_number: int | None = None,
    ) -> EventRecord:
        """Append one event; returns the fully populated record."""
        records = await self.append_batch([event], expected_sequence_number)
        return records[0]

    @abc.abstractmethod
    async def append_batch(
        self,
        events: Sequence[NewEvent],
        expected_sequence_number: int | None = None,
    ) -> list[EventRecord]:
        """Append *events* for one aggregate as one contiguous, all-or-nothing range."""

    @abc.abstractmethod
    async def get_events_for_aggregate(
        self,
        aggregate_type: str,
        aggregate_id: str,
        from_sequence: int = 1,
    ) -> list[EventRecord]:
        """Return the aggregate's events with ``sequence_number >= from_sequence``, ascending."""

    @abc.abstractmethod
    def get_all_events(self, from_global_sequence: int = 1) -> AsyncIterator[EventRecord]:
        """Stream every event with ``global_sequence >= from_global_sequence``, ascending.

        Bounded by the records that existed when iteration started; call again
        with an advanced cursor to pick up later appends.
        """

    @abc.abstractmethod
    async def current_sequence_number(self, aggregate_type: str, aggregate_id: str) -> int:
        """Return the aggregate's highest ``sequence_number`` (``0`` when it has none)."""


class InMemoryEventLogStore(EventLogStore):
    """In-memory :class:`EventLogStore` for tests and local development.

    An :class:`asyncio.Lock` serialises appends, standing in for the storage
    engine's transaction.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or SystemClock()
        self._lock = asyncio.Lock()
        # global_sequence - 1 → record
        self._records: list[EventRecord] = []
        # (aggregate_type, aggregate_id) → ordered records
        self._streams: dict[tuple[str, str], list[EventRecord]] = {}

    async def append_batch(
        self,
        events: Sequence[NewEvent],
        expected_sequence_number: int | None = None,
    ) -> list[EventRecord]:
        expected = normalise_expected(expected_sequence_number)
        if not events:
            return []
        key = batch_aggregate_key(events)

        async with self._lock:
            stream = self._streams.get(key, [])
            actual = len(stream)
            if actual != expected:
                conflict = ConcurrencyConflictError(key[0], key[1], expected, actual)
                logger.info("append_conflict", **conflict.log_fields())
                raise conflict

            recorded_at = self._clock.now()
            next_global = len(self._records) + 1
            records = [
                EventRecord.from_new(
                    ev,
                    sequence_number=expected + offset + 1,
                    global_sequence=next_global + offset,
                    recorded_at=recorded_at,
                )
                for offset, ev in enumerate(events)
            ]
            self._records.extend(records)
            self._streams.setdefault(key, []).extend(records)

        for record in records:
            logger.debug("event_appended", **record_fields(record))
        return records

    async def get_events_for_aggregate(
        self,
        aggregate_type: str,
        aggregate_id: str,
        from_sequence: int = 1,
    ) -> list[EventRecord]:
        stream = self._streams.get((aggregate_type, aggregate_id), [])
        return [r for r in stream if r.sequence_number >= from_sequence]

    async def get_all_events(self, from_global_sequence: int = 1) -> AsyncIterator[EventRecord]:
        upper = len(self._records)
        for index in range(max(from_global_sequence, 1) - 1, upper):
            yield self._records[index]

    async def current_sequence_number(self, aggregate_type: str, aggregate_id: str) -> int:
        return len(self._streams.get((aggregate_type, aggregate_id), []))

    def all_records(self) -> list[EventRecord]:
        """Return every stored record in ``global_sequence`` order."""
        return list(self._records)


__all__ = [
    "EventLogStore",
    "InMemoryEventLogStore",
    "batch_aggregate_key",
    "normalise_expected",
]
