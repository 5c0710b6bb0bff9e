"""Application event sourcing – EventQueryService (read-only façade)."""

from __future__ import annotations

from mp_eventsourcing.application.event_sourcing.event_record import EventRecord
from mp_eventsourcing.application.event_sourcing.store import EventLogStore


class EventQueryService:
    """Historical lookups for audit tools and debugging.  Never writes."""

    def __init__(self, store: EventLogStore) -> None:
        self._store = store

    async def get_events(self, aggregate_type: str, aggregate_id: str) -> list[EventRecord]:
        """All events of one aggregate in ``sequence_number`` order; ``[]`` if it has none."""
        return await self._store.get_events_for_aggregate(aggregate_type, aggregate_id, 1)

    async def get_version(self, aggregate_type: str, aggregate_id: str) -> int:
        """Current ``sequence_number`` of the aggregate, ``0`` if it has no events."""
        return await self._store.current_sequence_number(aggregate_type, aggregate_id)


__all__ = ["EventQueryService"]
