"""Application event sourcing – non-fatal failure reports and result objects.

Handler and projection errors never unwind a publish call or abort a replay
run; they are captured into these values and returned to the caller.
"""

from __future__ import annotations

import dataclasses
from typing import Any

from mp_eventsourcing.application.event_sourcing.event_record import EventRecord


@dataclasses.dataclass(frozen=True)
class DispatchFailure:
    """One handler that raised while processing one persisted record."""

    handler: str
    event_kind: str
    aggregate_type: str
    aggregate_id: str
    sequence_number: int
    global_sequence: int
    error: Exception

    @classmethod
    def for_record(cls, handler: str, record: EventRecord, error: Exception) -> "DispatchFailure":
        return cls(
            handler=handler,
            event_kind=record.event_kind,
            aggregate_type=record.aggregate_type,
            aggregate_id=record.aggregate_id,
            sequence_number=record.sequence_number,
            global_sequence=record.global_sequence,
            error=error,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": type(self).__name__,
            "handler": self.handler,
            "event_kind": self.event_kind,
            "aggregate_type": self.aggregate_type,
            "aggregate_id": self.aggregate_id,
            "sequence_number": self.sequence_number,
            "global_sequence": self.global_sequence,
            "error": repr(self.error),
        }


class HandlerFailure(DispatchFailure):
    """A business-logic event handler failed during live publishing."""


class ProjectionFailure(DispatchFailure):
    """A projection failed during live publishing."""


class ReplayRecordFailure(DispatchFailure):
    """A projection failed while a historical record was being replayed."""


@dataclasses.dataclass(frozen=True)
class PublishResult:
    """Outcome of a successful publish: the events are persisted regardless of failures."""

    records: tuple[EventRecord, ...]
    handler_failures: tuple[HandlerFailure, ...] = ()
    projection_failures: tuple[ProjectionFailure, ...] = ()

    @property
    def record(self) -> EventRecord:
        """The first persisted record (the only one for single-event publishes).

        Raises :class:`LookupError` for an empty batch, which persists nothing;
        use :attr:`records` when the batch may be empty.
        """
        if not self.records:
            raise LookupError("publish_batch([]) persisted no records")
        return self.records[0]

    @property
    def failures(self) -> tuple[DispatchFailure, ...]:
        return self.handler_failures + self.projection_failures

    @property
    def ok(self) -> bool:
        return not self.failures


__all__ = [
    "DispatchFailure",
    "HandlerFailure",
    "ProjectionFailure",
    "PublishResult",
    "ReplayRecordFailure",
]
