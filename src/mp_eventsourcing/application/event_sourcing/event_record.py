"""Application event sourcing – NewEvent and EventRecord."""

from __future__ import annotations

import dataclasses
from datetime import datetime
from types import MappingProxyType
from typing import Any, Mapping

from mp_eventsourcing.kernel.ddd.domain_event import DomainEvent
from mp_eventsourcing.kernel.errors import ValidationError


def freeze_value(value: Any) -> Any:
    """Return a read-only copy of a JSON-shaped value.

    Mappings become :class:`~types.MappingProxyType` over a fresh dict and
    lists become tuples, recursively.  Scalars are returned unchanged.
    """
    if isinstance(value, Mapping):
        return MappingProxyType({key: freeze_value(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(freeze_value(item) for item in value)
    return value


def json_default(value: Any) -> Any:
    """``json.dumps`` hook that encodes frozen mappings as objects."""
    if isinstance(value, Mapping):
        return dict(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


@dataclasses.dataclass(frozen=True)
class NewEvent:
    """An event about to be appended to the log.

    Carries everything the caller knows; ``sequence_number``,
    ``global_sequence`` and ``recorded_at`` are assigned by the store.
    """

    aggregate_type: str
    aggregate_id: str
    event_kind: str
    payload: Mapping[str, Any] = dataclasses.field(default_factory=dict)
    schema_version: int = 1
    metadata: Mapping[str, Any] = dataclasses.field(default_factory=dict)

    def __post_init__(self) -> None:
        errors = [
            {"field": name, "error": "must be a non-empty string"}
            for name in ("aggregate_type", "aggregate_id", "event_kind")
            if not isinstance(getattr(self, name), str) or not getattr(self, name)
        ]
        if not isinstance(self.schema_version, int) or self.schema_version < 1:
            errors.append({"field": "schema_version", "error": "must be a positive integer"})
        if errors:
            raise ValidationError("Invalid event", errors=errors)

    @property
    def aggregate_key(self) -> tuple[str, str]:
        return (self.aggregate_type, self.aggregate_id)

    @classmethod
    def from_domain_event(
        cls,
        event: DomainEvent,
        metadata: Mapping[str, Any] | None = None,
    ) -> "NewEvent":
        """Build a pending record from a :class:`DomainEvent`."""
        return cls(
            aggregate_type=type(event).aggregate_type,
            aggregate_id=event.aggregate_id,
            event_kind=event.event_kind,
            payload=event.payload(),
            schema_version=type(event).schema_version,
            metadata={"event_id": event.event_id, **(metadata or {})},
        )


@dataclasses.dataclass(frozen=True)
class EventRecord:
    """An event as persisted in the log.  Never mutated once written.

    ``payload`` and ``metadata`` are deep-frozen on construction, so a
    projection cannot alter stored history or what sibling projections see.
    """

    aggregate_type: str
    aggregate_id: str
    event_kind: str
    schema_version: int
    payload: Mapping[str, Any]
    sequence_number: int
    """1-based, gap-free position within ``(aggregate_type, aggregate_id)``."""

    global_sequence: int
    """1-based, gap-free position across the whole store; full replay order."""

    recorded_at: datetime
    """Store-assigned UTC timestamp."""

    metadata: Mapping[str, Any] = dataclasses.field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "payload", freeze_value(self.payload))
        object.__setattr__(self, "metadata", freeze_value(self.metadata))

    @property
    def aggregate_key(self) -> tuple[str, str]:
        return (self.aggregate_type, self.aggregate_id)

    @classmethod
    def from_new(
        cls,
        event: NewEvent,
        *,
        sequence_number: int,
        global_sequence: int,
        recorded_at: datetime,
    ) -> "EventRecord":
        return cls(
            aggregate_type=event.aggregate_type,
            aggregate_id=event.aggregate_id,
            event_kind=event.event_kind,
            schema_version=event.schema_version,
            payload=event.payload,
            sequence_number=sequence_number,
            global_sequence=global_sequence,
            recorded_at=recorded_at,
            metadata=event.metadata,
        )


__all__ = ["EventRecord", "NewEvent", "freeze_value", "json_default"]
