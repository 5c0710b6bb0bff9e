"""Domain events – the minimal contract an aggregate needs to emit events."""

from __future__ import annotations

import dataclasses
import json
from datetime import UTC, datetime
from typing import Any, ClassVar
from uuid import uuid4

_ENVELOPE_FIELDS = frozenset({"aggregate_id", "event_id", "occurred_at"})


@dataclasses.dataclass(frozen=True)
class DomainEvent:
    """Base class for domain events.

    Subclasses declare the aggregate they belong to and add their own payload
    fields.  The event kind defaults to the class name.

    Example::

        @dataclasses.dataclass(frozen=True)
        class UserRenamed(DomainEvent):
            aggregate_type: ClassVar[str] = "user"
            schema_version: ClassVar[int] = 2

            name: str
    """

    aggregate_type: ClassVar[str] = ""
    schema_version: ClassVar[int] = 1
    kind: ClassVar[str | None] = None

    aggregate_id: str
    event_id: str = dataclasses.field(default_factory=lambda: str(uuid4()), kw_only=True)
    occurred_at: datetime = dataclasses.field(
        default_factory=lambda: datetime.now(UTC), kw_only=True
    )

    @property
    def event_kind(self) -> str:
        return type(self).kind or type(self).__name__

    def payload(self) -> dict[str, Any]:
        """Return the event-specific fields as a JSON-compatible dict.

        Values that ``json`` cannot encode are rendered with ``str``.
        """
        data: dict[str, Any] = {}
        for field in dataclasses.fields(self):
            if field.name in _ENVELOPE_FIELDS:
                continue
            value = getattr(self, field.name)
            try:
                json.dumps(value)
                data[field.name] = value
            except (TypeError, ValueError):
                data[field.name] = str(value)
        return data


__all__ = ["DomainEvent"]
