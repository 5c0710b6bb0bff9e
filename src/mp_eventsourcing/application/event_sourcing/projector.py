"""Application event sourcing – Projector abstract base class."""

from __future__ import annotations

import abc
from typing import Any, Awaitable, Callable, Iterable, Union

from mp_eventsourcing.application.event_sourcing.event_record import EventRecord


class Projector(abc.ABC):
    """Updates a read model from persisted event records.

    Subclass, list the event kinds in :attr:`handles`, and implement
    :meth:`project`.  Projectors are invoked both by live publishing and by
    replay, so :meth:`project` must be idempotent: delivering the same record
    twice must leave the read model as delivering it once would.

    Example::

        class UserNameProjector(Projector):
            handles = ("UserCreated", "UserRenamed")

            def __init__(self) -> None:
                self.names: dict[str, str] = {}

            async def project(self, record: EventRecord) -> None:
                self.names[record.aggregate_id] = record.payload["name"]
    """

    handles: tuple[str, ...] = ()

    @abc.abstractmethod
    async def project(self, record: EventRecord) -> None:
        """Process a single persisted record and update the read model."""

    async def project_all(self, records: Iterable[EventRecord]) -> None:
        """Process *records* in order."""
        for record in records:
            await self.project(record)


ProjectionFunc = Callable[[EventRecord], Awaitable[Any]]
ProjectionHandler = Union[Projector, ProjectionFunc]


def handler_name(handler: Any) -> str:
    """Readable identity of a handler for logs and failure reports."""
    if isinstance(handler, Projector):
        return type(handler).__qualname__
    return getattr(handler, "__qualname__", None) or repr(handler)


async def invoke_projection(handler: ProjectionHandler, record: EventRecord) -> None:
    if isinstance(handler, Projector):
        await handler.project(record)
    else:
        await handler(record)


__all__ = [
    "ProjectionFunc",
    "ProjectionHandler",
    "Projector",
    "handler_name",
    "invoke_projection",
]
