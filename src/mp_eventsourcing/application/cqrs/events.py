"""Application CQRS – EventHandler, EventHandlerBus, InProcessEventHandlerBus.

This is the business-logic side of dispatch: handlers bound to a concrete
:class:`DomainEvent` type, run after the event has been persisted.  Replay
never goes through this bus.
"""

from __future__ import annotations

import abc
import dataclasses
from typing import Any, Awaitable, Callable, Generic, TypeVar, Union

from mp_eventsourcing.kernel.ddd.domain_event import DomainEvent

E = TypeVar("E", bound=DomainEvent)


class EventHandler(abc.ABC, Generic[E]):
    """Handle a single domain event type."""

    @abc.abstractmethod
    async def handle(self, event: E) -> None: ...


HandlerRef = Union[EventHandler[Any], Callable[[Any], Awaitable[Any]]]


@dataclasses.dataclass(frozen=True)
class HandlerOutcome:
    """Result of invoking one handler: ``error`` is ``None`` on success."""

    handler: str
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _name(handler: HandlerRef) -> str:
    if isinstance(handler, EventHandler):
        return type(handler).__qualname__
    return getattr(handler, "__qualname__", None) or repr(handler)


class EventHandlerBus(abc.ABC):
    """Port: dispatch a persisted domain event to its business handlers."""

    @abc.abstractmethod
    def register(self, event_type: type[DomainEvent], handler: HandlerRef) -> None: ...

    @abc.abstractmethod
    async def dispatch(self, event: DomainEvent) -> list[HandlerOutcome]:
        """Invoke every handler for ``type(event)``; report each outcome, never raise."""


class InProcessEventHandlerBus(EventHandlerBus):
    """In-process bus: handlers for the exact event type, sequential, registration order."""

    def __init__(self) -> None:
        self._handlers: dict[type[DomainEvent], list[HandlerRef]] = {}

    def register(self, event_type: type[DomainEvent], handler: HandlerRef) -> None:
        handlers = self._handlers.setdefault(event_type, [])
        if handler not in handlers:
            handlers.append(handler)

    def handlers_for(self, event_type: type[DomainEvent]) -> tuple[HandlerRef, ...]:
        return tuple(self._handlers.get(event_type, ()))

    async def dispatch(self, event: DomainEvent) -> list[HandlerOutcome]:
        outcomes: list[HandlerOutcome] = []
        for handler in self.handlers_for(type(event)):
            name = _name(handler)
            try:
                if isinstance(handler, EventHandler):
                    await handler.handle(event)
                else:
                    await handler(event)
            except Exception as exc:  # noqa: BLE001 – isolated per handler
                outcomes.append(HandlerOutcome(name, exc))
            else:
                outcomes.append(HandlerOutcome(name))
        return outcomes


__all__ = [
    "EventHandler",
    "EventHandlerBus",
    "HandlerOutcome",
    "HandlerRef",
    "InProcessEventHandlerBus",
]
