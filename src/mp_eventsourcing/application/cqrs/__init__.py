"""Application CQRS – business-logic event handler dispatch."""
from mp_eventsourcing.application.cqrs.events import (
    EventHandler,
    EventHandlerBus,
    HandlerOutcome,
    HandlerRef,
    InProcessEventHandlerBus,
)

__all__ = [
    "EventHandler",
    "EventHandlerBus",
    "HandlerOutcome",
    "HandlerRef",
    "InProcessEventHandlerBus",
]
