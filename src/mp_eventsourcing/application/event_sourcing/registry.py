"""Application event sourcing – ProjectionRegistry."""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

from mp_eventsourcing.application.event_sourcing.projector import (
    ProjectionHandler,
    Projector,
    handler_name,
)
from mp_eventsourcing.kernel.errors import RegistryFrozenError
from mp_eventsourcing.observability.logging import get_logger

logger = get_logger(__name__)


class ProjectionRegistry:
    """Maps an ``event_kind`` to the ordered projections that consume it.

    Built at process start by the view-updater modules, then frozen.
    Registration order is invocation order.  Registering the same handler
    for the same kind twice is a no-op, so repeated module initialisation is
    harmless.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[ProjectionHandler]] = {}
        self._frozen: Mapping[str, tuple[ProjectionHandler, ...]] | None = None

    def register(self, event_kind: str, handler: ProjectionHandler) -> None:
        if self._frozen is not None:
            raise RegistryFrozenError(event_kind)
        handlers = self._handlers.setdefault(event_kind, [])
        if handler in handlers:
            return
        handlers.append(handler)
        logger.debug("projection_registered", event_kind=event_kind, handler=handler_name(handler))

    def register_projector(self, projector: Projector) -> None:
        """Register *projector* for every kind listed in its ``handles``."""
        for event_kind in projector.handles:
            self.register(event_kind, projector)

    def handlers_for(self, event_kind: str) -> tuple[ProjectionHandler, ...]:
        """Return the projections for *event_kind*; empty when none are registered."""
        if self._frozen is not None:
            return self._frozen.get(event_kind, ())
        return tuple(self._handlers.get(event_kind, ()))

    def event_kinds(self) -> tuple[str, ...]:
        return tuple(self._handlers)

    def freeze(self) -> "ProjectionRegistry":
        """Make the registry immutable; later :meth:`register` calls raise."""
        if self._frozen is None:
            self._frozen = MappingProxyType(
                {kind: tuple(handlers) for kind, handlers in self._handlers.items()}
            )
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen is not None


__all__ = ["ProjectionRegistry"]
