"""Application-layer errors – misuse of the bus, registry or replay engine."""

from __future__ import annotations

from mp_eventsourcing.kernel.errors.base import BaseError


class ApplicationError(BaseError):
    """Cross-cutting application-layer concern."""

    default_code = "application_error"


class RegistryFrozenError(ApplicationError):
    """A projection was registered after the registry was frozen."""

    default_code = "registry_frozen"

    def __init__(self, event_kind: str) -> None:
        super().__init__(
            f"Cannot register a projection for '{event_kind}': registry is frozen",
            detail={"event_kind": event_kind},
        )
        self.event_kind = event_kind


class ReplayInProgressError(ApplicationError):
    """A replay run was started while another is still running on the same engine."""

    default_code = "replay_in_progress"


__all__ = ["ApplicationError", "RegistryFrozenError", "ReplayInProgressError"]
