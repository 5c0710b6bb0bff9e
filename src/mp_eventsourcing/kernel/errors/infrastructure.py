"""Infrastructure errors – storage I/O and payload encoding failures."""

from __future__ import annotations

from typing import Any

from mp_eventsourcing.kernel.errors.base import BaseError


class InfrastructureError(BaseError):
    """Infrastructure / I/O failure that is not a business rule violation."""

    default_code = "infrastructure_error"


class StorageUnavailableError(InfrastructureError):
    """The durable store could not complete an operation.

    Safe to retry with backoff.  When raised from ``append`` the event is
    guaranteed **not** to have been persisted.
    """

    default_code = "storage_unavailable"
    retryable = True

    def __init__(
        self,
        operation: str,
        message: str | None = None,
        **kwargs: Any,
    ) -> None:
        kwargs.setdefault("detail", {"operation": operation})
        super().__init__(message or f"Event store unavailable during '{operation}'", **kwargs)
        self.operation = operation


class SerializationError(InfrastructureError):
    """Failed to serialize or deserialize an event payload."""

    default_code = "serialization_error"

    def __init__(
        self,
        message: str,
        *,
        event_kind: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.event_kind = event_kind


__all__ = ["InfrastructureError", "SerializationError", "StorageUnavailableError"]
