"""Kernel – framework-agnostic building blocks (errors, clock, domain events)."""

from mp_eventsourcing.kernel.errors import (
    ApplicationError,
    BaseError,
    ConcurrencyConflictError,
    ConflictError,
    DomainError,
    InfrastructureError,
    RegistryFrozenError,
    ReplayInProgressError,
    SerializationError,
    StorageUnavailableError,
    ValidationError,
)

__all__ = [
    "ApplicationError",
    "BaseError",
    "ConcurrencyConflictError",
    "ConflictError",
    "DomainError",
    "InfrastructureError",
    "RegistryFrozenError",
    "ReplayInProgressError",
    "SerializationError",
    "StorageUnavailableError",
    "ValidationError",
]
