"""Kernel error hierarchy – public re-export surface.

Hierarchy::

    BaseError
    ├── DomainError              (domain.py)
    │   ├── ValidationError
    │   └── ConflictError
    │       └── ConcurrencyConflictError
    ├── ApplicationError         (application.py)
    │   ├── RegistryFrozenError
    │   └── ReplayInProgressError
    └── InfrastructureError      (infrastructure.py)
        ├── StorageUnavailableError
        └── SerializationError
"""

from mp_eventsourcing.kernel.errors.application import (
    ApplicationError,
    RegistryFrozenError,
    ReplayInProgressError,
)
from mp_eventsourcing.kernel.errors.base import BaseError
from mp_eventsourcing.kernel.errors.domain import (
    ConcurrencyConflictError,
    ConflictError,
    DomainError,
    ValidationError,
)
from mp_eventsourcing.kernel.errors.infrastructure import (
    InfrastructureError,
    SerializationError,
    StorageUnavailableError,
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
