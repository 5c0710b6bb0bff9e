"""Domain errors – invalid input and conflicting aggregate state."""

from __future__ import annotations

from typing import Any

from mp_eventsourcing.kernel.errors.base import BaseError


class DomainError(BaseError):
    """Raised when a domain rule is violated."""

    default_code = "domain_error"


class ValidationError(DomainError):
    """Input data does not meet validation rules.

    ``errors`` is a list of field-level validation failures.
    """

    default_code = "validation_error"

    def __init__(
        self,
        message: str,
        *,
        errors: list[dict[str, Any]] | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.errors: list[dict[str, Any]] = errors or []

    def to_dict(self) -> dict[str, Any]:
        base = super().to_dict()
        base["errors"] = self.errors
        return base


class ConflictError(DomainError):
    """The operation conflicts with existing state."""

    default_code = "conflict"


class ConcurrencyConflictError(ConflictError):
    """The caller's expected aggregate version is stale.

    Raised by :meth:`EventLogStore.append` when the aggregate's current
    ``sequence_number`` differs from ``expected``.  The store never retries
    this itself: the caller re-reads the aggregate and re-runs the command.
    """

    default_code = "concurrency_conflict"

    def __init__(
        self,
        aggregate_type: str,
        aggregate_id: str,
        expected: int,
        actual: int,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            f"Concurrency conflict on {aggregate_type} '{aggregate_id}': "
            f"expected sequence {expected}, found {actual}",
            detail={
                "aggregate_type": aggregate_type,
                "aggregate_id": aggregate_id,
                "expected": expected,
                "actual": actual,
            },
            **kwargs,
        )
        self.aggregate_type = aggregate_type
        self.aggregate_id = aggregate_id
        self.expected = expected
        self.actual = actual


__all__ = [
    "ConcurrencyConflictError",
    "ConflictError",
    "DomainError",
    "ValidationError",
]
