"""Observability – get_logger helper and the aggregate-binding processor."""
from __future__ import annotations

from typing import Any

import structlog


def get_logger(name: str | None = None, **initial_values: Any) -> Any:
    """Return a bound structlog logger.

    Parameters
    ----------
    name:
        Logger name (typically ``__name__`` of the calling module).
    **initial_values:
        Key-value pairs to bind on the returned logger.
    """
    logger = structlog.get_logger(name)
    if initial_values:
        logger = logger.bind(**initial_values)
    return logger


def record_fields(record: Any) -> dict[str, Any]:
    """Log fields identifying a persisted event record."""
    return {
        "aggregate_type": record.aggregate_type,
        "aggregate_id": record.aggregate_id,
        "event_kind": record.event_kind,
        "sequence_number": record.sequence_number,
        "global_sequence": record.global_sequence,
    }


__all__ = ["get_logger", "record_fields"]
