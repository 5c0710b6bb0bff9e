"""Observability – structured logging helpers."""
from mp_eventsourcing.observability.logging.factory import JsonLoggerFactory
from mp_eventsourcing.observability.logging.processors import get_logger, record_fields

__all__ = ["JsonLoggerFactory", "get_logger", "record_fields"]
