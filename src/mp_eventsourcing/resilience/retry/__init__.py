"""Resilience – retry for transient storage failures."""
from mp_eventsourcing.resilience.retry.tenacity_adapter import TenacityRetryPolicy, is_retryable

__all__ = ["TenacityRetryPolicy", "is_retryable"]
