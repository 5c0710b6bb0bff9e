"""Kernel DDD – domain event contract."""
from mp_eventsourcing.kernel.ddd.domain_event import DomainEvent

__all__ = ["DomainEvent"]
