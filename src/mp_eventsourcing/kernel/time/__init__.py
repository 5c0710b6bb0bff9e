"""Kernel time – clock abstractions."""
from mp_eventsourcing.kernel.time.clock import Clock, FrozenClock, SystemClock

__all__ = ["Clock", "FrozenClock", "SystemClock"]
