"""
mp_eventsourcing – Event store, dispatch bus and replay engine.

Import path convention::

    from mp_eventsourcing.kernel.errors import ConcurrencyConflictError
    from mp_eventsourcing.kernel.ddd import DomainEvent
    from mp_eventsourcing.application.event_sourcing import StoreAndDispatchBus, ReplayEngine
    from mp_eventsourcing.adapters.sqlalchemy import SQLAlchemyEventLogStore
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
