"""SQLAlchemy adapter – async engine/session lifecycle and the SQL event log."""
from mp_eventsourcing.adapters.sqlalchemy.event_store import SQLAlchemyEventLogStore
from mp_eventsourcing.adapters.sqlalchemy.session import SqlAlchemySessionFactory

__all__ = ["SQLAlchemyEventLogStore", "SqlAlchemySessionFactory"]
