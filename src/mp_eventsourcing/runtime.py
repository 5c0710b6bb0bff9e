"""Process-wide wiring for the event store, publish bus, replay engine and queries.

There is no module-level singleton: the application builds one
:class:`EventSourcingRuntime`, enters it at startup and passes its ``bus``,
``replay`` and ``query`` to whatever needs them.  Leaving the context releases
the storage connection.

Example::

    projections = ProjectionRegistry()
    projections.register_projector(UserNameProjector())

    async with EventSourcingRuntime.from_env(projections=projections) as runtime:
        await runtime.bus.publish(UserCreated(aggregate_id="u1", name="Ada"), 0)
        report = await runtime.replay.replay_all()
"""
from __future__ import annotations

from typing import Any, Mapping

from mp_eventsourcing.adapters.sqlalchemy import SQLAlchemyEventLogStore, SqlAlchemySessionFactory
from mp_eventsourcing.application.cqrs.events import EventHandlerBus
from mp_eventsourcing.application.event_sourcing import (
    EventQueryService,
    ProjectionRegistry,
    ReplayEngine,
    StoreAndDispatchBus,
)
from mp_eventsourcing.config import EnvSettingsLoader, EventStoreSettings
from mp_eventsourcing.kernel.time import Clock
from mp_eventsourcing.observability.logging import JsonLoggerFactory, get_logger
from mp_eventsourcing.resilience.retry import TenacityRetryPolicy

logger = get_logger(__name__)


class EventSourcingRuntime:
    """Async context manager owning the storage connection and the components built on it."""

    def __init__(
        self,
        settings: EventStoreSettings | None = None,
        projections: ProjectionRegistry | None = None,
        handlers: EventHandlerBus | None = None,
        clock: Clock | None = None,
        configure_logging: bool = False,
    ) -> None:
        self.settings = settings or EventStoreSettings()
        self.projections = projections or ProjectionRegistry()
        self.handlers = handlers
        self._clock = clock
        self._configure_logging = configure_logging
        self._sessions: SqlAlchemySessionFactory | None = None
        self.store: SQLAlchemyEventLogStore | None = None
        self.bus: StoreAndDispatchBus | None = None
        self.replay: ReplayEngine | None = None
        self.query: EventQueryService | None = None

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        **kwargs: Any,
    ) -> "EventSourcingRuntime":
        """Build a runtime from ``EVENTSTORE_*`` environment variables."""
        settings = EnvSettingsLoader(environ).load(EventStoreSettings)
        return cls(settings=settings, **kwargs)

    async def __aenter__(self) -> "EventSourcingRuntime":
        if self._configure_logging:
            JsonLoggerFactory.configure(self.settings.log_level)

        self._sessions = SqlAlchemySessionFactory(
            self.settings.database_url, echo=self.settings.echo_sql
        )
        try:
            await SQLAlchemyEventLogStore.create_tables(self._sessions.engine)
        except BaseException:
            await self._sessions.dispose()
            self._sessions = None
            raise

        self.store = SQLAlchemyEventLogStore(
            self._sessions,
            clock=self._clock,
            batch_size=self.settings.batch_size,
            retry_policy=TenacityRetryPolicy.from_settings(
                self.settings.append_max_attempts,
                self.settings.append_retry_wait_seconds,
            ),
        )
        self.projections.freeze()
        self.bus = StoreAndDispatchBus(self.store, self.projections, self.handlers)
        self.replay = ReplayEngine(self.store, self.projections)
        self.query = EventQueryService(self.store)
        logger.info(
            "event_store_started",
            projection_kinds=list(self.projections.event_kinds()),
            single_connection=self._sessions.shares_connection,
        )
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self._sessions is not None:
            await self._sessions.dispose()
            self._sessions = None
        logger.info("event_store_stopped")


__all__ = ["EventSourcingRuntime"]
