"""SQLAlchemy adapter – SQLAlchemyEventLogStore."""
from __future__ import annotations

import asyncio
import json
from contextlib import AbstractAsyncContextManager, nullcontext
from datetime import UTC, datetime
from typing import Any, AsyncIterator, Callable, Sequence

from sqlalchemy import (
    BigInteger,
    Column,
    DateTime,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    func,
    insert,
    select,
    update,
)
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from mp_eventsourcing.application.event_sourcing.event_record import EventRecord, NewEvent, json_default
from mp_eventsourcing.application.event_sourcing.store import (
    EventLogStore,
    batch_aggregate_key,
    normalise_expected,
)
from mp_eventsourcing.kernel.errors import (
    ConcurrencyConflictError,
    SerializationError,
    StorageUnavailableError,
)
from mp_eventsourcing.kernel.time import Clock, SystemClock
from mp_eventsourcing.observability.logging import get_logger, record_fields
from mp_eventsourcing.resilience.retry import TenacityRetryPolicy

logger = get_logger(__name__)

GLOBAL_COUNTER = "global_sequence"

metadata = MetaData()

event_log = Table(
    "event_log",
    metadata,
    Column("global_sequence", BigInteger, primary_key=True, autoincrement=False),
    Column("aggregate_type", String(128), nullable=False),
    Column("aggregate_id", String(256), nullable=False),
    Column("sequence_number", Integer, nullable=False),
    Column("event_kind", String(256), nullable=False),
    Column("schema_version", Integer, nullable=False),
    Column("payload", Text, nullable=False),
    Column("metadata_json", Text, nullable=False, default="{}"),
    Column("recorded_at", DateTime(timezone=True), nullable=False),
    UniqueConstraint(
        "aggregate_type",
        "aggregate_id",
        "sequence_number",
        name="uq_event_log_aggregate_sequence",
    ),
)

event_log_counters = Table(
    "event_log_counters",
    metadata,
    Column("name", String(64), primary_key=True),
    Column("value", BigInteger, nullable=False),
)


class SQLAlchemyEventLogStore(EventLogStore):
    """Append-only event log on any SQLAlchemy async backend.

    Events live in ``event_log``; ``(aggregate_type, aggregate_id,
    sequence_number)`` is ``UNIQUE`` so the database itself rejects a second
    writer that raced past the version check.  ``global_sequence`` comes from
    a counter row in ``event_log_counters`` that is incremented inside the
    same transaction as the insert: a rolled-back append leaves no gap, and
    the row lock orders concurrent writers.

    Every append runs in its own session and transaction.  Call
    :meth:`create_tables` once before the first append.

    Parameters
    ----------
    session_factory:
        Zero-argument callable returning an :class:`AsyncSession`
        (an ``async_sessionmaker`` or :class:`SqlAlchemySessionFactory`).
    clock:
        Source of ``recorded_at``.
    batch_size:
        Page size for :meth:`get_all_events`.
    retry_policy:
        Optional :class:`TenacityRetryPolicy`; retries
        :class:`StorageUnavailableError` only.
    single_connection:
        Serialise every database round trip behind one :class:`asyncio.Lock`.
        Required when all sessions share one DBAPI connection (``StaticPool``,
        e.g. an aiosqlite ``:memory:`` URL): interleaved transactions on a
        shared connection would commit or roll back each other's work.
        ``None`` asks the session factory via its ``shares_connection`` flag.
    """

    def __init__(
        self,
        session_factory: Callable[[], AsyncSession],
        clock: Clock | None = None,
        batch_size: int = 500,
        retry_policy: TenacityRetryPolicy | None = None,
        single_connection: bool | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self._batch_size = batch_size
        self._retry_policy = retry_policy
        if single_connection is None:
            single_connection = bool(getattr(session_factory, "shares_connection", False))
        self._io_lock: asyncio.Lock | None = asyncio.Lock() if single_connection else None

    # ------------------------------------------------------------------
    # Schema helpers
    # ------------------------------------------------------------------

    @classmethod
    async def create_tables(cls, engine: AsyncEngine) -> None:
        """Create ``event_log`` and the counter row if missing.  Idempotent."""
        async with engine.begin() as conn:
            await conn.run_sync(metadata.create_all)
            existing = await conn.execute(
                select(event_log_counters.c.value).where(event_log_counters.c.name == GLOBAL_COUNTER)
            )
            if existing.first() is None:
                await conn.execute(insert(event_log_counters).values(name=GLOBAL_COUNTER, value=0))

    # ------------------------------------------------------------------
    # EventLogStore interface
    # ------------------------------------------------------------------

    async def append_batch(
        self,
        events: Sequence[NewEvent],
        expected_sequence_number: int | None = None,
    ) -> list[EventRecord]:
        expected = normalise_expected(expected_sequence_number)
        if not events:
            return []
        key = batch_aggregate_key(events)
        rows = [self._encode(ev) for ev in events]

        if self._retry_policy is None:
            return await self._append_once(key, events, rows, expected)
        return await self._retry_policy.execute_async(
            lambda: self._append_once(key, events, rows, expected)
        )

    async def get_events_for_aggregate(
        self,
        aggregate_type: str,
        aggregate_id: str,
        from_sequence: int = 1,
    ) -> list[EventRecord]:
        stmt = (
            select(event_log)
            .where(event_log.c.aggregate_type == aggregate_type)
            .where(event_log.c.aggregate_id == aggregate_id)
            .where(event_log.c.sequence_number >= from_sequence)
            .order_by(event_log.c.sequence_number)
        )
        return await self._fetch(stmt, "get_events_for_aggregate")

    async def get_all_events(self, from_global_sequence: int = 1) -> AsyncIterator[EventRecord]:
        upper = await self._max_global_sequence()
        position = max(from_global_sequence, 1) - 1
        while position < upper:
            stmt = (
                select(event_log)
                .where(event_log.c.global_sequence > position)
                .where(event_log.c.global_sequence <= upper)
                .order_by(event_log.c.global_sequence)
                .limit(self._batch_size)
            )
            page = await self._fetch(stmt, "get_all_events")
            if not page:
                break
            for record in page:
                yield record
            position = page[-1].global_sequence

    async def current_sequence_number(self, aggregate_type: str, aggregate_id: str) -> int:
        try:
            async with self._exclusive(), self._session_factory() as session:
                return await self._read_current(session, aggregate_type, aggregate_id)
        except DBAPIError as exc:
            raise StorageUnavailableError("current_sequence_number", cause=exc) from exc

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _append_once(
        self,
        key: tuple[str, str],
        events: Sequence[NewEvent],
        rows: list[dict[str, Any]],
        expected: int,
    ) -> list[EventRecord]:
        aggregate_type, aggregate_id = key
        count = len(events)
        try:
            async with self._exclusive(), self._session_factory() as session:
                async with session.begin():
                    actual = await self._read_current(session, aggregate_type, aggregate_id)
                    if actual != expected:
                        raise ConcurrencyConflictError(aggregate_type, aggregate_id, expected, actual)

                    await session.execute(
                        update(event_log_counters)
                        .where(event_log_counters.c.name == GLOBAL_COUNTER)
                        .values(value=event_log_counters.c.value + count)
                    )
                    top = (
                        await session.execute(
                            select(event_log_counters.c.value).where(
                                event_log_counters.c.name == GLOBAL_COUNTER
                            )
                        )
                    ).scalar_one()

                    recorded_at = self._clock.now()
                    first_global = top - count + 1
                    records = [
                        EventRecord.from_new(
                            ev,
                            sequence_number=expected + offset + 1,
                            global_sequence=first_global + offset,
                            recorded_at=recorded_at,
                        )
                        for offset, ev in enumerate(events)
                    ]
                    await session.execute(
                        insert(event_log),
                        [
                            {
                                **row,
                                "sequence_number": record.sequence_number,
                                "global_sequence": record.global_sequence,
                                "recorded_at": recorded_at,
                            }
                            for row, record in zip(rows, records)
                        ],
                    )
        except ConcurrencyConflictError as exc:
            logger.info("append_conflict", **exc.log_fields())
            raise
        except IntegrityError as exc:
            # A concurrent writer committed the same sequence_number first.
            actual = await self.current_sequence_number(aggregate_type, aggregate_id)
            conflict = ConcurrencyConflictError(
                aggregate_type, aggregate_id, expected, actual, cause=exc
            )
            logger.info("append_conflict", **conflict.log_fields())
            raise conflict from exc
        except DBAPIError as exc:
            logger.warning(
                "storage_unavailable",
                operation="append",
                aggregate_type=aggregate_type,
                aggregate_id=aggregate_id,
                error=repr(exc),
            )
            raise StorageUnavailableError("append", cause=exc) from exc

        for record in records:
            logger.debug("event_appended", **record_fields(record))
        return records

    def _exclusive(self) -> AbstractAsyncContextManager[Any]:
        return self._io_lock if self._io_lock is not None else nullcontext()

    @staticmethod
    async def _read_current(session: AsyncSession, aggregate_type: str, aggregate_id: str) -> int:
        stmt = (
            select(func.coalesce(func.max(event_log.c.sequence_number), 0))
            .where(event_log.c.aggregate_type == aggregate_type)
            .where(event_log.c.aggregate_id == aggregate_id)
        )
        return int((await session.execute(stmt)).scalar_one())

    async def _max_global_sequence(self) -> int:
        stmt = select(func.coalesce(func.max(event_log.c.global_sequence), 0))
        try:
            async with self._exclusive(), self._session_factory() as session:
                return int((await session.execute(stmt)).scalar_one())
        except DBAPIError as exc:
            raise StorageUnavailableError("get_all_events", cause=exc) from exc

    async def _fetch(self, stmt: Any, operation: str) -> list[EventRecord]:
        try:
            async with self._exclusive(), self._session_factory() as session:
                rows = (await session.execute(stmt)).fetchall()
        except DBAPIError as exc:
            raise StorageUnavailableError(operation, cause=exc) from exc
        return [self._decode(row) for row in rows]

    # ------------------------------------------------------------------
    # (De)serialisation helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _encode(ev: NewEvent) -> dict[str, Any]:
        try:
            payload = json.dumps(dict(ev.payload), ensure_ascii=False, default=json_default)
            meta = json.dumps(dict(ev.metadata), ensure_ascii=False, default=json_default)
        except (TypeError, ValueError) as exc:
            raise SerializationError(
                f"Event '{ev.event_kind}' is not JSON-serialisable: {exc}",
                event_kind=ev.event_kind,
                cause=exc,
            ) from exc
        return {
            "aggregate_type": ev.aggregate_type,
            "aggregate_id": ev.aggregate_id,
            "event_kind": ev.event_kind,
            "schema_version": ev.schema_version,
            "payload": payload,
            "metadata_json": meta,
        }

    @staticmethod
    def _decode(row: Any) -> EventRecord:
        recorded_at: datetime = row.recorded_at
        if recorded_at.tzinfo is None:
            # SQLite drops the offset; values are always written in UTC.
            recorded_at = recorded_at.replace(tzinfo=UTC)
        return EventRecord(
            aggregate_type=row.aggregate_type,
            aggregate_id=row.aggregate_id,
            event_kind=row.event_kind,
            schema_version=row.schema_version,
            payload=json.loads(row.payload),
            sequence_number=row.sequence_number,
            global_sequence=row.global_sequence,
            recorded_at=recorded_at,
            metadata=json.loads(row.metadata_json) if row.metadata_json else {},
        )


__all__ = ["SQLAlchemyEventLogStore", "event_log", "event_log_counters", "metadata"]
