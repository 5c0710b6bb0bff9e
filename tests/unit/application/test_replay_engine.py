"""Unit tests for ReplayEngine."""

from __future__ import annotations

import asyncio
import dataclasses
from typing import ClassVar

import pytest

from mp_eventsourcing.application.cqrs import InProcessEventHandlerBus
from mp_eventsourcing.application.event_sourcing import (
    CancellationToken,
    EventRecord,
    InMemoryEventLogStore,
    NewEvent,
    ProjectionRegistry,
    ReplayCursor,
    ReplayEngine,
    ReplayRecordFailure,
    StoreAndDispatchBus,
)
from mp_eventsourcing.kernel.ddd import DomainEvent
from mp_eventsourcing.kernel.errors import ReplayInProgressError
from mp_eventsourcing.testing import FailingProjector, RecordingProjector


@dataclasses.dataclass(frozen=True)
class UserCreated(DomainEvent):
    aggregate_type: ClassVar[str] = "user"

    name: str


@dataclasses.dataclass(frozen=True)
class UserRenamed(DomainEvent):
    aggregate_type: ClassVar[str] = "user"

    name: str


def _new(event_kind: str, aggregate_id: str, **payload: object) -> NewEvent:
    return NewEvent("user", aggregate_id, event_kind, payload=payload)


async def _seed(store: InMemoryEventLogStore) -> None:
    """u1: created, renamed; u2: created; u1: renamed again."""
    await store.append(_new("UserCreated", "u1", name="Ada"), 0)
    await store.append(_new("UserRenamed", "u1", name="Grace"), 1)
    await store.append(_new("UserCreated", "u2", name="Alan"), 0)
    await store.append(_new("UserRenamed", "u1", name="Hopper"), 2)


def _engine(*projectors: RecordingProjector | FailingProjector) -> tuple[ReplayEngine, InMemoryEventLogStore]:
    store = InMemoryEventLogStore()
    asyncio.run(_seed(store))
    registry = ProjectionRegistry()
    for projector in projectors:
        registry.register_projector(projector)
    return ReplayEngine(store, registry.freeze()), store


# ---------------------------------------------------------------------------
# replay_all
# ---------------------------------------------------------------------------


class TestReplayAll:
    def test_delivers_in_global_order(self) -> None:
        projector = RecordingProjector("UserCreated", "UserRenamed")
        engine, store = _engine(projector)

        report = asyncio.run(engine.replay_all())

        assert projector.seen == store.all_records()
        assert [r.global_sequence for r in projector.seen] == [1, 2, 3, 4]
        assert report.succeeded
        assert report.events_processed == 4
        assert report.projections_invoked == 4
        assert report.cursor == ReplayCursor("all", 4)

    def test_only_matching_kinds_are_delivered(self) -> None:
        projector = RecordingProjector("UserCreated")
        engine, _ = _engine(projector)
        report = asyncio.run(engine.replay_all())
        assert projector.kinds_seen == ["UserCreated", "UserCreated"]
        assert report.events_processed == 4
        assert report.projections_invoked == 2

    def test_replay_twice_yields_same_state(self) -> None:
        projector = RecordingProjector("UserCreated", "UserRenamed")
        engine, _ = _engine(projector)

        asyncio.run(engine.replay_all())
        once = dict(projector.state)
        asyncio.run(engine.replay_all())

        assert projector.state == once
        assert once[("user", "u1")]["name"] == "Hopper"
        assert len(projector.seen) == 8

    def test_from_global_sequence(self) -> None:
        projector = RecordingProjector("UserCreated", "UserRenamed")
        engine, _ = _engine(projector)
        report = asyncio.run(engine.replay_all(from_global_sequence=3))
        assert [r.global_sequence for r in projector.seen] == [3, 4]
        assert report.cursor.position == 4

    def test_empty_log(self) -> None:
        engine = ReplayEngine(InMemoryEventLogStore(), ProjectionRegistry())
        report = asyncio.run(engine.replay_all())
        assert report.events_processed == 0
        assert report.cursor == ReplayCursor("all", 0)
        assert report.cursor.next_position == 1
        assert report.succeeded

    def test_does_not_append(self) -> None:
        engine, store = _engine(RecordingProjector("UserCreated", "UserRenamed"))
        before = list(store.all_records())
        asyncio.run(engine.replay_all())
        assert store.all_records() == before

    def test_failing_projection_is_isolated_and_reported(self) -> None:
        failing = FailingProjector("UserCreated", "UserRenamed", fail_on=("UserRenamed",))
        recording = RecordingProjector("UserCreated", "UserRenamed")
        engine, _ = _engine(failing, recording)

        report = asyncio.run(engine.replay_all())

        assert len(recording.seen) == 4
        assert failing.calls == 4
        assert not report.succeeded
        assert report.events_processed == 4
        assert report.cursor.position == 4
        assert [f.global_sequence for f in report.failures] == [2, 4]
        assert all(isinstance(f, ReplayRecordFailure) for f in report.failures)
        assert report.to_dict()["failures"][0]["handler"] == "FailingProjector"


# ---------------------------------------------------------------------------
# replay_for_aggregate
# ---------------------------------------------------------------------------


class TestReplayForAggregate:
    def test_replays_one_aggregate_in_sequence_order(self) -> None:
        projector = RecordingProjector("UserCreated", "UserRenamed")
        engine, _ = _engine(projector)

        report = asyncio.run(engine.replay_for_aggregate("user", "u1"))

        assert [(r.aggregate_id, r.sequence_number) for r in projector.seen] == [
            ("u1", 1),
            ("u1", 2),
            ("u1", 3),
        ]
        assert report.cursor == ReplayCursor("aggregate", 3)

    def test_from_sequence(self) -> None:
        projector = RecordingProjector("UserCreated", "UserRenamed")
        engine, _ = _engine(projector)
        asyncio.run(engine.replay_for_aggregate("user", "u1", from_sequence=2))
        assert projector.kinds_seen == ["UserRenamed", "UserRenamed"]

    def test_unknown_aggregate(self) -> None:
        engine, _ = _engine(RecordingProjector("UserCreated"))
        report = asyncio.run(engine.replay_for_aggregate("user", "ghost"))
        assert report.events_processed == 0
        assert report.succeeded

    def test_business_handlers_are_not_invoked(self) -> None:
        mails: list[str] = []

        async def welcome(event: UserCreated) -> None:
            mails.append(event.name)

        handlers = InProcessEventHandlerBus()
        handlers.register(UserCreated, welcome)
        created_proj = RecordingProjector("UserCreated", name="created")
        renamed_proj = RecordingProjector("UserRenamed", name="renamed")
        registry = ProjectionRegistry()
        registry.register_projector(created_proj)
        registry.register_projector(renamed_proj)
        store = InMemoryEventLogStore()
        bus = StoreAndDispatchBus(store, registry, handlers)

        async def run() -> None:
            await bus.publish(UserCreated("u1", name="Ada"), 0)
            await bus.publish(UserRenamed("u1", name="Grace"), 1)
            created_proj.seen.clear()
            renamed_proj.seen.clear()
            await ReplayEngine(store, registry).replay_for_aggregate("user", "u1")

        asyncio.run(run())

        assert mails == ["Ada"]
        assert created_proj.kinds_seen == ["UserCreated"]
        assert renamed_proj.kinds_seen == ["UserRenamed"]


# ---------------------------------------------------------------------------
# progress, cancellation and concurrency
# ---------------------------------------------------------------------------


class TestReplayControl:
    def test_sync_progress_callback(self) -> None:
        positions: list[int] = []
        engine, _ = _engine(RecordingProjector("UserCreated"))
        asyncio.run(engine.replay_all(on_progress=lambda cursor: positions.append(cursor.position)))
        assert positions == [1, 2, 3, 4]

    def test_async_progress_callback(self) -> None:
        positions: list[int] = []

        async def on_progress(cursor: ReplayCursor) -> None:
            positions.append(cursor.position)

        engine, _ = _engine(RecordingProjector("UserCreated"))
        asyncio.run(engine.replay_for_aggregate("user", "u1", on_progress=on_progress))
        assert positions == [1, 2, 3]

    def test_cancellation_stops_between_records_and_resumes(self) -> None:
        projector = RecordingProjector("UserCreated", "UserRenamed")
        engine, _ = _engine(projector)
        token = CancellationToken()

        def stop_after_two(cursor: ReplayCursor) -> None:
            if cursor.position == 2:
                token.cancel()

        first = asyncio.run(engine.replay_all(on_progress=stop_after_two, cancellation=token))

        assert first.cancelled
        assert not first.succeeded
        assert first.events_processed == 2
        assert first.cursor.position == 2

        second = asyncio.run(engine.replay_all(from_global_sequence=first.cursor.next_position))
        assert second.events_processed == 2
        assert [r.global_sequence for r in projector.seen] == [1, 2, 3, 4]

    def test_pre_cancelled_token_processes_nothing(self) -> None:
        projector = RecordingProjector("UserCreated")
        engine, _ = _engine(projector)
        token = CancellationToken()
        token.cancel()
        report = asyncio.run(engine.replay_all(cancellation=token))
        assert report.cancelled
        assert report.events_processed == 0
        assert projector.seen == []

    def test_concurrent_run_is_rejected(self) -> None:
        async def run() -> None:
            started = asyncio.Event()
            release = asyncio.Event()

            async def slow(record: EventRecord) -> None:
                started.set()
                await release.wait()

            registry = ProjectionRegistry()
            registry.register("UserCreated", slow)
            store = InMemoryEventLogStore()
            await _seed(store)
            engine = ReplayEngine(store, registry)

            first = asyncio.create_task(engine.replay_all())
            await started.wait()
            assert engine.running
            with pytest.raises(ReplayInProgressError):
                await engine.replay_for_aggregate("user", "u1")
            release.set()
            report = await first
            assert report.events_processed == 4
            assert not engine.running

        asyncio.run(run())

    def test_task_cancellation_propagates_and_releases_engine(self) -> None:
        async def run() -> ReplayEngine:
            started = asyncio.Event()

            async def hang(record: EventRecord) -> None:
                started.set()
                await asyncio.sleep(3600)

            registry = ProjectionRegistry()
            registry.register("UserCreated", hang)
            store = InMemoryEventLogStore()
            await _seed(store)
            engine = ReplayEngine(store, registry)

            task = asyncio.create_task(engine.replay_all())
            await started.wait()
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task
            return engine

        assert not asyncio.run(run()).running
