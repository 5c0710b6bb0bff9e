"""End-to-end tests for EventSourcingRuntime on SQLite."""

from __future__ import annotations

import asyncio
import dataclasses
from pathlib import Path
from typing import ClassVar

import pytest

from mp_eventsourcing.application.cqrs import InProcessEventHandlerBus
from mp_eventsourcing.application.event_sourcing import ProjectionRegistry, PublishResult, ReplayReport
from mp_eventsourcing.config import EventStoreSettings, InvalidSettingValueError
from mp_eventsourcing.kernel.ddd import DomainEvent
from mp_eventsourcing.kernel.errors import ConcurrencyConflictError, RegistryFrozenError
from mp_eventsourcing.runtime import EventSourcingRuntime
from mp_eventsourcing.testing import FakeClock, RecordingProjector


@dataclasses.dataclass(frozen=True)
class UserCreated(DomainEvent):
    aggregate_type: ClassVar[str] = "user"

    name: str


@dataclasses.dataclass(frozen=True)
class UserRenamed(DomainEvent):
    aggregate_type: ClassVar[str] = "user"

    name: str


def _settings(tmp_path: Path) -> EventStoreSettings:
    return EventStoreSettings(database_url=f"sqlite+aiosqlite:///{tmp_path / 'events.db'}", batch_size=2)


class TestEventSourcingRuntime:
    def test_publish_query_and_rebuild(self, tmp_path: Path) -> None:
        mails: list[str] = []

        async def welcome(event: UserCreated) -> None:
            mails.append(event.name)

        handlers = InProcessEventHandlerBus()
        handlers.register(UserCreated, welcome)
        names = RecordingProjector("UserCreated", "UserRenamed")
        projections = ProjectionRegistry()
        projections.register_projector(names)

        async def run() -> tuple[int, ReplayReport]:
            runtime = EventSourcingRuntime(
                _settings(tmp_path), projections=projections, handlers=handlers, clock=FakeClock()
            )
            async with runtime:
                await runtime.bus.publish(UserCreated("u1", name="Ada"), 0)
                await runtime.bus.publish(UserRenamed("u1", name="Grace"), 1)
                await runtime.bus.publish(UserCreated("u2", name="Alan"), 0)
                with pytest.raises(ConcurrencyConflictError):
                    await runtime.bus.publish(UserRenamed("u1", name="Hopper"), 1)

                version = await runtime.query.get_version("user", "u1")
                names.state.clear()
                report = await runtime.replay.replay_all()
            return version, report

        version, report = asyncio.run(run())

        assert version == 2
        assert mails == ["Ada", "Alan"]
        assert report.succeeded
        assert report.events_processed == 3
        assert names.state[("user", "u1")]["name"] == "Grace"
        assert names.state[("user", "u2")]["name"] == "Alan"

    def test_log_survives_restart(self, tmp_path: Path) -> None:
        async def run() -> list[str]:
            async with EventSourcingRuntime(_settings(tmp_path)) as runtime:
                await runtime.bus.publish(UserCreated("u1", name="Ada"), 0)
            async with EventSourcingRuntime(_settings(tmp_path)) as runtime:
                await runtime.bus.publish(UserRenamed("u1", name="Grace"), 1)
                events = await runtime.query.get_events("user", "u1")
            return [e.event_kind for e in events]

        assert asyncio.run(run()) == ["UserCreated", "UserRenamed"]

    def test_projections_are_frozen_on_start(self, tmp_path: Path) -> None:
        projections = ProjectionRegistry()

        async def run() -> None:
            async with EventSourcingRuntime(_settings(tmp_path), projections=projections):
                pass

        asyncio.run(run())
        with pytest.raises(RegistryFrozenError):
            projections.register_projector(RecordingProjector("UserCreated"))

    def test_from_env(self, tmp_path: Path) -> None:
        environ = {
            "EVENTSTORE_DATABASE_URL": f"sqlite+aiosqlite:///{tmp_path / 'env.db'}",
            "EVENTSTORE_APPEND_MAX_ATTEMPTS": "5",
        }
        runtime = EventSourcingRuntime.from_env(environ)
        assert runtime.settings.append_max_attempts == 5

        async def run() -> int:
            async with runtime:
                await runtime.bus.publish(UserCreated("u1", name="Ada"))
                return await runtime.query.get_version("user", "u1")

        assert asyncio.run(run()) == 1

    def test_from_env_rejects_bad_values(self) -> None:
        with pytest.raises(InvalidSettingValueError):
            EventSourcingRuntime.from_env({"EVENTSTORE_BATCH_SIZE": "-3"})


class TestRuntimeConcurrentPublish:
    def test_default_in_memory_database_admits_concurrent_writers(self) -> None:
        async def run() -> tuple[list[object], list[int]]:
            async with EventSourcingRuntime(EventStoreSettings()) as runtime:
                results = await asyncio.gather(
                    *(runtime.bus.publish(UserCreated(f"a{i}", name=f"n{i}"), 0) for i in range(5)),
                    *(runtime.bus.publish(UserCreated("same", name=f"s{i}"), 0) for i in range(3)),
                    return_exceptions=True,
                )
                globals_ = [r.global_sequence async for r in runtime.store.get_all_events()]
            return list(results), globals_

        results, globals_ = asyncio.run(run())
        assert sum(isinstance(r, PublishResult) for r in results) == 6
        assert sum(isinstance(r, ConcurrencyConflictError) for r in results) == 2
        assert sorted(globals_) == [1, 2, 3, 4, 5, 6]

    def test_same_expected_sequence_admits_one_publish(self, tmp_path: Path) -> None:
        seen = RecordingProjector("UserCreated")
        projections = ProjectionRegistry()
        projections.register_projector(seen)

        async def run() -> tuple[list[object], list[int]]:
            async with EventSourcingRuntime(_settings(tmp_path), projections=projections) as runtime:
                results = await asyncio.gather(
                    *(runtime.bus.publish(UserCreated("u1", name=f"n{i}"), 0) for i in range(5)),
                    return_exceptions=True,
                )
                events = await runtime.query.get_events("user", "u1")
            return list(results), [e.sequence_number for e in events]

        results, stream = asyncio.run(run())
        assert sum(isinstance(r, PublishResult) for r in results) == 1
        assert sum(isinstance(r, ConcurrencyConflictError) for r in results) == 4
        assert stream == [1]
        assert len(seen.seen) == 1
