"""Kernel time – Clock port used to stamp ``recorded_at`` on persisted events."""
from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Protocol


class Clock(Protocol):
    """Port: source of UTC wall-clock time."""

    def now(self) -> datetime: ...


class SystemClock:
    """Production clock that delegates to ``datetime.now(UTC)``."""

    def now(self) -> datetime:
        return datetime.now(UTC)


class FrozenClock:
    """Test clock pinned to a fixed point in time.

    ``step`` (optional) advances the clock after every :meth:`now` call, which
    makes successive ``recorded_at`` values distinguishable in tests.
    """

    def __init__(self, fixed: datetime, step: timedelta | None = None) -> None:
        self._fixed = fixed
        self._step = step

    def now(self) -> datetime:
        current = self._fixed
        if self._step is not None:
            self._fixed += self._step
        return current

    def advance(self, **kwargs: int | float) -> None:
        """Advance the frozen time by the given ``timedelta`` kwargs."""
        self._fixed += timedelta(**kwargs)


__all__ = ["Clock", "FrozenClock", "SystemClock"]
