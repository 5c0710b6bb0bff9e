"""Config settings – Settings base class and EventStoreSettings."""
from __future__ import annotations

import dataclasses
import logging
from typing import ClassVar

from mp_eventsourcing.config.errors import InvalidSettingValueError


@dataclasses.dataclass
class Settings:
    """Base class for 12-factor settings; ``_prefix`` names the env namespace."""

    _prefix: ClassVar[str] = ""

    def __post_init__(self) -> None:
        self._validate()

    def _validate(self) -> None:
        """Override to add cross-field validation."""


@dataclasses.dataclass
class EventStoreSettings(Settings):
    """Storage and replay settings, read from ``EVENTSTORE_*`` variables."""

    _prefix: ClassVar[str] = "EVENTSTORE"

    database_url: str = "sqlite+aiosqlite:///:memory:"
    batch_size: int = 500
    append_max_attempts: int = 3
    append_retry_wait_seconds: float = 0.1
    log_level: str = "INFO"
    echo_sql: bool = False

    def _validate(self) -> None:
        if not self.database_url:
            raise InvalidSettingValueError("database_url", self.database_url, "must not be empty")
        if self.batch_size < 1:
            raise InvalidSettingValueError("batch_size", self.batch_size, "must be >= 1")
        if self.append_max_attempts < 1:
            raise InvalidSettingValueError(
                "append_max_attempts", self.append_max_attempts, "must be >= 1"
            )
        if self.append_retry_wait_seconds < 0:
            raise InvalidSettingValueError(
                "append_retry_wait_seconds", self.append_retry_wait_seconds, "must be >= 0"
            )
        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise InvalidSettingValueError("log_level", self.log_level, "unknown logging level")


__all__ = ["EventStoreSettings", "Settings"]
