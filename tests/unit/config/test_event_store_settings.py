"""Unit tests for EventStoreSettings and EnvSettingsLoader."""

import dataclasses
from typing import ClassVar

import pytest

from mp_eventsourcing.config import (
    ConfigError,
    EnvSettingsLoader,
    EventStoreSettings,
    InvalidSettingValueError,
    MissingRequiredSettingError,
    Settings,
)


@dataclasses.dataclass
class ProjectionWorkerSettings(Settings):
    _prefix: ClassVar[str] = "WORKER"

    checkpoint_table: str
    poll_seconds: float = 1.0


class TestEventStoreSettings:
    def test_defaults(self) -> None:
        settings = EventStoreSettings()
        assert settings.database_url == "sqlite+aiosqlite:///:memory:"
        assert settings.batch_size == 500
        assert settings.append_max_attempts == 3
        assert settings.log_level == "INFO"
        assert settings.echo_sql is False

    @pytest.mark.parametrize(
        "field, value",
        [
            ("database_url", ""),
            ("batch_size", 0),
            ("append_max_attempts", 0),
            ("append_retry_wait_seconds", -1.0),
            ("log_level", "LOUD"),
        ],
    )
    def test_invalid_values_are_rejected(self, field: str, value: object) -> None:
        with pytest.raises(InvalidSettingValueError) as exc_info:
            EventStoreSettings(**{field: value})
        assert exc_info.value.setting_name == field
        assert isinstance(exc_info.value, ConfigError)


class TestEnvSettingsLoader:
    def test_loads_prefixed_variables(self) -> None:
        environ = {
            "EVENTSTORE_DATABASE_URL": "postgresql+asyncpg://db/events",
            "EVENTSTORE_BATCH_SIZE": "100",
            "EVENTSTORE_APPEND_RETRY_WAIT_SECONDS": "0.5",
            "EVENTSTORE_ECHO_SQL": "true",
            "EVENTSTORE_LOG_LEVEL": "debug",
        }
        settings = EnvSettingsLoader(environ).load(EventStoreSettings)
        assert settings.database_url == "postgresql+asyncpg://db/events"
        assert settings.batch_size == 100
        assert settings.append_retry_wait_seconds == 0.5
        assert settings.echo_sql is True
        assert settings.log_level == "debug"

    def test_missing_variables_keep_defaults(self) -> None:
        assert EnvSettingsLoader({}).load(EventStoreSettings) == EventStoreSettings()

    def test_reads_os_environ_by_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("EVENTSTORE_APPEND_MAX_ATTEMPTS", "7")
        assert EnvSettingsLoader().load(EventStoreSettings).append_max_attempts == 7

    def test_uncoercible_value(self) -> None:
        with pytest.raises(InvalidSettingValueError) as exc_info:
            EnvSettingsLoader({"EVENTSTORE_BATCH_SIZE": "lots"}).load(EventStoreSettings)
        assert exc_info.value.setting_name == "EVENTSTORE_BATCH_SIZE"

    def test_out_of_range_value(self) -> None:
        with pytest.raises(InvalidSettingValueError):
            EnvSettingsLoader({"EVENTSTORE_BATCH_SIZE": "0"}).load(EventStoreSettings)

    def test_missing_required_setting(self) -> None:
        with pytest.raises(MissingRequiredSettingError) as exc_info:
            EnvSettingsLoader({}).load(ProjectionWorkerSettings)
        assert exc_info.value.setting_name == "WORKER_CHECKPOINT_TABLE"

    def test_custom_settings_class(self) -> None:
        settings = EnvSettingsLoader(
            {"WORKER_CHECKPOINT_TABLE": "checkpoints", "WORKER_POLL_SECONDS": "2.5"}
        ).load(ProjectionWorkerSettings)
        assert settings.checkpoint_table == "checkpoints"
        assert settings.poll_seconds == 2.5
