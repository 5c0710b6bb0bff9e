"""Config – 12-factor settings and their errors."""

from mp_eventsourcing.config.errors import (
    ConfigError,
    InvalidSettingValueError,
    MissingRequiredSettingError,
)
from mp_eventsourcing.config.settings import (
    EnvSettingsLoader,
    EventStoreSettings,
    Settings,
    SettingsLoader,
)

__all__ = [
    "ConfigError",
    "EnvSettingsLoader",
    "EventStoreSettings",
    "InvalidSettingValueError",
    "MissingRequiredSettingError",
    "Settings",
    "SettingsLoader",
]
