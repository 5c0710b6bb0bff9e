"""Config settings – env-based configuration."""
from mp_eventsourcing.config.settings.base import EventStoreSettings, Settings
from mp_eventsourcing.config.settings.loaders import EnvSettingsLoader, SettingsLoader

__all__ = ["EnvSettingsLoader", "EventStoreSettings", "Settings", "SettingsLoader"]
