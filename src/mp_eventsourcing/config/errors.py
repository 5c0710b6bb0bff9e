"""Config errors raised while loading or validating event store settings."""
from __future__ import annotations

from mp_eventsourcing.kernel.errors import ApplicationError


class ConfigError(ApplicationError):
    """Configuration is invalid or could not be loaded."""
    default_code = "config_error"


class MissingRequiredSettingError(ConfigError):
    """A required environment variable has no value."""
    default_code = "missing_required_setting"

    def __init__(self, setting_name: str) -> None:
        super().__init__(
            f"Required setting '{setting_name}' is missing",
            detail={"setting": setting_name},
        )
        self.setting_name = setting_name


class InvalidSettingValueError(ConfigError):
    """A setting is present but out of range or not coercible."""
    default_code = "invalid_setting_value"

    def __init__(self, setting_name: str, value: object, reason: str) -> None:
        super().__init__(
            f"Setting '{setting_name}' has invalid value {value!r}: {reason}",
            detail={"setting": setting_name, "reason": reason},
        )
        self.setting_name = setting_name
        self.value = value
        self.reason = reason


__all__ = ["ConfigError", "InvalidSettingValueError", "MissingRequiredSettingError"]
