"""Application-layer errors – auth, capacity and configuration."""

from __future__ import annotations

from typing import Any

from depot_notify.kernel.errors.base import BaseError


class ApplicationError(BaseError):
    """Cross-cutting application-layer concern."""

    default_code = "application_error"


class UnauthorizedError(ApplicationError):
    """Missing or invalid credentials."""

    default_code = "unauthorized"
    http_status = 401


class ListenerLimitError(ApplicationError):
    """An event type already has the maximum number of subscribers."""

    default_code = "listener_limit_exceeded"

    def __init__(self, event_type: str, max_listeners: int, **kwargs: Any) -> None:
        super().__init__(
            f"Max listeners ({max_listeners}) reached for event type '{event_type}'",
            **kwargs,
        )
        self.event_type = event_type
        self.max_listeners = max_listeners


class ConfigError(ApplicationError):
    """Configuration is invalid or loading failed."""

    default_code = "config_error"


class MissingRequiredSettingError(ConfigError):
    """A required environment variable / setting is absent."""

    default_code = "missing_required_setting"

    def __init__(self, setting_name: str) -> None:
        super().__init__(f"Required setting '{setting_name}' is missing")
        self.setting_name = setting_name


class InvalidSettingValueError(ConfigError):
    """A setting's value is present but semantically invalid."""

    default_code = "invalid_setting_value"

    def __init__(self, setting_name: str, value: object, reason: str) -> None:
        super().__init__(f"Setting '{setting_name}' has invalid value {value!r}: {reason}")
        self.setting_name = setting_name
        self.value = value
        self.reason = reason


class ProviderNotConfiguredError(ConfigError):
    """Credentials for a delivery channel provider are absent."""

    default_code = "provider_not_configured"

    def __init__(self, channel: str, missing: list[str] | None = None) -> None:
        super().__init__(
            f"{channel} provider not configured",
            detail={"missing": missing or []},
        )
        self.channel = channel
        self.missing = missing or []


__all__ = [
    "ApplicationError",
    "ConfigError",
    "InvalidSettingValueError",
    "ListenerLimitError",
    "MissingRequiredSettingError",
    "ProviderNotConfiguredError",
    "UnauthorizedError",
]
