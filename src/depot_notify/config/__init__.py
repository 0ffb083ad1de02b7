"""Config – environment-driven settings."""
from depot_notify.config.loaders import DotenvSettingsLoader, EnvSettingsLoader, SettingsLoader
from depot_notify.config.settings import EMAIL_PROVIDERS, NotifySettings

__all__ = [
    "EMAIL_PROVIDERS",
    "DotenvSettingsLoader",
    "EnvSettingsLoader",
    "NotifySettings",
    "SettingsLoader",
]
