from mailing_list.settings.loader import Environment, load_settings
from mailing_list.settings.models import (
    ApplicationSettings,
    DatabaseSettings,
    EmailClientSettings,
    LoggingSettings,
    Settings,
)

__all__ = [
    "ApplicationSettings",
    "DatabaseSettings",
    "EmailClientSettings",
    "Environment",
    "LoggingSettings",
    "Settings",
    "load_settings",
]
