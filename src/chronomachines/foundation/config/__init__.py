"""Environment-driven settings (CHRONO_* variables) for logging and the default retry policy."""

from .settings import (
    ChronoSettings,
    LoggingSettings,
    RetrySettings,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    "ChronoSettings",
    "LoggingSettings",
    "RetrySettings",
    "clear_settings_cache",
    "get_settings",
]
