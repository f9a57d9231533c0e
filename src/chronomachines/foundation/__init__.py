"""Foundation - Core building blocks for chronomachines.

Contains: error handling, result type, configuration, policy registry, testing.
"""

from __future__ import annotations

__all__ = [
    # Errors
    "RetryError", "RetryErrorKind", "PolicyMissingError",
    "Result", "Ok", "Err",
    # Config
    "ChronoSettings", "LoggingSettings", "RetrySettings", "get_settings", "clear_settings_cache",
    # Registry
    "PolicyRegistry", "get_registry", "load_policies",
    "register_global_policy", "get_global_policy", "remove_global_policy",
    "list_global_policies", "clear_global_policies",
    # Testing
    "RecordingSleeper", "AsyncRecordingSleeper", "FlakyOperation", "FixedRandom", "assert_delay_range",
]


def __getattr__(name: str):
    """Lazy imports to avoid circular dependencies."""
    if name in ("RetryError", "RetryErrorKind", "PolicyMissingError", "Result", "Ok", "Err"):
        from . import errors
        return getattr(errors, name)

    if name in ("ChronoSettings", "LoggingSettings", "RetrySettings", "get_settings", "clear_settings_cache"):
        from . import config
        return getattr(config, name)

    if name in ("PolicyRegistry", "get_registry", "load_policies",
                "register_global_policy", "get_global_policy", "remove_global_policy",
                "list_global_policies", "clear_global_policies"):
        from . import registry
        return getattr(registry, name)

    if name in ("RecordingSleeper", "AsyncRecordingSleeper", "FlakyOperation", "FixedRandom", "assert_delay_range"):
        from . import testing
        return getattr(testing, name)

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
