"""Runtime - Execution flow and monitoring.

Contains: retry engine, backoff strategies, sleepers, observability.
The retry() entry point lives at chronomachines.retry and
chronomachines.runtime.retry.retry (this package's ``retry`` is the subpackage).
"""

from __future__ import annotations

from . import retry as _retry

_RETRY_NAMES = tuple(n for n in _retry.__all__ if n != "retry")
_OBSERVABILITY_NAMES = (
    "BoundLogger", "LogEntry", "LogRenderer", "ConsoleRenderer", "JsonRenderer", "NoOpRenderer",
    "configure_logging", "configure_from_settings", "get_logger", "log_context",
)

__all__ = [*_RETRY_NAMES, *_OBSERVABILITY_NAMES]


def __getattr__(name: str):
    """Retry names resolve from the loaded subpackage; observability is imported on first use."""
    if name in _RETRY_NAMES:
        return getattr(_retry, name)

    if name in _OBSERVABILITY_NAMES:
        from . import observability
        return getattr(observability, name)

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
