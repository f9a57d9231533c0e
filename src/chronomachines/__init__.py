"""ChronoMachines - Retry engine with pluggable backoff strategies.

Wraps a fallible operation, retries it under a constant, exponential or
Fibonacci backoff with tunable jitter, and reports the value with attempt
telemetry or a typed terminal error carrying the last cause.

Quick Start:
    >>> from chronomachines import ExponentialBackoff, retry
    >>>
    >>> policy = ExponentialBackoff(base_delay_ms=100, max_attempts=5, jitter_factor=0.1)
    >>> result = retry(lambda: client.get("/users"), policy).call()
    >>> result.unwrap().value

Predicates and Callbacks:
    >>> result = (
    ...     retry(charge_card, policy)
    ...     .when(lambda e: isinstance(e, TimeoutError))
    ...     .notify(lambda ctx: log.warning("retrying", delay_ms=ctx.next_delay_ms))
    ...     .on_failure(lambda err: alert(err.kind, err.cause()))
    ...     .call()
    ... )

Async:
    >>> result = await retry(fetch_async, policy).acall()

Named Policies:
    >>> from chronomachines import register_global_policy, retryable
    >>> register_global_policy("api", {"kind": "fibonacci", "max_attempts": 6})
    >>>
    >>> @retryable("api")
    ... def fetch_user(user_id: int) -> dict: ...
"""

from __future__ import annotations

__version__ = "0.1.0"

# Retry engine
from .runtime.retry import (
    DEFAULT_ASYNC_SLEEPER,
    DEFAULT_SLEEPER,
    AsyncFnSleeper,
    AsyncioSleeper,
    AsyncSleeper,
    BackoffPolicy,
    BackoffStrategy,
    BlockingSleeper,
    ConstantBackoff,
    ExponentialBackoff,
    FibonacciBackoff,
    FnSleeper,
    RetryBuilder,
    RetryContext,
    RetryOutcome,
    Sleeper,
    builder_for_policy,
    default_policy,
    parse_policy,
    retry,
    retry_with_policy,
    retryable,
)

# Errors
from .foundation.errors import Err, Ok, PolicyMissingError, Result, RetryError, RetryErrorKind

# Registry
from .foundation.registry import (
    PolicyRegistry,
    clear_global_policies,
    get_global_policy,
    get_registry,
    list_global_policies,
    load_policies,
    register_global_policy,
    remove_global_policy,
)

# Config
from .foundation.config import ChronoSettings, clear_settings_cache, get_settings

# Observability
from .runtime.observability import configure_from_settings, configure_logging, get_logger

__all__ = [
    "__version__",
    # Backoff
    "BackoffStrategy", "BackoffPolicy", "ConstantBackoff", "ExponentialBackoff", "FibonacciBackoff",
    "parse_policy", "default_policy",
    # Retry
    "retry", "RetryBuilder", "RetryOutcome", "RetryContext",
    "Sleeper", "AsyncSleeper", "BlockingSleeper", "FnSleeper", "AsyncioSleeper", "AsyncFnSleeper",
    "DEFAULT_SLEEPER", "DEFAULT_ASYNC_SLEEPER",
    # Errors
    "RetryError", "RetryErrorKind", "PolicyMissingError", "Result", "Ok", "Err",
    # Named policies
    "PolicyRegistry", "get_registry", "load_policies",
    "register_global_policy", "get_global_policy", "remove_global_policy",
    "list_global_policies", "clear_global_policies",
    "builder_for_policy", "retry_with_policy", "retryable",
    # Config / logging
    "ChronoSettings", "get_settings", "clear_settings_cache",
    "configure_logging", "configure_from_settings", "get_logger",
]
