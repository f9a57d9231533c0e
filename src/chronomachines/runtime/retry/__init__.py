"""Retry engine with pluggable backoff strategies.

Wraps a fallible zero-argument operation, retries it according to a backoff
strategy, and reports either the value with attempt telemetry or a typed
terminal error.

Example:
    >>> from chronomachines.runtime.retry import ExponentialBackoff, retry
    >>>
    >>> policy = ExponentialBackoff(base_delay_ms=100, max_attempts=5, jitter_factor=0.1)
    >>> result = (
    ...     retry(lambda: client.get("/users"), policy)
    ...     .when(lambda e: isinstance(e, ConnectionError))
    ...     .call()
    ... )
    >>> result.unwrap().attempts
    2
"""

from .backoff import (
    MAX_ATTEMPTS_LIMIT,
    U64_MAX,
    BackoffPolicy,
    BackoffStrategy,
    ConstantBackoff,
    ExponentialBackoff,
    FibonacciBackoff,
    RandomSource,
    apply_jitter,
    default_policy,
    exponential_base,
    fibonacci,
    fibonacci_base,
    normalize_jitter,
    parse_policy,
)
from .outcome import RetryContext, RetryOutcome
from .sleep import (
    DEFAULT_ASYNC_SLEEPER,
    DEFAULT_SLEEPER,
    AsyncFnSleeper,
    AsyncioSleeper,
    AsyncSleeper,
    BlockingSleeper,
    FnSleeper,
    Sleeper,
)
from .engine import RetrySession, run_async, run_sync
from .builder import RetryBuilder, retry
from .dsl import builder_for_policy, retry_with_policy, retryable

__all__ = [
    # Backoff strategies
    "BackoffStrategy",
    "BackoffPolicy",
    "ConstantBackoff",
    "ExponentialBackoff",
    "FibonacciBackoff",
    "RandomSource",
    "parse_policy",
    "default_policy",
    "normalize_jitter",
    "apply_jitter",
    "exponential_base",
    "fibonacci_base",
    "fibonacci",
    "U64_MAX",
    "MAX_ATTEMPTS_LIMIT",
    # Outcome
    "RetryOutcome",
    "RetryContext",
    # Sleepers
    "Sleeper",
    "AsyncSleeper",
    "BlockingSleeper",
    "FnSleeper",
    "AsyncioSleeper",
    "AsyncFnSleeper",
    "DEFAULT_SLEEPER",
    "DEFAULT_ASYNC_SLEEPER",
    # Execution
    "RetryBuilder",
    "RetrySession",
    "retry",
    "run_sync",
    "run_async",
    # Named policies
    "builder_for_policy",
    "retry_with_policy",
    "retryable",
]
