"""Fluent retry builder.

Wraps a zero-argument operation with a backoff strategy, optional retry
predicate and observability hooks, then runs it blocking or cooperatively.

Example:
    >>> outcome = (
    ...     retry(fetch_user, ExponentialBackoff(max_attempts=5, jitter_factor=0.1))
    ...     .when(lambda e: isinstance(e, TimeoutError))
    ...     .notify(lambda ctx: print(f"retrying in {ctx.next_delay_ms}ms: {ctx.error}"))
    ...     .call()
    ... )
    >>> if outcome.is_ok():
    ...     user = outcome.unwrap().value
    ... else:
    ...     err = outcome.unwrap_err()
    ...     print(err.kind, err.attempts, err.cause())

    >>> # Async callers: same engine, cooperative sleeper
    >>> outcome = await retry(fetch_user_async, policy).acall()
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Callable, Generic, TypeVar

from chronomachines.foundation.errors import Result, RetryError

from .backoff import BackoffStrategy, RandomSource, default_policy, parse_policy
from .engine import (
    FailureCallback,
    NotifyCallback,
    Predicate,
    RetrySession,
    SuccessCallback,
    max_attempts_of,
    run_async,
    run_sync,
)
from .sleep import DEFAULT_ASYNC_SLEEPER, DEFAULT_SLEEPER, AsyncSleeper, Sleeper

if TYPE_CHECKING:
    from .outcome import RetryOutcome

T = TypeVar("T")
E = TypeVar("E")

# Zero-argument callable returning a value, a Result, or an awaitable of either
Operation = Callable[[], Any]


class RetryBuilder(Generic[T, E]):
    """Immutable retry configuration bound to one operation.

    Every setter returns a new builder with that slot replaced (setters are
    not additive: a second when() discards the first predicate). A builder
    can be called any number of times; each call runs an independent session.
    """

    __slots__ = ("_operation", "_backoff", "_predicate", "_notify", "_on_success", "_on_failure", "_rng", "_name")

    def __init__(
        self,
        operation: Operation,
        backoff: BackoffStrategy,
        *,
        predicate: Predicate[E] | None = None,
        notify: NotifyCallback[E] | None = None,
        on_success: SuccessCallback[E] | None = None,
        on_failure: FailureCallback[E] | None = None,
        rng: RandomSource | None = None,
        name: str | None = None,
    ) -> None:
        if not callable(operation):
            raise TypeError(f"operation must be callable, got {type(operation).__name__}")
        if not isinstance(backoff, BackoffStrategy):
            raise TypeError(f"backoff must implement delay/should_retry/max_attempts, got {type(backoff).__name__}")
        max_attempts_of(backoff)
        self._operation = operation
        self._backoff = backoff
        self._predicate = predicate
        self._notify = notify
        self._on_success = on_success
        self._on_failure = on_failure
        self._rng = rng
        self._name = name or getattr(operation, "__qualname__", None) or type(operation).__name__

    def _with(self, **changes: Any) -> RetryBuilder[T, E]:
        current = {slot.removeprefix("_"): getattr(self, slot) for slot in self.__slots__}
        return RetryBuilder(**{**current, **changes})

    # ─────────────────────────────────────────────────────────────────
    # Configuration
    # ─────────────────────────────────────────────────────────────────

    def when(self, predicate: Predicate[E]) -> RetryBuilder[T, E]:
        """Only retry failures for which predicate(cause) is true; others fail immediately."""
        return self._with(predicate=predicate)

    def notify(self, callback: NotifyCallback[E]) -> RetryBuilder[T, E]:
        """Called before each sleep with the triggering error and upcoming delay."""
        return self._with(notify=callback)

    def on_success(self, callback: SuccessCallback[E]) -> RetryBuilder[T, E]:
        return self._with(on_success=callback)

    def on_failure(self, callback: FailureCallback[E]) -> RetryBuilder[T, E]:
        """Called once with the terminal RetryError (exhausted or rejected)."""
        return self._with(on_failure=callback)

    def with_rng(self, rng: RandomSource) -> RetryBuilder[T, E]:
        """Use an explicit jitter source (e.g. random.Random(seed)) instead of a fresh one per call."""
        return self._with(rng=rng)

    def named(self, name: str) -> RetryBuilder[T, E]:
        """Operation name used in log records."""
        return self._with(name=name)

    @property
    def backoff(self) -> BackoffStrategy:
        return self._backoff

    @property
    def name(self) -> str:
        return self._name

    # ─────────────────────────────────────────────────────────────────
    # Execution
    # ─────────────────────────────────────────────────────────────────

    def _session(self) -> RetrySession[T, E]:
        return RetrySession(
            self._backoff, predicate=self._predicate, notify=self._notify,
            on_success=self._on_success, on_failure=self._on_failure, rng=self._rng, name=self._name,
        )

    def call(self) -> Result[RetryOutcome[T], RetryError[E]]:
        """Run with the blocking sleeper."""
        return run_sync(self._session(), self._operation, DEFAULT_SLEEPER)  # type: ignore[arg-type]

    def call_with_sleeper(self, sleeper: Sleeper) -> Result[RetryOutcome[T], RetryError[E]]:
        """Run with a caller-supplied sleeper."""
        return run_sync(self._session(), self._operation, sleeper)  # type: ignore[arg-type]

    async def acall(self) -> Result[RetryOutcome[T], RetryError[E]]:
        """Run on the event loop with asyncio.sleep between attempts."""
        return await run_async(self._session(), self._operation, DEFAULT_ASYNC_SLEEPER)

    async def acall_with_sleeper(self, sleeper: AsyncSleeper | Sleeper) -> Result[RetryOutcome[T], RetryError[E]]:
        return await run_async(self._session(), self._operation, sleeper)

    def __repr__(self) -> str:
        hooks = [k for k in ("predicate", "notify", "on_success", "on_failure") if getattr(self, f"_{k}") is not None]
        return f"RetryBuilder({self._name}, {self._backoff!r}, hooks=[{', '.join(hooks)}])"


def retry(
    operation: Operation,
    backoff: BackoffStrategy | Mapping[str, object] | None = None,
    *,
    name: str | None = None,
) -> RetryBuilder[T, E]:
    """Begin configuring a retry session.

    Args:
        operation: Zero-argument callable; raises or returns Err(cause) to fail
        backoff: Strategy instance, policy mapping (e.g. {"kind": "constant", ...}),
            or None for the default policy from settings
        name: Operation name for log records (defaults to its __qualname__)
    """
    if backoff is None:
        backoff = default_policy()
    elif isinstance(backoff, Mapping):
        backoff = parse_policy(backoff)
    return RetryBuilder(operation, backoff, name=name)
