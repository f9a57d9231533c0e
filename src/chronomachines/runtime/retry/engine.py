"""Retry execution engine.

One state machine drives both the blocking and the cooperative loop:

    Attempting -> Succeeded                     (terminal)
               -> Failed(PREDICATE_REJECTED)    (terminal)
               -> Failed(EXHAUSTED)             (terminal)
               -> Retrying -> Attempting

After each failure the caller's predicate is consulted first, then the
strategy's should_retry() bound, then its delay(). Only a yielded delay leads
to Retrying: notify fires with the pre-sleep cumulative delay, the sleeper
runs, and the counters advance with saturation.

The operation fails either by raising an Exception or by returning Err(cause);
returning Ok(value) or any plain value is success. BaseExceptions that are not
Exceptions (KeyboardInterrupt, SystemExit, task cancellation) pass through.
"""

from __future__ import annotations

import inspect
import random
from collections.abc import Awaitable
from typing import Callable, Generic, TypeVar

from chronomachines.foundation.errors import Err, Ok, Result, RetryError, RetryErrorKind
from chronomachines.runtime.observability import get_logger

from .backoff import MAX_ATTEMPTS_LIMIT, U64_MAX, BackoffStrategy, RandomSource
from .outcome import RetryContext, RetryOutcome
from .sleep import AsyncSleeper, Sleeper, sleep_cooperatively

T = TypeVar("T")
E = TypeVar("E")

logger = get_logger("chronomachines.retry")

Predicate = Callable[[E], bool]
NotifyCallback = Callable[[RetryContext[E]], object]
SuccessCallback = Callable[[RetryContext[E]], object]
FailureCallback = Callable[[RetryError[E]], object]


def max_attempts_of(backoff: BackoffStrategy) -> int:
    """Read the attempt bound, whether exposed as attribute or method.

    Raises:
        ValueError: bound outside [0, MAX_ATTEMPTS_LIMIT]
    """
    bound = backoff.max_attempts
    value = int(bound() if callable(bound) else bound)
    if not 0 <= value <= MAX_ATTEMPTS_LIMIT:
        raise ValueError(f"max_attempts must be within [0, {MAX_ATTEMPTS_LIMIT}], got {value}")
    return value


class RetrySession(Generic[T, E]):
    """Mutable per-call state of one retry session.

    Created fresh by every call; never shared between calls. The strategy it
    reads is immutable configuration.
    """

    __slots__ = (
        "backoff", "predicate", "notify", "on_success", "on_failure", "rng", "name",
        "attempt", "cumulative_delay_ms", "last_delay_ms", "max_attempts",
    )

    def __init__(
        self,
        backoff: BackoffStrategy,
        *,
        predicate: Predicate[E] | None = None,
        notify: NotifyCallback[E] | None = None,
        on_success: SuccessCallback[E] | None = None,
        on_failure: FailureCallback[E] | None = None,
        rng: RandomSource | None = None,
        name: str = "operation",
    ) -> None:
        self.backoff = backoff
        self.predicate = predicate
        self.notify = notify
        self.on_success = on_success
        self.on_failure = on_failure
        self.rng = rng if rng is not None else random.Random()
        self.name = name
        self.attempt = 1
        self.cumulative_delay_ms = 0
        self.last_delay_ms: int | None = None
        self.max_attempts = max_attempts_of(backoff)

    # ─────────────────────────────────────────────────────────────────
    # Transitions
    # ─────────────────────────────────────────────────────────────────

    def succeed(self, value: T) -> Result[RetryOutcome[T], RetryError[E]]:
        """Attempting -> Succeeded."""
        if self.attempt > 1:
            logger.debug("retry succeeded", operation=self.name, attempt=self.attempt,
                         cumulative_delay_ms=self.cumulative_delay_ms)
        if self.on_success is not None:
            self.on_success(RetryContext(self.attempt, self.cumulative_delay_ms))
        return Ok(RetryOutcome(value, self.attempt, self.cumulative_delay_ms))

    def fail(self, cause: E) -> int | RetryError[E]:
        """Attempting -> Retrying (returns the delay to sleep) or Failed (returns the error)."""
        if self.predicate is not None and not self.predicate(cause):
            return self._terminate(RetryErrorKind.PREDICATE_REJECTED, cause)
        if not self.backoff.should_retry(self.attempt):
            return self._terminate(RetryErrorKind.EXHAUSTED, cause)
        if (delay := self.backoff.delay(self.attempt, self.rng)) is None:
            return self._terminate(RetryErrorKind.EXHAUSTED, cause)
        delay = max(int(delay), 0)
        logger.debug("retry scheduled", operation=self.name, attempt=self.attempt,
                     max_attempts=self.max_attempts, delay_ms=delay,
                     cumulative_delay_ms=self.cumulative_delay_ms, error=_describe(cause))
        if self.notify is not None:
            self.notify(RetryContext(self.attempt, self.cumulative_delay_ms, delay, cause))
        return delay

    def advance(self, delay_ms: int) -> None:
        """Retrying -> Attempting, after the sleeper returned."""
        self.cumulative_delay_ms = min(self.cumulative_delay_ms + delay_ms, U64_MAX)
        self.last_delay_ms = delay_ms
        self.attempt = min(self.attempt + 1, MAX_ATTEMPTS_LIMIT)

    def _terminate(self, kind: RetryErrorKind, cause: E) -> RetryError[E]:
        error: RetryError[E] = RetryError(
            kind, self.attempt, self.max_attempts,
            cumulative_delay_ms=self.cumulative_delay_ms, last_delay_ms=self.last_delay_ms, cause=cause,
        )
        if kind is RetryErrorKind.EXHAUSTED:
            logger.warning("retry exhausted", operation=self.name, attempts=self.attempt,
                           max_attempts=self.max_attempts, cumulative_delay_ms=self.cumulative_delay_ms,
                           error=_describe(cause))
        else:
            logger.info("retry rejected by predicate", operation=self.name, attempt=self.attempt,
                        error=_describe(cause))
        if self.on_failure is not None:
            self.on_failure(error)
        return error


# ─────────────────────────────────────────────────────────────────────────────
# Loops
# ─────────────────────────────────────────────────────────────────────────────


def _classify(value: object) -> tuple[bool, object]:
    if isinstance(value, Result):
        return (True, value.unwrap()) if value.is_ok() else (False, value.unwrap_err())
    return True, value


def _describe(cause: object) -> str:
    return f"{type(cause).__name__}: {cause}" if isinstance(cause, BaseException) else str(cause)


def run_sync(
    session: RetrySession[T, E],
    operation: Callable[[], T | Result[T, E]],
    sleeper: Sleeper,
) -> Result[RetryOutcome[T], RetryError[E]]:
    """Drive a session to completion, blocking in sleeper between attempts."""
    while True:
        try:
            ok, payload = _classify(operation())
        except Exception as exc:
            ok, payload = False, exc
        if ok:
            return session.succeed(payload)  # type: ignore[arg-type]
        step = session.fail(payload)  # type: ignore[arg-type]
        if isinstance(step, RetryError):
            return Err(step)
        sleeper.sleep_ms(step)
        session.advance(step)


async def run_async(
    session: RetrySession[T, E],
    operation: Callable[[], Awaitable[T | Result[T, E]] | T | Result[T, E]],
    sleeper: AsyncSleeper | Sleeper,
) -> Result[RetryOutcome[T], RetryError[E]]:
    """Coroutine twin of run_sync: awaits the operation and the sleeper."""
    while True:
        try:
            result = operation()
            if inspect.isawaitable(result):
                result = await result
            ok, payload = _classify(result)
        except Exception as exc:
            ok, payload = False, exc
        if ok:
            return session.succeed(payload)  # type: ignore[arg-type]
        step = session.fail(payload)  # type: ignore[arg-type]
        if isinstance(step, RetryError):
            return Err(step)
        await sleep_cooperatively(sleeper, step)
        session.advance(step)
