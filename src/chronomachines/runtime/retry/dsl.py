"""Named-policy shortcuts and the retryable decorator.

Resolve a policy by name from a registry (the process-wide one unless a
handle is passed) and run an operation under it:

    >>> register_global_policy("api", ExponentialBackoff(max_attempts=5))
    >>> result = retry_with_policy("api", fetch_user)

    >>> @retryable("api", when=lambda e: isinstance(e, ConnectionError))
    ... async def fetch_user(user_id: int) -> User: ...
    >>> user = await fetch_user(42)  # raises RetryError once retries are spent
"""

from __future__ import annotations

import functools
import inspect
from collections.abc import Mapping
from typing import TYPE_CHECKING, Callable, ParamSpec, TypeVar

from chronomachines.foundation.errors import PolicyMissingError, Result, RetryError

from .backoff import BackoffStrategy, default_policy, parse_policy
from .builder import RetryBuilder, retry
from .sleep import AsyncSleeper, Sleeper

if TYPE_CHECKING:
    from chronomachines.foundation.registry import PolicyRegistry

    from .engine import FailureCallback, NotifyCallback, Predicate, SuccessCallback
    from .outcome import RetryOutcome

P = ParamSpec("P")
T = TypeVar("T")


def _resolve(name: str, registry: PolicyRegistry | None) -> BackoffStrategy:
    if registry is None:
        from chronomachines.foundation.registry import get_registry
        registry = get_registry()
    if (policy := registry.get(name)) is None:
        raise PolicyMissingError(name)
    return policy


def builder_for_policy(
    name: str,
    operation: Callable[[], object],
    *,
    registry: PolicyRegistry | None = None,
) -> RetryBuilder:
    """Builder for operation under the named policy.

    Raises:
        PolicyMissingError: name is not registered
    """
    return retry(operation, _resolve(name, registry))


def retry_with_policy(
    name: str,
    operation: Callable[[], object],
    *,
    registry: PolicyRegistry | None = None,
    sleeper: Sleeper | None = None,
) -> Result[RetryOutcome[object], RetryError[object]]:
    """Run operation (blocking) under the named policy."""
    builder = builder_for_policy(name, operation, registry=registry)
    return builder.call() if sleeper is None else builder.call_with_sleeper(sleeper)


def retryable(
    policy: str | BackoffStrategy | Mapping[str, object] | None = None,
    *,
    when: Predicate[BaseException] | None = None,
    notify: NotifyCallback[BaseException] | None = None,
    on_success: SuccessCallback[BaseException] | None = None,
    on_failure: FailureCallback[BaseException] | None = None,
    registry: PolicyRegistry | None = None,
    sleeper: Sleeper | AsyncSleeper | None = None,
) -> Callable[[Callable[P, T]], Callable[P, T]]:
    """Decorator running every call of the wrapped function through the retry engine.

    The decorated function returns the success value directly and raises the
    terminal RetryError (chained to the last cause) on failure. Coroutine
    functions stay coroutine functions and sleep cooperatively.

    Args:
        policy: Registered policy name (resolved at call time), a strategy,
            a policy mapping, or None for default_policy()
        when: Retry predicate over the failure cause
        notify: Called before each sleep
        on_success: Called once when an attempt succeeds
        on_failure: Called once with the terminal RetryError
        registry: Registry consulted for named policies
        sleeper: Override the default blocking / asyncio sleeper. Plain
            functions need a blocking Sleeper

    Raises:
        TypeError: a plain function was given an AsyncSleeper (raised when
            decorating)
    """
    def strategy() -> BackoffStrategy:
        match policy:
            case None: return default_policy()
            case str(): return _resolve(policy, registry)
            case Mapping(): return parse_policy(policy)
            case _: return policy

    def decorator(func: Callable[P, T]) -> Callable[P, T]:
        def configure(*args: P.args, **kwargs: P.kwargs) -> RetryBuilder:
            builder = retry(functools.partial(func, *args, **kwargs), strategy(), name=func.__qualname__)
            if when is not None:
                builder = builder.when(when)
            if notify is not None:
                builder = builder.notify(notify)
            if on_success is not None:
                builder = builder.on_success(on_success)
            if on_failure is not None:
                builder = builder.on_failure(on_failure)
            return builder

        if inspect.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
                builder = configure(*args, **kwargs)
                result = await (builder.acall() if sleeper is None else builder.acall_with_sleeper(sleeper))
                return result.unwrap().value

            return async_wrapper  # type: ignore[return-value]

        if sleeper is not None and inspect.iscoroutinefunction(sleeper.sleep_ms):
            raise TypeError(f"{func.__qualname__} is not a coroutine function and needs a blocking sleeper, "
                            f"got {type(sleeper).__name__}")

        @functools.wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            builder = configure(*args, **kwargs)
            result = builder.call() if sleeper is None else builder.call_with_sleeper(sleeper)  # type: ignore[arg-type]
            return result.unwrap().value

        return wrapper

    return decorator


__all__ = ["builder_for_policy", "retry_with_policy", "retryable", "default_policy"]
