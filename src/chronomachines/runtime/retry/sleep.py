"""Sleep abstraction decoupling the retry engine from any concurrency runtime.

- BlockingSleeper: Parks the OS thread (time.sleep)
- FnSleeper: Wraps any callable taking milliseconds (tests, custom schedulers)
- AsyncioSleeper / AsyncFnSleeper: Cooperative twins for the async engine

Example:
    >>> delays: list[int] = []
    >>> sleeper = FnSleeper(delays.append)
    >>> sleeper.sleep_ms(100)
    >>> delays
    [100]
"""

from __future__ import annotations

import asyncio
import inspect
import time
from collections.abc import Awaitable
from dataclasses import dataclass
from typing import Callable, Protocol, runtime_checkable


@runtime_checkable
class Sleeper(Protocol):
    """Suspend the calling context for the given milliseconds, then resume."""

    def sleep_ms(self, ms: int) -> None: ...


@runtime_checkable
class AsyncSleeper(Protocol):
    """Cooperative sleeper: yields to the event loop while waiting."""

    async def sleep_ms(self, ms: int) -> None: ...


@dataclass(frozen=True, slots=True)
class BlockingSleeper:
    """Blocks the current thread with time.sleep."""

    def sleep_ms(self, ms: int) -> None:
        time.sleep(ms / 1000.0)


@dataclass(frozen=True, slots=True)
class FnSleeper:
    """Delegates to a plain callable taking milliseconds."""

    fn: Callable[[int], object]

    def sleep_ms(self, ms: int) -> None:
        self.fn(ms)


@dataclass(frozen=True, slots=True)
class AsyncioSleeper:
    """Non-blocking sleep on the running asyncio loop."""

    async def sleep_ms(self, ms: int) -> None:
        await asyncio.sleep(ms / 1000.0)


@dataclass(frozen=True, slots=True)
class AsyncFnSleeper:
    """Delegates to a callable taking milliseconds; awaits its result if awaitable."""

    fn: Callable[[int], Awaitable[object] | object]

    async def sleep_ms(self, ms: int) -> None:
        if inspect.isawaitable(result := self.fn(ms)):
            await result


DEFAULT_SLEEPER = BlockingSleeper()
DEFAULT_ASYNC_SLEEPER = AsyncioSleeper()


async def sleep_cooperatively(sleeper: AsyncSleeper | Sleeper, ms: int) -> None:
    """Sleep via either flavor: await async sleepers, call sync ones directly."""
    if inspect.isawaitable(result := sleeper.sleep_ms(ms)):
        await result
