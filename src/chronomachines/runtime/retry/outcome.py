"""Success values and callback contexts produced by the retry engine."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True, slots=True)
class RetryOutcome(Generic[T]):
    """Successful retry session with execution telemetry.

    Attributes:
        value: Value produced by the succeeding attempt
        attempts: Attempt that succeeded (1-indexed)
        cumulative_delay_ms: Sum of all delays slept before success
    """

    value: T
    attempts: int
    cumulative_delay_ms: int = 0

    def into_inner(self) -> T:
        return self.value


@dataclass(frozen=True, slots=True)
class RetryContext(Generic[E]):
    """Transient view handed to notify/on_success callbacks.

    Only meaningful for the duration of the callback. ``next_delay_ms`` and
    ``error`` are None on success; on notify, ``cumulative_delay_ms`` does not
    yet include ``next_delay_ms``.
    """

    attempt: int
    cumulative_delay_ms: int
    next_delay_ms: int | None = None
    error: E | None = None
