"""Backoff strategies for retry sessions.

Pure delay calculation from a 1-indexed attempt number:
- ConstantBackoff: Fixed delay
- ExponentialBackoff: base * multiplier^(attempt-1), capped
- FibonacciBackoff: base * fib(attempt), capped

Every strategy blends its base delay with a random scalar r in [0, 1]:

    delay = base * (1 - jitter_factor + r * jitter_factor)

jitter_factor=0 is deterministic, jitter_factor=1 is "full jitter" (uniform
over [0, base]). The result never exceeds base and is truncated to whole
milliseconds only at the very end.

Strategies are frozen pydantic models: immutable, hashable and safe to share
across threads. ``BackoffPolicy`` is the closed tagged union of the three,
discriminated on ``kind`` so policies round-trip through plain dicts/JSON.

Example:
    >>> policy = ExponentialBackoff(base_delay_ms=100, multiplier=2.0, max_attempts=3, jitter_factor=0.0)
    >>> policy.delay(1), policy.delay(2), policy.delay(3)
    (100, 200, None)
"""

from __future__ import annotations

import math
import random
from abc import abstractmethod
from typing import Annotated, Any, Literal, Protocol, Union, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt, TypeAdapter, field_validator

U64_MAX = 2**64 - 1
MAX_ATTEMPTS_LIMIT = 255

# ─────────────────────────────────────────────────────────────────────────────
# Protocols
# ─────────────────────────────────────────────────────────────────────────────


class RandomSource(Protocol):
    """Anything exposing random() -> float in [0, 1], e.g. random.Random."""

    def random(self) -> float: ...


@runtime_checkable
class BackoffStrategy(Protocol):
    """Contract shared by all backoff strategies.

    Attempt numbers are 1-indexed (the first try is attempt 1).
    ``max_attempts`` counts attempts, not retries.
    """

    max_attempts: int

    def delay(self, attempt: int, rng: RandomSource | None = None) -> int | None:
        """Delay in milliseconds before the next attempt, or None to stop."""
        ...

    def should_retry(self, attempt: int) -> bool:
        """True iff attempt < max_attempts."""
        ...


# ─────────────────────────────────────────────────────────────────────────────
# Shared Arithmetic
# ─────────────────────────────────────────────────────────────────────────────


def normalize_jitter(jitter_factor: float) -> float:
    """Clamp jitter into [0.0, 1.0]; NaN means full jitter."""
    if math.isnan(jitter_factor):
        return 1.0
    return min(max(jitter_factor, 0.0), 1.0)


def apply_jitter(base: float, jitter_factor: float, r: float) -> float:
    """Blend base delay with random scalar r. Result lies in [base*(1-j), base]."""
    return base * (1.0 - jitter_factor + r * jitter_factor)


def fibonacci(n: int) -> int:
    """nth Fibonacci number (fib(1) = fib(2) = 1), saturating at U64_MAX."""
    if n <= 0:
        return 0
    a, b = 1, 1
    for _ in range(2, n):
        a, b = b, min(a + b, U64_MAX)
    return b


def _saturating_pow(multiplier: float, exponent: int) -> float:
    try:
        return multiplier**exponent
    except OverflowError:
        return math.inf


def exponential_base(base: float, multiplier: float, attempt: int, cap: float) -> float:
    """min(base * multiplier^(attempt-1), cap); attempt 0 is treated as 1."""
    growth = _saturating_pow(multiplier, max(attempt - 1, 0))
    return min(base * growth if base else 0.0, cap)


def fibonacci_base(base: float, attempt: int, cap: float) -> float:
    """min(base * fib(attempt), cap)."""
    return min(base * float(fibonacci(attempt)), cap)


def _to_ms(value: float) -> int:
    return min(max(int(value), 0), U64_MAX)


# ─────────────────────────────────────────────────────────────────────────────
# Strategies
# ─────────────────────────────────────────────────────────────────────────────


class _Backoff(BaseModel):
    """Private base of the built-in strategies: attempt bound check and jitter blending.

    Subclasses supply base_for(); the base itself cannot be instantiated.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        validate_default=True,
        revalidate_instances="never",
    )

    @field_validator("jitter_factor", mode="after", check_fields=False)
    @classmethod
    def _normalize_jitter(cls, v: float) -> float:
        return normalize_jitter(v)

    @abstractmethod
    def base_for(self, attempt: int) -> float:
        """Unjittered delay in milliseconds for the given attempt."""

    def should_retry(self, attempt: int) -> bool:
        return attempt < self.max_attempts  # type: ignore[attr-defined]

    def delay(self, attempt: int, rng: RandomSource | None = None) -> int | None:
        if attempt >= self.max_attempts:  # type: ignore[attr-defined]
            return None
        r = (rng if rng is not None else random).random()
        return _to_ms(apply_jitter(self.base_for(attempt), self.jitter_factor, r))  # type: ignore[attr-defined]

    def replace(self, **changes: Any) -> Any:
        """Return a validated copy with the given fields changed."""
        return type(self).model_validate({**self.model_dump(), **changes})


class ConstantBackoff(_Backoff):
    """Fixed delay between attempts.

    Attributes:
        delay_ms: Fixed delay in milliseconds (default: 100)
        max_attempts: Maximum attempts including the first (default: 3)
        jitter_factor: 0.0 = none, 1.0 = full (default: 0.0)
    """

    kind: Literal["constant"] = "constant"
    delay_ms: NonNegativeInt = 100
    max_attempts: Annotated[int, Field(ge=0, le=MAX_ATTEMPTS_LIMIT)] = 3
    jitter_factor: float = 0.0

    def base_for(self, attempt: int) -> float:
        return float(self.delay_ms)


class ExponentialBackoff(_Backoff):
    """Exponential growth capped at max_delay_ms.

    Delay = min(base_delay_ms * multiplier^(attempt-1), max_delay_ms), jittered.

    Attributes:
        base_delay_ms: Delay for attempt 1 (default: 100)
        multiplier: Growth factor per attempt (default: 2.0)
        max_delay_ms: Cap applied before jitter (default: 10_000)
        max_attempts: Maximum attempts including the first (default: 3)
        jitter_factor: 0.0 = none, 1.0 = full (default: 1.0)
    """

    kind: Literal["exponential"] = "exponential"
    base_delay_ms: NonNegativeInt = 100
    multiplier: Annotated[float, Field(gt=0.0, allow_inf_nan=False)] = 2.0
    max_delay_ms: NonNegativeInt = 10_000
    max_attempts: Annotated[int, Field(ge=0, le=MAX_ATTEMPTS_LIMIT)] = 3
    jitter_factor: float = 1.0

    def base_for(self, attempt: int) -> float:
        return exponential_base(float(self.base_delay_ms), self.multiplier, attempt, float(self.max_delay_ms))


class FibonacciBackoff(_Backoff):
    """Fibonacci growth: 1, 1, 2, 3, 5, 8... times base_delay_ms, capped.

    Attributes:
        base_delay_ms: Multiplied by fib(attempt) (default: 100)
        max_delay_ms: Cap applied before jitter (default: 10_000)
        max_attempts: Maximum attempts including the first (default: 8)
        jitter_factor: 0.0 = none, 1.0 = full (default: 1.0)
    """

    kind: Literal["fibonacci"] = "fibonacci"
    base_delay_ms: NonNegativeInt = 100
    max_delay_ms: NonNegativeInt = 10_000
    max_attempts: Annotated[int, Field(ge=0, le=MAX_ATTEMPTS_LIMIT)] = 8
    jitter_factor: float = 1.0

    def base_for(self, attempt: int) -> float:
        return fibonacci_base(float(self.base_delay_ms), attempt, float(self.max_delay_ms))


BackoffPolicy = Annotated[
    Union[ConstantBackoff, ExponentialBackoff, FibonacciBackoff],
    Field(discriminator="kind"),
]

_POLICY_ADAPTER: TypeAdapter[ConstantBackoff | ExponentialBackoff | FibonacciBackoff] = TypeAdapter(BackoffPolicy)


def parse_policy(data: object) -> ConstantBackoff | ExponentialBackoff | FibonacciBackoff:
    """Validate a mapping (or an existing strategy) into a concrete policy.

    Example:
        >>> parse_policy({"kind": "constant", "delay_ms": 500})
        ConstantBackoff(kind='constant', delay_ms=500, max_attempts=3, jitter_factor=0.0)
    """
    if isinstance(data, (ConstantBackoff, ExponentialBackoff, FibonacciBackoff)):
        return data
    return _POLICY_ADAPTER.validate_python(data)


def default_policy() -> ExponentialBackoff:
    """Exponential policy built from CHRONO_RETRY_* settings."""
    from chronomachines.foundation.config import get_settings

    cfg = get_settings().retry
    return ExponentialBackoff(
        base_delay_ms=cfg.base_delay_ms,
        multiplier=cfg.multiplier,
        max_delay_ms=cfg.max_delay_ms,
        max_attempts=cfg.max_attempts,
        jitter_factor=cfg.jitter_factor,
    )
