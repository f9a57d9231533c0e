"""Stateless delay functions for runtimes that own their retry loop.

Callers that only need the delay arithmetic (not the engine) get the same
jitter, clamping and capping as the in-process strategies, but in seconds
and without truncation to whole milliseconds.

Each thread draws jitter from its own random.Random, seeded from OS entropy
on first use; seed() reseeds the calling thread's source.

Example:
    >>> seed(1337)
    >>> 0.0002 <= exponential_delay(1, 0.0004, 1.0, 0.001, 0.5) <= 0.0004
    True
    >>> fibonacci_delay(8, 0.1, 10.0, 0.0)
    2.1
"""

from __future__ import annotations

import random
import threading

from chronomachines.runtime.retry.backoff import (
    MAX_ATTEMPTS_LIMIT,
    apply_jitter,
    exponential_base,
    fibonacci_base,
    normalize_jitter,
)

_local = threading.local()


def _rng() -> random.Random:
    if (rng := getattr(_local, "rng", None)) is None:
        rng = _local.rng = random.Random()
    return rng


def _clamp_attempt(attempt: int) -> int:
    return min(max(int(attempt), 1), MAX_ATTEMPTS_LIMIT)


def seed(value: int | None = None) -> None:
    """Reseed the calling thread's jitter source (None reseeds from entropy)."""
    _rng().seed(value)


def exponential_delay(
    attempt: int,
    base_delay: float,
    multiplier: float,
    max_delay: float,
    jitter_factor: float,
) -> float:
    """min(base_delay * multiplier^(attempt-1), max_delay), jittered, in seconds."""
    base = exponential_base(base_delay, multiplier, _clamp_attempt(attempt), max_delay)
    return apply_jitter(base, normalize_jitter(jitter_factor), _rng().random())


calculate_delay = exponential_delay


def constant_delay(attempt: int, delay: float, jitter_factor: float) -> float:
    """Fixed delay, jittered. attempt is accepted for signature parity and ignored."""
    return apply_jitter(delay, normalize_jitter(jitter_factor), _rng().random())


def fibonacci_delay(attempt: int, base_delay: float, max_delay: float, jitter_factor: float) -> float:
    """min(base_delay * fib(attempt), max_delay), jittered, in seconds."""
    base = fibonacci_base(base_delay, _clamp_attempt(attempt), max_delay)
    return apply_jitter(base, normalize_jitter(jitter_factor), _rng().random())
