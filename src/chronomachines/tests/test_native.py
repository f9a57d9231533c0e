"""Tests for the stateless host-binding delay functions."""

from __future__ import annotations

import math
import threading

import pytest

from chronomachines.ext import native
from chronomachines.ext.native import calculate_delay, constant_delay, exponential_delay, fibonacci_delay, seed
from chronomachines.foundation.testing import FixedRandom, assert_delay_range
from chronomachines.runtime.retry import ExponentialBackoff, FibonacciBackoff


def test_exponential_delay_bounds() -> None:
    seed(1337)
    assert_delay_range(exponential_delay(1, 0.0004, 1.0, 0.001, 0.5), 0.0002, 0.0004)


def test_exponential_without_jitter() -> None:
    assert exponential_delay(1, 0.1, 2.0, 10.0, 0.0) == pytest.approx(0.1)
    assert exponential_delay(3, 0.1, 2.0, 10.0, 0.0) == pytest.approx(0.4)
    assert exponential_delay(20, 0.1, 2.0, 10.0, 0.0) == 10.0


def test_calculate_delay_is_exponential_alias() -> None:
    assert calculate_delay is exponential_delay


def test_constant_delay() -> None:
    seed(42)
    assert_delay_range(constant_delay(5, 1.0, 0.1), 0.9, 1.0)
    assert constant_delay(3, 0.5, 0.0) == 0.5


def test_fibonacci_delay() -> None:
    assert fibonacci_delay(1, 0.1, 10.0, 0.0) == pytest.approx(0.1)
    assert fibonacci_delay(5, 0.1, 10.0, 0.0) == pytest.approx(0.5)
    assert fibonacci_delay(8, 0.1, 10.0, 0.0) == pytest.approx(2.1)


@pytest.mark.parametrize("attempt", [0, -5])
def test_attempt_clamped_below(attempt: int) -> None:
    assert exponential_delay(attempt, 0.1, 2.0, 10.0, 0.0) == pytest.approx(0.1)
    assert fibonacci_delay(attempt, 0.1, 10.0, 0.0) == pytest.approx(0.1)


def test_attempt_clamped_above() -> None:
    assert exponential_delay(10_000, 1.0, 1.01, 1e9, 0.0) == exponential_delay(255, 1.0, 1.01, 1e9, 0.0)


def test_jitter_normalized() -> None:
    assert constant_delay(1, 2.0, -3.0) == 2.0
    seed(7)
    assert_delay_range(constant_delay(1, 2.0, math.nan), 0.0, 2.0)


def test_seed_reproducible() -> None:
    seed(99)
    first = [exponential_delay(n, 0.1, 2.0, 10.0, 1.0) for n in range(1, 6)]
    seed(99)
    assert [exponential_delay(n, 0.1, 2.0, 10.0, 1.0) for n in range(1, 6)] == first


def test_no_truncation() -> None:
    assert exponential_delay(1, 0.0015, 2.0, 10.0, 0.0) == pytest.approx(0.0015)


def test_matches_in_process_strategies(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(native, "_rng", lambda: FixedRandom(0.37))
    exp = ExponentialBackoff(base_delay_ms=250, multiplier=1.5, max_delay_ms=4_000, max_attempts=20, jitter_factor=0.6)
    fib = FibonacciBackoff(base_delay_ms=40, max_delay_ms=3_000, max_attempts=20, jitter_factor=0.3)
    for attempt in range(1, 20):
        seconds = exponential_delay(attempt, 0.25, 1.5, 4.0, 0.6)
        assert int(seconds * 1000) == pytest.approx(exp.delay(attempt, FixedRandom(0.37)), abs=1)
        seconds = fibonacci_delay(attempt, 0.04, 3.0, 0.3)
        assert int(seconds * 1000) == pytest.approx(fib.delay(attempt, FixedRandom(0.37)), abs=1)


def test_thread_local_sources() -> None:
    seed(5)
    main_rng = native._rng()
    other: list[object] = []
    thread = threading.Thread(target=lambda: other.append(native._rng()))
    thread.start()
    thread.join()
    assert other[0] is not main_rng
