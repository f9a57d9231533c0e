"""Tests for backoff strategies.

Validates:
- Fixed delay sequences without jitter
- Jitter bounds for every strategy
- Saturation at extreme attempts and multipliers
- Validation and tagged-union parsing
"""

from __future__ import annotations

import math
import random

import pytest
from pydantic import ValidationError

from chronomachines.foundation.testing import FixedRandom, assert_delay_range
from chronomachines.runtime.retry import (
    U64_MAX,
    BackoffStrategy,
    ConstantBackoff,
    ExponentialBackoff,
    FibonacciBackoff,
    apply_jitter,
    default_policy,
    exponential_base,
    fibonacci,
    normalize_jitter,
    parse_policy,
)


# ═════════════════════════════════════════════════════════════════════════════
# Deterministic Sequences
# ═════════════════════════════════════════════════════════════════════════════


def test_constant_sequence() -> None:
    policy = ConstantBackoff(delay_ms=500, max_attempts=4, jitter_factor=0.0)
    assert [policy.delay(n) for n in (1, 2, 3, 4)] == [500, 500, 500, None]


def test_exponential_sequence() -> None:
    policy = ExponentialBackoff(base_delay_ms=100, multiplier=2.0, max_attempts=3, jitter_factor=0.0)
    assert [policy.delay(n) for n in (1, 2, 3)] == [100, 200, None]


def test_fibonacci_sequence() -> None:
    policy = FibonacciBackoff(base_delay_ms=100, max_attempts=5, jitter_factor=0.0)
    assert [policy.delay(n) for n in (1, 2, 3, 4, 5)] == [100, 100, 200, 300, None]


def test_exponential_caps_at_max_delay() -> None:
    policy = ExponentialBackoff(base_delay_ms=1_000, multiplier=10.0, max_delay_ms=5_000,
                                max_attempts=10, jitter_factor=0.0)
    assert policy.delay(1) == 1_000
    assert policy.delay(2) == 5_000
    assert policy.delay(9) == 5_000


def test_fibonacci_caps_at_max_delay() -> None:
    policy = FibonacciBackoff(base_delay_ms=100, max_delay_ms=1_000, max_attempts=20, jitter_factor=0.0)
    assert policy.delay(8) == 1_000  # 21 * 100 capped


def test_should_retry_bound() -> None:
    policy = ConstantBackoff(max_attempts=3)
    assert policy.should_retry(1)
    assert policy.should_retry(2)
    assert not policy.should_retry(3)
    assert not policy.should_retry(200)


def test_attempt_beyond_max_is_none() -> None:
    policy = ExponentialBackoff(max_attempts=3, jitter_factor=0.0)
    assert policy.delay(3) is None
    assert policy.delay(255) is None


def test_zero_max_attempts_never_delays() -> None:
    policy = FibonacciBackoff(max_attempts=0)
    assert policy.delay(1) is None
    assert not policy.should_retry(1)


def test_attempt_zero_treated_as_first() -> None:
    policy = ExponentialBackoff(base_delay_ms=100, multiplier=3.0, max_attempts=5, jitter_factor=0.0)
    assert policy.delay(0) == 100


def test_defaults() -> None:
    assert ConstantBackoff() == ConstantBackoff(delay_ms=100, max_attempts=3, jitter_factor=0.0)
    exp = ExponentialBackoff()
    assert (exp.base_delay_ms, exp.multiplier, exp.max_delay_ms, exp.max_attempts, exp.jitter_factor) == (
        100, 2.0, 10_000, 3, 1.0)
    fib = FibonacciBackoff()
    assert (fib.base_delay_ms, fib.max_delay_ms, fib.max_attempts, fib.jitter_factor) == (100, 10_000, 8, 1.0)


# ═════════════════════════════════════════════════════════════════════════════
# Jitter
# ═════════════════════════════════════════════════════════════════════════════


@pytest.mark.parametrize("policy", [
    ConstantBackoff(delay_ms=750, max_attempts=10, jitter_factor=0.5),
    ExponentialBackoff(base_delay_ms=100, multiplier=2.0, max_delay_ms=10_000, max_attempts=10, jitter_factor=1.0),
    FibonacciBackoff(base_delay_ms=50, max_delay_ms=10_000, max_attempts=10, jitter_factor=0.3),
])
def test_jittered_delay_within_base(policy: ConstantBackoff | ExponentialBackoff | FibonacciBackoff) -> None:
    rng = random.Random(7)
    for attempt in range(1, policy.max_attempts):
        base = policy.base_for(attempt)
        for _ in range(50):
            assert_delay_range(policy.delay(attempt, rng), math.floor(base * (1 - policy.jitter_factor)), base)


def test_jitter_extremes_with_fixed_random() -> None:
    policy = ConstantBackoff(delay_ms=1_000, max_attempts=2, jitter_factor=0.25)
    assert policy.delay(1, FixedRandom(1.0)) == 1_000
    assert policy.delay(1, FixedRandom(0.0)) == 750


def test_full_jitter_can_reach_zero() -> None:
    policy = ExponentialBackoff(base_delay_ms=100, max_attempts=2, jitter_factor=1.0)
    assert policy.delay(1, FixedRandom(0.0)) == 0


def test_truncation_happens_last() -> None:
    # 333 * (1 - 0.5 + 0.5 * 0.5) = 249.75
    policy = ConstantBackoff(delay_ms=333, max_attempts=2, jitter_factor=0.5)
    assert policy.delay(1, FixedRandom(0.5)) == 249


@pytest.mark.parametrize(("raw", "expected"), [
    (0.5, 0.5), (-1.0, 0.0), (2.0, 1.0), (math.inf, 1.0), (-math.inf, 0.0), (math.nan, 1.0),
])
def test_normalize_jitter(raw: float, expected: float) -> None:
    assert normalize_jitter(raw) == expected


def test_jitter_factor_normalized_on_construction() -> None:
    assert ConstantBackoff(jitter_factor=5.0).jitter_factor == 1.0
    assert ConstantBackoff(jitter_factor=-0.2).jitter_factor == 0.0
    assert ExponentialBackoff(jitter_factor=math.nan).jitter_factor == 1.0


def test_apply_jitter_blend() -> None:
    assert apply_jitter(200.0, 0.0, 0.3) == 200.0
    assert apply_jitter(200.0, 1.0, 0.25) == 50.0


# ═════════════════════════════════════════════════════════════════════════════
# Saturation
# ═════════════════════════════════════════════════════════════════════════════


def test_fibonacci_numbers() -> None:
    assert [fibonacci(n) for n in range(9)] == [0, 1, 1, 2, 3, 5, 8, 13, 21]


def test_fibonacci_saturates() -> None:
    assert fibonacci(255) == U64_MAX
    assert fibonacci(93) < U64_MAX


def test_exponential_base_overflow_is_capped() -> None:
    assert exponential_base(100.0, 1e10, 255, 10_000.0) == 10_000.0


def test_exponential_huge_multiplier_stays_capped() -> None:
    policy = ExponentialBackoff(base_delay_ms=100, multiplier=1e300, max_delay_ms=60_000,
                                max_attempts=255, jitter_factor=0.0)
    assert policy.delay(254) == 60_000


def test_fibonacci_high_attempt_is_capped() -> None:
    policy = FibonacciBackoff(base_delay_ms=1_000, max_delay_ms=30_000, max_attempts=255, jitter_factor=0.0)
    assert policy.delay(254) == 30_000


def test_zero_base_delay() -> None:
    policy = ExponentialBackoff(base_delay_ms=0, multiplier=1e300, max_attempts=255, jitter_factor=0.0)
    assert policy.delay(200) == 0


# ═════════════════════════════════════════════════════════════════════════════
# Validation / Parsing
# ═════════════════════════════════════════════════════════════════════════════


def test_strategies_are_immutable_and_hashable() -> None:
    policy = ExponentialBackoff()
    with pytest.raises(ValidationError):
        policy.max_attempts = 10  # type: ignore[misc]
    assert hash(policy) == hash(ExponentialBackoff())


def test_replace_returns_validated_copy() -> None:
    policy = ConstantBackoff(delay_ms=100)
    changed = policy.replace(delay_ms=250)
    assert changed.delay_ms == 250
    assert policy.delay_ms == 100
    with pytest.raises(ValidationError):
        policy.replace(max_attempts=300)


@pytest.mark.parametrize("kwargs", [
    {"max_attempts": 256},
    {"max_attempts": -1},
    {"base_delay_ms": -5},
    {"multiplier": 0.0},
    {"multiplier": math.inf},
    {"unknown": 1},
])
def test_invalid_exponential_config(kwargs: dict[str, object]) -> None:
    with pytest.raises(ValidationError):
        ExponentialBackoff(**kwargs)  # type: ignore[arg-type]


def test_parse_policy_by_kind() -> None:
    assert parse_policy({"kind": "constant", "delay_ms": 500}) == ConstantBackoff(delay_ms=500)
    assert isinstance(parse_policy({"kind": "fibonacci"}), FibonacciBackoff)
    exp = parse_policy({"kind": "exponential", "multiplier": 3})
    assert isinstance(exp, ExponentialBackoff)
    assert exp.multiplier == 3.0


def test_parse_policy_round_trips_dump() -> None:
    policy = FibonacciBackoff(base_delay_ms=20, max_attempts=6, jitter_factor=0.2)
    assert parse_policy(policy.model_dump()) == policy
    assert parse_policy(policy) is policy


def test_parse_policy_rejects_unknown_kind() -> None:
    with pytest.raises(ValidationError):
        parse_policy({"kind": "linear"})


def test_strategies_satisfy_protocol() -> None:
    for policy in (ConstantBackoff(), ExponentialBackoff(), FibonacciBackoff()):
        assert isinstance(policy, BackoffStrategy)


def test_shared_base_is_abstract() -> None:
    from chronomachines.runtime.retry.backoff import _Backoff

    with pytest.raises(TypeError, match="abstract"):
        _Backoff()


def test_default_policy_from_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    from chronomachines.foundation.config import clear_settings_cache

    policy = default_policy()
    assert (policy.max_attempts, policy.base_delay_ms, policy.multiplier, policy.max_delay_ms) == (3, 100, 2.0, 10_000)
    assert policy.jitter_factor == pytest.approx(0.1)

    monkeypatch.setenv("CHRONO_RETRY_MAX_ATTEMPTS", "7")
    clear_settings_cache()
    assert default_policy().max_attempts == 7
