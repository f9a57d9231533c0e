"""Tests for the Result type returned by retry entry points.

Validates:
- Functor laws
- Monad laws
- Unwrap semantics for exception payloads
"""

from __future__ import annotations

from typing import Callable

import pytest

from chronomachines.foundation.errors import Err, Ok, Result, RetryError, RetryErrorKind


# ═════════════════════════════════════════════════════════════════════════════
# Property Tests - Functor / Monad Laws
# ═════════════════════════════════════════════════════════════════════════════


def test_functor_identity() -> None:
    """Functor law: fmap id = id"""
    result: Result[int, str] = Ok(42)
    assert result.map(lambda x: x) == result

    err_result: Result[int, str] = Err("fail")
    assert err_result.map(lambda x: x) == err_result


def test_functor_composition() -> None:
    """Functor law: fmap (f . g) = fmap f . fmap g"""
    f: Callable[[int], int] = lambda x: x + 1
    g: Callable[[int], int] = lambda x: x * 2
    result: Result[int, str] = Ok(5)
    assert result.map(lambda x: f(g(x))) == result.map(g).map(f)


def test_monad_left_identity() -> None:
    """Monad law: return a >>= f = f a"""
    f: Callable[[int], Result[int, str]] = lambda x: Ok(x * 2)
    assert Ok(42).flat_map(f) == f(42)


def test_monad_associativity() -> None:
    """Monad law: (m >>= f) >>= g = m >>= (\\x -> f x >>= g)"""
    m: Result[int, str] = Ok(5)
    f: Callable[[int], Result[int, str]] = lambda x: Ok(x + 1)
    g: Callable[[int], Result[int, str]] = lambda x: Ok(x * 2)
    assert m.flat_map(f).flat_map(g) == m.flat_map(lambda x: f(x).flat_map(g))


# ═════════════════════════════════════════════════════════════════════════════
# Operational Tests
# ═════════════════════════════════════════════════════════════════════════════


def test_ok_construction() -> None:
    result: Result[int, str] = Ok(42)
    assert result.is_ok()
    assert not result.is_err()
    assert result.unwrap() == 42
    assert result.ok() == 42
    assert result.err() is None


def test_err_construction() -> None:
    result: Result[int, str] = Err("failed")
    assert result.is_err()
    assert result.unwrap_err() == "failed"
    assert result.ok() is None
    assert result.err() == "failed"


def test_map_err() -> None:
    assert Err("fail").map_err(lambda e: f"Error: {e}").unwrap_err() == "Error: fail"
    assert Ok(42).map_err(lambda e: f"Error: {e}").unwrap() == 42


def test_flat_map_short_circuits() -> None:
    assert Ok(5).flat_map(lambda x: Err("failed")).unwrap_err() == "failed"
    assert Err("fail").flat_map(lambda x: Ok(x * 2)).unwrap_err() == "fail"


def test_unwrap_or() -> None:
    assert Ok(5).unwrap_or(10) == 5
    assert Err("fail").unwrap_or(10) == 10
    assert Err("fail").unwrap_or_else(len) == 4


def test_match() -> None:
    fmt = {"ok": lambda x: f"success: {x}", "err": lambda e: f"failed: {e}"}
    assert Ok(42).match(**fmt) == "success: 42"
    assert Err("fail").match(**fmt) == "failed: fail"


def test_unwrap_err_value_raises_runtime_error() -> None:
    with pytest.raises(RuntimeError, match="unwrap\\(\\) on Err"):
        Err("fail").unwrap()
    with pytest.raises(RuntimeError, match="unwrap_err\\(\\) on Ok"):
        Ok(1).unwrap_err()


def test_unwrap_reraises_exception_payload() -> None:
    err = RetryError(RetryErrorKind.PREDICATE_REJECTED, 1, 3, cause=KeyError("k"))
    with pytest.raises(RetryError) as exc_info:
        Err(err).unwrap()
    assert exc_info.value is err


def test_truthiness_equality_iteration() -> None:
    assert bool(Ok(42)) is True
    assert bool(Err("fail")) is False
    assert Ok(42) != Ok(43)
    assert Ok(42) != Err(42)
    assert list(Ok(42)) == [42]
    assert list(Err("fail")) == []
    assert repr(Err("x")) == "Err('x')"
