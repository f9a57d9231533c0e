"""Named registry of backoff policies.

The registry provides:
- Insert-or-replace registration by name (returns the previous policy)
- Lookup, removal, listing in registration order, and clearing
- Bulk loading from plain mappings (config files, JSON)
- A process-wide instance, created lazily on first access

Policies are immutable, so readers receive the stored instance directly.
Concurrent access is guarded by a reader-writer lock: any number of lookups
run together, registration and removal are exclusive.

Example:
    >>> registry = PolicyRegistry()
    >>> registry.register("api", ExponentialBackoff(max_attempts=5))
    >>> registry.get("api").max_attempts
    5

    >>> # Process-wide
    >>> register_global_policy("workers", FibonacciBackoff(max_attempts=8))
    >>> get_global_policy("workers")
"""

from __future__ import annotations

import threading
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from functools import lru_cache
from typing import TYPE_CHECKING

from chronomachines.foundation.errors import PolicyMissingError
from chronomachines.runtime.retry.backoff import BackoffStrategy, parse_policy

if TYPE_CHECKING:
    from collections.abc import Generator


class _ReadWriteLock:
    """Many concurrent readers or one writer."""

    __slots__ = ("_cond", "_readers", "_writing")

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writing = False

    @contextmanager
    def read(self) -> Generator[None, None, None]:
        with self._cond:
            while self._writing:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if not self._readers:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Generator[None, None, None]:
        with self._cond:
            while self._writing or self._readers:
                self._cond.wait()
            self._writing = True
        try:
            yield
        finally:
            with self._cond:
                self._writing = False
                self._cond.notify_all()


class PolicyRegistry:
    """Thread-safe name -> policy map.

    Any object satisfying BackoffStrategy can be registered, including the
    built-in Constant/Exponential/Fibonacci policies and custom strategies.
    Mappings are parsed into built-in policies on registration.
    """

    __slots__ = ("_policies", "_lock")

    def __init__(self) -> None:
        self._policies: dict[str, BackoffStrategy] = {}
        self._lock = _ReadWriteLock()

    def register(self, name: str, policy: BackoffStrategy | Mapping[str, object]) -> BackoffStrategy | None:
        """Insert or replace a policy. Returns the previously registered policy, if any."""
        if not name:
            raise ValueError("Policy name must be a non-empty string")
        if isinstance(policy, Mapping):
            policy = parse_policy(policy)
        elif not isinstance(policy, BackoffStrategy):
            raise TypeError(f"Policy '{name}' must implement delay/should_retry/max_attempts, got {type(policy).__name__}")
        with self._lock.write():
            previous = self._policies.get(name)
            self._policies[name] = policy
        return previous

    def get(self, name: str) -> BackoffStrategy | None:
        with self._lock.read():
            return self._policies.get(name)

    def remove(self, name: str) -> BackoffStrategy | None:
        """Remove a policy by name. Returns the removed policy, if it existed."""
        with self._lock.write():
            return self._policies.pop(name, None)

    def list(self) -> list[tuple[str, BackoffStrategy]]:
        """Snapshot of (name, policy) pairs in registration order."""
        with self._lock.read():
            return list(self._policies.items())

    def clear(self) -> None:
        with self._lock.write():
            self._policies.clear()

    def load(self, policies: Mapping[str, BackoffStrategy | Mapping[str, object]]) -> None:
        """Register every entry of a name -> policy (or policy mapping) table.

        Example:
            >>> registry.load({
            ...     "api": {"kind": "exponential", "base_delay_ms": 200, "max_attempts": 5},
            ...     "poll": {"kind": "constant", "delay_ms": 1000},
            ... })
        """
        parsed = {name: policy if isinstance(policy, BackoffStrategy) else parse_policy(policy)
                  for name, policy in policies.items()}
        with self._lock.write():
            self._policies.update(parsed)

    def __getitem__(self, name: str) -> BackoffStrategy:
        """Get policy by name, raises PolicyMissingError if not found."""
        if (policy := self.get(name)) is None:
            raise PolicyMissingError(name)
        return policy

    def __contains__(self, name: object) -> bool:
        with self._lock.read():
            return name in self._policies

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._policies)

    def __iter__(self) -> Iterator[str]:
        return iter([name for name, _ in self.list()])

    def __repr__(self) -> str:
        return f"PolicyRegistry({', '.join(name for name, _ in self.list()) or 'empty'})"


# ─────────────────────────────────────────────────────────────────────────────
# Process-wide Registry
# ─────────────────────────────────────────────────────────────────────────────


@lru_cache(maxsize=1)
def get_registry() -> PolicyRegistry:
    """Process-wide registry, created on first access. Reset only via clear()."""
    return PolicyRegistry()


def register_global_policy(name: str, policy: BackoffStrategy | Mapping[str, object]) -> BackoffStrategy | None:
    return get_registry().register(name, policy)


def get_global_policy(name: str) -> BackoffStrategy | None:
    return get_registry().get(name)


def remove_global_policy(name: str) -> BackoffStrategy | None:
    return get_registry().remove(name)


def list_global_policies() -> list[tuple[str, BackoffStrategy]]:
    return get_registry().list()


def clear_global_policies() -> None:
    get_registry().clear()


def load_policies(
    policies: Mapping[str, BackoffStrategy | Mapping[str, object]],
    registry: PolicyRegistry | None = None,
) -> PolicyRegistry:
    """Bulk-register policies into registry (the process-wide one by default)."""
    target = registry if registry is not None else get_registry()
    target.load(policies)
    return target
