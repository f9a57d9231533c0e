"""Terminal retry errors.

Exactly two terminal failure kinds exist: the backoff strategy declined to
continue (EXHAUSTED) or the caller's predicate judged the failure
non-retryable (PREDICATE_REJECTED). Both keep the last cause so callers can
recover it without losing the classification.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Generic, TypeVar

E = TypeVar("E")


class RetryErrorKind(StrEnum):
    """Why a retry session ended in failure."""
    EXHAUSTED = "exhausted"
    PREDICATE_REJECTED = "predicate_rejected"


class RetryError(Exception, Generic[E]):
    """Terminal failure of a retry session.

    Carries the classification, attempt accounting, and the most recent cause.
    When the cause is itself an exception it is chained as ``__cause__`` so
    tracebacks show the original failure.

    Attributes:
        kind: EXHAUSTED or PREDICATE_REJECTED
        attempts: Attempt number at termination (1-indexed)
        max_attempts: Bound configured on the backoff strategy
        cumulative_delay_ms: Sum of all delays waited before terminating
        last_delay_ms: Delay taken before the terminal attempt, None if no sleep happened

    Example:
        >>> err = RetryError(RetryErrorKind.EXHAUSTED, 3, 3, cumulative_delay_ms=300,
        ...                  last_delay_ms=200, cause=ValueError("boom"))
        >>> str(err)
        'retry exhausted after 3 of 3 attempts (last delay 200ms): boom'
    """

    __slots__ = ("kind", "attempts", "max_attempts", "cumulative_delay_ms", "last_delay_ms", "_cause")

    def __init__(
        self,
        kind: RetryErrorKind,
        attempts: int,
        max_attempts: int,
        *,
        cumulative_delay_ms: int = 0,
        last_delay_ms: int | None = None,
        cause: E | None = None,
    ) -> None:
        self.kind = kind
        self.attempts = attempts
        self.max_attempts = max_attempts
        self.cumulative_delay_ms = cumulative_delay_ms
        self.last_delay_ms = last_delay_ms
        self._cause = cause
        super().__init__(self._render())
        if isinstance(cause, BaseException):
            self.__cause__ = cause

    def cause(self) -> E | None:
        """Underlying failure cause, when available."""
        return self._cause

    def into_cause(self) -> E | None:
        """Alias of cause() for callers that discard the wrapper."""
        return self._cause

    @property
    def is_exhausted(self) -> bool:
        return self.kind is RetryErrorKind.EXHAUSTED

    @property
    def is_rejected(self) -> bool:
        return self.kind is RetryErrorKind.PREDICATE_REJECTED

    def _render(self) -> str:
        if self.kind is RetryErrorKind.EXHAUSTED:
            msg = f"retry exhausted after {self.attempts} of {self.max_attempts} attempts"
        else:
            msg = f"retry aborted by predicate on attempt {self.attempts}"
        if self.last_delay_ms is not None:
            msg += f" (last delay {self.last_delay_ms}ms)"
        if self._cause is not None:
            msg += f": {self._cause}"
        return msg

    def __repr__(self) -> str:
        return (f"RetryError(kind={self.kind.value!r}, attempts={self.attempts}, "
                f"max_attempts={self.max_attempts}, cumulative_delay_ms={self.cumulative_delay_ms}, "
                f"cause={self._cause!r})")

    def __reduce__(self) -> tuple[object, ...]:
        return (_rebuild, (self.kind, self.attempts, self.max_attempts, self.cumulative_delay_ms,
                           self.last_delay_ms, self._cause))


def _rebuild(
    kind: RetryErrorKind, attempts: int, max_attempts: int,
    cumulative_delay_ms: int, last_delay_ms: int | None, cause: object,
) -> RetryError[object]:
    return RetryError(kind, attempts, max_attempts, cumulative_delay_ms=cumulative_delay_ms,
                      last_delay_ms=last_delay_ms, cause=cause)


class PolicyMissingError(LookupError):
    """Raised when a named retry policy is not registered."""

    __slots__ = ("name",)

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"retry policy '{name}' is not registered")
