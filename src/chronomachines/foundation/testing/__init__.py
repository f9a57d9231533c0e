"""Testing utilities for code that retries."""

from .mock import AsyncRecordingSleeper, FixedRandom, FlakyOperation, RecordingSleeper, assert_delay_range

__all__ = ["RecordingSleeper", "AsyncRecordingSleeper", "FlakyOperation", "FixedRandom", "assert_delay_range"]
