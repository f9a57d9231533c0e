"""Shared fixtures: silent logging, clean registry and settings per test."""

import pytest

from chronomachines.foundation.config import clear_settings_cache
from chronomachines.foundation.registry import clear_global_policies
from chronomachines.foundation.testing import AsyncRecordingSleeper, RecordingSleeper
from chronomachines.runtime.observability import configure_logging


@pytest.fixture(autouse=True)
def isolated_state() -> object:
    """Reset global registry, settings cache and logging around each test."""
    configure_logging("none")
    clear_global_policies()
    clear_settings_cache()
    yield
    clear_global_policies()
    clear_settings_cache()
    configure_logging("none")


@pytest.fixture
def sleeper() -> RecordingSleeper:
    return RecordingSleeper()


@pytest.fixture
def async_sleeper() -> AsyncRecordingSleeper:
    return AsyncRecordingSleeper()
