"""Process configuration read from CHRONO_* environment variables (and .env).

Two groups: logging output and the default retry policy used when a caller
does not name one.

    >>> from chronomachines.foundation.config import get_settings
    >>> settings = get_settings()
    >>> settings.retry.max_attempts
    3
    >>> settings.logging.level
    'INFO'

    # Overrides:
    # CHRONO_RETRY_MAX_ATTEMPTS=5
    # CHRONO_LOG_LEVEL=DEBUG
"""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated, Literal

from pydantic import Field, NonNegativeInt, PositiveFloat, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LoggingSettings(BaseSettings):
    """Renderer and minimum level for structured logs (CHRONO_LOG_*)."""

    model_config = SettingsConfigDict(
        env_prefix="CHRONO_LOG_",
        extra="ignore",
    )

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["console", "json", "none"] = "console"
    colors: bool | None = Field(default=None, description="Force colored console output (None = auto-detect)")

    @field_validator("level", mode="before")
    @classmethod
    def _upper_level(cls, v: str) -> str:
        return v.upper() if isinstance(v, str) else v


class RetrySettings(BaseSettings):
    """Default retry policy, used when no named policy is given.

    Mirrors the classic default: 3 attempts, 100ms base delay doubling per
    attempt up to 10s, with 10% jitter.
    """

    model_config = SettingsConfigDict(
        env_prefix="CHRONO_RETRY_",
        extra="ignore",
    )

    max_attempts: Annotated[int, Field(ge=0, le=255)] = 3
    base_delay_ms: NonNegativeInt = Field(default=100, description="Base delay in milliseconds")
    multiplier: PositiveFloat = Field(default=2.0, description="Exponential growth factor")
    max_delay_ms: NonNegativeInt = Field(default=10_000, description="Maximum delay in milliseconds")
    jitter_factor: Annotated[float, Field(ge=0.0, le=1.0)] = 0.1


class ChronoSettings(BaseSettings):
    """Root settings for chronomachines.

    Loads configuration from environment variables with CHRONO_ prefix.

    Example environment variables:
        CHRONO_LOG_LEVEL=DEBUG
        CHRONO_LOG_FORMAT=json
        CHRONO_RETRY_MAX_ATTEMPTS=5
        CHRONO_RETRY_JITTER_FACTOR=1.0
    """

    model_config = SettingsConfigDict(
        env_prefix="CHRONO_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        validate_default=True,
    )

    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)


@lru_cache(maxsize=1)
def get_settings() -> ChronoSettings:
    """Settings for this process, read once and cached."""
    return ChronoSettings()


def clear_settings_cache() -> None:
    """Drop the cached settings; the next get_settings() re-reads the environment."""
    get_settings.cache_clear()
