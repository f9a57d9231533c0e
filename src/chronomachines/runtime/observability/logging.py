"""Structured logging for retry sessions.

Key=value event logging in two output shapes:
- Console lines for humans (optionally colored), written to stderr
- JSON Lines for aggregation, encoded with orjson

Loggers are immutable: bind() returns a new logger carrying extra fields.
Fields set with log_context() apply to every record emitted inside the
scope, per task/thread, via contextvars.

Quick Start:
    >>> from chronomachines.runtime.observability import configure_logging, get_logger
    >>> configure_logging(format="console", level="DEBUG")
    >>> log = get_logger("billing")
    >>> log.info("charging card", order_id=42)

    >>> with log_context(request_id="abc123"):
    ...     log.warning("retry exhausted")  # includes request_id
"""

from __future__ import annotations

import logging
import sys
import threading
import time
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Protocol, TextIO, runtime_checkable

import orjson

if TYPE_CHECKING:
    from types import TracebackType

    from chronomachines.foundation.config import LoggingSettings

Fields = dict[str, object]

_scoped_fields: ContextVar[Fields] = ContextVar("chrono_scoped_fields", default={})


# ─────────────────────────────────────────────────────────────────────────────
# Records and Loggers
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class LogEntry:
    """One emitted event with all fields already merged."""

    timestamp: float
    level: str
    event: str
    fields: Fields

    @property
    def when(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp, tz=UTC)

    def to_dict(self) -> Fields:
        return {"timestamp": self.when.isoformat(), "level": self.level, "event": self.event, **self.fields}


@dataclass(frozen=True, slots=True)
class BoundLogger:
    """Logger carrying a fixed set of fields.

    ``level`` and ``renderer`` left as None follow the process-wide
    configuration at emit time, so module-level loggers created at import
    pick up a later configure_logging() call.

    Example:
        >>> log = BoundLogger({"service": "api"})
        >>> log.bind(path="/users").info("request received")
        # => 10:30:45.123 [info] request received path="/users" service="api"
    """

    fields: Fields = field(default_factory=dict)
    renderer: LogRenderer | None = None
    level: int | None = None

    def bind(self, **fields: object) -> BoundLogger:
        return BoundLogger({**self.fields, **fields}, self.renderer, self.level)

    def unbind(self, *keys: str) -> BoundLogger:
        return BoundLogger({k: v for k, v in self.fields.items() if k not in keys}, self.renderer, self.level)

    def is_enabled_for(self, level: int) -> bool:
        return level >= (_state.level if self.level is None else self.level)

    def log(self, level: int, event: str, **fields: object) -> None:
        if not self.is_enabled_for(level):
            return
        entry = LogEntry(time.time(), logging.getLevelName(level).lower(), event,
                         {**_scoped_fields.get(), **self.fields, **fields})
        (self.renderer or _state.renderer).render(entry)

    def debug(self, event: str, **fields: object) -> None:
        self.log(logging.DEBUG, event, **fields)

    def info(self, event: str, **fields: object) -> None:
        self.log(logging.INFO, event, **fields)

    def warning(self, event: str, **fields: object) -> None:
        self.log(logging.WARNING, event, **fields)

    def error(self, event: str, **fields: object) -> None:
        self.log(logging.ERROR, event, **fields)

    def exception(self, event: str, **fields: object) -> None:
        """error() plus the traceback of the exception being handled."""
        import traceback
        self.log(logging.ERROR, event, traceback=traceback.format_exc(), **fields)


class log_context:
    """Adds fields to every record logged inside the with-block."""

    __slots__ = ("_fields", "_token")

    def __init__(self, **fields: object) -> None:
        self._fields = fields
        self._token = None

    def __enter__(self) -> log_context:
        self._token = _scoped_fields.set({**_scoped_fields.get(), **self._fields})
        return self

    def __exit__(self, exc_type: type[BaseException] | None, exc: BaseException | None,
                 tb: TracebackType | None) -> None:
        if self._token is not None:
            _scoped_fields.reset(self._token)
            self._token = None


# ─────────────────────────────────────────────────────────────────────────────
# Renderers
# ─────────────────────────────────────────────────────────────────────────────


@runtime_checkable
class LogRenderer(Protocol):
    def render(self, entry: LogEntry) -> None: ...


class _Ansi(StrEnum):
    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    CYAN = "\033[36m"


_LEVEL_STYLE = {"debug": _Ansi.DIM, "info": _Ansi.GREEN, "warning": _Ansi.YELLOW, "error": _Ansi.RED}


@dataclass(slots=True)
class ConsoleRenderer:
    """``HH:MM:SS.mmm [level] event key=value ...``, fields sorted by key."""

    output: TextIO = field(default_factory=lambda: sys.stderr)
    colors: bool | None = None  # None: color only when output is a TTY
    show_timestamp: bool = True

    def __post_init__(self) -> None:
        if self.colors is None:
            isatty = getattr(self.output, "isatty", None)
            self.colors = bool(isatty and isatty())

    def _paint(self, text: str, style: _Ansi) -> str:
        return f"{style}{text}{_Ansi.RESET}" if self.colors else text

    def _value(self, v: object) -> str:
        match v:
            case str():
                return self._paint(f'"{v}"', _Ansi.YELLOW)
            case bool() | None:
                return self._paint(str(v).lower(), _Ansi.BLUE)
            case int() | float():
                return self._paint(str(v), _Ansi.BLUE)
            case _:
                return repr(v)

    def render(self, entry: LogEntry) -> None:
        head = [self._paint(entry.when.strftime("%H:%M:%S.%f")[:-3], _Ansi.DIM)] if self.show_timestamp else []
        head.append(self._paint(f"[{entry.level}]", _LEVEL_STYLE.get(entry.level, _Ansi.DIM)))
        head.append(self._paint(entry.event, _Ansi.BOLD))
        tail = [f"{self._paint(k, _Ansi.CYAN)}={self._value(v)}"
                for k, v in sorted(entry.fields.items()) if k != "traceback"]
        self.output.write(" ".join(head + tail) + "\n")
        if (tb := entry.fields.get("traceback")) is not None:
            self.output.write(self._paint(str(tb), _Ansi.RED) + "\n")


@dataclass(slots=True)
class JsonRenderer:
    """One JSON object per line; non-JSON values fall back to str()."""

    output: TextIO = field(default_factory=lambda: sys.stdout)

    def render(self, entry: LogEntry) -> None:
        line = orjson.dumps(entry.to_dict(), default=str, option=orjson.OPT_NON_STR_KEYS | orjson.OPT_APPEND_NEWLINE)
        self.output.write(line.decode())


@dataclass(slots=True)
class NoOpRenderer:
    """Discards everything (tests, libraries embedding the engine quietly)."""

    def render(self, entry: LogEntry) -> None:
        pass


# ─────────────────────────────────────────────────────────────────────────────
# Process-wide Configuration
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(slots=True)
class _LoggingState:
    renderer: LogRenderer = field(default_factory=ConsoleRenderer)
    level: int = logging.INFO
    lock: threading.Lock = field(default_factory=threading.Lock)


_state = _LoggingState()


def configure_logging(
    format: str = "console",  # noqa: A002
    level: str = "INFO",
    *,
    output: TextIO | None = None,
    colors: bool | None = None,
) -> LogRenderer:
    """Select the renderer ("console", "json" or "none") and minimum level for all threads."""
    match format:
        case "console":
            renderer: LogRenderer = ConsoleRenderer(output or sys.stderr, colors)
        case "json":
            renderer = JsonRenderer(output or sys.stdout)
        case "none":
            renderer = NoOpRenderer()
        case _:
            raise ValueError(f"Unknown format: {format}. Use 'console', 'json', or 'none'")
    numeric = logging.getLevelName(level.upper())
    with _state.lock:
        _state.renderer = renderer
        _state.level = numeric if isinstance(numeric, int) else logging.INFO
    return renderer


def configure_from_settings(settings: LoggingSettings | None = None, *, output: TextIO | None = None) -> LogRenderer:
    """configure_logging() driven by CHRONO_LOG_* settings."""
    if settings is None:
        from chronomachines.foundation.config import get_settings
        settings = get_settings().logging
    return configure_logging(settings.format, settings.level, output=output, colors=settings.colors)


def get_logger(name: str | None = None, **fields: object) -> BoundLogger:
    """Logger with the given fields bound; name is recorded under ``logger``."""
    return BoundLogger({**fields, "logger": name} if name else dict(fields))
