"""
Folio Logger
============

Structured logging with pluggable handlers and formatters.

Every log call takes a message plus arbitrary ``key=value`` context,
which text output renders inline and JSON output nests under
``"context"``.

Example:
    logger = get_logger("folio.router")
    logger.warning("Sub-pattern replaced", pattern="/x/{id}", param="id")
"""

from __future__ import annotations

import sys
import traceback
from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum
from pathlib import Path
from typing import Any, Dict, List, Optional, TextIO, Union

import orjson


class LogLevel(IntEnum):
    """Log levels (numerically compatible with :mod:`logging`)."""

    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40
    CRITICAL = 50

    @classmethod
    def parse(cls, value: Union[str, int, "LogLevel"]) -> "LogLevel":
        """Parse a level from a name such as ``"warning"`` or a number."""
        if isinstance(value, cls):
            return value
        if isinstance(value, int):
            return cls(value)
        return cls[str(value).strip().upper()]


@dataclass
class LogRecord:
    """
    Structured log record.

    Attributes:
        level: Log level
        message: Log message
        timestamp: Record timestamp
        context: Additional key/value context
        exception: Attached exception, if any
        logger_name: Name of the emitting logger
    """

    level: LogLevel
    message: str
    timestamp: datetime = field(default_factory=datetime.now)
    context: Dict[str, Any] = field(default_factory=dict)
    exception: Optional[BaseException] = None
    logger_name: str = "folio"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-serialisable dictionary."""
        data: Dict[str, Any] = {
            "timestamp": self.timestamp.isoformat(),
            "level": self.level.name,
            "message": self.message,
            "logger": self.logger_name,
        }

        if self.context:
            data["context"] = {k: _plain(v) for k, v in self.context.items()}

        if self.exception is not None:
            data["exception"] = {
                "type": type(self.exception).__name__,
                "message": str(self.exception),
                "traceback": traceback.format_exception(
                    type(self.exception),
                    self.exception,
                    self.exception.__traceback__,
                ),
            }

        return data


def _plain(value: Any) -> Any:
    """Reduce context values orjson cannot serialise to their ``repr``."""
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _plain(v) for k, v in value.items()}
    return repr(value)


class LogFormatter:
    """Base log formatter."""

    def format(self, record: LogRecord) -> str:
        """Format log record."""
        raise NotImplementedError


class TextFormatter(LogFormatter):
    """
    Plain text formatter.

    Example output:
        2024-01-15 10:30:45 [WARNING] Sub-pattern replaced param=id
    """

    COLORS = {
        LogLevel.DEBUG: "\033[36m",
        LogLevel.INFO: "\033[32m",
        LogLevel.WARNING: "\033[33m",
        LogLevel.ERROR: "\033[31m",
        LogLevel.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(
        self,
        format_string: Optional[str] = None,
        date_format: str = "%Y-%m-%d %H:%M:%S",
        colors: bool = True,
    ) -> None:
        self.format_string = format_string or "{timestamp} [{level}] {message}"
        self.date_format = date_format
        self.colors = colors and sys.stderr.isatty()

    def format(self, record: LogRecord) -> str:
        level = record.level.name
        if self.colors:
            level = f"{self.COLORS.get(record.level, '')}{level}{self.RESET}"

        message = record.message
        if record.context:
            pairs = " ".join(f"{k}={v}" for k, v in record.context.items())
            message = f"{message} {pairs}"

        output = self.format_string.format(
            timestamp=record.timestamp.strftime(self.date_format),
            level=level,
            message=message,
            logger=record.logger_name,
        )

        if record.exception is not None:
            output += "\n" + "".join(
                traceback.format_exception(
                    type(record.exception),
                    record.exception,
                    record.exception.__traceback__,
                )
            ).rstrip()

        return output


class JsonFormatter(LogFormatter):
    """
    JSON formatter for structured logging (one object per line).

    Example output:
        {"timestamp":"2024-01-15T10:30:45","level":"INFO","message":"Routes loaded"}
    """

    def __init__(self, pretty: bool = False) -> None:
        self.pretty = pretty

    def format(self, record: LogRecord) -> str:
        option = orjson.OPT_INDENT_2 if self.pretty else 0
        return orjson.dumps(record.to_dict(), option=option).decode("utf-8")


class LogHandler:
    """Base log handler."""

    def __init__(
        self,
        formatter: Optional[LogFormatter] = None,
        level: LogLevel = LogLevel.DEBUG,
    ) -> None:
        self.formatter = formatter or TextFormatter()
        self.level = level

    def handle(self, record: LogRecord) -> None:
        """Emit the record if it meets this handler's level."""
        if record.level >= self.level:
            self.emit(record)

    def emit(self, record: LogRecord) -> None:
        """Emit formatted record."""
        raise NotImplementedError


class StreamHandler(LogHandler):
    """Writes formatted records to a text stream (stderr by default)."""

    def __init__(
        self,
        stream: Optional[TextIO] = None,
        formatter: Optional[LogFormatter] = None,
        level: LogLevel = LogLevel.DEBUG,
    ) -> None:
        super().__init__(formatter, level)
        self.stream = stream

    def emit(self, record: LogRecord) -> None:
        stream = self.stream or sys.stderr
        stream.write(self.formatter.format(record) + "\n")
        stream.flush()


class FileHandler(LogHandler):
    """Appends records to a file, rotating it once it exceeds ``max_size``."""

    def __init__(
        self,
        path: Union[str, Path],
        formatter: Optional[LogFormatter] = None,
        level: LogLevel = LogLevel.DEBUG,
        max_size: int = 10 * 1024 * 1024,
        backup_count: int = 5,
    ) -> None:
        super().__init__(formatter or JsonFormatter(), level)
        self.path = Path(path)
        self.max_size = max_size
        self.backup_count = backup_count
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def emit(self, record: LogRecord) -> None:
        if self.path.exists() and self.path.stat().st_size > self.max_size:
            self._rotate()

        with open(self.path, "a", encoding="utf-8") as f:
            f.write(self.formatter.format(record) + "\n")

    def _rotate(self) -> None:
        oldest = self.path.with_suffix(f".{self.backup_count}")
        if oldest.exists():
            oldest.unlink()

        for i in range(self.backup_count - 1, 0, -1):
            src = self.path.with_suffix(f".{i}")
            if src.exists():
                src.rename(self.path.with_suffix(f".{i + 1}"))

        self.path.rename(self.path.with_suffix(".1"))


class Logger:
    """
    Structured logger.

    Example:
        logger = Logger("folio.router")
        logger.add_handler(StreamHandler())

        logger.info("Routes loaded", count=12)
        logger.error("Handler failed", exception=exc, handler="PageController@show")

        scoped = logger.with_context(request_id="abc123")
        scoped.debug("Matching")
    """

    def __init__(
        self,
        name: str = "folio",
        level: LogLevel = LogLevel.DEBUG,
        handlers: Optional[List[LogHandler]] = None,
    ) -> None:
        self.name = name
        self.level = level
        self._handlers: List[LogHandler] = handlers if handlers is not None else []
        self._context: Dict[str, Any] = {}

    @property
    def handlers(self) -> List[LogHandler]:
        return self._handlers

    def add_handler(self, handler: LogHandler) -> "Logger":
        """Add log handler."""
        self._handlers.append(handler)
        return self

    def remove_handler(self, handler: LogHandler) -> "Logger":
        """Remove log handler."""
        self._handlers.remove(handler)
        return self

    def with_context(self, **context: Any) -> "Logger":
        """Create a logger sharing handlers but carrying extra context."""
        scoped = Logger(name=self.name, level=self.level, handlers=self._handlers)
        scoped._context = {**self._context, **context}
        return scoped

    def _log(
        self,
        level: LogLevel,
        message: str,
        exception: Optional[BaseException] = None,
        **context: Any,
    ) -> None:
        if level < self.level:
            return

        record = LogRecord(
            level=level,
            message=message,
            context={**self._context, **context},
            exception=exception,
            logger_name=self.name,
        )

        for handler in self._handlers:
            try:
                handler.handle(record)
            except Exception as exc:
                sys.stderr.write(f"folio: log handler {type(handler).__name__} failed: {exc}\n")

    def debug(self, message: str, **context: Any) -> None:
        self._log(LogLevel.DEBUG, message, **context)

    def info(self, message: str, **context: Any) -> None:
        self._log(LogLevel.INFO, message, **context)

    def warning(self, message: str, **context: Any) -> None:
        self._log(LogLevel.WARNING, message, **context)

    def error(
        self,
        message: str,
        exception: Optional[BaseException] = None,
        **context: Any,
    ) -> None:
        self._log(LogLevel.ERROR, message, exception, **context)

    def critical(
        self,
        message: str,
        exception: Optional[BaseException] = None,
        **context: Any,
    ) -> None:
        self._log(LogLevel.CRITICAL, message, exception, **context)

    def exception(self, message: str, **context: Any) -> None:
        """Log the exception currently being handled at ERROR level."""
        self._log(LogLevel.ERROR, message, sys.exc_info()[1], **context)


# Logger registry
_loggers: Dict[str, Logger] = {}


def get_logger(name: str = "folio", level: Optional[LogLevel] = None) -> Logger:
    """
    Get or create a named logger.

    Child names (``folio.router``) share the handlers of the ``folio``
    root logger, so ``configure_logging`` affects all of them.
    """
    if name not in _loggers:
        root = _root_logger()
        if name == root.name:
            return root
        _loggers[name] = Logger(
            name=name,
            level=level if level is not None else root.level,
            handlers=root.handlers,
        )
    return _loggers[name]


def _root_logger() -> Logger:
    if "folio" not in _loggers:
        _loggers["folio"] = Logger(name="folio", level=LogLevel.INFO, handlers=[StreamHandler()])
    return _loggers["folio"]


def configure_logging(
    level: Union[LogLevel, str, int] = LogLevel.INFO,
    format: str = "text",
    log_file: Optional[str] = None,
    colors: bool = True,
) -> Logger:
    """
    Configure the ``folio`` root logger.

    Args:
        level: Minimum level
        format: ``"text"`` or ``"json"``
        log_file: Optional file to append to as well
        colors: Colour level names on a TTY

    Returns:
        The configured root logger
    """
    level = LogLevel.parse(level)
    formatter: LogFormatter = JsonFormatter() if format == "json" else TextFormatter(colors=colors)

    root = _root_logger()
    root.level = level
    root.handlers[:] = [StreamHandler(formatter=formatter, level=level)]

    if log_file:
        file_formatter = JsonFormatter() if format == "json" else TextFormatter(colors=False)
        root.handlers.append(FileHandler(log_file, formatter=file_formatter, level=level))

    for name, logger in _loggers.items():
        if name != "folio":
            logger.level = level

    return root


__all__ = [
    "LogLevel",
    "LogRecord",
    "LogFormatter",
    "TextFormatter",
    "JsonFormatter",
    "LogHandler",
    "StreamHandler",
    "FileHandler",
    "Logger",
    "get_logger",
    "configure_logging",
]
