"""
Folio Utils Package
===================

Logging utilities.
"""

from __future__ import annotations

from folio.utils.logger import (
    LogLevel,
    Logger,
    LogHandler,
    StreamHandler,
    FileHandler,
    TextFormatter,
    JsonFormatter,
    get_logger,
    configure_logging,
)

__all__ = [
    "LogLevel",
    "Logger",
    "LogHandler",
    "StreamHandler",
    "FileHandler",
    "TextFormatter",
    "JsonFormatter",
    "get_logger",
    "configure_logging",
]
