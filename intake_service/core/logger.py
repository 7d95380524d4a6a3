"""
Structured logging for the Intake Service.

Every entry carries the service name, environment and the correlation id of
the current request or delivery. ``bind`` returns a logger that adds fixed
context (queue, event id, ...) to the metadata of each entry.

Console output is colored text in development; files are always JSON.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from intake_service.core.config import config
from intake_service.middleware.correlation_id import get_correlation_id

ErrorLike = Union[str, BaseException]

# Attributes set on LogRecord by StructuredLogger
_ENTRY_KEYS = ("service", "environment", "correlationId", "metadata")


def _configure(log: logging.Logger) -> None:
    log.handlers.clear()
    log.setLevel(getattr(logging, config.log_level.upper(), logging.INFO))
    log.propagate = False

    if config.log_to_console:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JSONFormatter() if config.log_format.lower() == "json" else ConsoleFormatter())
        log.addHandler(handler)

    if config.log_to_file:
        path = config.log_file_path or f"logs/{config.service_name}.log"
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        handler = logging.FileHandler(path)
        handler.setFormatter(JSONFormatter())
        log.addHandler(handler)


def _error_metadata(error: ErrorLike) -> Dict[str, Any]:
    if isinstance(error, BaseException):
        details = {"type": type(error).__name__, "message": str(error)}
        cause = error.__cause__
        if cause is not None:
            details["cause"] = {"type": type(cause).__name__, "message": str(cause)}
        return details
    return {"message": str(error)}


class StructuredLogger:
    """Thin wrapper over a stdlib logger producing structured entries"""

    def __init__(
        self,
        name: str = config.service_name,
        context: Optional[Dict[str, Any]] = None,
        _logger: Optional[logging.Logger] = None,
    ):
        self.context = dict(context or {})
        if _logger is None:
            _logger = logging.getLogger(name)
            _configure(_logger)
        self._logger = _logger

    def bind(self, **context) -> "StructuredLogger":
        """Logger sharing handlers with this one, with extra fixed metadata"""
        return StructuredLogger(context={**self.context, **context}, _logger=self._logger)

    def _emit(
        self,
        level: int,
        message: str,
        correlation_id: Optional[str],
        metadata: Optional[Dict[str, Any]],
        error: Optional[ErrorLike] = None,
    ) -> None:
        if not self._logger.isEnabledFor(level):
            return

        merged = {**self.context, **(metadata or {})}
        if error:
            merged["error"] = _error_metadata(error)

        self._logger.log(level, message, extra={
            "service": config.service_name,
            "environment": config.environment,
            "correlationId": correlation_id or get_correlation_id(),
            "metadata": merged or None,
        })

    def debug(self, message: str, correlation_id: Optional[str] = None,
              metadata: Optional[Dict[str, Any]] = None):
        self._emit(logging.DEBUG, message, correlation_id, metadata)

    def info(self, message: str, correlation_id: Optional[str] = None,
             metadata: Optional[Dict[str, Any]] = None):
        self._emit(logging.INFO, message, correlation_id, metadata)

    def warning(self, message: str, correlation_id: Optional[str] = None,
                metadata: Optional[Dict[str, Any]] = None):
        self._emit(logging.WARNING, message, correlation_id, metadata)

    def error(self, message: str, correlation_id: Optional[str] = None,
              error: Optional[ErrorLike] = None, metadata: Optional[Dict[str, Any]] = None):
        self._emit(logging.ERROR, message, correlation_id, metadata, error)

    def critical(self, message: str, correlation_id: Optional[str] = None,
                 error: Optional[ErrorLike] = None, metadata: Optional[Dict[str, Any]] = None):
        self._emit(logging.CRITICAL, message, correlation_id, metadata, error)


class JSONFormatter(logging.Formatter):
    """One JSON object per line"""

    def format(self, record):
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in _ENTRY_KEYS:
            value = getattr(record, key, None)
            if value is not None:
                entry[key] = value

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """Colored single-line output for development"""

    COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
    }
    RESET = '\033[0m'

    def format(self, record):
        color = self.COLORS.get(record.levelname, self.RESET)
        timestamp = datetime.fromtimestamp(record.created).strftime('%Y-%m-%d %H:%M:%S')
        parts = [f"{color}[{timestamp}] {record.levelname:<8}{self.RESET}"]

        correlation_id = getattr(record, "correlationId", None)
        if correlation_id:
            parts.append(f"[{correlation_id[:8]}]")
        parts.append(record.getMessage())

        metadata = getattr(record, "metadata", None)
        if metadata:
            parts.append(json.dumps(metadata, default=str))
        return " ".join(parts)


logger = StructuredLogger()
