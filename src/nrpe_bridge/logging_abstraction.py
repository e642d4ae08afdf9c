"""Logging abstraction layer for the NRPE bridge.

Log lines can be written as JSON, as human-readable text, or both. Every line
carries the correlation ID of the scrape it belongs to, and callers attach
structured context through ``extra=`` which is rendered after the message.
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Mapping
from datetime import UTC, datetime
from pathlib import Path
from typing import override

from nrpe_bridge import const
from nrpe_bridge.correlation import get_correlation_id

__all__ = [
    "BridgeLogger",
    "HumanReadableFormatter",
    "JSONFormatter",
    "configure_library_logging",
    "get_logger",
]

_NO_CORRELATION = "--------"

# Names of every logger set up through BridgeLogger, and the level applied by
# configure_library_logging (None until it runs)
_bridge_logger_names: set[str] = set()
_configured_level: int | None = None


def _record_context(record: logging.LogRecord) -> dict[str, object]:
    context = getattr(record, "extra_data", None)
    return dict(context) if isinstance(context, Mapping) else {}


class JSONFormatter(logging.Formatter):
    """One JSON object per line."""

    @override
    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "message": record.getMessage(),
            "correlation_id": get_correlation_id(),
        }
        if context := _record_context(record):
            entry["context"] = context
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            entry["stack_info"] = self.formatStack(record.stack_info)
        return json.dumps(entry, default=str)


class HumanReadableFormatter(logging.Formatter):
    """``timestamp LEVEL [module:line] [corr-id] > message | key=value ...``"""

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s.%(msecs)03d %(levelname)s [%(module)s:%(lineno)d] [%(correlation_id)s] > %(message)s",
            datefmt="%m/%d/%y %H:%M:%S",
        )

    @override
    def format(self, record: logging.LogRecord) -> str:
        correlation_id = get_correlation_id()
        record.correlation_id = correlation_id[:8] if correlation_id else _NO_CORRELATION
        line = super().format(record)
        context = _record_context(record)
        if not context:
            return line
        return line + " | " + " | ".join(f"{key}={value}" for key, value in context.items())


def _file_handler(path: str | Path, formatter: logging.Formatter) -> logging.Handler | None:
    try:
        file_path = Path(path)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(file_path, mode="a")
    except OSError as e:
        print(f"Warning: cannot open log file {path}: {e}", file=sys.stderr)
        return None
    handler.setFormatter(formatter)
    return handler


def _build_handlers(log_format: str, json_file: str | Path | None, human_output: str | None) -> list[logging.Handler]:
    handlers: list[logging.Handler] = []

    if log_format in ("json", "both") and json_file:
        json_handler = _file_handler(json_file, JSONFormatter())
        if json_handler is not None:
            handlers.append(json_handler)

    if log_format in ("human", "both"):
        destination = human_output or "stdout"
        if destination in ("stdout", "stderr"):
            human_handler: logging.Handler | None = logging.StreamHandler(getattr(sys, destination))
            human_handler.setFormatter(HumanReadableFormatter())
        else:
            human_handler = _file_handler(destination, HumanReadableFormatter())
            if human_handler is None:
                human_handler = logging.StreamHandler(sys.stdout)
                human_handler.setFormatter(HumanReadableFormatter())
        handlers.append(human_handler)

    return handlers


class BridgeLogger:
    """Named logger with structured context and dual-format output."""

    def __init__(
        self,
        name: str,
        log_format: str = "human",
        json_file: str | Path | None = None,
        human_output: str | None = "stdout",
    ) -> None:
        """
        Args:
            name: Logger name, usually the module's ``__name__``
            log_format: "json", "human", or "both"
            json_file: JSON log file, None disables JSON output
            human_output: "stdout", "stderr", or a file path
        """
        self.name = name
        self.log_format = log_format
        self.logger = logging.getLogger(name)

        # A logger already set up by an earlier BridgeLogger keeps its handlers
        if not self.logger.handlers:
            for handler in _build_handlers(log_format, json_file, human_output):
                self.logger.addHandler(handler)
        self.logger.propagate = False
        _bridge_logger_names.add(name)
        if _configured_level is not None:
            self.set_level(_configured_level)
        else:
            self.set_level(logging.DEBUG if const.NRPE_BRIDGE_DEBUG else logging.INFO)

    def _log(self, level: int, msg: str, *args: object, extra: Mapping[str, object] | None, **kwargs: object) -> None:
        # stacklevel 3 attributes the record to the caller of debug/info/...
        self.logger.log(
            level,
            msg,
            *args,
            extra={"extra_data": dict(extra)} if extra else None,
            stacklevel=3,
            **kwargs,
        )

    def debug(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self._log(logging.DEBUG, msg, *args, extra=extra)

    def info(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self._log(logging.INFO, msg, *args, extra=extra)

    def warning(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self._log(logging.WARNING, msg, *args, extra=extra)

    def error(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self._log(logging.ERROR, msg, *args, extra=extra)

    def exception(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        """Log at ERROR with the active exception's traceback."""
        self._log(logging.ERROR, msg, *args, extra=extra, exc_info=True)

    def set_level(self, level: int) -> None:
        """Set the level of the logger and of all its handlers."""
        self.logger.setLevel(level)
        for handler in self.logger.handlers:
            handler.setLevel(level)

    @property
    def handlers(self) -> list[logging.Handler]:
        return self.logger.handlers


def get_logger(
    name: str,
    log_format: str | None = None,
    json_file: str | Path | None = None,
    human_output: str | None = None,
) -> BridgeLogger:
    """Return a BridgeLogger, filling unset options from the NRPE_BRIDGE_LOG_* settings."""
    return BridgeLogger(
        name=name,
        log_format=log_format or const.NRPE_BRIDGE_LOG_FORMAT,
        json_file=json_file or const.NRPE_BRIDGE_LOG_JSON_FILE,
        human_output=human_output or const.NRPE_BRIDGE_LOG_HUMAN_OUTPUT,
    )


def configure_library_logging(level: int) -> None:
    """Set ``level`` on the package logger and on every BridgeLogger created so far.

    Loggers created afterwards start at the same level.
    """
    global _configured_level
    _configured_level = level
    get_logger("nrpe_bridge")
    for name in sorted(_bridge_logger_names):
        bridge_logger = logging.getLogger(name)
        bridge_logger.setLevel(level)
        for handler in bridge_logger.handlers:
            handler.setLevel(level)
