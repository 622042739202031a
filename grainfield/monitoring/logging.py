"""
Structured logging for grainfield nodes.

One line per event, keyed by event name, so logs from every phone in an
installation can be merged and filtered by ``node_id``.
"""

from __future__ import annotations

import json
import logging
import sys
import threading
import time
from enum import Enum
from typing import Any, TextIO


class LogLevel(Enum):
    """Log levels."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"

    @property
    def numeric(self) -> int:
        return getattr(logging, self.name)


class StructuredLogger:
    """Event-oriented logger for playback nodes and the coordinator.

    Example:
        logger = StructuredLogger("grainfield", node_id="player-3")
        logger.info("path_scheduled", path_id=4, delay=1.93)

        path_logger = logger.bind(module="path")
        path_logger.error_reported(error, path_id=4)
    """

    def __init__(
        self,
        name: str = "grainfield",
        level: LogLevel = LogLevel.INFO,
        output: TextIO | None = None,
        json_format: bool = True,
        node_id: str = "",
    ):
        self.name = name
        self.node_id = node_id
        self._level = level
        self._output = output or sys.stderr
        self._json_format = json_format
        self._context: dict[str, Any] = {}
        self._lock = threading.Lock()

    @property
    def level(self) -> LogLevel:
        return self._level

    def bind(self, **context: Any) -> "StructuredLogger":
        """Logger sharing this one's output, with extra fields on every line."""
        bound = StructuredLogger(
            name=self.name,
            level=self._level,
            output=self._output,
            json_format=self._json_format,
            node_id=self.node_id,
        )
        bound._lock = self._lock
        bound._context = {**self._context, **context}
        return bound

    def _log(self, level: LogLevel, event: str, message: str, data: dict[str, Any]) -> None:
        if level.numeric < self._level.numeric:
            return

        fields = {**self._context, **data}
        timestamp = time.time()
        if self._json_format:
            line = json.dumps({
                "level": level.value,
                "event": event,
                "message": message,
                "timestamp": timestamp,
                "logger_name": self.name,
                "node_id": self.node_id,
                **fields,
            }, default=str)
        else:
            line = self._format_human(level, event, message, timestamp, fields)

        with self._lock:
            print(line, file=self._output)

    def _format_human(
        self,
        level: LogLevel,
        event: str,
        message: str,
        timestamp: float,
        fields: dict[str, Any],
    ) -> str:
        stamp = time.strftime("%H:%M:%S", time.localtime(timestamp))
        parts = [stamp, f"[{level.value.upper()}]"]
        if self.node_id:
            parts.append(f"[{self.node_id}]")
        parts.append(event)
        if message:
            parts.append(f"- {message}")
        parts.extend(f"{key}={value}" for key, value in fields.items())
        return " ".join(parts)

    def debug(self, event: str, message: str = "", **data: Any) -> None:
        self._log(LogLevel.DEBUG, event, message, data)

    def info(self, event: str, message: str = "", **data: Any) -> None:
        self._log(LogLevel.INFO, event, message, data)

    def warning(self, event: str, message: str = "", **data: Any) -> None:
        self._log(LogLevel.WARNING, event, message, data)

    # Node events

    def grain_triggered(self, kind: str, segment_index: int, gain: float, **extra: Any) -> None:
        """Log one emitted grain (debug level, this fires every tick)."""
        self.debug(
            "grain_triggered",
            kind=kind,
            segment_index=segment_index,
            gain=round(gain, 4),
            **extra,
        )

    def tap_list_received(self, path_id: Any, num_taps: int, duration: float, **extra: Any) -> None:
        self.info(
            "tap_list_received",
            f"Received {num_taps} taps for path {path_id}",
            path_id=path_id,
            num_taps=num_taps,
            duration=duration,
            **extra,
        )

    def path_scheduled(self, path_id: Any, delay: float, sync_start_time: float, **extra: Any) -> None:
        self.info(
            "path_scheduled",
            f"Playback scheduled in {delay:.3f}s",
            path_id=path_id,
            delay=delay,
            sync_start_time=sync_start_time,
            **extra,
        )

    def error_reported(self, error: Exception, **extra: Any) -> None:
        """Log a recoverable error that caused a request to be skipped."""
        self.warning(
            getattr(error, "kind", "error"),
            str(error),
            error_type=type(error).__name__,
            **{**getattr(error, "details", {}), **extra},
        )


_global_logger: StructuredLogger | None = None


def configure_logging(
    level: LogLevel | str = LogLevel.INFO,
    output: TextIO | None = None,
    json_format: bool = True,
    node_id: str = "",
) -> StructuredLogger:
    """Replace the process-wide logger used by nodes built without one."""
    global _global_logger

    if isinstance(level, str):
        level = LogLevel(level)

    _global_logger = StructuredLogger(
        level=level,
        output=output,
        json_format=json_format,
        node_id=node_id,
    )
    return _global_logger


def get_logger() -> StructuredLogger:
    """Get the process-wide logger, creating a default one if needed."""
    global _global_logger

    if _global_logger is None:
        _global_logger = StructuredLogger()

    return _global_logger
