"""
Error reporting for skipped requests.

Each recoverable error is reported exactly once: one structured log line,
one increment of errors_total{kind}, and optionally one feedback blink so
people standing next to the phone can see that something was dropped.
"""

from __future__ import annotations

from typing import Any

from grainfield.errors import GrainfieldError
from grainfield.interfaces import Color, FeedbackSink
from grainfield.monitoring.logging import StructuredLogger, get_logger
from grainfield.monitoring.metrics import MetricsRegistry


class ErrorReporter:
    """Routes recoverable errors to logging, metrics and feedback."""

    def __init__(
        self,
        logger: StructuredLogger | None = None,
        metrics: MetricsRegistry | None = None,
        feedback: FeedbackSink | None = None,
    ):
        self.logger = logger or get_logger()
        self.metrics = metrics or MetricsRegistry()
        self.feedback = feedback

    def report(
        self,
        error: GrainfieldError,
        color: Color | None = None,
        **extra: Any,
    ) -> None:
        self.logger.error_reported(error, **extra)
        self.metrics.errors.inc(kind=error.kind)
        if color is not None and self.feedback is not None:
            self.feedback.blink(color)

    def count(self, kind: str) -> float:
        """Number of reports of one error kind."""
        return self.metrics.errors.get(kind=kind)
