"""
Node observability.

Components:
    StructuredLogger - JSON structured logging
    Counter, Gauge   - Labelled metrics
    MetricsRegistry  - The metrics every node keeps
    ErrorReporter    - Single reporting path for skipped requests

Example:
    from grainfield.monitoring import configure_logging, ErrorReporter

    logger = configure_logging("debug", node_id="player-2")
    reporter = ErrorReporter(logger)
"""

from grainfield.monitoring.logging import (
    StructuredLogger,
    LogLevel,
    configure_logging,
    get_logger,
)
from grainfield.monitoring.metrics import (
    Counter,
    Gauge,
    MetricsRegistry,
)
from grainfield.monitoring.reporter import ErrorReporter

__all__ = [
    # Logging
    "StructuredLogger",
    "LogLevel",
    "configure_logging",
    "get_logger",
    # Metrics
    "Counter",
    "Gauge",
    "MetricsRegistry",
    # Reporting
    "ErrorReporter",
]
