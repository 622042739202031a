"""
Metrics collection for grainfield nodes.
"""

from __future__ import annotations

import threading
from typing import Iterator


class Counter:
    """Counter metric (monotonically increasing).

    Example:
        errors = Counter("errors_total", "Skipped requests", labels=["kind"])
        errors.inc(kind="rendezvous_missed")
    """

    def __init__(
        self,
        name: str,
        description: str = "",
        labels: list[str] | None = None,
    ):
        self.name = name
        self.description = description
        self._labels = labels or []
        self._values: dict[tuple, float] = {}
        self._lock = threading.Lock()

    def inc(self, value: float = 1, **labels: str) -> None:
        if value < 0:
            raise ValueError("Counter can only increase")
        key = tuple(sorted(labels.items()))
        with self._lock:
            self._values[key] = self._values.get(key, 0) + value

    def get(self, **labels: str) -> float:
        key = tuple(sorted(labels.items()))
        return self._values.get(key, 0)

    def total(self) -> float:
        """Sum over every label combination."""
        with self._lock:
            return sum(self._values.values())

    def values(self) -> Iterator[tuple[dict[str, str], float]]:
        """Iterate over all values with labels."""
        with self._lock:
            items = list(self._values.items())
        for key, value in items:
            yield dict(key), value


class Gauge:
    """Gauge metric (can go up or down)."""

    def __init__(
        self,
        name: str,
        description: str = "",
        labels: list[str] | None = None,
    ):
        self.name = name
        self.description = description
        self._labels = labels or []
        self._values: dict[tuple, float] = {}
        self._lock = threading.Lock()

    def set(self, value: float, **labels: str) -> None:
        key = tuple(sorted(labels.items()))
        with self._lock:
            self._values[key] = value

    def inc(self, value: float = 1, **labels: str) -> None:
        key = tuple(sorted(labels.items()))
        with self._lock:
            self._values[key] = self._values.get(key, 0) + value

    def dec(self, value: float = 1, **labels: str) -> None:
        key = tuple(sorted(labels.items()))
        with self._lock:
            self._values[key] = self._values.get(key, 0) - value

    def get(self, **labels: str) -> float:
        key = tuple(sorted(labels.items()))
        return self._values.get(key, 0)


class MetricsRegistry:
    """The metrics a node keeps about its own activity."""

    def __init__(self) -> None:
        self.errors = Counter(
            "errors_total",
            "Requests skipped because of a recoverable error",
            labels=["kind"],
        )
        self.grains = Counter(
            "grains_total",
            "Grain events emitted by the granular engine",
            labels=["kind"],
        )
        self.playbacks_active = Gauge(
            "playbacks_active",
            "Rendered buffers scheduled or playing",
        )

    def snapshot(self) -> dict[str, float]:
        """Flat view of every metric, keyed by name and labels."""
        result: dict[str, float] = {}
        for counter in (self.errors, self.grains):
            for labels, value in counter.values():
                suffix = ",".join(f"{k}={v}" for k, v in sorted(labels.items()))
                key = f"{counter.name}{{{suffix}}}" if suffix else counter.name
                result[key] = value
        result[self.playbacks_active.name] = self.playbacks_active.get()
        return result
