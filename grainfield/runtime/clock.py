"""
Clocks.

A node reads two clocks: its local monotonic clock, which drives the
scheduler and the audio output, and the shared clock every node agrees on.
Synchronizing the shared clock is not done here; OffsetClock only applies
an offset that some sync protocol has estimated.
"""

from __future__ import annotations

import threading
import time


class MonotonicClock:
    """Local clock in seconds since construction."""

    def __init__(self) -> None:
        self._origin = time.monotonic()

    def now(self) -> float:
        return time.monotonic() - self._origin


class OffsetClock:
    """Shared clock derived from a local one: shared = local + offset."""

    def __init__(self, local, offset: float = 0.0):
        self._local = local
        self._offset = float(offset)
        self._lock = threading.Lock()

    @property
    def offset(self) -> float:
        return self._offset

    def set_offset(self, offset: float) -> None:
        with self._lock:
            self._offset = float(offset)

    def now(self) -> float:
        with self._lock:
            return self._local.now() + self._offset


class ManualClock:
    """Clock that only moves when told to. Used to drive time in tests."""

    def __init__(self, start: float = 0.0):
        self._now = float(start)

    def now(self) -> float:
        return self._now

    def advance(self, dt: float) -> float:
        if dt < 0:
            raise ValueError(f"dt must be >= 0, got {dt}")
        self._now += dt
        return self._now

    def set(self, value: float) -> None:
        self._now = float(value)
