"""
Cooperative Scheduler - one logical thread of control per node.

Engine ticks, control updates, network events and playback completions are
all queued here as timed callbacks and run one at a time, in time order, on
whichever thread drives the scheduler (run_pending / advance / run_forever).
Other threads only enqueue, so callbacks never interleave.

Periodic callbacks are rescheduled from their scheduled time rather than
from when they actually ran, so lateness does not accumulate. A periodic
callback may return the delay until its next call.
"""

from __future__ import annotations

import heapq
import itertools
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable

from grainfield.interfaces import PeriodicCallback
from grainfield.runtime.clock import MonotonicClock

logger = logging.getLogger(__name__)


@dataclass(order=True)
class _Entry:
    time: float
    seq: int
    handle: int = field(compare=False)
    callback: Callable[[float], Any] = field(compare=False)
    period: float | None = field(default=None, compare=False)


class CooperativeScheduler:
    """Heap-ordered queue of timed callbacks on a single clock.

    Example:
        scheduler = CooperativeScheduler(ManualClock())
        scheduler.schedule(engine.tick, 0.15)
        scheduler.advance(1.0)     # runs every tick due in the next second
    """

    def __init__(self, clock=None):
        self._clock = clock or MonotonicClock()
        self._heap: list[_Entry] = []
        self._active: set[int] = set()
        self._seq = itertools.count()
        self._handles = itertools.count(1)
        self._lock = threading.Lock()

    @property
    def clock(self):
        return self._clock

    @property
    def current_time(self) -> float:
        return self._clock.now()

    def _push(self, time: float, callback: Callable, period: float | None, handle: int | None = None) -> int:
        with self._lock:
            if handle is None:
                handle = next(self._handles)
                self._active.add(handle)
            heapq.heappush(self._heap, _Entry(time, next(self._seq), handle, callback, period))
            return handle

    def schedule(
        self,
        callback: PeriodicCallback,
        period: float,
        start_time: float | None = None,
    ) -> int:
        """Call callback(scheduled_time) every period seconds.

        The first call happens at start_time (now when omitted).
        """
        if period <= 0:
            raise ValueError(f"period must be > 0, got {period}")
        when = self.current_time if start_time is None else start_time
        return self._push(when, callback, period)

    def call_at(self, time: float, callback: Callable[[float], Any]) -> int:
        """Call callback(time) once at the given local time."""
        return self._push(time, callback, None)

    def call_later(self, delay: float, callback: Callable[[float], Any]) -> int:
        return self.call_at(self.current_time + max(0.0, delay), callback)

    def submit(self, callback: Callable[..., Any], *args: Any) -> int:
        """Queue callback(*args) to run as soon as the scheduler is driven."""
        return self.call_at(self.current_time, lambda _time: callback(*args))

    def cancel(self, handle: int) -> None:
        with self._lock:
            self._active.discard(handle)

    def is_scheduled(self, handle: int) -> bool:
        return handle in self._active

    def next_time(self) -> float | None:
        """Time of the next live entry, if any."""
        with self._lock:
            self._drop_cancelled()
            return self._heap[0].time if self._heap else None

    def _drop_cancelled(self) -> None:
        while self._heap and self._heap[0].handle not in self._active:
            heapq.heappop(self._heap)

    def _pop_due(self, now: float) -> _Entry | None:
        with self._lock:
            self._drop_cancelled()
            if not self._heap or self._heap[0].time > now:
                return None
            entry = heapq.heappop(self._heap)
            if entry.period is None:
                self._active.discard(entry.handle)
            return entry

    def _fire(self, entry: _Entry) -> None:
        try:
            result = entry.callback(entry.time)
        except Exception:
            logger.exception("Scheduled callback %r failed", entry.callback)
            result = None

        if entry.period is None or entry.handle not in self._active:
            return

        period = entry.period
        if isinstance(result, (int, float)) and result > 0:
            period = float(result)
        self._push(entry.time + period, entry.callback, period, handle=entry.handle)

    def run_pending(self) -> int:
        """Run every callback due at the current time. Returns how many ran."""
        fired = 0
        now = self.current_time
        while True:
            entry = self._pop_due(now)
            if entry is None:
                return fired
            self._fire(entry)
            fired += 1

    def advance(self, dt: float) -> int:
        """Move a manual clock forward, running callbacks at their own times."""
        if not hasattr(self._clock, "set"):
            raise TypeError("advance() needs a settable clock such as ManualClock")
        if dt < 0:
            raise ValueError(f"dt must be >= 0, got {dt}")

        target = self._clock.now() + dt
        fired = 0
        while True:
            due = self.next_time()
            if due is None or due > target:
                break
            if due > self._clock.now():
                self._clock.set(due)
            fired += self.run_pending()
        self._clock.set(target)
        return fired

    def run_forever(self, stop_event: threading.Event, resolution: float = 0.001) -> None:
        """Drive the scheduler on the calling thread until stop_event is set."""
        logger.debug("Scheduler loop started")
        while not stop_event.is_set():
            self.run_pending()
            due = self.next_time()
            timeout = resolution if due is None else min(resolution, max(0.0, due - self.current_time))
            stop_event.wait(timeout)
        logger.debug("Scheduler loop stopped")

    def __len__(self) -> int:
        return len(self._active)
