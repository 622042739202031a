"""
Active playback registry.

Every buffer handed to the playback sink is tracked here until it
completes or is cancelled, so a reset can stop all of them.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Hashable, Iterator

from grainfield.monitoring.metrics import MetricsRegistry


@dataclass
class PlaybackHandle:
    """A buffer scheduled on (or playing through) the sink.

    start_time is local; target_time is the shared time it was aimed at.
    """

    playback_id: Hashable
    start_time: float
    target_time: float
    duration: float
    loop: bool = False
    offset: float = 0.0
    tag: Any = None
    completion: Hashable | None = None

    @property
    def end_time(self) -> float | None:
        """Local time the sound ends, None while looping."""
        if self.loop:
            return None
        return self.start_time + max(0.0, self.duration - self.offset)


class ActivePlaybacks:
    """Lock-protected map of playback id to handle."""

    def __init__(self, metrics: MetricsRegistry | None = None):
        self._handles: dict[Hashable, PlaybackHandle] = {}
        self._lock = threading.Lock()
        self._metrics = metrics

    def _update_gauge(self) -> None:
        if self._metrics is not None:
            self._metrics.playbacks_active.set(len(self._handles))

    def add(self, handle: PlaybackHandle) -> None:
        with self._lock:
            self._handles[handle.playback_id] = handle
            self._update_gauge()

    def remove(self, playback_id: Hashable) -> PlaybackHandle | None:
        with self._lock:
            handle = self._handles.pop(playback_id, None)
            self._update_gauge()
            return handle

    def get(self, playback_id: Hashable) -> PlaybackHandle | None:
        with self._lock:
            return self._handles.get(playback_id)

    def with_tag(self, tag: Any) -> list[PlaybackHandle]:
        with self._lock:
            return [h for h in self._handles.values() if h.tag == tag]

    def clear(self) -> list[PlaybackHandle]:
        """Remove every handle and return them."""
        with self._lock:
            handles = list(self._handles.values())
            self._handles.clear()
            self._update_gauge()
            return handles

    def __contains__(self, playback_id: Hashable) -> bool:
        with self._lock:
            return playback_id in self._handles

    def __len__(self) -> int:
        return len(self._handles)

    def __iter__(self) -> Iterator[PlaybackHandle]:
        with self._lock:
            return iter(list(self._handles.values()))
