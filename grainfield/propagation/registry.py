"""
Receiver registry - positions of the connected players.

Owned by the coordinator and passed to whoever needs positions. Writers are
last-write-wins; readers iterate a snapshot so a path computation never
sees half of an update.
"""

from __future__ import annotations

import threading
from typing import Hashable, Iterator, Sequence

from grainfield.propagation.position import Point2D


class ReceiverRegistry:
    """Thread-safe map of receiver id to position.

    Example:
        registry = ReceiverRegistry()
        registry.set_position(3, (1.5, 4.0))
        positions = registry.snapshot()
    """

    def __init__(self) -> None:
        self._positions: dict[Hashable, Point2D] = {}
        self._lock = threading.Lock()

    def set_position(
        self,
        receiver_id: Hashable,
        position: Point2D | Sequence[float],
    ) -> None:
        point = Point2D.of(position)
        with self._lock:
            self._positions[receiver_id] = point

    def remove(self, receiver_id: Hashable) -> bool:
        with self._lock:
            return self._positions.pop(receiver_id, None) is not None

    def get(self, receiver_id: Hashable) -> Point2D | None:
        with self._lock:
            return self._positions.get(receiver_id)

    def snapshot(self) -> dict[Hashable, Point2D]:
        """Consistent copy of every position."""
        with self._lock:
            return dict(self._positions)

    def __len__(self) -> int:
        with self._lock:
            return len(self._positions)

    def __contains__(self, receiver_id: Hashable) -> bool:
        with self._lock:
            return receiver_id in self._positions

    def __iter__(self) -> Iterator[Hashable]:
        return iter(self.snapshot())
