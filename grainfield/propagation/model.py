"""
Propagation Model - path of emission points to per-receiver tap lists.

A path is a sequence of (time, position) emission points. Each point acts
as an image source: every receiver hears it once, delayed by distance over
propagation speed and attenuated by propagation_gain ** distance.

Semantics:
    - Attenuation uses the distance from the receiver to that path point,
      not the distance travelled along the path. A later point closer to a
      receiver is louder than an earlier, farther one.
    - Taps under min_audible_gain are dropped.
    - A negative speed makes sound arrive before its emission time. The
      minimum arrival over every kept tap (floored at 0) is subtracted from
      all delays and sent along as min_time, so delays are never negative.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Hashable, Iterable, Mapping, Sequence

import numpy as np

from grainfield.propagation.position import Point2D
from grainfield.propagation.registry import ReceiverRegistry

logger = logging.getLogger(__name__)

MIN_SPEED = 0.1


@dataclass(frozen=True)
class PathPoint:
    """One emission point of a path."""

    time: float
    position: Point2D

    @classmethod
    def at(cls, time: float, x: float, y: float) -> "PathPoint":
        return cls(float(time), Point2D(float(x), float(y)))


def parse_path(values: Sequence[float]) -> list[PathPoint]:
    """Build a path from its flat message form [t0, x0, y0, t1, x1, y1, ...].

    Raises:
        ValueError: If the values do not form whole (t, x, y) triples.
    """
    if len(values) % 3 != 0:
        raise ValueError(
            f"Path values must come in (time, x, y) triples, got {len(values)} values"
        )
    return [
        PathPoint.at(values[i], values[i + 1], values[i + 2])
        for i in range(0, len(values), 3)
    ]


@dataclass(frozen=True)
class Tap:
    """One arrival at a receiver: delay in seconds and linear gain."""

    delay: float
    gain: float

    def __post_init__(self):
        if self.delay < 0:
            raise ValueError(f"delay must be >= 0, got {self.delay}")
        if not 0.0 <= self.gain <= 1.0:
            raise ValueError(f"gain must be 0.0-1.0, got {self.gain}")


@dataclass(frozen=True)
class TapList:
    """Sparse impulse response of one path at one receiver."""

    path_id: Hashable
    taps: tuple[Tap, ...] = ()
    min_time: float = 0.0

    @property
    def duration(self) -> float:
        """Largest delay (0 without taps)."""
        return max((tap.delay for tap in self.taps), default=0.0)

    @property
    def max_gain(self) -> float:
        return max((tap.gain for tap in self.taps), default=0.0)

    @property
    def delays(self) -> np.ndarray:
        return np.array([tap.delay for tap in self.taps], dtype=np.float64)

    @property
    def gains(self) -> np.ndarray:
        return np.array([tap.gain for tap in self.taps], dtype=np.float64)

    def __len__(self) -> int:
        return len(self.taps)


@dataclass(frozen=True)
class PropagationParams:
    """Propagation settings shared by every receiver.

    Args:
        speed: Propagation speed in m/s. Sign allowed, magnitude floored at 0.1.
        gain: Per-meter gain factor, in (0, 1).
        min_audible_gain: Taps quieter than this are dropped.
    """

    speed: float = 1.0
    gain: float = 0.9
    min_audible_gain: float = 0.01

    def __post_init__(self):
        if not 0.0 < self.gain < 1.0:
            raise ValueError(f"gain must be in (0, 1), got {self.gain}")
        if self.min_audible_gain < 0:
            raise ValueError(
                f"min_audible_gain must be >= 0, got {self.min_audible_gain}"
            )

    @property
    def effective_speed(self) -> float:
        """Speed with its magnitude floored at MIN_SPEED (0 becomes +MIN_SPEED)."""
        if abs(self.speed) >= MIN_SPEED:
            return self.speed
        return -MIN_SPEED if self.speed < 0 else MIN_SPEED


@dataclass
class PropagationResult:
    """Output of one path computation, one TapList per receiver."""

    path_id: Hashable
    min_time: float
    tap_lists: dict[Hashable, TapList] = field(default_factory=dict)

    def __getitem__(self, receiver_id: Hashable) -> TapList:
        return self.tap_lists[receiver_id]

    @property
    def total_taps(self) -> int:
        return sum(len(tap_list) for tap_list in self.tap_lists.values())


class PropagationModel:
    """Compute per-receiver tap lists for a path.

    Stateless apart from its parameters; independent computations may run
    concurrently.

    Example:
        model = PropagationModel(PropagationParams(speed=5.0))
        result = model.compute(7, parse_path([0, 0, 0, 1, 4, 0]), registry)
        payload = encode_tap_list(result[receiver_id])
    """

    def __init__(self, params: PropagationParams | None = None):
        self.params = params or PropagationParams()

    def compute(
        self,
        path_id: Hashable,
        path: Iterable[PathPoint],
        receivers: ReceiverRegistry | Mapping[Hashable, Point2D | Sequence[float]],
    ) -> PropagationResult:
        if isinstance(receivers, ReceiverRegistry):
            positions = receivers.snapshot()
        else:
            positions = {rid: Point2D.of(pos) for rid, pos in dict(receivers).items()}

        path = list(path)
        params = self.params
        speed = params.effective_speed

        arrivals: dict[Hashable, list[tuple[float, float]]] = {}
        min_time = 0.0

        for receiver_id, position in positions.items():
            kept: list[tuple[float, float]] = []
            for point in path:
                distance = position.distance_to(point.position)
                gain = params.gain ** distance
                if gain < params.min_audible_gain:
                    continue
                arrival = point.time + distance / speed
                kept.append((arrival, gain))
                min_time = min(min_time, arrival)
            arrivals[receiver_id] = kept

        result = PropagationResult(path_id=path_id, min_time=min_time)
        for receiver_id, kept in arrivals.items():
            result.tap_lists[receiver_id] = TapList(
                path_id=path_id,
                taps=tuple(Tap(max(0.0, arrival - min_time), gain) for arrival, gain in kept),
                min_time=min_time,
            )

        logger.debug(
            "Path %s: %d points, %d receivers, %d taps, min_time=%.3f",
            path_id, len(path), len(positions), result.total_taps, min_time,
        )
        return result
