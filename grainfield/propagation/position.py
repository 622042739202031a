"""
Positions in the installation floor plan.

Features:
    - 2D coordinate system (meters, room-relative)
    - Distance calculation
    - Conversion from the [x, y] lists sent by players
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence


@dataclass(frozen=True)
class Point2D:
    """A point on the floor plan."""

    x: float = 0.0
    y: float = 0.0

    @classmethod
    def of(cls, value: "Point2D | Sequence[float]") -> "Point2D":
        """Accept either a Point2D or an (x, y) pair."""
        if isinstance(value, Point2D):
            return value
        x, y = value
        return cls(float(x), float(y))

    def distance_to(self, other: "Point2D") -> float:
        return math.hypot(self.x - other.x, self.y - other.y)

    def as_tuple(self) -> tuple[float, float]:
        return (self.x, self.y)

    def __add__(self, other: "Point2D") -> "Point2D":
        return Point2D(self.x + other.x, self.y + other.y)

    def __sub__(self, other: "Point2D") -> "Point2D":
        return Point2D(self.x - other.x, self.y - other.y)

    def __mul__(self, scalar: float) -> "Point2D":
        return Point2D(self.x * scalar, self.y * scalar)
