"""
Segments and the loudness-sorted index built over them.

A Segment is one pre-analyzed slice of an audio asset. The analysis step
(onset segmentation plus per-segment power) runs outside this package; the
index only needs the resulting power values.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, Sequence

from grainfield.errors import DegenerateIndexError
from grainfield.units import power_to_db


@dataclass(frozen=True)
class Segment:
    """A slice of an audio asset with its measured power."""

    index: int
    start_offset: float
    duration: float
    power: float

    def __post_init__(self):
        if self.start_offset < 0:
            raise ValueError(f"start_offset must be >= 0, got {self.start_offset}")
        if self.duration < 0:
            raise ValueError(f"duration must be >= 0, got {self.duration}")
        if self.power < 0:
            raise ValueError(f"power must be >= 0, got {self.power}")

    @property
    def log_power(self) -> float:
        return power_to_db(self.power)

    @property
    def end_offset(self) -> float:
        return self.start_offset + self.duration


@dataclass(frozen=True)
class PowerEntry:
    """One position of the sorted index."""

    segment_index: int
    log_power: float


class SortedPowerIndex:
    """Segments ordered by ascending log power.

    Invariants:
        - log_power is non-decreasing along the index
        - len(index) >= 2 (a single segment is entered twice)

    Example:
        index = SortedPowerIndex.from_segments(segments)
        index[0].log_power      # quietest
        index.max_log_power     # loudest
    """

    def __init__(self, entries: Sequence[PowerEntry]):
        if not entries:
            raise DegenerateIndexError()
        ordered = sorted(entries, key=lambda entry: entry.log_power)
        if len(ordered) == 1:
            ordered.append(ordered[0])
        self._entries: tuple[PowerEntry, ...] = tuple(ordered)
        self._by_segment = {entry.segment_index: entry.log_power for entry in ordered}

    @classmethod
    def from_segments(cls, segments: Iterable[Segment]) -> "SortedPowerIndex":
        entries = [PowerEntry(s.index, s.log_power) for s in segments]
        if not entries:
            raise DegenerateIndexError("Cannot index an asset without segments")
        return cls(entries)

    @property
    def entries(self) -> tuple[PowerEntry, ...]:
        return self._entries

    @property
    def min_log_power(self) -> float:
        return self._entries[0].log_power

    @property
    def max_log_power(self) -> float:
        return self._entries[-1].log_power

    def log_power_of(self, segment_index: int) -> float:
        """Log power of a segment by its segment index (not its position)."""
        return self._by_segment[segment_index]

    def __len__(self) -> int:
        return len(self._entries)

    def __getitem__(self, position: int) -> PowerEntry:
        return self._entries[position]

    def __iter__(self) -> Iterator[PowerEntry]:
        return iter(self._entries)
