"""
Nearest-by-loudness lookup over a SortedPowerIndex.

The lookup keeps a jitter-sized buffer zone at both ends of the index:
outlier control values never select the very loudest or quietest segment
deterministically. After the nearest match is found, a bounded random
offset dithers the choice so a steady control signal does not lock onto a
single grain.
"""

from __future__ import annotations

import random

from grainfield.granular.segments import SortedPowerIndex


class LoudnessIndex:
    """Select segments by target log power.

    Example:
        lookup = LoudnessIndex(SortedPowerIndex.from_segments(segments))
        segment_index = lookup.select(target=-12.0, jitter=1)
    """

    def __init__(
        self,
        index: SortedPowerIndex,
        rng: random.Random | None = None,
    ):
        self._index = index
        self._rng = rng or random.Random()

    @property
    def index(self) -> SortedPowerIndex:
        return self._index

    def clamp_jitter(self, jitter: int) -> int:
        """Largest jitter that keeps both jittered boundary positions inside the index."""
        return max(0, min(int(jitter), (len(self._index) - 1) // 2))

    def select(self, target: float, jitter: int = 0) -> int:
        """Return the segment index whose log power is closest to target."""
        return self._index[self.select_position(target, jitter)].segment_index

    def select_position(self, target: float, jitter: int = 0) -> int:
        """Return the position in sorted order chosen for target."""
        jitter = self.clamp_jitter(jitter)
        position = self._nearest_position(target, jitter)

        if jitter > 0:
            position += self._rng.randint(-jitter, jitter)

        return position

    def _nearest_position(self, target: float, jitter: int) -> int:
        entries = self._index
        first = jitter
        last = len(entries) - 1 - jitter
        low = entries[first].log_power
        high = entries[last].log_power

        if target <= low:
            return first
        if target >= high:
            return last

        # low < target < high here, so the walks below cannot leave
        # [first, last] and position + 1 always exists.
        position = first + int((last - first) * (target - low) / (high - low))
        position = min(max(position, first), last - 1)

        while entries[position].log_power > target:
            position -= 1

        while entries[position + 1].log_power <= target:
            position += 1

        below = target - entries[position].log_power
        above = entries[position + 1].log_power - target
        if below >= above:
            position += 1

        return position
