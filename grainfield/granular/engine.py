"""
Granular Engine - periodic dual-mode grain trigger.

Each tick may fire a one-shot "touch" grain (an explicitly pointed segment)
and always fires a "texture" grain chosen by loudness from the current
control energy:

    energy >= 0   target = dB(energy) + max_log_power
    energy < 0    target = uniform(min_log_power - 3, max_log_power + 3)

Because only discrete grains exist, the chosen grain is scaled by
linear(target - its log power) so perceived intensity follows the control
signal continuously.

Configuration is an immutable EngineState value. Reconfiguring builds a new
state and swaps the reference; a live state is never mutated, so a
parameter change cannot race with a tick in flight.
"""

from __future__ import annotations

import dataclasses
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Hashable, Iterable, Mapping

from grainfield.granular.loudness_index import LoudnessIndex
from grainfield.granular.segments import Segment, SortedPowerIndex
from grainfield.interfaces import GrainSink, PeriodicScheduler
from grainfield.monitoring.logging import StructuredLogger, get_logger
from grainfield.monitoring.metrics import MetricsRegistry
from grainfield.units import EnergyMapping, db_to_linear, energy_to_db

MIN_PERIOD = 0.001
"""Floor on the tick period; a zero period would never yield."""

FREE_RUN_MARGIN_DB = 3.0
"""Range extension (both ends) of the random target before any energy arrives."""

BeatObserver = Callable[[float, int, float], None]


class GrainKind(str, Enum):
    """Which trigger path produced a grain."""
    TOUCH = "touch"
    TEXTURE = "texture"


@dataclass(frozen=True)
class EngineParams:
    """Granular engine configuration.

    Times are in seconds. Each envelope value has an absolute part and a
    part relative to the segment (or grain) duration.
    """

    period_abs: float = 0.150
    period_rel: float = 0.0
    duration_abs: float = 0.0
    duration_rel: float = 1.0
    offset_abs: float = 0.005
    offset_rel: float = 0.0
    attack_abs: float = 0.005
    attack_rel: float = 0.0
    release_abs: float = 0.005
    release_rel: float = 0.0
    resampling_var: float = 200.0
    """Resampling jitter bound in cents."""
    random_var: int = 1
    """Jitter bound of the loudness lookup, in index positions."""
    energy_mapping: EnergyMapping = EnergyMapping.AMPLITUDE

    def __post_init__(self):
        if self.period_abs < 0:
            raise ValueError(f"period_abs must be >= 0, got {self.period_abs}")
        if self.resampling_var < 0:
            raise ValueError(f"resampling_var must be >= 0, got {self.resampling_var}")
        if self.random_var < 0:
            raise ValueError(f"random_var must be >= 0, got {self.random_var}")
        if not isinstance(self.energy_mapping, EnergyMapping):
            object.__setattr__(self, "energy_mapping", EnergyMapping(self.energy_mapping))

    @classmethod
    def field_names(cls) -> frozenset[str]:
        return frozenset(f.name for f in dataclasses.fields(cls))

    def replace(self, **changes: Any) -> "EngineParams":
        """Return a copy with some fields changed.

        Raises:
            KeyError: If a name is not an engine parameter.
        """
        unknown = set(changes) - self.field_names()
        if unknown:
            raise KeyError(f"Unknown engine parameters: {sorted(unknown)}")
        if "random_var" in changes:
            changes["random_var"] = int(changes["random_var"])
        return dataclasses.replace(self, **changes)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "EngineParams":
        return cls().replace(**dict(data))


@dataclass(frozen=True)
class GrainEnvelope:
    """Per-grain playback shape, passed through to the grain sink."""

    duration_abs: float = 0.0
    duration_rel: float = 1.0
    offset_abs: float = 0.005
    offset_rel: float = 0.0
    attack_abs: float = 0.005
    attack_rel: float = 0.0
    release_abs: float = 0.005
    release_rel: float = 0.0
    resampling_var: float = 200.0

    @classmethod
    def from_params(cls, params: EngineParams) -> "GrainEnvelope":
        return cls(
            duration_abs=params.duration_abs,
            duration_rel=params.duration_rel,
            offset_abs=params.offset_abs,
            offset_rel=params.offset_rel,
            attack_abs=params.attack_abs,
            attack_rel=params.attack_rel,
            release_abs=params.release_abs,
            release_rel=params.release_rel,
            resampling_var=params.resampling_var,
        )

    def grain_duration(self, segment_duration: float) -> float:
        """Grain length; a non-positive result falls back to the segment length."""
        duration = self.duration_abs + self.duration_rel * segment_duration
        return duration if duration > 0 else segment_duration

    def offset(self, segment_duration: float) -> float:
        return self.offset_abs + self.offset_rel * segment_duration

    def attack(self, grain_duration: float) -> float:
        return self.attack_abs + self.attack_rel * grain_duration

    def release(self, grain_duration: float) -> float:
        return self.release_abs + self.release_rel * grain_duration


@dataclass(frozen=True)
class GrainEvent:
    """One grain to play. Created per tick, consumed by the grain sink."""

    segment_index: int
    gain: float
    scheduled_time: float
    kind: GrainKind = GrainKind.TEXTURE
    envelope: GrainEnvelope = field(default_factory=GrainEnvelope)

    def __post_init__(self):
        if self.gain <= 0:
            raise ValueError(f"gain must be > 0, got {self.gain}")


@dataclass(frozen=True)
class EngineState:
    """Immutable configuration snapshot read by one tick."""

    params: EngineParams
    segments: tuple[Segment, ...]
    index: SortedPowerIndex
    loudness: LoudnessIndex
    segments_by_index: Mapping[int, Segment]

    @classmethod
    def build(
        cls,
        segments: Iterable[Segment],
        params: EngineParams,
        rng: random.Random | None = None,
    ) -> "EngineState":
        """Build a state; raises DegenerateIndexError without segments."""
        segments = tuple(segments)
        index = SortedPowerIndex.from_segments(segments)
        return cls(
            params=params,
            segments=segments,
            index=index,
            loudness=LoudnessIndex(index, rng),
            segments_by_index={s.index: s for s in segments},
        )

    @property
    def min_log_power(self) -> float:
        return self.index.min_log_power

    @property
    def max_log_power(self) -> float:
        return self.index.max_log_power


class GranularEngine:
    """Periodic grain trigger driven by a control energy.

    Example:
        engine = GranularEngine(segments, scheduler, sink)
        engine.set_energy(0.4)
        engine.start()
        ...
        engine.touch(3)   # one-shot grain on segment 3 at the next tick
        engine.stop()
    """

    def __init__(
        self,
        segments: Iterable[Segment],
        scheduler: PeriodicScheduler,
        sink: GrainSink,
        params: EngineParams | None = None,
        observer: BeatObserver | None = None,
        rng: random.Random | None = None,
        logger: StructuredLogger | None = None,
        metrics: MetricsRegistry | None = None,
    ):
        self._rng = rng or random.Random()
        self._state = EngineState.build(segments, params or EngineParams(), self._rng)
        self._scheduler = scheduler
        self._sink = sink
        self._observer = observer
        self._logger = logger or get_logger()
        self._metrics = metrics

        self._touch_segment_index = -1
        self._energy = -1.0
        self._handle: Hashable | None = None

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def params(self) -> EngineParams:
        return self._state.params

    @property
    def energy(self) -> float:
        return self._energy

    @property
    def is_running(self) -> bool:
        return self._handle is not None

    def set_observer(self, observer: BeatObserver | None) -> None:
        self._observer = observer

    def set_energy(self, energy: float) -> None:
        """Set the control energy; a negative value means no signal."""
        self._energy = float(energy)

    def set_touch_segment_index(self, index: int) -> None:
        """Queue a one-shot grain on a segment (-1 clears)."""
        index = int(index)
        if index >= 0 and index not in self._state.segments_by_index:
            raise ValueError(f"No segment with index {index}")
        self._touch_segment_index = max(index, -1)

    def touch(self, segment_index: int) -> None:
        self.set_touch_segment_index(segment_index)

    def start(self) -> None:
        """Attach to the periodic scheduler. Idempotent."""
        if self._handle is not None:
            return
        self._handle = self._scheduler.schedule(
            self.tick,
            max(MIN_PERIOD, self._state.params.period_abs),
            start_time=self._scheduler.current_time,
        )

    def stop(self) -> None:
        """Detach from the periodic scheduler. Idempotent."""
        if self._handle is None:
            return
        handle, self._handle = self._handle, None
        self._scheduler.cancel(handle)

    def reconfigure(
        self,
        params: EngineParams | None = None,
        segments: Iterable[Segment] | None = None,
    ) -> EngineState:
        """Swap in a new engine state built from params and/or segments."""
        current = self._state
        new_state = EngineState.build(
            current.segments if segments is None else segments,
            current.params if params is None else params,
            self._rng,
        )

        was_running = self.is_running
        self.stop()
        self._state = new_state
        if self._touch_segment_index not in new_state.segments_by_index:
            self._touch_segment_index = -1
        if was_running:
            self.start()
        return new_state

    def tick(self, scheduler_time: float) -> float:
        """Emit this period's grains and return the delay to the next tick."""
        state = self._state
        params = state.params
        envelope = GrainEnvelope.from_params(params)
        events: list[GrainEvent] = []

        touch_index = self._touch_segment_index
        if touch_index >= 0:
            self._touch_segment_index = -1
            events.append(GrainEvent(
                segment_index=touch_index,
                gain=1.0,
                scheduled_time=scheduler_time,
                kind=GrainKind.TOUCH,
                envelope=envelope,
            ))

        energy = self._energy
        if energy >= 0:
            target = energy_to_db(energy, params.energy_mapping) + state.max_log_power
            effective_energy = energy
        else:
            target = self._rng.uniform(
                state.min_log_power - FREE_RUN_MARGIN_DB,
                state.max_log_power + FREE_RUN_MARGIN_DB,
            )
            effective_energy = 1.0

        chosen = state.loudness.select(target, params.random_var)
        gain = db_to_linear(target - state.index.log_power_of(chosen))
        events.append(GrainEvent(
            segment_index=chosen,
            gain=gain,
            scheduled_time=scheduler_time,
            kind=GrainKind.TEXTURE,
            envelope=envelope,
        ))

        for event in events:
            self._sink.play_grain(event)
            self._logger.grain_triggered(event.kind.value, event.segment_index, event.gain)
            if self._metrics is not None:
                self._metrics.grains.inc(kind=event.kind.value)

        if self._observer is not None:
            time_until_sound = scheduler_time - self._scheduler.current_time
            self._observer(time_until_sound, chosen + 1, effective_energy)

        grain_duration = envelope.grain_duration(state.segments_by_index[chosen].duration)
        return max(MIN_PERIOD, params.period_abs + params.period_rel * grain_duration)
