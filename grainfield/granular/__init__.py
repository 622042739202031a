"""
Granular synthesis driven by a loudness-sorted grain pool.

Components:
    Segment, SortedPowerIndex - Analyzed grains ordered by log power
    LoudnessIndex             - Nearest-by-loudness lookup with jitter
    GranularEngine            - Periodic touch/texture trigger
    GrainRenderer             - GrainEvent to samples

Usage:
    from grainfield.granular import GranularEngine, EngineParams

    engine = GranularEngine(segments, scheduler, sink, EngineParams(random_var=2))
    engine.set_energy(0.5)
    engine.start()
"""

from grainfield.granular.segments import (
    Segment,
    PowerEntry,
    SortedPowerIndex,
)
from grainfield.granular.loudness_index import LoudnessIndex
from grainfield.granular.engine import (
    EngineParams,
    EngineState,
    GrainEnvelope,
    GrainEvent,
    GrainKind,
    GranularEngine,
)
from grainfield.granular.grain import (
    GrainRenderer,
    RenderingGrainSink,
)

__all__ = [
    # Segments
    "Segment",
    "PowerEntry",
    "SortedPowerIndex",
    # Lookup
    "LoudnessIndex",
    # Engine
    "EngineParams",
    "EngineState",
    "GrainEnvelope",
    "GrainEvent",
    "GrainKind",
    "GranularEngine",
    # Playback
    "GrainRenderer",
    "RenderingGrainSink",
]
