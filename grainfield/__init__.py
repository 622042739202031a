"""
grainfield - distributed granular and spatial audio for phone ensembles.

Architecture:
    Coordinator → tap lists + rendezvous times → players → PlaybackSink

Public API:
    GranularEngine      - Periodic grain trigger driven by a control energy
    LoudnessIndex       - Nearest-by-loudness grain lookup
    PropagationModel    - Path to per-player sparse impulse responses
    TapConvolutionRenderer - Sparse variable-rate convolution
    RendezvousScheduler - Start buffers on the shared clock
    Coordinator, PathPlayer, GrainPlayer, GroupPlayer - Node modules
    NodeConfig          - Node configuration

Collaborators (audio output, transport, clock sync, visual feedback) are
protocols in grainfield.interfaces; test doubles live in grainfield.testing.

Example:
    from grainfield import GranularEngine, CooperativeScheduler

    scheduler = CooperativeScheduler()
    engine = GranularEngine(segments, scheduler, grain_sink)
    engine.set_energy(0.5)
    engine.start()
"""

__version__ = "0.1.0"

from grainfield.errors import (
    GrainfieldError,
    MissingAssetError,
    UnresolvedTapListError,
    RendezvousMissedError,
    DegenerateIndexError,
    WirePayloadError,
)
from grainfield.assets import AudioBuffer, InMemoryAudioSource, SoundfileAudioSource
from grainfield.granular import (
    EngineParams,
    GrainEvent,
    GranularEngine,
    GrainRenderer,
    LoudnessIndex,
    Segment,
    SortedPowerIndex,
)
from grainfield.propagation import (
    PropagationModel,
    PropagationParams,
    ReceiverRegistry,
    Tap,
    TapList,
    decode_tap_list,
    encode_tap_list,
    parse_path,
)
from grainfield.render import RenderParams, RenderedBuffer, TapConvolutionRenderer
from grainfield.runtime import CooperativeScheduler, RendezvousScheduler
from grainfield.control import ControlRouter, InvokeCommand, SetParam
from grainfield.nodes import Coordinator, GrainPlayer, GroupPlayer, PathPlayer
from grainfield.config import NodeConfig

__all__ = [
    "__version__",
    # Errors
    "GrainfieldError",
    "MissingAssetError",
    "UnresolvedTapListError",
    "RendezvousMissedError",
    "DegenerateIndexError",
    "WirePayloadError",
    # Assets
    "AudioBuffer",
    "InMemoryAudioSource",
    "SoundfileAudioSource",
    # Granular
    "EngineParams",
    "GrainEvent",
    "GranularEngine",
    "GrainRenderer",
    "LoudnessIndex",
    "Segment",
    "SortedPowerIndex",
    # Propagation
    "PropagationModel",
    "PropagationParams",
    "ReceiverRegistry",
    "Tap",
    "TapList",
    "decode_tap_list",
    "encode_tap_list",
    "parse_path",
    # Rendering
    "RenderParams",
    "RenderedBuffer",
    "TapConvolutionRenderer",
    # Runtime
    "CooperativeScheduler",
    "RendezvousScheduler",
    # Control
    "ControlRouter",
    "InvokeCommand",
    "SetParam",
    # Nodes
    "Coordinator",
    "GrainPlayer",
    "GroupPlayer",
    "PathPlayer",
    # Config
    "NodeConfig",
]
