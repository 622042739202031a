"""
Rendering of received impulse responses.

Streaming a tap list into audio is a player-side concern; the coordinator
only ever sends taps.
"""

from grainfield.render.convolution import (
    MIN_OUTPUT_SAMPLES,
    RenderParams,
    RenderedBuffer,
    TapConvolutionRenderer,
)
from grainfield.render.cache import (
    CacheStats,
    TapListCache,
)

__all__ = [
    # Convolution
    "MIN_OUTPUT_SAMPLES",
    "RenderParams",
    "RenderedBuffer",
    "TapConvolutionRenderer",
    # Cache
    "CacheStats",
    "TapListCache",
]
