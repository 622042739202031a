"""
Sound propagation through the player topology.

Components:
    Point2D           - Floor-plan coordinates
    ReceiverRegistry  - Positions of connected players
    PropagationModel  - Path to per-receiver tap lists
    encode/decode     - Flat float32 wire format for tap lists

Usage:
    from grainfield.propagation import PropagationModel, parse_path

    model = PropagationModel()
    result = model.compute(1, parse_path([0.0, 0.0, 0.0]), {"a": (3.0, 4.0)})
    result["a"].taps   # (Tap(delay=5.0, gain=0.59...),)
"""

from grainfield.propagation.position import Point2D
from grainfield.propagation.registry import ReceiverRegistry
from grainfield.propagation.model import (
    PathPoint,
    PropagationModel,
    PropagationParams,
    PropagationResult,
    Tap,
    TapList,
    parse_path,
)
from grainfield.propagation.wire import (
    decode_tap_list,
    encode_tap_list,
    payload_from_bytes,
    payload_to_bytes,
)

__all__ = [
    # Positions
    "Point2D",
    "ReceiverRegistry",
    # Model
    "PathPoint",
    "PropagationModel",
    "PropagationParams",
    "PropagationResult",
    "Tap",
    "TapList",
    "parse_path",
    # Wire
    "decode_tap_list",
    "encode_tap_list",
    "payload_from_bytes",
    "payload_to_bytes",
]
