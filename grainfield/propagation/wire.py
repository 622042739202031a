"""
IR wire format.

A tap list travels coordinator -> player as a flat float32 array:

    [path_id, min_time, delay_0, gain_0, delay_1, gain_1, ..., delay_k, gain_k]

Delays are already normalized by min_time on the sending side; min_time is
carried for buffer sizing only. A payload with no tap pairs decodes to the
single placeholder tap (0.0, 0.0), so buffer sizing never works on an empty
sequence.
"""

from __future__ import annotations

from numbers import Real
from typing import Sequence

import numpy as np

from grainfield.errors import WirePayloadError
from grainfield.propagation.model import Tap, TapList

HEADER_SIZE = 2
WIRE_DTYPE = np.dtype("<f4")


def encode_tap_list(tap_list: TapList) -> np.ndarray:
    """Flatten a TapList into its wire array."""
    if not isinstance(tap_list.path_id, Real):
        raise WirePayloadError(
            f"Path id must be numeric to be sent, got {tap_list.path_id!r}"
        )

    payload = np.empty(HEADER_SIZE + 2 * len(tap_list.taps), dtype=WIRE_DTYPE)
    payload[0] = tap_list.path_id
    payload[1] = tap_list.min_time
    for i, tap in enumerate(tap_list.taps):
        payload[HEADER_SIZE + 2 * i] = tap.delay
        payload[HEADER_SIZE + 2 * i + 1] = tap.gain
    return payload


def decode_tap_list(payload: Sequence[float] | np.ndarray) -> TapList:
    """Rebuild a TapList from its wire array.

    Raises:
        WirePayloadError: If the header is missing or the pairs are incomplete.
    """
    data = np.asarray(payload, dtype=np.float64)
    if data.ndim != 1 or data.size < HEADER_SIZE:
        raise WirePayloadError(
            "IR payload needs a [path_id, min_time] header",
            details={"size": int(data.size)},
        )

    body = data[HEADER_SIZE:]
    if body.size % 2 != 0:
        raise WirePayloadError(
            "IR payload has an incomplete (delay, gain) pair",
            details={"size": int(data.size)},
        )

    raw_id = float(data[0])
    path_id = int(raw_id) if raw_id.is_integer() else raw_id

    if body.size == 0:
        taps: tuple[Tap, ...] = (Tap(0.0, 0.0),)
    else:
        pairs = body.reshape(-1, 2)
        delays = np.maximum(pairs[:, 0], 0.0)
        gains = np.clip(pairs[:, 1], 0.0, 1.0)
        taps = tuple(Tap(float(d), float(g)) for d, g in zip(delays, gains))

    return TapList(path_id=path_id, taps=taps, min_time=float(data[1]))


def payload_to_bytes(payload: np.ndarray) -> bytes:
    """Serialize a wire array for a binary socket."""
    return np.asarray(payload, dtype=WIRE_DTYPE).tobytes()


def payload_from_bytes(raw: bytes) -> np.ndarray:
    if len(raw) % WIRE_DTYPE.itemsize != 0:
        raise WirePayloadError(
            f"IR payload length {len(raw)} is not a multiple of {WIRE_DTYPE.itemsize}"
        )
    return np.frombuffer(raw, dtype=WIRE_DTYPE)
