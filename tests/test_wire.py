"""
Tests for the IR wire format.
"""

import numpy as np
import pytest

from grainfield.errors import WirePayloadError
from grainfield.propagation import Tap, TapList
from grainfield.propagation.wire import (
    decode_tap_list,
    encode_tap_list,
    payload_from_bytes,
    payload_to_bytes,
)


class TestEncode:
    """Tests for encode_tap_list."""

    def test_layout(self):
        tap_list = TapList(3, (Tap(0.0, 1.0), Tap(2.0, 0.5)), min_time=-1.0)
        payload = encode_tap_list(tap_list)

        assert payload.dtype == np.dtype("<f4")
        assert payload.tolist() == [3.0, -1.0, 0.0, 1.0, 2.0, 0.5]

    def test_empty_list_is_header_only(self):
        payload = encode_tap_list(TapList(4))
        assert payload.tolist() == [4.0, 0.0]

    def test_non_numeric_path_id(self):
        with pytest.raises(WirePayloadError, match="numeric"):
            encode_tap_list(TapList("intro", (Tap(0.0, 1.0),)))


class TestDecode:
    """Tests for decode_tap_list."""

    def test_decodes_encoded_list(self):
        original = TapList(7, (Tap(0.25, 0.9), Tap(1.5, 0.3)), min_time=-0.5)
        decoded = decode_tap_list(encode_tap_list(original))

        assert decoded.path_id == 7
        assert isinstance(decoded.path_id, int)
        assert decoded.min_time == pytest.approx(-0.5)
        assert [t.delay for t in decoded.taps] == pytest.approx([0.25, 1.5])
        assert [t.gain for t in decoded.taps] == pytest.approx([0.9, 0.3], rel=1e-6)

    def test_empty_body_gives_placeholder(self):
        decoded = decode_tap_list([2.0, 0.0])
        assert decoded.taps == (Tap(0.0, 0.0),)
        assert decoded.duration == 0.0

    def test_missing_header(self):
        with pytest.raises(WirePayloadError, match="header"):
            decode_tap_list([1.0])

    def test_odd_pairs(self):
        with pytest.raises(WirePayloadError, match="incomplete"):
            decode_tap_list([1.0, 0.0, 0.5])

    def test_values_clamped(self):
        decoded = decode_tap_list([1.0, 0.0, -0.001, 1.0000001])
        assert decoded.taps[0].delay == 0.0
        assert decoded.taps[0].gain == 1.0

    def test_fractional_path_id_kept(self):
        assert decode_tap_list([1.5, 0.0]).path_id == 1.5

    def test_error_details(self):
        with pytest.raises(WirePayloadError) as exc_info:
            decode_tap_list([])
        assert exc_info.value.details == {"size": 0}
        assert exc_info.value.kind == "wire_payload"


class TestBytes:
    """Tests for the binary socket form."""

    def test_little_endian_float32(self):
        payload = encode_tap_list(TapList(1, (Tap(0.5, 0.25),)))
        raw = payload_to_bytes(payload)
        assert len(raw) == 16
        assert raw[:4] == np.float32(1.0).astype("<f4").tobytes()

    def test_from_bytes(self):
        raw = payload_to_bytes(np.array([1.0, 0.0, 0.5, 0.25]))
        decoded = decode_tap_list(payload_from_bytes(raw))
        assert decoded.taps == (Tap(0.5, 0.25),)

    def test_truncated_bytes(self):
        with pytest.raises(WirePayloadError, match="multiple of 4"):
            payload_from_bytes(b"\x00\x00\x00")
