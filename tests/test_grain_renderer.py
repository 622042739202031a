"""
Tests for grain rendering.
"""

import random

import numpy as np
import pytest

from grainfield.assets import AudioBuffer
from grainfield.granular.engine import GrainEnvelope, GrainEvent
from grainfield.granular.grain import GrainRenderer, RenderingGrainSink
from grainfield.granular.segments import Segment


SR = 1000


@pytest.fixture
def ones():
    return AudioBuffer(np.ones(SR, dtype=np.float32), SR)


@pytest.fixture
def segments():
    return [
        Segment(index=0, start_offset=0.0, duration=0.1, power=1.0),
        Segment(index=1, start_offset=0.95, duration=0.1, power=1.0),
    ]


def make_event(segment_index=0, gain=1.0, **envelope):
    defaults = dict(offset_abs=0.0, attack_abs=0.0, release_abs=0.0, resampling_var=0.0)
    defaults.update(envelope)
    return GrainEvent(
        segment_index=segment_index,
        gain=gain,
        scheduled_time=5.0,
        envelope=GrainEnvelope(**defaults),
    )


class TestGrainRenderer:
    """Tests for GrainRenderer."""

    def test_length_follows_segment(self, ones, segments):
        renderer = GrainRenderer(ones, segments)
        assert len(renderer.render(make_event())) == 100

    def test_gain_applied(self, ones, segments):
        renderer = GrainRenderer(ones, segments)
        samples = renderer.render(make_event(gain=0.5))
        assert np.allclose(samples, 0.5)

    def test_ramps(self, ones, segments):
        renderer = GrainRenderer(ones, segments)
        samples = renderer.render(make_event(attack_abs=0.01, release_abs=0.01))

        assert samples[0] == 0.0
        assert samples[-1] == pytest.approx(0.0)
        assert samples[50] == pytest.approx(1.0)
        assert np.all(np.diff(samples[:10]) > 0)

    def test_ramps_capped_at_half(self, ones, segments):
        renderer = GrainRenderer(ones, segments)
        samples = renderer.render(make_event(attack_abs=1.0, release_abs=1.0))
        assert len(samples) == 100
        assert samples.max() <= 1.0

    def test_reads_past_end_as_silence(self, ones, segments):
        renderer = GrainRenderer(ones, segments)
        samples = renderer.render(make_event(segment_index=1))
        assert np.allclose(samples[:50], 1.0)
        assert np.allclose(samples[60:], 0.0)

    def test_read_offset(self, segments):
        ramp = AudioBuffer(np.arange(SR, dtype=np.float32), SR)
        renderer = GrainRenderer(ramp, segments)
        samples = renderer.render(make_event(offset_abs=0.01))
        assert samples[0] == pytest.approx(10.0)

    def test_playback_rate_bounds(self, ones, segments):
        renderer = GrainRenderer(ones, segments, random.Random(5))
        for _ in range(100):
            rate = renderer.playback_rate(200.0)
            assert 2 ** (-200 / 1200) <= rate <= 2 ** (200 / 1200)

    def test_no_resampling(self, ones, segments):
        assert GrainRenderer(ones, segments).playback_rate(0.0) == 1.0

    def test_stereo_uses_first_channel(self, segments):
        stereo = np.stack([np.ones(SR), np.zeros(SR)], axis=1).astype(np.float32)
        renderer = GrainRenderer(AudioBuffer(stereo, SR), segments)
        assert np.allclose(renderer.render(make_event()), 1.0)


class TestRenderingGrainSink:
    """Tests for RenderingGrainSink."""

    def test_forwards_to_playback(self, ones, segments, playback_sink):
        sink = RenderingGrainSink(GrainRenderer(ones, segments), playback_sink, gain=0.8)
        sink.play_grain(make_event())

        record = playback_sink.last
        assert record.start_time == 5.0
        assert record.gain == 0.8
        assert record.sample_rate == SR
        assert len(record.samples) == 100

    def test_set_renderer(self, ones, segments, playback_sink):
        sink = RenderingGrainSink(GrainRenderer(ones, segments), playback_sink)
        short = [Segment(index=0, start_offset=0.0, duration=0.05, power=1.0)]
        sink.set_renderer(GrainRenderer(ones, short))
        sink.play_grain(make_event())
        assert len(playback_sink.last.samples) == 50
