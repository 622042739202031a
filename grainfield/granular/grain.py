"""
Grain playback - turns GrainEvents into samples.

The engine only decides which grain plays and how loud. This module applies
the pass-through envelope: read position, grain length, attack/release
ramps and a random playback-rate deviation in cents.
"""

from __future__ import annotations

import random
from typing import Iterable

import numpy as np

from grainfield.assets import AudioBuffer
from grainfield.granular.engine import GrainEvent
from grainfield.granular.segments import Segment
from grainfield.interfaces import PlaybackSink


class GrainRenderer:
    """Render grains cut from one audio asset.

    Example:
        renderer = GrainRenderer(buffer, segments)
        samples = renderer.render(event)
    """

    def __init__(
        self,
        audio: AudioBuffer,
        segments: Iterable[Segment],
        rng: random.Random | None = None,
    ):
        self._audio = audio
        self._source = audio.mono()
        self._segments = {s.index: s for s in segments}
        self._rng = rng or random.Random()

    @property
    def sample_rate(self) -> int:
        return self._audio.sample_rate

    def playback_rate(self, resampling_var: float) -> float:
        """Random rate deviation within +/- resampling_var cents."""
        if resampling_var <= 0:
            return 1.0
        cents = self._rng.uniform(-resampling_var, resampling_var)
        return 2.0 ** (cents / 1200.0)

    def render(self, event: GrainEvent) -> np.ndarray:
        segment = self._segments[event.segment_index]
        envelope = event.envelope
        sr = self.sample_rate

        duration = envelope.grain_duration(segment.duration)
        start = segment.start_offset + envelope.offset(segment.duration)
        rate = self.playback_rate(envelope.resampling_var)

        num_out = max(1, int(round(duration * sr / rate)))
        positions = start * sr + np.arange(num_out) * rate
        if len(self._source) == 0:
            grain = np.zeros(num_out, dtype=np.float32)
        else:
            grain = np.interp(
                positions,
                np.arange(len(self._source)),
                self._source,
                right=0.0,
            ).astype(np.float32)

        # Ramps are measured in output time and capped at half the grain
        half = num_out // 2
        attack_n = min(half, int(round(envelope.attack(duration) * sr / rate)))
        release_n = min(half, int(round(envelope.release(duration) * sr / rate)))
        gain_curve = np.ones(num_out, dtype=np.float32)
        if attack_n > 0:
            gain_curve[:attack_n] = np.linspace(0.0, 1.0, attack_n, endpoint=False)
        if release_n > 0:
            gain_curve[num_out - release_n:] = np.linspace(1.0, 0.0, release_n)

        return grain * gain_curve * np.float32(event.gain)


class RenderingGrainSink:
    """Grain sink that renders each event and hands it to a PlaybackSink."""

    def __init__(
        self,
        renderer: GrainRenderer,
        playback: PlaybackSink,
        gain: float = 1.0,
    ):
        self._renderer = renderer
        self._playback = playback
        self.gain = gain

    def set_renderer(self, renderer: GrainRenderer) -> None:
        self._renderer = renderer

    def play_grain(self, event: GrainEvent) -> None:
        samples = self._renderer.render(event)
        self._playback.play(
            samples,
            self._renderer.sample_rate,
            self.gain,
            event.scheduled_time,
        )
