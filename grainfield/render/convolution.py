"""
Tap Convolution Renderer - sparse, variable-rate convolution.

A received TapList is a sparse impulse response. Rendering it against an
input buffer sums one delayed, gain-scaled and optionally re-sped copy of
the input per tap:

    out[d + i] += gain * in[read_start + round(i * read_speed)]

with d = round(delay * sr), read_start = floor(start_fraction * d) and
read_speed = 1 + read_speed_slope * delay. Taps arriving later can start
further into the source (start_fraction) and play faster or slower
(read_speed_slope), which is what makes a moving source audible.

The sum is then normalized so the loudest tap's nominal gain is the
ceiling, only attenuating when the mix exceeds full scale:

    norm_factor = max_tap_gain / max(peak, 1.0)

The samples are returned unscaled; norm_factor times the master gain is the
single amplitude scalar the playback sink applies.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

import numpy as np

from grainfield.assets import AudioBuffer
from grainfield.propagation.model import Tap, TapList

logger = logging.getLogger(__name__)

MIN_OUTPUT_SAMPLES = 512
TAIL_SECONDS = 1.0


@dataclass(frozen=True)
class RenderParams:
    """How the input is read for each tap.

    Fields:
        playback_percent: Fraction of the remaining input each tap plays.
        loop: Wrap read starts past the input end instead of skipping the tap.
        read_speed_slope: Playback-rate change per second of tap delay.
        start_fraction: Read start as a fraction of the tap delay.
    """

    playback_percent: float = 1.0
    loop: bool = True
    read_speed_slope: float = 0.0
    start_fraction: float = 0.0

    def __post_init__(self):
        if not 0.0 <= self.playback_percent <= 1.0:
            raise ValueError(
                f"playback_percent must be 0.0-1.0, got {self.playback_percent}"
            )
        if not 0.0 <= self.start_fraction <= 1.0:
            raise ValueError(f"start_fraction must be 0.0-1.0, got {self.start_fraction}")


@dataclass(frozen=True)
class RenderedBuffer:
    """Output of one render, owned by whoever it is handed to."""

    samples: np.ndarray
    sample_rate: int
    norm_factor: float = 1.0
    gain: float = 1.0

    @property
    def duration(self) -> float:
        return len(self.samples) / self.sample_rate

    def scaled(self) -> np.ndarray:
        """Samples with the output gain applied."""
        return self.samples * np.float32(self.gain)


def _round_half_up(values: np.ndarray | float):
    return np.floor(np.asarray(values) + 0.5)


class TapConvolutionRenderer:
    """Render tap lists against an input buffer.

    Example:
        renderer = TapConvolutionRenderer(RenderParams(loop=False))
        rendered = renderer.render(input_buffer, tap_list, master_gain=0.8)
        sink.play(rendered.samples, rendered.sample_rate, rendered.gain, start)
    """

    def __init__(self, params: RenderParams | None = None):
        self.params = params or RenderParams()

    @staticmethod
    def output_length(ir_duration: float, input_duration: float, sample_rate: int) -> int:
        return max(
            MIN_OUTPUT_SAMPLES,
            int(math.ceil((ir_duration + input_duration + TAIL_SECONDS) * sample_rate)),
        )

    def render(
        self,
        audio: AudioBuffer,
        tap_list: TapList,
        master_gain: float = 1.0,
        params: RenderParams | None = None,
    ) -> RenderedBuffer:
        params = params or self.params
        source = audio.mono()
        sr = audio.sample_rate

        output = np.zeros(
            self.output_length(tap_list.duration, audio.duration, sr),
            dtype=np.float32,
        )

        skipped = 0
        for tap in tap_list.taps:
            if not self._accumulate(output, source, tap, sr, params):
                skipped += 1

        peak = float(np.max(np.abs(output))) if output.size else 0.0
        norm_factor = tap_list.max_gain / max(peak, 1.0)

        logger.debug(
            "Rendered path %s: %d taps (%d silent), %d samples, peak=%.3f, norm=%.3f",
            tap_list.path_id, len(tap_list), skipped, len(output), peak, norm_factor,
        )

        return RenderedBuffer(
            samples=output,
            sample_rate=sr,
            norm_factor=norm_factor,
            gain=norm_factor * master_gain,
        )

    def _accumulate(
        self,
        output: np.ndarray,
        source: np.ndarray,
        tap: Tap,
        sample_rate: int,
        params: RenderParams,
    ) -> bool:
        """Add one tap into output. Returns False when it contributes nothing."""
        length = len(source)
        delay_samples = int(_round_half_up(tap.delay * sample_rate))

        read_start = int(math.floor(params.start_fraction * delay_samples))
        if params.loop and length > 0:
            read_start %= length
        if read_start >= length:
            return False

        read_speed = 1.0 + params.read_speed_slope * tap.delay
        if read_speed <= 0:
            return False

        count = int(math.floor((length - read_start) * params.playback_percent))
        count = int(math.floor(count / read_speed))
        count = min(count, len(output) - delay_samples)
        if count <= 0:
            return False

        indices = read_start + _round_half_up(np.arange(count) * read_speed).astype(np.int64)
        # indices are non-decreasing, so the in-range ones form a prefix
        count = int(np.searchsorted(indices, length))
        if count == 0:
            return False

        output[delay_samples:delay_samples + count] += np.float32(tap.gain) * source[indices[:count]]
        return True
