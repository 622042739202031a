"""
Test Fixtures - generated audio and segment sets.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from grainfield.assets import AudioBuffer
from grainfield.granular.segments import Segment


def create_test_audio(
    duration: float = 1.0,
    sample_rate: int = 44100,
    frequency: float = 440.0,
    amplitude: float = 0.5,
    audio_type: str = "tone",
) -> np.ndarray:
    """
    Create test audio data.

    Args:
        duration: Duration in seconds
        sample_rate: Sample rate in Hz
        frequency: Frequency for tone (if audio_type == "tone")
        amplitude: Amplitude (0-1)
        audio_type: "tone", "silence", "noise", "impulse" or "ramp"

    Returns:
        Float32 numpy array
    """
    num_samples = int(duration * sample_rate)

    if audio_type == "tone":
        t = np.arange(num_samples, dtype=np.float32) / sample_rate
        return (np.sin(2 * np.pi * frequency * t) * amplitude).astype(np.float32)

    elif audio_type == "noise":
        rng = np.random.default_rng(0)
        return rng.uniform(-amplitude, amplitude, num_samples).astype(np.float32)

    elif audio_type == "impulse":
        audio = np.zeros(num_samples, dtype=np.float32)
        if num_samples:
            audio[0] = amplitude
        return audio

    elif audio_type == "ramp":
        # sample i holds i / num_samples, handy for checking read positions
        return (np.arange(num_samples, dtype=np.float32) / max(num_samples, 1) * amplitude).astype(np.float32)

    return np.zeros(num_samples, dtype=np.float32)


def create_test_buffer(
    duration: float = 1.0,
    sample_rate: int = 44100,
    **kwargs,
) -> AudioBuffer:
    """create_test_audio wrapped in an AudioBuffer."""
    return AudioBuffer(create_test_audio(duration, sample_rate, **kwargs), sample_rate)


def create_segments(
    log_powers: Sequence[float],
    duration: float = 0.1,
) -> list[Segment]:
    """Back-to-back segments with the given log powers (dB)."""
    return [
        Segment(
            index=i,
            start_offset=i * duration,
            duration=duration,
            power=10.0 ** (log_power / 10.0),
        )
        for i, log_power in enumerate(log_powers)
    ]
