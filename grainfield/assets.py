"""
Audio assets - decoded PCM buffers by asset id.

Features:
    - AudioBuffer value type (float32 samples + sample rate)
    - In-memory source for tests and generated material
    - soundfile-backed source reading a directory of audio files
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import numpy as np
import soundfile as sf

from grainfield.errors import MissingAssetError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AudioBuffer:
    """Decoded audio, shape (samples,) or (samples, channels)."""

    samples: np.ndarray
    sample_rate: int

    def __post_init__(self):
        if self.sample_rate <= 0:
            raise ValueError(f"sample_rate must be > 0, got {self.sample_rate}")

    @property
    def num_samples(self) -> int:
        return int(self.samples.shape[0])

    @property
    def duration(self) -> float:
        return self.num_samples / self.sample_rate

    @property
    def channels(self) -> int:
        return 1 if self.samples.ndim == 1 else int(self.samples.shape[1])

    def mono(self) -> np.ndarray:
        """First channel as float32, the channel every renderer reads."""
        data = self.samples if self.samples.ndim == 1 else self.samples[:, 0]
        return np.asarray(data, dtype=np.float32)


class InMemoryAudioSource:
    """Audio source backed by a dictionary.

    Example:
        source = InMemoryAudioSource()
        source.add(0, AudioBuffer(samples, 44100))
        buffer = source.get(0)
    """

    def __init__(self, buffers: Mapping[Any, AudioBuffer] | None = None):
        self._buffers: dict[Any, AudioBuffer] = dict(buffers or {})

    def add(self, asset_id: Any, buffer: AudioBuffer) -> None:
        self._buffers[asset_id] = buffer

    def remove(self, asset_id: Any) -> None:
        self._buffers.pop(asset_id, None)

    def has(self, asset_id: Any) -> bool:
        return asset_id in self._buffers

    def get(self, asset_id: Any) -> AudioBuffer:
        try:
            return self._buffers[asset_id]
        except KeyError:
            raise MissingAssetError(
                asset_id,
                details={"available": sorted(map(str, self._buffers))},
            ) from None


class SoundfileAudioSource:
    """Audio source reading files with soundfile, decoded once and cached.

    Asset ids map to file names relative to a directory, mirroring the
    per-installation asset list shared by every node.

    Example:
        source = SoundfileAudioSource("assets", {0: "rain.wav", 1: "bell.flac"})
        buffer = source.get(1)
    """

    def __init__(
        self,
        directory: str | Path,
        files: Mapping[Any, str] | None = None,
    ):
        self.directory = Path(directory)
        if files is None:
            files = {
                i: path.name
                for i, path in enumerate(sorted(self.directory.glob("*")))
                if path.suffix.lower() in {".wav", ".flac", ".ogg", ".aiff", ".aif"}
            }
        self._files = dict(files)
        self._cache: dict[Any, AudioBuffer] = {}
        self._lock = threading.Lock()

    @property
    def files(self) -> dict[Any, str]:
        return dict(self._files)

    def has(self, asset_id: Any) -> bool:
        return asset_id in self._files and (self.directory / self._files[asset_id]).exists()

    def get(self, asset_id: Any) -> AudioBuffer:
        with self._lock:
            cached = self._cache.get(asset_id)
            if cached is not None:
                return cached

            if not self.has(asset_id):
                raise MissingAssetError(
                    asset_id,
                    details={"directory": str(self.directory), "files": self.files},
                )

            path = self.directory / self._files[asset_id]
            data, sample_rate = sf.read(str(path), dtype="float32", always_2d=False)
            buffer = AudioBuffer(samples=data, sample_rate=int(sample_rate))
            self._cache[asset_id] = buffer
            logger.debug("Loaded asset %s from %s (%.2fs)", asset_id, path, buffer.duration)
            return buffer

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()


def write_audio(path: str | Path, samples: np.ndarray, sample_rate: int) -> Path:
    """Write float samples to an audio file (format from the extension)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    sf.write(str(path), np.asarray(samples, dtype=np.float32), sample_rate)
    return path
