"""
Collaborator protocols.

The core never implements audio output, transport, clock synchronization or
visual feedback itself. It talks to those through the narrow interfaces
below. Concrete test doubles live in grainfield.testing.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Hashable, Protocol, runtime_checkable

import numpy as np

if TYPE_CHECKING:
    from grainfield.assets import AudioBuffer
    from grainfield.granular.engine import GrainEvent


Color = tuple[int, int, int]

# A periodic callback receives the scheduled time and may return the delay
# until its next call. Returning None keeps the current period.
PeriodicCallback = Callable[[float], "float | None"]


@runtime_checkable
class SharedClock(Protocol):
    """Cross-node agreed time, read only."""

    def now(self) -> float:
        ...


@runtime_checkable
class AudioSource(Protocol):
    """Decoded PCM buffers by asset id."""

    def get(self, asset_id: Any) -> "AudioBuffer":
        """Return the buffer or raise MissingAssetError."""
        ...

    def has(self, asset_id: Any) -> bool:
        ...


@runtime_checkable
class PeriodicScheduler(Protocol):
    """Local, single-threaded timer service."""

    @property
    def current_time(self) -> float:
        ...

    def schedule(
        self,
        callback: PeriodicCallback,
        period: float,
        start_time: float | None = None,
    ) -> Hashable:
        ...

    def call_at(self, time: float, callback: Callable[[float], None]) -> Hashable:
        ...

    def cancel(self, handle: Hashable) -> None:
        ...


@runtime_checkable
class PlaybackSink(Protocol):
    """Plays rendered buffers on the local audio clock."""

    def play(
        self,
        samples: np.ndarray,
        sample_rate: int,
        gain: float,
        start_time: float,
        offset: float = 0.0,
        loop: bool = False,
    ) -> Hashable:
        """Start a buffer at local time start_time and return its id."""
        ...

    def stop(self, playback_id: Hashable) -> None:
        ...


@runtime_checkable
class GrainSink(Protocol):
    """Consumes grain events emitted by the granular engine."""

    def play_grain(self, event: "GrainEvent") -> None:
        ...


@runtime_checkable
class FeedbackSink(Protocol):
    """Visual feedback on the node (screen color, amplitude display)."""

    def blink(self, color: Color) -> None:
        ...

    def enable(self) -> None:
        ...

    def disable(self) -> None:
        ...


@runtime_checkable
class Transport(Protocol):
    """Message delivery between the coordinator and the players."""

    def send(self, receiver_id: Hashable, channel: str, payload: Any) -> None:
        ...

    def broadcast(self, channel: str, message: list[Any]) -> None:
        ...
